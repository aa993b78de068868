"""certctl command line surface."""
