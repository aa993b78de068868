"""Shared runtime primitives: errors, exit codes, context, logging, clock."""
