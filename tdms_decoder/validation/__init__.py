"""Validation utilities.

This package contains *non-interactive* tooling:

1) ``synthetic``: byte-exact segment builder for reference and negative inputs.
2) ``dump_index``: CLI-style entry point printing the decoded index of a file.
"""
