"""
Shared utilities: configuration-aware logging, errors, progress tracking and
display helpers.
"""
