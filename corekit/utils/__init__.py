"""
Generic utility functions shared across modules.

Includes scheduler abstractions, number helpers and base conversion,
and logging setup.
"""
