"""
CLI module for evmcards commands.

This module provides the command-line interface for evmcards,
including the interactive console and the validate and trace commands.
"""

from .main import main

__all__ = [
    'main',
    'console_command',
    'validate_command',
    'trace_command',
]


# Command entry points for programmatic use
def console_command(args):
    """Execute the console command."""
    from .console import console_command as _console_command
    return _console_command(args)


def validate_command(args):
    """Execute the validate command."""
    from .validate import validate_command as _validate_command
    return _validate_command(args)


def trace_command(args):
    """Execute the trace command."""
    from .trace import trace_command as _trace_command
    return _trace_command(args)
