#!/usr/bin/env python3
"""
Main entry point for evmcards

This module serves as the CLI entry point, handling argument parsing
and routing to the command implementations in the cli/ module.
"""

import sys
import argparse

from evmcards import __version__
from evmcards.utils.logging import setup_logging

from .console import console_command
from .validate import validate_command
from .trace import trace_command


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='evmcards - contract calls and transactions as cards')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--rpc-url', '-r', default=None, help='RPC URL (overrides config and ETH_RPC_URL)')
    parser.add_argument('--config', default=None, help='Config file (default: ~/.evmcards/config.json)')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable trace-level logging')
    parser.add_argument('--quiet', '-q', action='store_true', help='Suppress log output')
    parser.add_argument('--log-file', default=None, help='Also write logs to this file')

    subparsers = parser.add_subparsers(dest='command', help='Commands')
    subparsers.required = True

    # console command
    console_parser = subparsers.add_parser('console', help='Start the interactive card console')
    console_parser.add_argument('--abi', action='append', default=[], help='ABI file to load (repeat with --at)')
    console_parser.add_argument('--at', action='append', default=[], help='Contract address for the matching --abi')
    console_parser.add_argument('--from', dest='from_addr', default=None, help='Sender address (unlocked on the node)')
    console_parser.add_argument('--poll-interval', type=float, default=None, help='Seconds between receipt polls')
    console_parser.add_argument('--max-polls', type=int, default=None, help='Receipt polls before a transaction is marked stalled (0 = never)')
    console_parser.add_argument('--viewer', default=None, help='Command used to view JSON (default: $PAGER or less)')

    # validate command
    validate_parser = subparsers.add_parser('validate', help='Validate a value against an ABI type')
    validate_parser.add_argument('type', help='ABI type, e.g. uint8, address[], (address,uint256)[]')
    validate_parser.add_argument('text', help='Value text as typed into a form field')
    validate_parser.add_argument('--json', action='store_true', help='Output the result as JSON')

    # trace command
    trace_parser = subparsers.add_parser('trace', help='Replay a mined transaction with a debug tracer')
    trace_parser.add_argument('tx_hash', help='Transaction hash to trace')
    trace_parser.add_argument('--tracer', '-t', default='call', choices=['call', 'prestate', 'oplog', 'flatcall'],
                              help='Tracer to use (default: call)')
    trace_parser.add_argument('--set', dest='options', action='append', default=[], metavar='NAME=BOOL',
                              help='Set a tracer option, e.g. --set onlyTopCall=true')

    return parser


def main(argv=None):
    """Main entry point for evmcards CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        quiet=args.quiet,
        debug=args.debug,
        verbose=args.verbose,
        log_file=args.log_file,
    )

    if args.command == 'console':
        return console_command(args)
    elif args.command == 'validate':
        return validate_command(args)
    elif args.command == 'trace':
        return trace_command(args)

    return 0


if __name__ == '__main__':
    sys.exit(main())
