"""
Common utilities for CLI commands.

This module provides shared functionality used across the CLI commands
so that configuration, connection and error output behave the same way.
"""

import sys
from typing import Any, Dict, List

from eth_utils import to_checksum_address
from eth_utils.address import is_address

from evmcards.abi.validator import FALSE_LITERALS, TRUE_LITERALS
from evmcards.config import Config, load_config
from evmcards.core.rpc_client import RpcClient
from evmcards.utils.colors import info
from evmcards.utils.exceptions import ConfigError, format_error
from evmcards.utils.logging import logger

# --set flags take the same literals as bool form fields
BOOL_WORDS = {**{w: True for w in TRUE_LITERALS}, **{w: False for w in FALSE_LITERALS}}


def load_settings(args: Any) -> Config:
    """
    Load the configuration file and apply command line overrides.

    Raises:
        ConfigError: If the configuration file is invalid
    """
    config = load_config(getattr(args, 'config', None))
    return config.with_overrides(
        rpc_url=getattr(args, 'rpc_url', None),
        address=getattr(args, 'from_addr', None),
        poll_interval=getattr(args, 'poll_interval', None),
        max_poll_attempts=getattr(args, 'max_polls', None),
        viewer=getattr(args, 'viewer', None),
    )


def create_client(config: Config) -> RpcClient:
    """
    Create an RpcClient from the configuration.

    The node is not contacted here; use check_connection() for that.
    """
    logger.debug(f"Using RPC: {config.rpc_url}")
    return RpcClient(
        config.rpc_url,
        timeout=config.request_timeout,
        private_key=config.private_key,
        from_address=config.address,
    )


def normalize_address(address: str) -> str:
    """
    Normalize an Ethereum address to checksum format.

    Raises:
        ValueError: If address is invalid
    """
    if not address:
        raise ValueError("Address cannot be empty")

    if not address.startswith('0x'):
        address = '0x' + address

    if not is_address(address):
        raise ValueError(f"Invalid Ethereum address: {address}")

    return to_checksum_address(address)


def parse_option_args(options: List[str]) -> Dict[str, bool]:
    """
    Parse ``NAME=BOOL`` pairs from repeated --set flags.

    Raises:
        ConfigError: If a pair is malformed
    """
    parsed = {}
    for item in options:
        name, sep, value = item.partition('=')
        if not sep or not name or value.strip().lower() not in BOOL_WORDS:
            raise ConfigError(f"Expected NAME=true|false, got '{item}'")
        parsed[name.strip()] = BOOL_WORDS[value.strip().lower()]
    return parsed


def handle_command_error(
    e: Exception,
    json_mode: bool = False,
    exit_code: int = 1
) -> int:
    """
    Handle command errors uniformly.

    Args:
        e: The exception that occurred
        json_mode: If True, output as JSON
        exit_code: Exit code to return

    Returns:
        Exit code
    """
    error_output = format_error(e, json_mode)
    if json_mode:
        print(error_output)
    else:
        print(error_output, file=sys.stderr)
    return exit_code


def print_connection_info(rpc_url: str, json_mode: bool = False) -> None:
    """Print RPC connection information (skipped in JSON mode)."""
    if not json_mode:
        print(f"Connecting to RPC: {info(rpc_url)}", file=sys.stderr)
