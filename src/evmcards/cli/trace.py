"""
Trace command implementation.

One-shot debug replay of a mined transaction, printed as JSON. Uses the same
tracer configuration rules as the console's DEBUG_TRACE action.
"""

import json

from evmcards.cards.tracers import TracerConfig, TracerKind
from evmcards.utils.exceptions import ConfigError, EvmCardsError, RPCConnectionError
from evmcards.utils.logging import logger
from evmcards.cli.common import (
    create_client,
    handle_command_error,
    load_settings,
    parse_option_args,
    print_connection_info,
)


def trace_command(args) -> int:
    """
    Execute the trace command.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    try:
        config = load_settings(args)
        options = parse_option_args(args.options)
        tracer = TracerConfig(TracerKind(args.tracer), options)
    except ConfigError as e:
        return handle_command_error(e)
    except KeyError as e:
        return handle_command_error(ConfigError(str(e.args[0])))

    print_connection_info(config.rpc_url)
    client = create_client(config)
    if not client.check_connection():
        return handle_command_error(
            RPCConnectionError(f"Failed to connect to {config.rpc_url}", rpc_url=config.rpc_url)
        )

    logger.debug(f"Tracing {args.tx_hash} with {tracer.to_rpc()}")
    try:
        result = client.trace_transaction(args.tx_hash, tracer)
    except EvmCardsError as e:
        return handle_command_error(e)

    print(json.dumps(result, indent=2))
    return 0
