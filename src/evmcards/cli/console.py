"""
Console command implementation.

Builds a Session from the configuration, loads the requested ABIs and hands
control to the interactive console.
"""

from evmcards.abi.methods import load_abi_file
from evmcards.console import CardConsole
from evmcards.core.session import Session
from evmcards.utils.colors import warning
from evmcards.utils.exceptions import ConfigError, EvmCardsError, InvalidTypeError
from evmcards.cli.common import (
    create_client,
    handle_command_error,
    load_settings,
    normalize_address,
    print_connection_info,
)


def console_command(args) -> int:
    """
    Execute the console command.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if len(args.abi) != len(args.at):
        return handle_command_error(ConfigError("Every --abi needs a matching --at address"))

    try:
        config = load_settings(args)
    except ConfigError as e:
        return handle_command_error(e)

    print_connection_info(config.rpc_url)
    client = create_client(config)
    session = Session(client, config)
    console = CardConsole(session)

    for abi_path, target in zip(args.abi, args.at):
        try:
            abi = load_abi_file(abi_path)
            console.load_abi(abi, abi.methods(normalize_address(target)))
        except (OSError, ValueError, InvalidTypeError) as e:
            return handle_command_error(e)

    if not client.check_connection():
        print(warning(f"Cannot reach {config.rpc_url}; results will appear once it is up"))
        session.connected = False
    else:
        session.refresh_account()

    try:
        console.cmdloop()
    except KeyboardInterrupt:
        print("\nInterrupted")
    except EvmCardsError as e:
        return handle_command_error(e)
    finally:
        session.shutdown()
    return 0
