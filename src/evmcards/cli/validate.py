"""
Validate command implementation.

Runs the field validator once on a type and a value text, exactly as a form
field would, and prints the parsed value or the validation error.
"""

import json

from evmcards.abi.types import parse_type
from evmcards.abi.validator import validate
from evmcards.utils.colors import dim, error, success
from evmcards.utils.exceptions import InvalidTypeError, ValidationError
from evmcards.cli.common import handle_command_error


def validate_command(args) -> int:
    """
    Execute the validate command.

    Returns:
        0 if the text is valid, 1 on a validation or type error
    """
    json_mode = getattr(args, 'json', False)

    try:
        value_type = parse_type(args.type)
    except InvalidTypeError as e:
        return handle_command_error(e, json_mode)

    try:
        value = validate(value_type, args.text)
    except ValidationError as e:
        if json_mode:
            print(json.dumps({"valid": False, "abi_type": value_type.canonical(), **e.to_dict()}, indent=2))
        else:
            print(f"{error('invalid')} {value_type.canonical()}: {e.error_code}: {e.message}")
        return 1

    if json_mode:
        print(json.dumps({"valid": True, "abi_type": value_type.canonical(), "value": value.to_json()}, indent=2))
    else:
        print(f"{success('valid')} {value_type.canonical()} {dim('=')} {value.render()}")
    return 0
