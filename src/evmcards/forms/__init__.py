"""
Parameter forms: typed fields, flattening of tuple parameters and the
fail-closed submission state machine.
"""

from .fields import Field, AmountField, flatten_parameters, assemble
from .form import ParameterForm, FormState

__all__ = [
    'Field',
    'AmountField',
    'flatten_parameters',
    'assemble',
    'ParameterForm',
    'FormState',
]
