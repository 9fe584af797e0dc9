"""
Output cards: the card model, the card store, per-card action menus and
tracer configuration.
"""

from .card import (
    Card,
    CardKind,
    TxStatus,
    Severity,
    Receipt,
    CallPayload,
    TransactionPayload,
    LogPayload,
)
from .store import CardStore
from .actions import CardAction, ActionMenu, actions_for
from .modes import Browsing, MenuOpen, TracerSelect, TracerConfigEdit, ModeStack
from .tracers import TracerKind, TracerConfig, DEFAULT_OPTIONS, tracer_kinds
from .render import render_card, call_to_json, logs_to_json, to_pretty_json

__all__ = [
    'Card',
    'CardKind',
    'TxStatus',
    'Severity',
    'Receipt',
    'CallPayload',
    'TransactionPayload',
    'LogPayload',
    'CardStore',
    'CardAction',
    'ActionMenu',
    'actions_for',
    'Browsing',
    'MenuOpen',
    'TracerSelect',
    'TracerConfigEdit',
    'ModeStack',
    'TracerKind',
    'TracerConfig',
    'DEFAULT_OPTIONS',
    'tracer_kinds',
    'render_card',
    'call_to_json',
    'logs_to_json',
    'to_pretty_json',
]
