"""
UI mode stack for the output panel.

Overlays are pushed on top of Browsing, which is always at the bottom:

    Browsing
    Browsing > MenuOpen(card)
    Browsing > MenuOpen(card) > TracerSelect(card)
    Browsing > MenuOpen(card) > TracerSelect(card) > TracerConfigEdit(card, config)
"""

from dataclasses import dataclass, field
from typing import List, Union

from .actions import ActionMenu
from .tracers import TracerConfig, TracerKind, tracer_kinds


@dataclass
class Browsing:
    pass


@dataclass
class MenuOpen:
    card_id: int
    menu: ActionMenu


@dataclass
class TracerSelect:
    card_id: int
    choices: List[TracerKind] = field(default_factory=tracer_kinds)
    cursor: int = 0

    @property
    def current(self) -> TracerKind:
        return self.choices[self.cursor]

    def move_down(self) -> None:
        self.cursor = (self.cursor + 1) % len(self.choices)

    def move_up(self) -> None:
        self.cursor = (self.cursor - 1) % len(self.choices)


@dataclass
class TracerConfigEdit:
    card_id: int
    config: TracerConfig

    @property
    def tracer(self) -> TracerKind:
        return self.config.kind


Mode = Union[Browsing, MenuOpen, TracerSelect, TracerConfigEdit]


class ModeStack:
    def __init__(self):
        self._stack: List[Mode] = [Browsing()]

    def __len__(self):
        return len(self._stack)

    def __repr__(self):
        return " > ".join(type(m).__name__ for m in self._stack)

    @property
    def current(self) -> Mode:
        return self._stack[-1]

    @property
    def is_browsing(self) -> bool:
        return isinstance(self.current, Browsing)

    def push(self, mode: Mode) -> Mode:
        if isinstance(mode, Browsing):
            raise ValueError("Browsing can only be the bottom mode")
        self._stack.append(mode)
        return mode

    def pop(self) -> Mode:
        """Close the top overlay. Popping Browsing is a no-op."""
        if len(self._stack) == 1:
            return self._stack[0]
        self._stack.pop()
        return self.current

    def reset(self) -> None:
        del self._stack[1:]
