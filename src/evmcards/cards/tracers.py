"""
Tracer choices for debug replays.

Each tracer kind has a fixed set of boolean options with documented defaults;
the config editor can flip them but never add or remove one.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class TracerKind(str, Enum):
    CALL = "call"
    PRESTATE = "prestate"
    OPLOG = "oplog"
    FLAT_CALL = "flatcall"

    @property
    def tracer_name(self) -> str:
        return TRACER_NAMES[self]

    @property
    def title(self) -> str:
        return TRACER_TITLES[self]


TRACER_NAMES = {
    TracerKind.CALL: "callTracer",
    TracerKind.PRESTATE: "prestateTracer",
    TracerKind.OPLOG: "oplogTracer",
    TracerKind.FLAT_CALL: "flatCallTracer",
}

TRACER_TITLES = {
    TracerKind.CALL: "Call Tracer",
    TracerKind.PRESTATE: "Prestate Tracer",
    TracerKind.OPLOG: "Oplog Tracer",
    TracerKind.FLAT_CALL: "Flat Call Tracer",
}

DEFAULT_OPTIONS: Dict[TracerKind, Dict[str, bool]] = {
    TracerKind.CALL: {"onlyTopCall": False, "withLog": True},
    TracerKind.PRESTATE: {"diffMode": True},
    TracerKind.OPLOG: {},
    TracerKind.FLAT_CALL: {"includePrecompiles": False},
}


def tracer_kinds() -> List[TracerKind]:
    """Tracers offered by the DEBUG_TRACE sub-menu, in display order."""
    return [TracerKind.CALL, TracerKind.PRESTATE, TracerKind.OPLOG, TracerKind.FLAT_CALL]


@dataclass
class TracerConfig:
    kind: TracerKind
    options: Dict[str, bool] = field(default_factory=dict)

    @classmethod
    def defaults(cls, kind: TracerKind) -> "TracerConfig":
        return cls(kind, dict(DEFAULT_OPTIONS[kind]))

    def __post_init__(self):
        allowed = DEFAULT_OPTIONS[self.kind]
        unknown = set(self.options) - set(allowed)
        if unknown:
            raise KeyError(f"{self.kind.title} has no option(s): {', '.join(sorted(unknown))}")
        # Options not given keep their defaults
        self.options = {**allowed, **self.options}

    @property
    def option_names(self) -> List[str]:
        return list(DEFAULT_OPTIONS[self.kind])

    def set(self, name: str, enabled: bool) -> None:
        if name not in DEFAULT_OPTIONS[self.kind]:
            raise KeyError(f"{self.kind.title} has no option '{name}'")
        self.options[name] = bool(enabled)

    def toggle(self, name: str) -> bool:
        if name not in DEFAULT_OPTIONS[self.kind]:
            raise KeyError(f"{self.kind.title} has no option '{name}'")
        self.options[name] = not self.options[name]
        return self.options[name]

    def to_rpc(self) -> Dict[str, Any]:
        """Trace options object for debug_traceTransaction / debug_traceCall."""
        params: Dict[str, Any] = {"tracer": self.kind.tracer_name}
        if self.options:
            params["tracerConfig"] = dict(self.options)
        return params
