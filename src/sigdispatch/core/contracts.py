# src/sigdispatch/core/contracts.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Tuple, Union

__all__ = [
    "SignalName",
    "DirectReceiver",
    "DeclarativeReceiver",
    "ReceiverDescriptor",
    "Outcome",
    "ReceiverResult",
    "DispatchReport",
    "sender_label",
]


# --------- Primitive / aliases ---------
SignalName = str


# --------- Receiver descriptors ---------
@dataclass(frozen=True, slots=True)
class DirectReceiver:
    """An already-invocable receiver: a callable or a bound (obj, "method") pair."""
    target: Any

    @classmethod
    def accepts(cls, raw: Any) -> bool:
        if isinstance(raw, tuple) and len(raw) == 2 and isinstance(raw[1], str):
            return callable(getattr(raw[0], raw[1], None))
        return callable(raw)

    def resolve(self) -> Callable[..., Any]:
        if isinstance(self.target, tuple):
            obj, method = self.target
            return getattr(obj, method)
        return self.target

    def __call__(self, sender: Any, params: Any) -> Any:
        return self.resolve()(sender, params)

    @property
    def name(self) -> str:
        if isinstance(self.target, tuple):
            obj, method = self.target
            return f"{type(obj).__name__}.{method}"
        return getattr(self.target, "__qualname__", repr(self.target))


@dataclass(frozen=True, slots=True)
class DeclarativeReceiver:
    """A receiver described by module location + optional class + function name."""
    function_name: str = ""
    module_file_name: Optional[str] = None
    module_file_path: Optional[str] = None
    class_name: Optional[str] = None
    sender_filter: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "DeclarativeReceiver":
        # empty strings mean "not given", same as a missing key
        def opt(key: str) -> Optional[str]:
            v = d.get(key)
            return str(v) if v else None

        # filepath "" is the app root, only a missing key leaves the location incomplete
        path = d.get("filepath")
        return cls(
            function_name=str(d.get("function") or ""),
            module_file_name=opt("filename"),
            module_file_path=None if path is None else str(path),
            class_name=opt("class"),
            sender_filter=opt("sender"),
        )

    def to_dict(self) -> dict:
        return {
            "class": self.class_name or "",
            "function": self.function_name,
            "filename": self.module_file_name,
            "filepath": self.module_file_path,
            "sender": self.sender_filter or "",
        }

    @property
    def name(self) -> str:
        if self.class_name:
            return f"{self.class_name}.{self.function_name}"
        return self.function_name or "<unnamed>"


ReceiverDescriptor = Union[DirectReceiver, DeclarativeReceiver]


# --------- Dispatch results ---------
class Outcome(str, Enum):
    INVOKED = "invoked"
    GUARD_HELD = "guard_held"      # nested declarative resolution refused
    INCOMPLETE = "incomplete"      # filename/filepath/function missing
    MISSING_FILE = "missing_file"
    FILTERED = "filtered"          # sender filter mismatch
    UNRESOLVED = "unresolved"      # class/method/function unavailable after load

    def __bool__(self) -> bool:
        return self is Outcome.INVOKED


@dataclass(frozen=True, slots=True)
class ReceiverResult:
    descriptor: ReceiverDescriptor
    outcome: Outcome


@dataclass(frozen=True, slots=True)
class DispatchReport:
    """Per-receiver outcome of one dispatch call; truthy when the signal had receivers."""
    signal: SignalName
    handled: bool
    results: Tuple[ReceiverResult, ...] = ()

    def __bool__(self) -> bool:
        return self.handled

    @property
    def invoked(self) -> int:
        return sum(1 for r in self.results if r.outcome is Outcome.INVOKED)

    @property
    def skipped(self) -> Tuple[ReceiverResult, ...]:
        return tuple(r for r in self.results if r.outcome is not Outcome.INVOKED)


def sender_label(sender: Any) -> str:
    """Identity label used for sender filtering."""
    if isinstance(sender, str):
        return sender
    if isinstance(sender, type):
        return sender.__name__
    return type(sender).__name__
