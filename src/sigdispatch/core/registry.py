# src/sigdispatch/core/registry.py
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Tuple

from sigdispatch.core import log
from sigdispatch.core.contracts import (
    DeclarativeReceiver,
    DirectReceiver,
    ReceiverDescriptor,
    SignalName,
)

l = log.get("registry")


def _classify(signal: str, raw: Any) -> Optional[ReceiverDescriptor]:
    if isinstance(raw, Mapping):
        return DeclarativeReceiver.from_dict(raw)
    if DirectReceiver.accepts(raw):
        return DirectReceiver(raw)
    l.warning("dropping unrecognised receiver for signal=%s: %r", signal, raw)
    return None


def normalize_entry(signal: str, raw: Any) -> Tuple[ReceiverDescriptor, ...]:
    """Turn one raw registration value into an ordered tuple of descriptors.

    A mapping counts as a single declarative receiver only when it holds a
    ``function`` key; a callable or an ``(obj, "method")`` pair is a single
    direct receiver. Anything else is iterated as a sequence of receivers.
    """
    if isinstance(raw, Mapping):
        if "function" in raw:
            items = [raw]
        else:
            items = list(raw.values())
    elif DirectReceiver.accepts(raw):
        items = [raw]
    elif isinstance(raw, (list, tuple)):
        items = list(raw)
    else:
        items = [raw]

    out = []
    for item in items:
        d = _classify(signal, item)
        if d is not None:
            out.append(d)
    return tuple(out)


class ReceiverRegistry(Mapping[SignalName, Tuple[ReceiverDescriptor, ...]]):
    """Read-only signal -> receivers table, built once from a raw config table."""

    def __init__(self, table: Any = None):
        entries = {}
        if isinstance(table, Mapping):
            for signal, raw in table.items():
                entries[str(signal)] = normalize_entry(str(signal), raw)
        else:
            if table is not None:
                l.warning("receiver table is %s, not a mapping; registry is empty", type(table).__name__)
        self._entries = MappingProxyType(entries)

    def __getitem__(self, signal: SignalName) -> Tuple[ReceiverDescriptor, ...]:
        return self._entries[signal]

    def __iter__(self) -> Iterator[SignalName]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def receivers(self, signal: SignalName) -> Tuple[ReceiverDescriptor, ...]:
        return self._entries.get(signal, ())

    @property
    def receiver_count(self) -> int:
        return sum(len(v) for v in self._entries.values())
