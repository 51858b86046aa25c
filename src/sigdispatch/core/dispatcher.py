# src/sigdispatch/core/dispatcher.py
from __future__ import annotations

import inspect
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from sigdispatch.core import log
from sigdispatch.core.contracts import (
    DeclarativeReceiver,
    DirectReceiver,
    DispatchReport,
    Outcome,
    ReceiverResult,
    sender_label,
)
from sigdispatch.core.errors import InvalidSignal, MissingSender, ReceiverLoadError
from sigdispatch.core.loader import FileModuleLoader
from sigdispatch.core.metrics import Timer, inc_counter
from sigdispatch.core.registry import ReceiverRegistry, normalize_entry


def _default_constructible(cls: type) -> bool:
    try:
        sig = inspect.signature(cls)
    except (TypeError, ValueError):
        return True
    for p in sig.parameters.values():
        if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
            continue
        if p.default is p.empty:
            return False
    return True


class Dispatcher:
    """
    Synchronous signal dispatcher.

    Receivers for a signal run in registration order with ``(sender, params)``.
    Declarative receivers are resolved lazily: their module is loaded through
    ``loader``, a class receiver is instantiated once and cached by class name,
    and a re-entrancy guard refuses nested declarative resolution while one is
    already running. Direct receivers bypass the guard.

    Free-function declarative receivers are called with ``(params)`` only unless
    ``pass_sender_to_functions`` is set.
    """

    def __init__(
        self,
        receivers: Any = None,
        *,
        app_root: Union[str, Path] = ".",
        loader: Optional[FileModuleLoader] = None,
        pass_sender_to_functions: bool = False,
        name: str = "dispatcher",
    ):
        self.registry = receivers if isinstance(receivers, ReceiverRegistry) else ReceiverRegistry(receivers)
        self.app_root = Path(app_root)
        self.loader = loader if loader is not None else FileModuleLoader()
        self.pass_sender_to_functions = bool(pass_sender_to_functions)
        self.l = log.sink(name)
        self._objects: Dict[str, Any] = {}
        self._in_progress = False
        self._lock = threading.RLock()
        self.l.info(
            "dispatcher start signals=%d receivers=%d root=%s",
            len(self.registry), self.registry.receiver_count, self.app_root.as_posix(),
        )

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    def cached_instance(self, class_name: str) -> Any:
        return self._objects.get(class_name)

    # -------------------- Public API --------------------
    def dispatch(self, signal: str, sender: Any, params: Any = None) -> bool:
        """Send ``signal`` from ``sender`` to every registered receiver.

        Returns False when nothing is registered for the signal, True otherwise,
        however many receivers actually ran.
        """
        return self.dispatch_report(signal, sender, params).handled

    def dispatch_report(self, signal: str, sender: Any, params: Any = None) -> DispatchReport:
        if not isinstance(signal, str) or not signal:
            raise InvalidSignal()
        if sender is None or (isinstance(sender, str) and not sender):
            raise MissingSender(signal)

        if signal not in self.registry:
            # unlabelled: arbitrary signal names must not grow the metrics registry
            inc_counter("signal_unhandled_total")
            return DispatchReport(signal=signal, handled=False)

        inc_counter("signal_dispatch_total", signal=signal)
        results = []
        for descriptor in self.registry[signal]:
            outcome = self.invoke_one(sender, descriptor, params)
            inc_counter("receiver_outcome_total", signal=signal, outcome=outcome.value)
            results.append(ReceiverResult(descriptor, outcome))
        return DispatchReport(signal=signal, handled=True, results=tuple(results))

    def invoke_one(self, sender: Any, descriptor: Any, params: Any = None) -> Outcome:
        if not isinstance(descriptor, (DirectReceiver, DeclarativeReceiver)):
            found = normalize_entry("<direct>", descriptor)
            if len(found) != 1:
                return Outcome.INCOMPLETE
            descriptor = found[0]

        if isinstance(descriptor, DirectReceiver):
            with Timer("receiver_latency_ms", receiver=descriptor.name):
                descriptor(sender, params)
            return Outcome.INVOKED
        return self._invoke_declarative(sender, descriptor, params)

    # -------------------- Declarative receivers --------------------
    def _invoke_declarative(self, sender: Any, d: DeclarativeReceiver, params: Any) -> Outcome:
        with self._lock:
            # loop breaker: a receiver that re-dispatches cannot reach another declarative receiver
            if self._in_progress:
                return self._skip(d, Outcome.GUARD_HELD, logging.DEBUG, "guard held, skipping %s", d.name)

            # an empty filepath means the app root itself
            if d.module_file_path is None or not d.module_file_name:
                return self._skip(d, Outcome.INCOMPLETE, logging.DEBUG, "%s has no module location", d.name)

            filepath = self.app_root / d.module_file_path / d.module_file_name
            if not filepath.is_file():
                return self._skip(d, Outcome.MISSING_FILE, logging.WARNING,
                                  "receiver module not found for %s: %s", d.name, filepath.as_posix())

            if not d.function_name:
                return self._skip(d, Outcome.INCOMPLETE, logging.DEBUG,
                                  "receiver in %s has no function", filepath.as_posix())

            if d.sender_filter:
                label = sender_label(sender)
                if label != d.sender_filter:
                    return self._skip(d, Outcome.FILTERED, logging.DEBUG,
                                      "%s listens for sender=%s, got %s", d.name, d.sender_filter, label)

            self._in_progress = True
            try:
                target = self._resolve(d, filepath)
                if target is None:
                    return self._skip(d, Outcome.UNRESOLVED, logging.DEBUG, "%s unresolved", d.name)
                with Timer("receiver_latency_ms", receiver=d.name):
                    if d.class_name or self.pass_sender_to_functions:
                        target(sender, params)
                    else:
                        target(params)
                return Outcome.INVOKED
            finally:
                self._in_progress = False

    def _skip(self, d: DeclarativeReceiver, outcome: Outcome, level: int, msg: str, *args: Any) -> Outcome:
        self.l.log(level, msg, *args, extra={"receiver": d.name, "outcome": outcome.value})
        return outcome

    def _resolve(self, d: DeclarativeReceiver, filepath: Path) -> Optional[Callable[..., Any]]:
        if d.class_name:
            return self._resolve_method(d, filepath)
        return self._resolve_function(d, filepath)

    def _resolve_method(self, d: DeclarativeReceiver, filepath: Path) -> Optional[Callable[..., Any]]:
        obj = self._objects.get(d.class_name)
        if obj is None:
            if not self.loader.is_available(d.class_name) and not self._load(filepath):
                return None
            cls = self.loader.lookup(d.class_name)
            if not inspect.isclass(cls) or not callable(getattr(cls, d.function_name, None)):
                self.l.warning("%s not found after loading %s", d.name, filepath.as_posix())
                return None
            if not _default_constructible(cls):
                self.l.warning("receiver class %s needs constructor arguments", d.class_name)
                return None
            obj = self._objects[d.class_name] = cls()
            self.l.info("instantiated receiver class %s", d.class_name)

        method = getattr(obj, d.function_name, None)
        if not callable(method):
            self.l.warning("cached %s has no method %s", d.class_name, d.function_name)
            return None
        return method

    def _resolve_function(self, d: DeclarativeReceiver, filepath: Path) -> Optional[Callable[..., Any]]:
        if not self.loader.is_available(d.function_name) and not self._load(filepath):
            return None
        fn = self.loader.lookup(d.function_name)
        if not callable(fn):
            self.l.warning("function %s not found after loading %s", d.function_name, filepath.as_posix())
            return None
        return fn

    def _load(self, filepath: Path) -> bool:
        try:
            self.loader.load(filepath)
        except ReceiverLoadError as e:
            self.l.error("%s", e, exc_info=True)
            return False
        return True
