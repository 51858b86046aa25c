# src/sigdispatch/core/errors.py
from __future__ import annotations

from typing import Optional


class SignalError(Exception):
    """Base class for every error raised by the dispatcher."""


class InvalidSignal(SignalError, ValueError):
    def __init__(self, message: str = "Trying to dispatch a signal without specifying the signal to dispatch"):
        super().__init__(message)


class MissingSender(SignalError, ValueError):
    def __init__(self, signal: str):
        self.signal = signal
        super().__init__(f"The sender of the `{signal}` signal has not been provided")


class ReceiverLoadError(SignalError):
    """A receiver module exists on disk but could not be imported."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        super().__init__(f"failed to load receiver module {path}: {cause}")
