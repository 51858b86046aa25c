# src/sigdispatch/core/log.py
from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, MutableMapping, Optional, Tuple

ROOT = "sigdispatch"

# record attributes copied into JSON lines when a call passes them via extra=
EXTRA_FIELDS = ("signal", "receiver", "outcome")

_configured = False


def _maybe_load_dotenv() -> None:
    try:
        from dotenv import load_dotenv  # type: ignore
    except ImportError:
        return
    load_dotenv()


def _level(name: Optional[str], default: int = logging.INFO) -> int:
    if not name:
        return default
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else default


class JsonHandler(logging.StreamHandler):
    """One JSON object per line on stdout, with dispatch context when present."""
    def __init__(self):
        super().__init__(stream=sys.stdout)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            obj = {
                "ts": record.created,
                "lvl": record.levelname,
                "name": record.name,
                "msg": record.getMessage(),
            }
            for k in EXTRA_FIELDS:
                if hasattr(record, k):
                    obj[k] = getattr(record, k)
            if record.exc_info:
                obj["exc"] = logging.Formatter().formatException(record.exc_info)
            self.stream.write(json.dumps(obj, ensure_ascii=False, default=str) + "\n")
            self.flush()
        except Exception:  # pragma: no cover
            self.handleError(record)


def setup(level: Optional[str] = None, json_mode: Optional[bool] = None, *, force: bool = False) -> None:
    """Configure the root logger once.

    LOG_LEVEL / LOG_JSON apply to the root logger; SIGDISPATCH_LOG_LEVEL, when
    set, overrides the level of the ``sigdispatch`` namespace only (e.g. DEBUG
    to see filter mismatches and guard refusals without the host's noise).
    """
    global _configured
    if _configured and not force:
        return

    _maybe_load_dotenv()

    json_flag = json_mode if json_mode is not None else (os.getenv("LOG_JSON", "0") == "1")

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(_level(level or os.getenv("LOG_LEVEL")))
    if json_flag:
        root.addHandler(JsonHandler())
    else:
        handler = logging.StreamHandler(stream=sys.stdout)
        handler.setFormatter(logging.Formatter(fmt="[%(asctime)s] %(levelname)s %(name)s | %(message)s"))
        root.addHandler(handler)

    pkg_level = os.getenv("SIGDISPATCH_LOG_LEVEL")
    logging.getLogger(ROOT).setLevel(_level(pkg_level, logging.NOTSET))

    _configured = True


def get(name: str) -> logging.Logger:
    """Logger under the ``sigdispatch.`` namespace (``get("loader")`` -> ``sigdispatch.loader``)."""
    if name == ROOT or name.startswith(ROOT + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT}.{name}")


class SafeLogger(logging.LoggerAdapter):
    """
    Logger used on the dispatch path. Whatever a handler or filter raises is
    counted in ``dropped`` and never reaches the code that is dispatching.
    """

    def __init__(self, logger: logging.Logger):
        super().__init__(logger, {})
        self.dropped = 0

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        return msg, kwargs

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        try:
            super().log(level, msg, *args, **kwargs)
        except Exception:
            self.dropped += 1


def sink(name: str) -> SafeLogger:
    return SafeLogger(get(name))


def set_level(level: str) -> None:
    """Dynamically adjust root log level (e.g., during tests)."""
    logging.getLogger().setLevel(_level(level))
