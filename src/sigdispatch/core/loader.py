# src/sigdispatch/core/loader.py
from __future__ import annotations

import hashlib
import importlib.util
import inspect
import sys
import threading
from pathlib import Path
from typing import Any, Dict, Set, Union

from sigdispatch.core import log
from sigdispatch.core.errors import ReceiverLoadError

l = log.sink("loader")

PathLike = Union[str, Path]


def _module_name(path: Path) -> str:
    digest = hashlib.sha1(path.as_posix().encode("utf-8")).hexdigest()[:10]
    return f"_sigdispatch_receiver_{path.stem}_{digest}"


class FileModuleLoader:
    """
    Loads receiver modules from source files and keeps a shared symbol table
    of the classes and functions they define.

    - load(path): import once per resolved path; later calls are no-ops
    - lookup(name) / is_available(name): query the symbol table
    - register(name, obj): make a symbol available without loading a file
    """

    def __init__(self):
        self._symbols: Dict[str, Any] = {}
        self._loaded: Set[Path] = set()
        # held through exec + publish so a concurrent load() of the same file
        # only returns once every symbol is visible
        self._lock = threading.RLock()

    def is_available(self, name: str) -> bool:
        with self._lock:
            return name in self._symbols

    def lookup(self, name: str) -> Any:
        with self._lock:
            return self._symbols.get(name)

    def register(self, name: str, obj: Any) -> None:
        with self._lock:
            self._symbols[name] = obj

    def is_loaded(self, path: PathLike) -> bool:
        with self._lock:
            return Path(path).resolve() in self._loaded

    def load(self, path: PathLike) -> None:
        p = Path(path).resolve()
        with self._lock:
            if p in self._loaded:
                return
            name = _module_name(p)
            spec = importlib.util.spec_from_file_location(name, p)
            if spec is None or spec.loader is None:
                raise ReceiverLoadError(p.as_posix(), ImportError("no loader for file type"))
            module = importlib.util.module_from_spec(spec)
            sys.modules[name] = module
            try:
                spec.loader.exec_module(module)
            except Exception as e:
                sys.modules.pop(name, None)
                raise ReceiverLoadError(p.as_posix(), e) from e

            published = 0
            for attr, obj in vars(module).items():
                if attr.startswith("_"):
                    continue
                if (inspect.isclass(obj) or inspect.isfunction(obj)) and obj.__module__ == name:
                    self._symbols[attr] = obj
                    published += 1
            self._loaded.add(p)
        l.info("loaded receiver module %s (%d symbols)", p.as_posix(), published)
