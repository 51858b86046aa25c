# src/sigdispatch/wire_config.py
from __future__ import annotations

import importlib.util
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

try:
    import yaml  # PyYAML
except ImportError as e:
    raise RuntimeError("Please install PyYAML: pip install pyyaml") from e

from sigdispatch.core import log
from sigdispatch.core.dispatcher import Dispatcher
from sigdispatch.core.errors import ReceiverLoadError

l = log.get("wire_config")

PathLike = Union[str, Path]


def _app_root(config_path: Path, app_root: Optional[PathLike]) -> Path:
    if app_root is not None:
        return Path(app_root)
    env_root = os.getenv("SIGDISPATCH_APP_ROOT")
    if env_root:
        return Path(env_root)
    return config_path.parent


def load_receivers_yaml(yaml_path: PathLike) -> Any:
    """Read a receiver table from YAML.

    Either a top-level ``receivers:`` key or the signal mapping itself::

        receivers:
          order.created:
            - class: Warehouse
              function: notify_warehouse
              filename: warehouse.py
              filepath: lib
    """
    data = yaml.safe_load(Path(yaml_path).read_text(encoding="utf-8"))
    if isinstance(data, dict) and "receivers" in data:
        return data["receivers"]
    return data


def load_receivers_py(py_path: PathLike) -> Any:
    """Execute a Python config file and return its module-level ``receivers``."""
    p = Path(py_path).resolve()
    spec = importlib.util.spec_from_file_location(f"_sigdispatch_config_{p.stem}", p)
    if spec is None or spec.loader is None:
        raise ReceiverLoadError(p.as_posix(), ImportError("no loader for file type"))
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise ReceiverLoadError(p.as_posix(), e) from e
    return getattr(module, "receivers", None)


def build_from_yaml(yaml_path: PathLike, app_root: Optional[PathLike] = None, **kwargs: Any) -> Dispatcher:
    p = Path(yaml_path)
    return Dispatcher(load_receivers_yaml(p), app_root=_app_root(p, app_root), **kwargs)


def build_from_py(py_path: PathLike, app_root: Optional[PathLike] = None, **kwargs: Any) -> Dispatcher:
    p = Path(py_path)
    return Dispatcher(load_receivers_py(p), app_root=_app_root(p, app_root), **kwargs)


def build_from_file(path: PathLike, app_root: Optional[PathLike] = None, **kwargs: Any) -> Dispatcher:
    """Pick the loader by extension: ``.py`` or YAML."""
    if Path(path).suffix == ".py":
        return build_from_py(path, app_root, **kwargs)
    return build_from_yaml(path, app_root, **kwargs)


def dispatch_signal(dispatcher: Optional[Dispatcher], signal: str, sender: Any, params: Any = None) -> bool:
    """Dispatch through ``dispatcher`` if there is one; otherwise report unhandled."""
    if not isinstance(dispatcher, Dispatcher):
        l.debug("no dispatcher available for signal=%s", signal)
        return False
    return dispatcher.dispatch(signal, sender, params)


def describe(dispatcher: Dispatcher) -> Dict[str, list]:
    """Signal -> receiver names, for logging and the demo script."""
    return {signal: [d.name for d in receivers] for signal, receivers in dispatcher.registry.items()}
