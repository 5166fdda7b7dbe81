"""Import service modules straight from their file paths."""

from __future__ import annotations

import hashlib
import importlib.util
import sys
from pathlib import Path
from types import ModuleType

from .errors import DiscoveryError

ENTRY_MODULE = "__init__.py"


def module_name_for(path: Path) -> str:
    """Private, collision-free module name for a service file or package.

    Service files are commonly named after what they provide (``json.py``,
    ``abc.py``); importing them under their bare stem would shadow installed
    modules.
    """

    resolved = path.resolve()
    digest = hashlib.sha1(str(resolved.parent).encode("utf-8")).hexdigest()[:10]
    stem = resolved.stem if resolved.is_file() else resolved.name
    return f"_tendril_service_{digest}_{stem}"


def load_service_module(path: Path) -> ModuleType:
    """Import a ``.py`` file or a package directory and return the module."""

    if path.is_dir():
        entry = path / ENTRY_MODULE
        if not entry.is_file():
            raise DiscoveryError(f"{path} has no {ENTRY_MODULE}")
        spec = importlib.util.spec_from_file_location(
            module_name_for(path), entry, submodule_search_locations=[str(path)]
        )
    else:
        spec = importlib.util.spec_from_file_location(module_name_for(path), path)

    if spec is None or spec.loader is None:
        raise DiscoveryError(f"unable to build an import spec for {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(spec.name, None)
        raise DiscoveryError(f"unable to import service module {path}: {exc}") from exc
    return module
