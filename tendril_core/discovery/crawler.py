"""Turn directories of service modules into (name, module) pairs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType

from tendril_core.config import CrawlSpec
from tendril_core.params import as_constructor

from .errors import DiscoveryError
from .loader import ENTRY_MODULE, load_service_module

LAZY_ATTRIBUTE = "lazy"


@dataclass(frozen=True)
class DiscoveredService:
    """A module found while crawling, named the way it will be registered."""

    name: str
    module: ModuleType
    path: Path
    ordered: bool
    lazy: bool


class ServiceCrawler:
    """Discover service modules in a directory.

    Files ending in ``.py`` become ``stem + postfix``; sub-directories are
    only considered when they contain an ``__init__.py``. Names starting
    with an underscore are skipped. Entries named in ``spec.order`` come
    first and in that order; the rest follow sorted by file name. A module
    can opt out of the crawl-wide laziness with a module-level ``lazy``
    attribute.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def candidates(self, spec: CrawlSpec) -> list[tuple[Path, bool]]:
        """Return candidate paths paired with whether they were ordered."""

        directory = Path(spec.path)
        if not directory.is_dir():
            raise DiscoveryError(f"service directory {directory} does not exist")

        found: dict[str, Path] = {}
        for child in sorted(directory.iterdir(), key=lambda path: path.name):
            if child.name.startswith(("_", ".")):
                continue
            if child.is_file() and child.suffix == ".py":
                found[child.name] = child
            elif child.is_dir() and (child / ENTRY_MODULE).is_file():
                found[child.name] = child

        ordered: list[tuple[Path, bool]] = []
        for entry in spec.order:
            key = entry if entry in found else f"{entry}.py"
            path = found.pop(key, None)
            if path is None:
                self._logger.warning("ordered service %s not found in %s", entry, directory)
                continue
            ordered.append((path, True))
        return ordered + [(path, False) for path in found.values()]

    def discover(self, spec: CrawlSpec) -> list[DiscoveredService]:
        services: list[DiscoveredService] = []
        for path, is_ordered in self.candidates(spec):
            module = load_service_module(path)
            name = self.service_name(path, spec.postfix)
            lazy = getattr(module, LAZY_ATTRIBUTE, spec.lazy)
            if not isinstance(lazy, bool):
                raise DiscoveryError(f"{path}: '{LAZY_ATTRIBUTE}' must be a boolean")
            services.append(
                DiscoveredService(
                    name=name,
                    module=module,
                    path=path,
                    ordered=is_ordered,
                    lazy=lazy,
                )
            )
        self._logger.debug("discovered %d services in %s", len(services), spec.path)
        return services

    def tree(self, spec: CrawlSpec) -> dict[str, list[str]]:
        """Map every discovered service to its declared dependencies."""

        result: dict[str, list[str]] = {}
        for service in self.discover(spec):
            definition = as_constructor(service.module)
            result[service.name] = list(definition.dependencies) if definition else []
        return result

    @staticmethod
    def service_name(path: Path, postfix: str = "") -> str:
        stem = path.stem if path.suffix == ".py" else path.name
        return stem + postfix
