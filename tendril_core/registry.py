"""Name-keyed storage for service handles and pending constructors."""

from __future__ import annotations

import logging
from typing import Any, Iterator, Mapping

from .handle import ServiceHandle
from .params import ConstructorDef, as_constructor

__all__ = ["ServiceRegistry"]


class ServiceRegistry:
    """Hold handles, constructor definitions and the eager name set.

    The registry never evaluates constructors. Once a handle exists for a
    name, that handle is final and later registrations of the name are
    ignored.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._handles: dict[str, ServiceHandle] = {}
        self._definitions: dict[str, ConstructorDef] = {}
        self._eager: dict[str, None] = {}
        self._logger = logger or logging.getLogger(__name__)

    def register(
        self,
        name: str | Mapping[str, Any],
        source: Any = None,
        *,
        inject: bool = True,
        lazy: bool = True,
    ) -> None:
        """Register a service source, or every pair of a mapping."""

        if isinstance(name, Mapping):
            for service_name, service_source in name.items():
                self.register(service_name, service_source, inject=inject, lazy=lazy)
            return

        if not isinstance(name, str) or not name:
            raise ValueError(f"service name must be a non-empty string, got {name!r}")

        if name in self._handles:
            self._logger.debug("service %s already resolved, ignoring registration", name)
            return

        definition = as_constructor(source) if inject else None
        if definition is None:
            self._definitions.pop(name, None)
            self._handles[name] = ServiceHandle.settled(name, source)
            self._logger.debug("registered value %s", name)
        else:
            self._definitions[name] = definition
            self._logger.debug(
                "registered constructor %s(%s)", name, ", ".join(definition.dependencies)
            )

        if not lazy:
            self._eager[name] = None

    def handle(self, name: str) -> ServiceHandle | None:
        return self._handles.get(name)

    def store(self, handle: ServiceHandle) -> None:
        """Commit the handle for ``handle.name``; the first handle wins."""

        if handle.name in self._handles:
            raise RuntimeError(f"service {handle.name!r} already has a handle")
        self._handles[handle.name] = handle

    def definition(self, name: str) -> ConstructorDef | None:
        return self._definitions.get(name)

    def definitions(self) -> Mapping[str, ConstructorDef]:
        return self._definitions

    def dependents_of(self, name: str) -> tuple[str, ...]:
        """Names of definitions that declare ``name`` as a dependency."""

        return tuple(
            dependent
            for dependent, definition in self._definitions.items()
            if name in definition.dependencies
        )

    def eager_names(self) -> tuple[str, ...]:
        return tuple(self._eager)

    def has(self, name: str) -> bool:
        return name in self._handles or name in self._definitions

    def names(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys([*self._handles, *self._definitions]))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())
