"""Single-flight, cycle-checked construction of named services."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Callable, Mapping, Sequence, overload

from .errors import (
    CircularDependency,
    ConstructionFailure,
    DependencyError,
    MissingDependency,
)
from .events import SERVICE_LOAD_EVENT, EventBus
from .handle import ServiceHandle
from .params import ConstructorDef
from .registry import ServiceRegistry

__all__ = ["Resolver", "find_cycle"]


def find_cycle(
    root: str,
    definitions: Mapping[str, ConstructorDef],
    is_resolved: Callable[[str], bool],
) -> list[str] | None:
    """Return the path from ``root`` back to itself, or None.

    Names that already resolve to a handle are not followed. Cycles that
    do not pass through ``root`` are left for resolution of their own
    members to report.
    """

    definition = definitions.get(root)
    if definition is None:
        return None
    visited: set[str] = set()
    path = [root]
    pending = [iter(definition.dependencies)]
    while pending:
        dependency = next(pending[-1], None)
        if dependency is None:
            pending.pop()
            path.pop()
            continue
        if dependency == root:
            return [*path, root]
        if dependency in visited or is_resolved(dependency):
            continue
        visited.add(dependency)
        definition = definitions.get(dependency)
        if definition is not None:
            path.append(dependency)
            pending.append(iter(definition.dependencies))
    return None


@dataclass
class _Construction:
    """A handle whose dependency handles are still being collected."""

    handle: ServiceHandle
    definition: ConstructorDef
    dependencies: list[ServiceHandle] = field(default_factory=list)

    def next_dependency(self) -> str | None:
        declared = self.definition.dependencies
        if len(self.dependencies) < len(declared):
            return declared[len(self.dependencies)]
        return None


class Resolver:
    """Produce the handle of a service, constructing it at most once."""

    def __init__(
        self,
        registry: ServiceRegistry,
        events: EventBus,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._registry = registry
        self._events = events
        self._logger = logger or logging.getLogger(__name__)
        self._tasks: set[asyncio.Task[None]] = set()

    @overload
    def resolve(self, name: str) -> ServiceHandle: ...

    @overload
    def resolve(self, name: Sequence[str]) -> list[ServiceHandle]: ...

    def resolve(self, name):
        """Return the handle for ``name`` (or handles, for a list of names).

        Missing and circular dependencies raise synchronously. Construction
        itself runs as a task on the running loop; its outcome is observed
        through the returned handle. If resolution raises part way down the
        graph, every handle created for it fails with that error.
        """

        if isinstance(name, (list, tuple)):
            return [self.resolve(item) for item in name]

        handle = self._registry.handle(name)
        if handle is not None:
            return handle

        stack = [self._begin(name)]
        try:
            while True:
                current = stack[-1]
                dependency = current.next_dependency()
                if dependency is None:
                    self._start(current)
                    stack.pop()
                    if not stack:
                        return current.handle
                    stack[-1].dependencies.append(current.handle)
                    continue
                existing = self._registry.handle(dependency)
                if existing is not None:
                    current.dependencies.append(existing)
                else:
                    stack.append(self._begin(dependency))
        except Exception as exc:
            for construction in stack:
                construction.handle.fail(exc)
            raise

    async def get(self, name: str | Sequence[str]):
        """Resolve and await a name, or a list of names in order."""

        if isinstance(name, (list, tuple)):
            handles = self.resolve(list(name))
            return list(await asyncio.gather(*(handle.wait() for handle in handles)))
        return await self.resolve(name).wait()

    def diagnose(self) -> list[DependencyError]:
        """Report wiring mistakes in the registered definitions without
        constructing anything: one error per missing name and per cycle."""

        problems: list[DependencyError] = []
        definitions = self._registry.definitions()
        missing: dict[str, None] = {}
        for definition in definitions.values():
            for dependency in definition.dependencies:
                if not self._registry.has(dependency):
                    missing.setdefault(dependency)
        for name in missing:
            problems.append(MissingDependency(name, self._registry.dependents_of(name)))

        seen_cycles: set[frozenset[str]] = set()
        for name in definitions:
            if self._is_resolved(name):
                continue
            cycle = find_cycle(name, definitions, self._is_resolved)
            if cycle is None:
                continue
            members = frozenset(cycle)
            if members in seen_cycles:
                continue
            seen_cycles.add(members)
            problems.append(CircularDependency(cycle))
        return problems

    def _is_resolved(self, name: str) -> bool:
        return self._registry.handle(name) is not None

    def _begin(self, name: str) -> _Construction:
        definition = self._registry.definition(name)
        if definition is None:
            raise MissingDependency(name, self._registry.dependents_of(name))

        cycle = find_cycle(name, self._registry.definitions(), self._is_resolved)
        if cycle is not None:
            raise CircularDependency(cycle)

        asyncio.get_running_loop()  # raises before anything is stored when no loop runs
        handle = ServiceHandle(name)
        self._registry.store(handle)
        return _Construction(handle, definition)

    def _start(self, construction: _Construction) -> None:
        task = asyncio.get_running_loop().create_task(
            self._construct(construction.handle, construction.definition, construction.dependencies)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _construct(
        self,
        handle: ServiceHandle,
        definition: ConstructorDef,
        dependencies: list[ServiceHandle],
    ) -> None:
        try:
            values = await asyncio.gather(*(dependency.wait() for dependency in dependencies))
        except Exception as exc:
            self._logger.debug("service %s failed: dependency error %s", handle.name, exc)
            handle.fail(exc)
            return

        try:
            instance = definition.factory(*values)
            if inspect.isawaitable(instance):
                instance = await instance
        except Exception as exc:
            failure = ConstructionFailure(handle.name, exc)
            failure.__cause__ = exc
            self._logger.debug("service %s constructor raised %r", handle.name, exc)
            handle.fail(failure)
            return

        try:
            self._events.emit(SERVICE_LOAD_EVENT, {"name": handle.name, "instance": instance})
        except Exception as exc:
            handle.fail(exc)
            return

        self._logger.debug("service %s constructed", handle.name)
        handle.settle(instance)
