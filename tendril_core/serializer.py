"""FIFO execution of scheduled work against the service graph."""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from .errors import DependencyError
from .handle import ServiceHandle
from .params import param_names_of, split_explicit
from .registry import ServiceRegistry
from .resolver import Resolver

__all__ = ["CallSerializer", "WorkItem", "ErrorHandler"]

ErrorHandler = Callable[[Exception], Any]
ChainStep = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class WorkItem:
    """A function plus the ordered names to resolve for it."""

    names: tuple[str, ...]
    function: Callable[..., Any]
    error_handler: ErrorHandler | None = None

    @classmethod
    def from_work(cls, work: Any, error_handler: ErrorHandler | None = None) -> "WorkItem":
        explicit = split_explicit(work)
        if explicit is not None:
            names, function = explicit
            return cls(names=names, function=function, error_handler=error_handler)
        if not callable(work):
            raise TypeError(f"cannot schedule {work!r}: expected a callable or [name, ..., callable]")
        return cls(names=param_names_of(work), function=work, error_handler=error_handler)


class CallSerializer:
    """Chain steps so each starts only after the previous one finished.

    Every step runs as a task that first waits on the task before it. A step
    never raises into the chain: failures are routed to the step's error
    handler or to the loop's exception handler, and the next step runs.
    """

    def __init__(
        self,
        resolver: Resolver,
        registry: ServiceRegistry,
        *,
        logger: logging.Logger | None = None,
        debug: bool = False,
        grace_period: float = 1.0,
    ) -> None:
        self._resolver = resolver
        self._registry = registry
        self._logger = logger or logging.getLogger(__name__)
        self.debug = debug
        self.grace_period = grace_period
        self._tail: asyncio.Task[None] | None = None
        self._eager_failures: dict[str, ServiceHandle] = {}
        self._active: asyncio.Task[Any] | None = None

    def schedule(self, item: WorkItem) -> None:
        self.enqueue(functools.partial(self._execute, item), item.error_handler)

    def enqueue(self, step: ChainStep, error_handler: ErrorHandler | None = None) -> None:
        """Append ``step`` to the chain. Requires a running event loop."""

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise RuntimeError(
                "scheduling work requires a running event loop; call it from a coroutine"
            ) from exc
        self._tail = loop.create_task(self._link(self._tail, step, error_handler))

    async def join(self) -> None:
        """Wait until every step enqueued so far, and any enqueued meanwhile, ran."""

        if self._active is not None and asyncio.current_task() is self._active:
            raise RuntimeError("join() would wait on the step awaiting it")
        while self._tail is not None:
            tail = self._tail
            await asyncio.wait([tail])
            if self._tail is tail:
                return

    def _eager_handles(self) -> list[ServiceHandle]:
        """Resolve every eager name once; synchronous failures stay terminal."""

        handles: list[ServiceHandle] = []
        for name in self._registry.eager_names():
            handle = self._eager_failures.get(name)
            if handle is None:
                try:
                    handle = self._resolver.resolve(name)
                except DependencyError as exc:
                    handle = ServiceHandle.failed(name, exc)
                    self._eager_failures[name] = handle
            handles.append(handle)
        return handles

    async def _link(
        self,
        previous: asyncio.Task[None] | None,
        step: ChainStep,
        error_handler: ErrorHandler | None,
    ) -> None:
        if previous is not None:
            await asyncio.wait([previous])
        self._active = asyncio.current_task()
        try:
            await step()
        except Exception as exc:
            await self._dispatch_failure(exc, error_handler)
        finally:
            self._active = None

    async def _execute(self, item: WorkItem) -> None:
        watched: list[ServiceHandle] = []
        timer = self._arm_watchdog(watched)
        try:
            watched.extend(self._eager_handles())
            await asyncio.gather(*(handle.wait() for handle in watched))
            handles = self._resolver.resolve(list(item.names))
            watched.extend(handles)
            values = await asyncio.gather(*(handle.wait() for handle in handles))
        finally:
            if timer is not None:
                timer.cancel()
        result = item.function(*values)
        if inspect.isawaitable(result):
            await result

    def _arm_watchdog(self, watched: list[ServiceHandle]) -> asyncio.TimerHandle | None:
        """Warn about ``watched`` handles still pending once the grace period ends.

        The list is read when the timer fires, so handles added meanwhile count.
        """

        if not self.debug:
            return None
        loop = asyncio.get_running_loop()
        return loop.call_later(self.grace_period, self._warn_pending, watched)

    def _warn_pending(self, handles: list[ServiceHandle]) -> None:
        pending = [handle.name for handle in handles if handle.pending]
        if pending:
            self._logger.warning(
                "dependencies still unresolved after %ss: %s",
                self.grace_period,
                ", ".join(pending),
            )

    async def _dispatch_failure(self, exc: Exception, error_handler: ErrorHandler | None) -> None:
        if error_handler is not None:
            try:
                result = error_handler(exc)
                if inspect.isawaitable(result):
                    await result
                return
            except Exception as handler_exc:
                exc = handler_exc
        self._report_unhandled(exc)

    def _report_unhandled(self, exc: Exception) -> None:
        loop = asyncio.get_running_loop()
        self._logger.debug("no error handler for %r, reporting to the event loop", exc)
        loop.call_soon(
            loop.call_exception_handler,
            {"message": f"Unhandled failure in scheduled work: {exc}", "exception": exc},
        )
