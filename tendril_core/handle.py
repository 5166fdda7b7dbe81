"""At-most-once settled cells that stand in for services."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any


class HandleState(Enum):
    """Lifecycle states for a service handle."""

    PENDING = "pending"
    SETTLED = "settled"
    FAILED = "failed"


class ServiceHandle:
    """The single in-flight or completed value of a named service.

    A handle moves from ``PENDING`` to exactly one of ``SETTLED`` or
    ``FAILED``; later transitions raise ``RuntimeError``. Coroutines waiting
    on a pending handle are queued as futures on the running loop and woken
    when it settles, so a handle created outside a loop (raw values) is
    still usable from inside one.
    """

    __slots__ = ("name", "_state", "_value", "_error", "_waiters")

    def __init__(self, name: str) -> None:
        self.name = name
        self._state = HandleState.PENDING
        self._value: Any = None
        self._error: BaseException | None = None
        self._waiters: list[asyncio.Future[None]] = []

    @classmethod
    def settled(cls, name: str, value: Any) -> "ServiceHandle":
        handle = cls(name)
        handle.settle(value)
        return handle

    @classmethod
    def failed(cls, name: str, error: BaseException) -> "ServiceHandle":
        handle = cls(name)
        handle.fail(error)
        return handle

    @property
    def state(self) -> HandleState:
        return self._state

    @property
    def pending(self) -> bool:
        return self._state is HandleState.PENDING

    @property
    def value(self) -> Any:
        """Return the settled value, raising if the handle is not settled."""

        if self._state is HandleState.FAILED:
            assert self._error is not None
            raise self._error
        if self._state is HandleState.PENDING:
            raise RuntimeError(f"service {self.name!r} is still pending")
        return self._value

    @property
    def error(self) -> BaseException | None:
        return self._error

    def settle(self, value: Any) -> None:
        self._transition(HandleState.SETTLED)
        self._value = value
        self._wake()

    def fail(self, error: BaseException) -> None:
        self._transition(HandleState.FAILED)
        self._error = error
        self._wake()

    async def wait(self) -> Any:
        """Suspend until the handle settles, then return or raise."""

        if self._state is HandleState.PENDING:
            waiter = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            await waiter
        return self.value

    def _transition(self, state: HandleState) -> None:
        if self._state is not HandleState.PENDING:
            raise RuntimeError(
                f"service {self.name!r} already {self._state.value}"
            )
        self._state = state

    def _wake(self) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    def __repr__(self) -> str:
        return f"ServiceHandle({self.name!r}, {self._state.value})"
