"""Tests for single-flight resolution and cycle detection."""

from __future__ import annotations

import asyncio

import pytest

from tendril_core.errors import CircularDependency, ConstructionFailure, MissingDependency
from tendril_core.events import SERVICE_LOAD_EVENT, EventBus
from tendril_core.handle import HandleState
from tendril_core.params import ConstructorDef
from tendril_core.registry import ServiceRegistry
from tendril_core.resolver import Resolver, find_cycle


def _resolver(**services) -> Resolver:
    registry = ServiceRegistry()
    registry.register(services)
    return Resolver(registry, EventBus())


def _definitions(**graph: tuple[str, ...]) -> dict[str, ConstructorDef]:
    return {
        name: ConstructorDef(factory=lambda *args: None, dependencies=dependencies)
        for name, dependencies in graph.items()
    }


def test_find_cycle_reports_traversal_path() -> None:
    definitions = _definitions(A=("B",), B=("C",), C=("A",))

    assert find_cycle("A", definitions, lambda name: False) == ["A", "B", "C", "A"]
    assert find_cycle("B", definitions, lambda name: False) == ["B", "C", "A", "B"]


def test_find_cycle_self_dependency() -> None:
    assert find_cycle("A", _definitions(A=("A",)), lambda name: False) == ["A", "A"]


def test_find_cycle_skips_resolved_names() -> None:
    definitions = _definitions(A=("B",), B=("A",))

    assert find_cycle("A", definitions, lambda name: name == "B") is None


def test_find_cycle_ignores_cycles_not_through_root() -> None:
    definitions = _definitions(R=("A",), A=("B",), B=("A",))

    assert find_cycle("R", definitions, lambda name: False) is None
    assert find_cycle("A", definitions, lambda name: False) == ["A", "B", "A"]


def test_missing_dependency_lists_dependents() -> None:
    resolver = _resolver(null1=lambda abc: None, null2=lambda abc: None)

    with pytest.raises(MissingDependency) as excinfo:
        resolver.resolve("abc")

    assert str(excinfo.value) == "Missing Dependency: abc\nDepended on by: null1, null2"
    assert excinfo.value.dependents == ("null1", "null2")


def test_missing_dependency_without_dependents() -> None:
    resolver = _resolver()

    with pytest.raises(MissingDependency) as excinfo:
        resolver.resolve("nonExistent")

    assert str(excinfo.value) == "Missing Dependency: nonExistent"


def test_cycle_is_detected_before_any_constructor_runs() -> None:
    calls: list[str] = []

    def make(label):
        def constructor(*args):
            calls.append(label)
            return label

        return constructor

    resolver = _resolver(
        A=["B", make("A")],
        B=["C", make("B")],
        C=["A", make("C")],
    )

    with pytest.raises(CircularDependency) as excinfo:
        resolver.resolve("A")

    assert str(excinfo.value) == "Circular Dependency: A --> B --> C --> A"
    assert excinfo.value.path == ("A", "B", "C", "A")
    assert calls == []
    for name in ("A", "B", "C"):
        assert resolver._registry.handle(name) is None


@pytest.mark.asyncio
async def test_cycle_below_root_fails_the_root() -> None:
    resolver = _resolver(R=lambda A: "R", A=lambda B: "A", B=lambda A: "B")

    with pytest.raises(CircularDependency) as excinfo:
        resolver.resolve("R")

    assert str(excinfo.value) == "Circular Dependency: A --> B --> A"
    root = resolver._registry.handle("R")
    assert root is not None
    assert root.state is HandleState.FAILED


@pytest.mark.asyncio
async def test_long_dependency_chains_resolve() -> None:
    registry = ServiceRegistry()
    registry.register("s0", 0)
    for index in range(1, 2000):
        registry.register(f"s{index}", [f"s{index - 1}", lambda previous: previous + 1])
    resolver = Resolver(registry, EventBus())

    assert await asyncio.wait_for(resolver.get("s1999"), timeout=5) == 1999
    assert find_cycle("s1999", registry.definitions(), lambda name: False) is None


@pytest.mark.asyncio
async def test_unexpected_resolution_errors_fail_every_new_handle(monkeypatch) -> None:
    resolver = _resolver(a=lambda b: "a", b=lambda c: "b", c=lambda: "c")

    def refuse_c(root, definitions, is_resolved):
        if root == "c":
            raise RuntimeError("graph walk interrupted")
        return None

    monkeypatch.setattr("tendril_core.resolver.find_cycle", refuse_c)

    with pytest.raises(RuntimeError, match="graph walk interrupted"):
        resolver.resolve("a")

    assert resolver._registry.handle("c") is None
    for name in ("a", "b"):
        handle = resolver._registry.handle(name)
        assert handle.state is HandleState.FAILED
        with pytest.raises(RuntimeError, match="graph walk interrupted"):
            await asyncio.wait_for(handle.wait(), timeout=1)


@pytest.mark.asyncio
async def test_concurrent_requests_share_one_construction() -> None:
    calls = 0

    async def shared():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return object()

    resolver = _resolver(
        shared=shared,
        left=lambda shared: shared,
        right=lambda shared: shared,
    )

    left, right, direct = await asyncio.gather(
        resolver.get("left"),
        resolver.get("right"),
        resolver.get("shared"),
    )

    assert calls == 1
    assert left is right is direct
    assert resolver.resolve("shared") is resolver.resolve("shared")


@pytest.mark.asyncio
async def test_arguments_follow_declaration_order() -> None:
    async def x():
        await asyncio.sleep(0.02)
        return "x"

    async def y():
        return "y"

    resolver = _resolver(x=x, y=y, pair=lambda x, y: (x, y), reversed_pair=["y", "x", lambda a, b: (a, b)])

    assert await resolver.get("pair") == ("x", "y")
    assert await resolver.get("reversed_pair") == ("y", "x")


@pytest.mark.asyncio
async def test_list_resolution_preserves_order() -> None:
    resolver = _resolver(one=1, two=lambda one: one + 1, three=lambda two: two + 1)

    assert await resolver.get(["three", "one", "two"]) == [3, 1, 2]
    handles = resolver.resolve(["one", "two"])
    assert [handle.name for handle in handles] == ["one", "two"]


@pytest.mark.asyncio
async def test_constructor_failure_is_terminal() -> None:
    calls = 0

    def flaky():
        nonlocal calls
        calls += 1
        raise ValueError("broken")

    resolver = _resolver(flaky=flaky, dependent=lambda flaky: flaky)

    with pytest.raises(ConstructionFailure) as first:
        await resolver.get("flaky")
    assert first.value.name == "flaky"
    assert isinstance(first.value.cause, ValueError)
    assert first.value.__cause__ is first.value.cause

    with pytest.raises(ConstructionFailure) as dependent:
        await resolver.get("dependent")
    assert dependent.value is first.value

    with pytest.raises(ConstructionFailure):
        await resolver.get("flaky")
    assert calls == 1


@pytest.mark.asyncio
async def test_async_constructor_failure_is_wrapped() -> None:
    async def broken():
        raise RuntimeError("async boom")

    resolver = _resolver(broken=broken)

    with pytest.raises(ConstructionFailure) as excinfo:
        await resolver.get("broken")
    assert str(excinfo.value) == "Construction Failure: broken: async boom"


@pytest.mark.asyncio
async def test_service_load_fires_before_handle_settles() -> None:
    registry = ServiceRegistry()
    events = EventBus()
    resolver = Resolver(registry, events)
    registry.register({"A": lambda B: "a", "B": lambda: "b", "C": lambda: "c"})
    observed: list[tuple[str, str, bool]] = []

    def observer(service):
        handle = registry.handle(service["name"])
        observed.append((service["name"], service["instance"], handle.pending))

    events.on(SERVICE_LOAD_EVENT, observer)

    assert await resolver.get("A") == "a"
    assert observed == [("B", "b", True), ("A", "a", True)]


@pytest.mark.asyncio
async def test_failing_observer_fails_the_service() -> None:
    registry = ServiceRegistry()
    events = EventBus()
    resolver = Resolver(registry, events)
    registry.register("A", lambda: "a")

    def observer(service):
        raise LookupError("observer failed")

    events.on(SERVICE_LOAD_EVENT, observer)

    with pytest.raises(LookupError):
        await resolver.get("A")


def test_diagnose_reports_missing_names_and_cycles_once() -> None:
    resolver = _resolver(
        alpha=lambda beta: None,
        beta=lambda alpha: None,
        gamma=lambda missing: None,
        delta=lambda missing: None,
        ok=lambda value: None,
        value=1,
    )

    problems = [str(problem) for problem in resolver.diagnose()]

    assert problems == [
        "Missing Dependency: missing\nDepended on by: gamma, delta",
        "Circular Dependency: alpha --> beta --> alpha",
    ]
