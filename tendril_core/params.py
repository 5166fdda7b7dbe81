"""Constructor definitions and dependency-name extraction."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Callable

__all__ = ["ConstructorDef", "depends", "param_names_of", "as_constructor", "split_explicit"]

_DEPENDS_ATTR = "__tendril_depends__"
_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


@dataclass(frozen=True)
class ConstructorDef:
    """A producing callable paired with its ordered dependency names."""

    factory: Callable[..., Any]
    dependencies: tuple[str, ...]


def depends(*names: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Declare the ordered dependency names of a constructor explicitly.

    Usage:
        @depends("config", "db")
        def repository(cfg, connection):
            ...
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        setattr(func, _DEPENDS_ATTR, tuple(names))
        return func

    return decorator


def param_names_of(func: Callable[..., Any]) -> tuple[str, ...]:
    """Return the dependency names declared by ``func``.

    An explicit ``@depends`` declaration wins; otherwise the positional
    parameter names of the signature are used. Variadic and keyword-only
    parameters never name dependencies.
    """

    declared = getattr(func, _DEPENDS_ATTR, None)
    if declared is not None:
        return tuple(declared)
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return ()
    return tuple(
        parameter.name
        for parameter in signature.parameters.values()
        if parameter.kind in _POSITIONAL
    )


def split_explicit(source: Any) -> tuple[tuple[str, ...], Callable[..., Any]] | None:
    """Split a ``[name, ..., callable]`` sequence, or return None."""

    if not isinstance(source, (list, tuple)) or not source:
        return None
    *names, func = source
    if not callable(func) or not all(isinstance(name, str) for name in names):
        return None
    return tuple(names), func


def as_constructor(source: Any) -> ConstructorDef | None:
    """Build a ``ConstructorDef`` from a service source, if it is one."""

    explicit = split_explicit(source)
    if explicit is not None:
        names, func = explicit
        return ConstructorDef(factory=func, dependencies=names)

    setup = getattr(source, "setup", None)
    if not callable(source) and callable(setup):
        source = setup
    if callable(source):
        return ConstructorDef(factory=source, dependencies=param_names_of(source))
    return None
