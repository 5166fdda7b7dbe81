"""Errors raised while registering and resolving services."""

from __future__ import annotations

from typing import Sequence


class TendrilError(Exception):
    """Base class for container errors."""


class ConfigError(TendrilError):
    """Raised when a configuration document cannot be loaded."""


class DependencyError(TendrilError):
    """Base class for failures that make a service unresolvable."""


class MissingDependency(DependencyError):
    """Raised when a requested name has no registered source."""

    def __init__(self, name: str, dependents: Sequence[str] = ()) -> None:
        message = f"Missing Dependency: {name}"
        if dependents:
            message += f"\nDepended on by: {', '.join(dependents)}"
        super().__init__(message)
        self.name = name
        self.dependents = tuple(dependents)


class CircularDependency(DependencyError):
    """Raised when a constructor transitively depends on itself."""

    def __init__(self, path: Sequence[str]) -> None:
        super().__init__(f"Circular Dependency: {' --> '.join(path)}")
        self.path = tuple(path)


class ConstructionFailure(DependencyError):
    """Raised when a registered constructor raises or its awaitable fails."""

    def __init__(self, name: str, cause: BaseException) -> None:
        super().__init__(f"Construction Failure: {name}: {cause}")
        self.name = name
        self.cause = cause
