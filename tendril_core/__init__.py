"""Runtime dependency injection with lazy, single-flight services."""

from .config import CrawlSpec, TendrilConfig, default_config_path
from .container import SELF_SERVICE, Container
from .errors import (
    CircularDependency,
    ConfigError,
    ConstructionFailure,
    DependencyError,
    MissingDependency,
    TendrilError,
)
from .events import SERVICE_LOAD_EVENT, EventBus
from .handle import HandleState, ServiceHandle
from .params import ConstructorDef, depends, param_names_of
from .registry import ServiceRegistry
from .resolver import Resolver, find_cycle
from .serializer import CallSerializer, WorkItem

__all__ = [
    "CallSerializer",
    "CircularDependency",
    "ConfigError",
    "ConstructionFailure",
    "ConstructorDef",
    "Container",
    "CrawlSpec",
    "DependencyError",
    "EventBus",
    "HandleState",
    "MissingDependency",
    "Resolver",
    "SELF_SERVICE",
    "SERVICE_LOAD_EVENT",
    "ServiceHandle",
    "ServiceRegistry",
    "TendrilConfig",
    "TendrilError",
    "WorkItem",
    "default_config_path",
    "depends",
    "find_cycle",
    "param_names_of",
]
