"""The dependency-injection container that application code talks to."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

from tendril_core.config import CrawlSpec, TendrilConfig, coerce_crawls
from tendril_core.discovery import ServiceCrawler
from tendril_core.events import EventBus, EventHandler
from tendril_core.handle import ServiceHandle
from tendril_core.registry import ServiceRegistry
from tendril_core.resolver import Resolver
from tendril_core.serializer import CallSerializer, ErrorHandler, WorkItem

SELF_SERVICE = "self"

CrawlInput = CrawlSpec | Mapping[str, Any] | str | Iterable[Any]


class Container:
    """Register services by name and run work with them injected.

    Usage:
        async def main():
            container = Container()
            container.register("greeting", "hello")
            container.register("shout", lambda greeting: greeting.upper())
            container.schedule(lambda shout: print(shout))
            await container.join()

    Registration is lazy: nothing is constructed until scheduled work (or
    an eager service) needs it. Scheduled work runs strictly in the order
    it was scheduled.
    """

    def __init__(
        self,
        config: TendrilConfig | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config or TendrilConfig()
        self.logger = logger or logging.getLogger("tendril_core.container")
        self.events = EventBus()
        self.registry = ServiceRegistry(logger=self.logger)
        self.resolver = Resolver(self.registry, self.events, logger=self.logger)
        self.serializer = CallSerializer(
            self.resolver,
            self.registry,
            logger=self.logger,
            debug=self.config.debug,
            grace_period=self.config.grace_period,
        )
        self.crawler = ServiceCrawler(logger=self.logger)
        self.registry.register(SELF_SERVICE, self, inject=False)

    def register(
        self,
        name: str | Mapping[str, Any],
        source: Any = None,
        *,
        inject: bool = True,
        lazy: bool = True,
    ) -> "Container":
        """Register a value, a constructor, or a ``{name: source}`` mapping.

        Callables are constructors whose positional parameter names are the
        names of their dependencies; ``[name, ..., callable]`` lists the
        dependencies explicitly, and objects with a callable ``setup`` use
        it as their constructor. ``inject=False`` stores the source as-is.
        ``lazy=False`` constructs the service before any scheduled work runs.
        """

        self.registry.register(name, source, inject=inject, lazy=lazy)
        return self

    include = register

    def schedule(self, work: Any, error_handler: ErrorHandler | None = None) -> "Container":
        """Run ``work`` with its dependencies once all earlier work finished."""

        self.serializer.schedule(WorkItem.from_work(work, error_handler))
        return self

    def resolve(self, name: str | Sequence[str]) -> ServiceHandle | list[ServiceHandle]:
        return self.resolver.resolve(name)

    async def get(self, name: str | Sequence[str]) -> Any:
        """Resolve and await a service, or a list of services in order."""

        return await self.resolver.get(name)

    def on(self, event_name: str, callback: EventHandler, priority: int = 0) -> "Container":
        self.events.on(event_name, callback, priority=priority)
        return self

    def debug(self, grace_period: float | None = None) -> "Container":
        """Warn about requested services still pending after a grace period."""

        self.serializer.debug = True
        if grace_period is not None:
            self.serializer.grace_period = grace_period
        return self

    def crawl(
        self,
        specs: CrawlInput | None = None,
        error_handler: ErrorHandler | None = None,
    ) -> "Container":
        """Register the services found in one or more directories.

        Crawling runs in turn with scheduled work, so work scheduled after
        ``crawl`` sees the crawled services. Defaults to the configured
        crawl entries.
        """

        crawls = self.config.crawls if specs is None else coerce_crawls(specs)

        async def step() -> None:
            for spec in crawls:
                await self._crawl_one(spec)

        self.serializer.enqueue(step, error_handler)
        return self

    def tree(self, specs: CrawlInput | None = None) -> dict[str, list[str]]:
        """List discovered services and their dependencies without registering them."""

        crawls = self.config.crawls if specs is None else coerce_crawls(specs)
        result: dict[str, list[str]] = {}
        for spec in crawls:
            result.update(self.crawler.tree(spec))
        return result

    async def join(self) -> None:
        """Wait for all scheduled work, including work scheduled meanwhile."""

        await self.serializer.join()

    async def _crawl_one(self, spec: CrawlSpec) -> None:
        discovered = self.crawler.discover(spec)
        ordered = [service for service in discovered if service.ordered]
        remaining = [service for service in discovered if not service.ordered]

        for service in ordered:
            self.register(service.name, service.module, lazy=service.lazy)
        eager = [service.name for service in ordered if not service.lazy]
        if eager:
            await self.get(eager)

        for service in remaining:
            self.register(service.name, service.module, lazy=service.lazy)
