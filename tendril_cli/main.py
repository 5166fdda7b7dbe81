"""Command line surface for inspecting service directories."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from tendril_core import Container, CrawlSpec, TendrilConfig
from tendril_core.discovery import DiscoveryError
from tendril_core.errors import ConfigError

CLI_VERSION = "0.1.0"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tendril",
        description="Inspect directories of services wired by parameter names.",
    )
    parser.add_argument("--version", action="version", version=f"tendril v{CLI_VERSION}")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="more logging")
    parser.add_argument("--config", type=Path, help="config file with [[tendril.crawl]] entries")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = False

    tree_cmd = subparsers.add_parser("tree", help="list services and their dependencies")
    _add_crawl_arguments(tree_cmd)
    tree_cmd.set_defaults(func=_handle_tree)

    check_cmd = subparsers.add_parser("check", help="report missing and circular dependencies")
    _add_crawl_arguments(check_cmd)
    check_cmd.set_defaults(func=_handle_check)

    return parser


def _add_crawl_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("path", nargs="?", type=Path, help="service directory")
    parser.add_argument("--postfix", default="", help="suffix appended to every service name")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 0
    try:
        return func(args)
    except (ConfigError, DiscoveryError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load_config(args: argparse.Namespace) -> TendrilConfig:
    if args.config is not None:
        return TendrilConfig.load(args.config)
    return TendrilConfig.load_default()


def _crawls(args: argparse.Namespace, config: TendrilConfig) -> tuple[CrawlSpec, ...]:
    if args.path is not None:
        return (CrawlSpec(path=args.path, postfix=args.postfix),)
    if not config.crawls:
        raise ConfigError("no service directory given and no crawl entries configured")
    return config.crawls


def _handle_tree(args: argparse.Namespace) -> int:
    config = _load_config(args)
    container = Container(config)
    tree = container.tree(_crawls(args, config))
    if not tree:
        print("No services found.")
        return 0
    for name in sorted(tree):
        dependencies = ", ".join(tree[name]) or "-"
        print(f"{name}: {dependencies}")
    return 0


def _handle_check(args: argparse.Namespace) -> int:
    config = _load_config(args)
    container = Container(config)
    for spec in _crawls(args, config):
        for service in container.crawler.discover(spec):
            container.register(service.name, service.module)

    problems = container.resolver.diagnose()
    if not problems:
        print("OK")
        return 0
    for problem in problems:
        print(str(problem))
    return 1
