"""Command line tools for tendril service directories."""

from .main import build_parser, main

__all__ = ["build_parser", "main"]
