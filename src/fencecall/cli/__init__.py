"""Command line interface."""

from fencecall.cli.app import app

__all__ = ["app"]
