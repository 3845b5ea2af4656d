"""Command line tools: the dashboard watcher and the ingest command."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# Resolving ``cli.app`` lazily keeps it bound to the submodule, not to the Typer
# instance the submodule defines under the same name.

__all__ = []
