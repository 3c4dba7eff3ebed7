"""Rubrik Security Cloud reporting and operations toolkit."""

import importlib.metadata

try:
    __version__ = importlib.metadata.version("rsc-report")
except importlib.metadata.PackageNotFoundError:
    __version__ = "dev"
