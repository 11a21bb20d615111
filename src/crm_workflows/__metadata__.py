"""Installed distribution metadata for crm-workflows."""

from __future__ import annotations

from importlib.metadata import metadata, version

__all__ = ("__project__", "__version__")

_DISTRIBUTION = "crm-workflows"

__version__: str = version(_DISTRIBUTION)
__project__: str = metadata(_DISTRIBUTION)["Name"]
