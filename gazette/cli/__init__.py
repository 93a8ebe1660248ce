"""Interactive command line interface."""

from .menu import GazetteMenu

__all__ = ["GazetteMenu"]
