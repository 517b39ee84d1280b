"""Tool handlers, one module per catalog section."""

from __future__ import annotations

from .interaction import INTERACTION_HANDLERS
from .navigation import NAVIGATION_HANDLERS
from .queries import QUERY_HANDLERS
from .snapshot import SNAPSHOT_HANDLERS
from .tabs import TAB_HANDLERS
from .utility import UTILITY_HANDLERS

ALL_HANDLERS = {
    **NAVIGATION_HANDLERS,
    **SNAPSHOT_HANDLERS,
    **INTERACTION_HANDLERS,
    **UTILITY_HANDLERS,
    **TAB_HANDLERS,
    **QUERY_HANDLERS,
}

__all__ = ["ALL_HANDLERS"]
