"""Record store for savings groups and its HTTP routes."""

from .queries import GroupQueries
from .routes import configure_group_router

__all__ = ["GroupQueries", "configure_group_router"]
