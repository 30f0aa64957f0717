"""Database management for blogpulse."""

from .companies import CompanyStorage, symbol_key
from .connection import close_connection_pool, get_connection, get_connection_pool
from .init import init_database, validate_connection
from .jobs import JobStateManager
from .posts import PostStorage
from .runs import RunManager
from .sources import SourceManager
from .tracking import TrackingManager

__all__ = [
    "CompanyStorage",
    "JobStateManager",
    "PostStorage",
    "RunManager",
    "SourceManager",
    "TrackingManager",
    "close_connection_pool",
    "get_connection",
    "get_connection_pool",
    "init_database",
    "symbol_key",
    "validate_connection",
]
