"""
Database package — backend connection handlers.
"""

from .falkordb_handler import FalkorDBHandler
from .redis_handler import RedisHandler

__all__ = ["FalkorDBHandler", "RedisHandler"]
