"""
Utility modules for the Nexus web application.
"""
from .cache import get_cache, RedisCache
from .flash import flash, get_flashed_messages

__all__ = ['get_cache', 'RedisCache', 'flash', 'get_flashed_messages']
