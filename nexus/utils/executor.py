"""
Thread pool for blocking work called from async routes.

PynamoDB, redis-py and werkzeug hashing are synchronous; async handlers hand
them to this pool so the event loop keeps serving other requests.
"""
import asyncio
import os
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable

# Thread pool for running sync operations
_executor = ThreadPoolExecutor(
    max_workers=int(os.getenv("SYNC_WORKERS", "8")),
    thread_name_prefix="nexus-sync"
)


async def run_sync(func: Callable[..., Any], *args, **kwargs) -> Any:
    """Run a blocking call in the pool and await its result."""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(_executor, partial(func, *args, **kwargs))
