"""
Session-backed one-shot flash messages.
"""
from typing import List, Tuple

from starlette.requests import Request

FLASH_SESSION_KEY = "_flashes"


def flash(request: Request, message: str, category: str = "info") -> None:
    """Queue a message for the next rendered page."""
    flashes = request.session.get(FLASH_SESSION_KEY, [])
    flashes.append([category, message])
    request.session[FLASH_SESSION_KEY] = flashes


def get_flashed_messages(request: Request) -> List[Tuple[str, str]]:
    """Pop every queued message as (category, message) pairs."""
    if "session" not in request.scope:
        return []
    flashes = request.session.pop(FLASH_SESSION_KEY, [])
    return [(category, message) for category, message in flashes]
