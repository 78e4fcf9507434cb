"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in each router module
under api/routes/v1/ (to apply per-route limits with @limiter.limit()).

One shared instance means every route counts against the same in-memory
store; a limiter per module would give each its own counters.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[get_settings().default_rate_limit],
    storage_uri="memory://",
)
