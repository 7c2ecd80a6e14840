"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to mount as middleware) and
api/routes/clef.py (to apply per-route limits with @limiter.limit()).

A single shared instance means every route uses the same in-memory counter
store. Separate instances per module would each count on their own and the
limits would never trigger.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
