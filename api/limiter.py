"""
api/limiter.py -- Shared slowapi rate limiter instance.

Imported by api/main.py (to mount SlowAPIMiddleware and toggle the limiter
from Settings.rate_limit_enabled) and by api/routes/v1/auth.py (to cap login
attempts with @limiter.limit()).

A single shared instance means every route shares one in-memory counter
store. Counters are keyed by client address.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
