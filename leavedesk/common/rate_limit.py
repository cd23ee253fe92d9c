"""Shared slowapi limiter, keyed on the client address.

Routes opt in with ``@limiter.limit(...)``; login is the only one that
does. The limit is read per request so it follows ``settings``.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from leavedesk.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
)


def login_limit() -> str:
    return settings.LOGIN_RATE_LIMIT
