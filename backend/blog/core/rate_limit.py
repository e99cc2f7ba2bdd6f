"""
Process-wide slowapi limiter.

Routers decorate endpoints with ``limiter.limit(...)`` and the app registers
the same instance on ``app.state.limiter`` for ``SlowAPIMiddleware``;
decorated endpoints use their own limit instead of the default.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=["100/minute"])
