from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from chaincv.core.config import Settings

limiter = Limiter(key_func=get_remote_address)
_limits = {"upload": "10/minute"}


def configure_rate_limit(settings: Settings) -> Limiter:
    limiter.enabled = settings.rate_limit_enabled
    _limits["upload"] = settings.rate_limit
    return limiter


def upload_rate_limit() -> str:
    return _limits["upload"]
