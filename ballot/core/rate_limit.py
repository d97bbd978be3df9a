"""
Request rate limiting shared by the app and the routers.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from ballot.config import settings

# Keyed on client address; storage is in-process memory
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
