from slowapi import Limiter
from slowapi.util import get_remote_address
from snapshare.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.RATE_LIMIT_ENABLED and not settings.is_testing,
)

# Applied to endpoints that write
WRITE_LIMIT = f"{settings.RATE_LIMIT_PER_MINUTE}/minute"
AUTH_LIMIT = "10/minute"
