from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from geartracker.core.config import get_settings

# Honoured only when APP_ENV=test so suites can isolate their buckets.
TEST_RATE_LIMIT_HEADER = "X-Test-Rate-Limit-Key"


def rate_limit_key(request: Request) -> str:
    """Bucket requests per bearer credential, falling back to the client address."""
    if get_settings().app_env == "test":
        test_key = request.headers.get(TEST_RATE_LIMIT_HEADER)
        if test_key:
            return test_key
    credential = request.headers.get("Authorization")
    return credential or get_remote_address(request)


limiter = Limiter(key_func=rate_limit_key, headers_enabled=False)

__all__ = ["TEST_RATE_LIMIT_HEADER", "limiter", "rate_limit_key"]
