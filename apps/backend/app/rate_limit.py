"""
IP-based rate limiting for admin endpoints.
"""
import os
from slowapi import Limiter
from slowapi.util import get_remote_address

_is_dev = os.getenv("RECRUIT_ENV") == "dev"

# Every scrape request can start several remote actor runs
RATE_LIMIT_SCRAPE = os.getenv("RATE_LIMIT_SCRAPE", "30/minute" if _is_dev else "5/minute")
RATE_LIMIT_LOGIN = os.getenv("RATE_LIMIT_LOGIN", "20/minute" if _is_dev else "10/minute")

limiter = Limiter(key_func=get_remote_address)
