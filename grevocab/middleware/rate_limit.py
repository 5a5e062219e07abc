"""
Rate limiting middleware using slowapi
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

# Create limiter instance
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000/hour", "100/minute"]
)


# Rate limit decorators for different endpoints
def auth_limit():
    """Rate limit for sign-in and sign-up"""
    return limiter.limit("20/minute")


def extraction_limit():
    """Rate limit for document extraction"""
    return limiter.limit("10/minute")


def import_limit():
    """Rate limit for bulk imports"""
    return limiter.limit("30/minute")
