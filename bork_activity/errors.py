"""Exceptions raised inside the wallet activity pipeline"""
from typing import Optional


class BorkActivityError(Exception):
    """Base exception for wallet activity pipeline errors"""
    pass


class ValidationError(BorkActivityError):
    """Wallet address is missing or malformed"""
    pass


class RateLimitExhausted(BorkActivityError):
    """Too many consecutive 429 responses from the upstream service"""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Rate limited {attempts} times in a row, stopping requests")


class UpstreamError(BorkActivityError):
    """Non-2xx response or transport failure from the upstream service"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class ParseError(UpstreamError):
    """Upstream response body could not be understood"""
    pass


class PriceLookupFailure(BorkActivityError):
    """Price service lookup failed; affected coins stay unpriced"""
    pass


class Cancelled(BorkActivityError):
    """The caller's cancellation signal was raised"""
    pass
