"""Custom exceptions for the crypto dashboard data layer."""

from typing import Optional


class CryptoDashboardException(Exception):
    """Base exception for all crypto dashboard specific exceptions"""
    pass


class DataProviderException(CryptoDashboardException):
    """Raised when data provider operations fail"""
    pass


class TransportError(DataProviderException):
    """Raised on network failures and timeouts"""
    pass


class UpstreamError(DataProviderException):
    """Raised when the upstream API answers with a non-2xx status"""

    def __init__(self, status_code: int, message: str, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ConfigurationException(CryptoDashboardException):
    """Raised when configuration is invalid"""
    pass


class ProbeRunException(CryptoDashboardException):
    """Raised when a probe run cannot be started"""
    pass
