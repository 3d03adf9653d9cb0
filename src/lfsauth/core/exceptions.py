"""
lfsauth Exception Types

Custom exceptions for directory membership and LFS authentication errors.

A negative authorization answer is never an exception: the resolver reports
it as a DENIED decision. Exceptions are reserved for "could not decide".
"""

from typing import Optional


class LfsAuthError(Exception):
    """Base exception for all lfsauth errors."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ConnectError(LfsAuthError):
    """
    Connection to a directory endpoint failed.

    Covers socket, DNS and TLS handshake failures. The resolver recovers
    from it by moving on to the next endpoint.
    """

    def __init__(self, message: str, url: str = "") -> None:
        super().__init__(message)
        self.url = url


class CACertificateError(ConnectError):
    """
    CA certificate file could not be used.

    The file is unreadable or holds no PEM certificate. Handled exactly
    like any other connect failure.
    """

    pass


class QueryError(LfsAuthError):
    """
    Directory search failed after a successful connection.

    This indicates a transport drop, a malformed response or a
    non-success LDAP result code.
    """

    def __init__(
        self, message: str, url: str = "", code: Optional[int] = None
    ) -> None:
        super().__init__(message, code)
        self.url = url


class ExhaustedError(LfsAuthError):
    """
    Every configured directory endpoint failed.

    Wraps the error of the last endpoint tried so the operator sees the
    underlying cause.
    """

    def __init__(self, last_error: Optional[LfsAuthError] = None) -> None:
        if last_error is None:
            message = "No LDAP servers configured"
        else:
            message = str(last_error)
        super().__init__(message)
        self.last_error = last_error
        self.__cause__ = last_error


class ConfigurationError(LfsAuthError):
    """Configuration file is missing, unreadable or holds invalid values."""

    pass


class ArgumentError(LfsAuthError):
    """Command line arguments do not describe a valid LFS request."""

    pass


class NotAuthorisedError(LfsAuthError):
    """The directory answered and the user is not in an allowed group."""

    def __init__(
        self, message: str = "You're not authorised for this operation"
    ) -> None:
        super().__init__(message)
