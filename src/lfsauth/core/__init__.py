"""
lfsauth Core Module

Foundational types and exceptions used by the connector, resolver and CLI.

Components:
- types: Configuration, endpoint and decision types
- exceptions: Error taxonomy
"""

from lfsauth.core.types import (
    AuthorizationDecision,
    Decision,
    DirectoryConfiguration,
    Endpoint,
    GroupSet,
    Scheme,
)
from lfsauth.core.exceptions import (
    LfsAuthError,
    ConnectError,
    CACertificateError,
    QueryError,
    ExhaustedError,
    ConfigurationError,
    ArgumentError,
    NotAuthorisedError,
)

__all__ = [
    # Types
    "AuthorizationDecision",
    "Decision",
    "DirectoryConfiguration",
    "Endpoint",
    "GroupSet",
    "Scheme",
    # Exceptions
    "LfsAuthError",
    "ConnectError",
    "CACertificateError",
    "QueryError",
    "ExhaustedError",
    "ConfigurationError",
    "ArgumentError",
    "NotAuthorisedError",
]
