"""
lfsauth Core Types

Type definitions shared by the endpoint connector, the membership resolver
and the command line front end.

Design Principles:
- Immutable: configuration and decisions use frozen attrs classes
- Validated: type constraints enforced at construction
- Tri-state: a decision is AUTHORIZED, DENIED or INDETERMINATE, never a bare bool
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Optional, Tuple

import attrs
from attrs import field, validators


# =============================================================================
# ENUMS
# =============================================================================


class Scheme(Enum):
    """Directory endpoint transport scheme."""

    LDAP = "ldap"
    LDAPS = "ldaps"

    @property
    def default_port(self) -> int:
        """Return the conventional port for this scheme."""
        return 636 if self is Scheme.LDAPS else 389

    @property
    def prefix(self) -> str:
        return f"{self.value}://"


class Decision(Enum):
    """Outcome of one authorization check."""

    AUTHORIZED = "authorized"
    DENIED = "denied"
    INDETERMINATE = "indeterminate"


# =============================================================================
# CONFIGURATION
# =============================================================================


def _to_tuple(value) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    return tuple(value)


def _optional_timeout(instance, attribute, value) -> None:
    if value is not None and value <= 0:
        raise ValueError(f"{attribute.name} must be positive, got {value}")


@attrs.define(frozen=True, slots=True)
class DirectoryConfiguration:
    """
    Directory (LDAP) settings for one authorization decision.

    Attributes:
        urls: Endpoint URLs (ldap:// or ldaps://), tried in random order
        groups: Allowed group common names
        base_dn: Subtree root for the membership search
        cacert: Path to a PEM CA bundle ("" for none)
        insecure_skip_verify: Accept any server certificate when no cacert
            is configured. Keeps compatibility with deployments that rely
            on self-signed directory certificates; turn off to validate
            against the system trust store instead.
        connect_timeout: Socket connect timeout in seconds (None = default)
        receive_timeout: Socket receive timeout in seconds (None = default)
    """

    urls: Tuple[str, ...] = field(factory=tuple, converter=_to_tuple)
    groups: Tuple[str, ...] = field(factory=tuple, converter=_to_tuple)
    base_dn: str = field(default="", validator=validators.instance_of(str))
    cacert: str = field(default="", validator=validators.instance_of(str))
    insecure_skip_verify: bool = True
    connect_timeout: Optional[float] = field(default=None, validator=_optional_timeout)
    receive_timeout: Optional[float] = field(default=None, validator=_optional_timeout)

    @property
    def allowed_groups(self) -> FrozenSet[str]:
        return frozenset(self.groups)


# =============================================================================
# ENDPOINT
# =============================================================================


@attrs.define(frozen=True, slots=True)
class Endpoint:
    """
    One directory server address.

    INVARIANT: port is in 1..65535
    """

    url: str
    scheme: Scheme = field(validator=validators.instance_of(Scheme))
    host: str = field(validator=validators.instance_of(str))
    port: int = field(validator=[validators.instance_of(int), validators.ge(1), validators.le(65535)])

    @property
    def use_tls(self) -> bool:
        return self.scheme is Scheme.LDAPS

    @property
    def address(self) -> str:
        """Network address as host:port."""
        return f"{self.host}:{self.port}"

    def __str__(self) -> str:
        return f"{self.scheme.prefix}{self.address}"


# Group common names reported by one endpoint for one principal.
GroupSet = FrozenSet[str]


# =============================================================================
# RESULT TYPES
# =============================================================================


@attrs.define(frozen=True, slots=True)
class AuthorizationDecision:
    """
    Result of a membership check.

    Attributes:
        decision: AUTHORIZED, DENIED or INDETERMINATE
        cause: Underlying error (INDETERMINATE only)
        endpoint: URL of the endpoint that answered (authoritative only)
        groups: Groups the answering endpoint reported

    INVARIANT: INDETERMINATE always carries a cause, other outcomes never do
    """

    decision: Decision = field(validator=validators.instance_of(Decision))
    cause: Optional[Exception] = None
    endpoint: Optional[str] = None
    groups: GroupSet = field(factory=frozenset, converter=frozenset)

    def __attrs_post_init__(self) -> None:
        if self.decision is Decision.INDETERMINATE:
            if self.cause is None:
                raise ValueError("Indeterminate decision must have a cause")
        elif self.cause is not None:
            raise ValueError(f"{self.decision.name} decision cannot have a cause")

    @property
    def is_authorized(self) -> bool:
        return self.decision is Decision.AUTHORIZED

    @property
    def is_authoritative(self) -> bool:
        """True when some endpoint actually answered the query."""
        return self.decision is not Decision.INDETERMINATE

    @classmethod
    def authorized(
        cls, endpoint: Optional[str] = None, groups: GroupSet = frozenset()
    ) -> AuthorizationDecision:
        return cls(decision=Decision.AUTHORIZED, endpoint=endpoint, groups=groups)

    @classmethod
    def denied(
        cls, endpoint: Optional[str] = None, groups: GroupSet = frozenset()
    ) -> AuthorizationDecision:
        return cls(decision=Decision.DENIED, endpoint=endpoint, groups=groups)

    @classmethod
    def indeterminate(cls, cause: Exception) -> AuthorizationDecision:
        return cls(decision=Decision.INDETERMINATE, cause=cause)
