"""
lfsauth Membership Resolver

Decides whether a principal may use the LFS endpoint, based on the groups
the directory reports for it.

Endpoint failover:
1. Endpoints are picked uniformly at random from the configured pool
2. An endpoint that fails to connect or to answer the search is dropped
   from the pool and never retried within the same check
3. The first endpoint that answers is authoritative: an empty membership
   list or one without any allowed group is a DENIED decision, and no
   other endpoint is consulted
4. Only when every endpoint failed is the decision INDETERMINATE

Security Considerations:
- The principal is interpolated into the search filter without escaping.
  Callers must pass a trusted name (the local OS user, as the CLI does).
"""

from __future__ import annotations

import random
from typing import Any, Callable, Iterable, List, Optional

import attrs
import structlog
from returns.result import Failure, Result, Success

from lfsauth.core.exceptions import (
    ConnectError,
    ExhaustedError,
    LfsAuthError,
    QueryError,
)
from lfsauth.core.types import AuthorizationDecision, DirectoryConfiguration, GroupSet
from lfsauth.transport.connector import DirectoryConnection, connect

logger = structlog.get_logger()

MEMBER_ATTRIBUTE = "member"

Connector = Callable[..., DirectoryConnection]


# =============================================================================
# QUERY HELPERS
# =============================================================================


def build_filter(principal: str) -> str:
    """Search filter matching entries whose common name is the principal."""
    return f"(cn={principal})"


def extract_group(member: str) -> str:
    """
    Extract the group common name from a member DN.

    "cn=devteam,ou=groups,dc=example,dc=com" -> "devteam"
    """
    # cn=group,ou=...
    end = member.find(",")
    if end == -1:
        return member[3:]
    return member[3:end]


def collect_groups(entries: Iterable[dict]) -> GroupSet:
    """Gather group names from the member values of every entry."""
    groups = set()
    for entry in entries:
        values = entry.get("attributes", {}).get(MEMBER_ATTRIBUTE) or []
        if isinstance(values, (str, bytes)):
            values = [values]
        for value in values:
            if isinstance(value, bytes):
                value = value.decode("utf-8")
            groups.add(extract_group(value))
    return frozenset(groups)


def fetch_groups(
    connection: DirectoryConnection,
    base_dn: str,
    principal: str,
) -> GroupSet:
    """
    Query the groups a principal belongs to.

    Raises:
        QueryError: search failed or returned undecodable member values
    """
    entries = connection.search(base_dn, build_filter(principal), [MEMBER_ATTRIBUTE])
    try:
        return collect_groups(entries)
    except UnicodeDecodeError as e:
        url = connection.endpoint.url
        raise QueryError(f"Malformed member value from {url}: {e}", url=url) from e


# =============================================================================
# RESOLVER
# =============================================================================


@attrs.define
class MembershipResolver:
    """
    Checks group membership across a pool of redundant directory endpoints.

    Example:
        config = DirectoryConfiguration(
            urls=["ldaps://dir1.example.com", "ldaps://dir2.example.com"],
            groups=["lfs-users"],
            base_dn="ou=people,dc=example,dc=com",
        )
        decision = MembershipResolver(config).resolve("jdoe")
        if decision.is_authorized:
            ...

    The connector and random source are injectable; the resolver keeps no
    state between calls to resolve().
    """

    config: DirectoryConfiguration
    connector: Connector = connect
    rng: random.Random = attrs.Factory(random.Random)

    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def resolve(self, principal: str) -> AuthorizationDecision:
        """
        Decide whether principal belongs to one of the allowed groups.

        Returns:
            AUTHORIZED or DENIED as soon as one endpoint answers,
            INDETERMINATE wrapping the last error if none does
        """
        pool: List[str] = list(self.config.urls)
        last_error: Optional[LfsAuthError] = None

        self._logger.debug(
            "membership_check_start",
            principal=principal,
            endpoints=len(pool),
        )

        while pool:
            index = self.rng.randrange(len(pool))
            url = pool[index]

            try:
                connection = self._connect(url)
            except ConnectError as e:
                last_error = e
                self._logger.info("endpoint_connect_failed", url=url, error=str(e))
                del pool[index]
                continue

            with connection:
                try:
                    groups = fetch_groups(connection, self.config.base_dn, principal)
                except QueryError as e:
                    last_error = e
                    self._logger.info("endpoint_query_failed", url=url, error=str(e))
                    del pool[index]
                    continue

            return self._decide(principal, url, groups)

        error = ExhaustedError(last_error)
        self._logger.error(
            "membership_check_exhausted",
            principal=principal,
            endpoints=len(self.config.urls),
            error=str(error),
        )
        return AuthorizationDecision.indeterminate(error)

    def _connect(self, url: str) -> DirectoryConnection:
        return self.connector(
            url,
            self.config.cacert,
            insecure_skip_verify=self.config.insecure_skip_verify,
            connect_timeout=self.config.connect_timeout,
            receive_timeout=self.config.receive_timeout,
        )

    def _decide(self, principal: str, url: str, groups: GroupSet) -> AuthorizationDecision:
        if not groups:
            # unknown user or member of nothing; replicas agree, stop here
            self._logger.info("membership_empty", principal=principal, url=url)
            return AuthorizationDecision.denied(endpoint=url, groups=groups)

        matched = groups & self.config.allowed_groups
        if matched:
            self._logger.info(
                "membership_authorized",
                principal=principal,
                url=url,
                matched=sorted(matched),
            )
            return AuthorizationDecision.authorized(endpoint=url, groups=groups)

        self._logger.info(
            "membership_denied",
            principal=principal,
            url=url,
            groups=sorted(groups),
        )
        return AuthorizationDecision.denied(endpoint=url, groups=groups)


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================


def check_membership(
    config: DirectoryConfiguration,
    username: str,
    connector: Connector = connect,
) -> Result[bool, ExhaustedError]:
    """
    Check membership and report it as a Result.

    Returns:
        Success(True) if authorized, Success(False) if denied,
        Failure(ExhaustedError) if no endpoint could answer
    """
    decision = MembershipResolver(config=config, connector=connector).resolve(username)
    if decision.is_authoritative:
        return Success(decision.is_authorized)
    return Failure(decision.cause)
