"""
lfsauth - LDAP group authorization for Git LFS over SSH

Implements git-lfs-authenticate: checks that the calling user belongs to one
of a set of directory groups and, if so, hands git-lfs the href and headers
for the LFS transfer endpoint.

Directory Access:
- Several redundant LDAP endpoints, tried in random order
- Plaintext LDAP or LDAPS, optionally validated against a CA bundle
- The first endpoint that answers is authoritative

Example Usage:
    from lfsauth import DirectoryConfiguration, MembershipResolver

    config = DirectoryConfiguration(
        urls=["ldaps://dir1.example.com", "ldaps://dir2.example.com"],
        groups=["lfs-users"],
        base_dn="ou=people,dc=example,dc=com",
        cacert="/etc/ssl/certs/directory-ca.pem",
    )
    decision = MembershipResolver(config).resolve("jdoe")
    if decision.is_authorized:
        print("Access granted")
    elif decision.is_authoritative:
        print("Not a member of any allowed group")
    else:
        print(f"Directory unavailable: {decision.cause}")
"""

from lfsauth.core.types import (
    AuthorizationDecision,
    Decision,
    DirectoryConfiguration,
    Endpoint,
    Scheme,
)
from lfsauth.membership.resolver import MembershipResolver, check_membership

__version__ = "0.1.0"

__all__ = [
    # Main API
    "MembershipResolver",
    "check_membership",
    # Types
    "AuthorizationDecision",
    "Decision",
    "DirectoryConfiguration",
    "Endpoint",
    "Scheme",
    # Metadata
    "__version__",
]
