#!/usr/bin/env python3
"""
Directory Membership Check Example

Demonstrates how to use lfsauth's MembershipResolver against a set of
redundant LDAP servers.

Features:
1. Endpoint address normalization
2. Failover across redundant directory servers
3. Tri-state decisions (authorized / denied / indeterminate)
4. Result-style wrapper for callers that prefer (bool, error)

Usage:
    python membership_check_example.py jdoe ldap://dir1.example.com ldaps://dir2.example.com
"""

import sys

from returns.result import Failure, Success

from lfsauth import DirectoryConfiguration, MembershipResolver, check_membership
from lfsauth.log import configure_logging
from lfsauth.transport import parse_endpoint


def main():
    """Check one user against the directory servers given on the command line."""
    if len(sys.argv) < 3:
        print(__doc__)
        return 2

    username, urls = sys.argv[1], sys.argv[2:]
    configure_logging(verbose=True)

    print("=" * 70)
    print("lfsauth - Directory Membership Check")
    print("=" * 70)
    print()

    # ==========================================================================
    # EXAMPLE 1: Endpoint normalization
    # ==========================================================================
    print("1. Endpoints")
    print("-" * 40)
    for url in urls:
        endpoint = parse_endpoint(url)
        print(f"   {url:40} -> {endpoint.address} ({'TLS' if endpoint.use_tls else 'plaintext'})")
    print()

    config = DirectoryConfiguration(
        urls=urls,
        groups=["lfs-users"],
        base_dn="dc=example,dc=com",
        connect_timeout=5,
        receive_timeout=10,
    )

    # ==========================================================================
    # EXAMPLE 2: Resolve a decision
    # ==========================================================================
    print("2. Membership decision")
    print("-" * 40)
    decision = MembershipResolver(config).resolve(username)
    print(f"   Decision: {decision.decision.name}")
    if decision.is_authoritative:
        print(f"   Answered by: {decision.endpoint}")
        print(f"   Groups: {', '.join(sorted(decision.groups)) or '(none)'}")
    else:
        print(f"   Cause: {decision.cause}")
    print()

    # ==========================================================================
    # EXAMPLE 3: Result wrapper
    # ==========================================================================
    print("3. check_membership()")
    print("-" * 40)
    result = check_membership(config, username)
    if isinstance(result, Success):
        print(f"   Member of an allowed group: {result.unwrap()}")
    elif isinstance(result, Failure):
        print(f"   Directory unavailable: {result.failure()}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
