"""
lfsauth Membership Module

Group membership lookup and allow-list evaluation across redundant
directory endpoints.
"""

from lfsauth.membership.resolver import (
    MembershipResolver,
    build_filter,
    check_membership,
    collect_groups,
    extract_group,
    fetch_groups,
)

__all__ = [
    "MembershipResolver",
    "build_filter",
    "check_membership",
    "collect_groups",
    "extract_group",
    "fetch_groups",
]
