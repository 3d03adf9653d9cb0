"""
lfsauth LFS Module

Payload handed back to git-lfs once a user is authorized.
"""

from lfsauth.lfs.response import (
    SshAuthResponse,
    build_href,
    build_response,
    http_basic_auth,
)

__all__ = [
    "SshAuthResponse",
    "build_href",
    "build_response",
    "http_basic_auth",
]
