"""
lfsauth LFS Response

The JSON document git-lfs expects on stdout from git-lfs-authenticate:

    {"href": "https://lfs.example.com/ns/repo",
     "header": {"Authorization": "Basic ...", "X-Lfs-From-Ssh": "yes"}}
"""

from __future__ import annotations

import base64
import json
from typing import Dict
from urllib.parse import urlsplit, urlunsplit

import attrs

from lfsauth.config import LfsConfiguration
from lfsauth.core.exceptions import ConfigurationError


@attrs.define(frozen=True, slots=True)
class SshAuthResponse:
    href: str
    header: Dict[str, str] = attrs.field(factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {"href": self.href, "header": dict(self.header)}

    def to_json(self) -> str:
        """Compact JSON, no trailing newline."""
        return json.dumps(self.to_dict(), separators=(",", ":"))


def http_basic_auth(user: str, password: str) -> str:
    """Base64 credentials for an HTTP Basic Authorization header."""
    pair = f"{user}:{password}"
    return base64.b64encode(pair.encode("utf-8")).decode("ascii")


def build_href(base_url: str, namespace: str, repository: str) -> str:
    """Replace the path of base_url with /<namespace>/<repository>."""
    try:
        parts = urlsplit(base_url)
    except ValueError as e:
        raise ConfigurationError(f"Lfs.Url: {e}") from e
    return urlunsplit(parts._replace(path=f"/{namespace}/{repository}"))


def build_response(
    lfs: LfsConfiguration,
    namespace: str,
    repository: str,
) -> SshAuthResponse:
    """Authorization payload for one repository on the LFS server."""
    return SshAuthResponse(
        href=build_href(lfs.url, namespace, repository),
        header={
            "Authorization": "Basic " + http_basic_auth(lfs.user, lfs.password),
            "X-Lfs-From-Ssh": "yes",
        },
    )
