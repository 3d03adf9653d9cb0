"""
lfsauth Endpoint Connector

Opens a single transport connection to one directory (LDAP) endpoint.

Supports:
- Plaintext LDAP (ldap://, default port 389)
- LDAP over TLS (ldaps://, default port 636)
- CA-validated TLS from a PEM bundle, with SNI set to the endpoint host
- Unvalidated TLS for self-signed directories (insecure_skip_verify)

No bind is performed: membership searches run anonymously. The caller owns
the returned connection and releases it with ``close()`` or a ``with`` block.
"""

from __future__ import annotations

import ssl
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import attrs
import structlog
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from ldap3 import (
    AUTO_BIND_NONE,
    DEREF_NEVER,
    NONE,
    SUBTREE,
    SYNC,
    Connection,
    Server,
    Tls,
)
from ldap3.core.exceptions import LDAPException
from ldap3.core.results import RESULT_SUCCESS

from lfsauth.core.exceptions import CACertificateError, ConnectError, QueryError
from lfsauth.core.types import Endpoint, Scheme

logger = structlog.get_logger()


# =============================================================================
# ADDRESS PARSING
# =============================================================================


def parse_endpoint(url: str) -> Endpoint:
    """
    Derive scheme, host and port from an endpoint URL.

    Anything starting with "ldaps" is TLS, everything else plaintext.
    A missing port is replaced by the scheme's default.

    Examples:
        "ldap://dirsrv"       -> dirsrv:389, plaintext
        "ldaps://dirsrv:1636" -> dirsrv:1636, TLS
    """
    scheme = Scheme.LDAPS if url.startswith("ldaps") else Scheme.LDAP

    address = url[len(scheme.prefix):] if url.startswith(scheme.prefix) else url
    if ":" not in address:
        address = f"{address}:{scheme.default_port}"

    host, _, port = address.partition(":")
    try:
        port_number = int(port)
        return Endpoint(url=url, scheme=scheme, host=host, port=port_number)
    except ValueError as e:
        raise ConnectError(f"Invalid LDAP server address {url!r}: {e}", url=url) from e


# =============================================================================
# TLS
# =============================================================================


def load_ca_certificates(path: str) -> str:
    """
    Read a PEM CA bundle and return the certificates it holds as PEM text.

    Raises:
        CACertificateError: file unreadable or without any PEM certificate
    """
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise CACertificateError(f"open {path}: {e.strerror or e}") from e

    try:
        certificates = x509.load_pem_x509_certificates(data)
    except ValueError as e:
        raise CACertificateError(f"No PEM certificates found in {path}: {e}") from e

    logger.debug("ca_certificates_loaded", path=path, count=len(certificates))

    return "".join(
        cert.public_bytes(serialization.Encoding.PEM).decode("ascii")
        for cert in certificates
    )


def build_tls(
    endpoint: Endpoint,
    cacert: str = "",
    insecure_skip_verify: bool = True,
) -> Optional[Tls]:
    """
    Build the TLS settings for an endpoint.

    Returns None for plaintext endpoints. With a CA bundle the server
    certificate is validated against it only; without one, validation is
    either disabled (insecure_skip_verify) or done against the system store.
    """
    if not endpoint.use_tls:
        return None

    if cacert:
        return Tls(
            validate=ssl.CERT_REQUIRED,
            ca_certs_data=load_ca_certificates(cacert),
            sni=endpoint.host,
        )

    if insecure_skip_verify:
        logger.info(
            "tls_verification_disabled",
            endpoint=str(endpoint),
            message="No CA certificate configured - server certificate is not verified",
        )
        return Tls(validate=ssl.CERT_NONE)

    return Tls(validate=ssl.CERT_REQUIRED, sni=endpoint.host)


# =============================================================================
# CONNECTION
# =============================================================================


@attrs.define
class DirectoryConnection:
    """
    Open connection to one directory endpoint.

    Wraps an ldap3 Connection. Use as a context manager so the socket is
    released on every exit path.
    """

    endpoint: Endpoint
    _conn: Any = attrs.field(repr=False)

    _closed: bool = False
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    @property
    def closed(self) -> bool:
        return self._closed

    def search(
        self,
        base_dn: str,
        search_filter: str,
        attributes: Sequence[str],
    ) -> List[Dict[str, Any]]:
        """
        Search the whole subtree under base_dn.

        Aliases are never dereferenced and no size or time limit is set.

        Returns:
            List of entries as {"dn": ..., "attributes": {...}}

        Raises:
            QueryError: transport failure or non-success result code
        """
        url = self.endpoint.url

        try:
            self._conn.search(
                search_base=base_dn,
                search_filter=search_filter,
                search_scope=SUBTREE,
                dereference_aliases=DEREF_NEVER,
                attributes=list(attributes),
                size_limit=0,
                time_limit=0,
                types_only=False,
            )
        except LDAPException as e:
            raise QueryError(f"LDAP search on {url} failed: {e}", url=url) from e

        result = self._conn.result or {}
        code = result.get("result")
        if code != RESULT_SUCCESS:
            text = f"LDAP Result Code {code} {result.get('description', 'unknown')!r}"
            if result.get("message"):
                text = f"{text}: {result['message']}"
            raise QueryError(text, url=url, code=code)

        entries = [
            {
                "dn": item.get("dn", ""),
                "attributes": dict(item.get("attributes") or {}),
            }
            for item in self._conn.response or []
            if item.get("type") == "searchResEntry"
        ]

        self._logger.debug(
            "ldap_search_done",
            endpoint=url,
            search_filter=search_filter,
            entries=len(entries),
        )

        return entries

    def close(self) -> None:
        """Release the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._conn.unbind()
        except (LDAPException, OSError) as e:
            self._logger.debug(
                "ldap_unbind_failed",
                endpoint=self.endpoint.url,
                error=str(e),
            )
        self._logger.debug("ldap_connection_closed", endpoint=self.endpoint.url)

    def __enter__(self) -> "DirectoryConnection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def connect(
    url: str,
    cacert: str = "",
    *,
    insecure_skip_verify: bool = True,
    connect_timeout: Optional[float] = None,
    receive_timeout: Optional[float] = None,
) -> DirectoryConnection:
    """
    Connect to one directory endpoint.

    Args:
        url: Endpoint URL (ldap://host[:port] or ldaps://host[:port])
        cacert: Path to a PEM CA bundle ("" for none)
        insecure_skip_verify: Accept any certificate when cacert is empty
        connect_timeout: Socket connect timeout in seconds
        receive_timeout: Socket receive timeout in seconds

    Returns:
        Open DirectoryConnection, owned by the caller

    Raises:
        ConnectError: socket, DNS or TLS handshake failure
        CACertificateError: CA bundle unreadable or empty
    """
    endpoint = parse_endpoint(url)
    tls = build_tls(endpoint, cacert, insecure_skip_verify)

    server = Server(
        endpoint.host,
        port=endpoint.port,
        use_ssl=endpoint.use_tls,
        tls=tls,
        get_info=NONE,
        connect_timeout=connect_timeout,
    )
    conn = Connection(
        server,
        auto_bind=AUTO_BIND_NONE,
        client_strategy=SYNC,
        read_only=True,
        receive_timeout=receive_timeout,
    )

    try:
        conn.open()
    except (LDAPException, OSError) as e:
        logger.debug(
            "ldap_connect_failed",
            endpoint=str(endpoint),
            tls=endpoint.use_tls,
            error=str(e),
        )
        raise ConnectError(f"LDAP connect to {endpoint} failed: {e}", url=url) from e

    logger.debug("ldap_connected", endpoint=str(endpoint), tls=endpoint.use_tls)

    return DirectoryConnection(endpoint=endpoint, conn=conn)
