"""
lfsauth Transport Layer

Network transport to directory (LDAP) endpoints.

Components:
- connector: endpoint address parsing, TLS setup and connection establishment
"""

from lfsauth.transport.connector import (
    DirectoryConnection,
    build_tls,
    connect,
    load_ca_certificates,
    parse_endpoint,
)

__all__ = [
    "DirectoryConnection",
    "build_tls",
    "connect",
    "load_ca_certificates",
    "parse_endpoint",
]
