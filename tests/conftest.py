"""
Pytest configuration and shared fixtures for lfsauth tests.
"""

import pytest
import structlog
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from lfsauth.core.exceptions import ConnectError, QueryError
from lfsauth.core.types import DirectoryConfiguration
from lfsauth.transport.connector import parse_endpoint


# =============================================================================
# DIRECTORY DOUBLES
# =============================================================================


def member_dn(group: str) -> str:
    """Member value as stored on a group entry."""
    return f"cn={group},ou=groups,dc=example,dc=com"


class FakeConnection:
    """Stands in for DirectoryConnection, answering searches from memory."""

    def __init__(self, url: str, groups: Union[List[Union[str, bytes]], QueryError]) -> None:
        self.endpoint = parse_endpoint(url)
        self.groups = groups
        self.searches: List[tuple] = []
        self.closed = False

    def search(self, base_dn, search_filter, attributes):
        self.searches.append((base_dn, search_filter, list(attributes)))
        if isinstance(self.groups, QueryError):
            raise self.groups
        if not self.groups:
            return []
        return [
            {
                "dn": "cn=testuser,ou=people,dc=example,dc=com",
                "attributes": {
                    "member": [
                        member_dn(g) if isinstance(g, str) else g for g in self.groups
                    ]
                },
            }
        ]

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class FakeConnector:
    """
    Connector double with a per-endpoint script.

    Each URL maps to either a ConnectError (connect fails), a QueryError
    (search fails) or the list of groups the endpoint reports. Bytes in
    that list are returned as raw member values.
    """

    def __init__(self, script: Dict[str, Union[List[str], ConnectError, QueryError]]) -> None:
        self.script = script
        self.calls: List[str] = []
        self.connections: List[FakeConnection] = []

    def __call__(self, url, cacert="", **options):
        self.calls.append(url)
        outcome = self.script[url]
        if isinstance(outcome, ConnectError):
            raise outcome
        conn = FakeConnection(url, outcome)
        self.connections.append(conn)
        return conn


def connect_error(url: str) -> ConnectError:
    return ConnectError(f"dial tcp {url}: connection refused", url=url)


def query_error(url: str) -> QueryError:
    return QueryError(f"LDAP search on {url} failed: connection reset", url=url)


# =============================================================================
# CONFIGURATION FIXTURES
# =============================================================================


@pytest.fixture
def urls() -> List[str]:
    """Three redundant directory endpoints."""
    return [
        "ldap://dir1.example.com",
        "ldap://dir2.example.com:3389",
        "ldaps://dir3.example.com",
    ]


@pytest.fixture
def directory_config(urls: List[str]) -> DirectoryConfiguration:
    """Directory configuration allowing the "ops" group."""
    return DirectoryConfiguration(
        urls=urls,
        groups=["ops"],
        base_dn="dc=example,dc=com",
    )


@pytest.fixture
def config_file(tmp_path):
    """Complete configuration file on disk."""
    path = tmp_path / "git-lfs-authenticate.conf"
    path.write_text(
        "[Ldap]\n"
        "Urls = ldap://dir1.example.com, ldaps://dir2.example.com:1636\n"
        "Groups = ops, lfs-users\n"
        "Base = dc=example,dc=com\n"
        "Cacert =\n"
        "\n"
        "[Lfs]\n"
        "Url = https://lfs.example.com/ignored/path\n"
        "User = lfs\n"
        "Password = s3cr%t\n"
    )
    return path


# =============================================================================
# TLS FIXTURES
# =============================================================================


def make_ca(common_name: str):
    """Self-signed CA key and certificate."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
        .sign(key, hashes.SHA256())
    )
    return key, cert


def issue_server_certificate(ca_key, ca_cert, hostname: str):
    """Server key and certificate for hostname, signed by the CA."""
    key = ec.generate_private_key(ec.SECP256R1())
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, hostname)]))
        .issuer_name(ca_cert.subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(x509.SubjectAlternativeName([x509.DNSName(hostname)]), critical=False)
        .add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False
        )
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_key.public_key()),
            critical=False,
        )
        .sign(ca_key, hashes.SHA256())
    )
    return key, cert


def pem(cert) -> bytes:
    return cert.public_bytes(serialization.Encoding.PEM)


@pytest.fixture(scope="session")
def directory_ca():
    """CA that signs the test directory's server certificate."""
    return make_ca("Example Directory CA")


@pytest.fixture(scope="session")
def ca_pem(directory_ca) -> bytes:
    """Self-signed CA certificate in PEM form."""
    return pem(directory_ca[1])


@pytest.fixture
def ca_file(tmp_path, ca_pem: bytes):
    """CA bundle written to disk."""
    path = tmp_path / "ca.pem"
    path.write_bytes(ca_pem)
    return path


@pytest.fixture
def other_ca_file(tmp_path):
    """Bundle holding a CA unrelated to the directory's certificate."""
    path = tmp_path / "other-ca.pem"
    path.write_bytes(pem(make_ca("Unrelated CA")[1]))
    return path


@pytest.fixture(scope="session")
def server_certificate(tmp_path_factory, directory_ca):
    """(certificate path, key path) for "localhost", issued by directory_ca."""
    key, cert = issue_server_certificate(*directory_ca, "localhost")
    directory = tmp_path_factory.mktemp("server-tls")
    cert_path = directory / "server.pem"
    key_path = directory / "server.key"
    cert_path.write_bytes(pem(cert))
    key_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    return str(cert_path), str(key_path)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo logging configuration done by the CLI under test."""
    yield
    structlog.reset_defaults()


# =============================================================================
# PYTEST MARKERS
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests requiring a real LDAP server"
    )
