"""
lfsauth Configuration

Loads the INI configuration file shared by all git-lfs-authenticate
invocations on a host.

Example file:

    [Ldap]
    Urls = ldaps://dir1.example.com, ldaps://dir2.example.com:1636
    Groups = lfs-users, developers
    BaseDn = ou=people,dc=example,dc=com
    Cacert = /etc/ssl/certs/directory-ca.pem

    [Lfs]
    Url = https://lfs.example.com
    User = lfs
    Password = secret

The older key name Base is read when BaseDn is absent or empty.
"""

from __future__ import annotations

import configparser
import os
from typing import List, Mapping, Optional

import attrs
import structlog

from lfsauth.core.exceptions import ConfigurationError
from lfsauth.core.types import DirectoryConfiguration

logger = structlog.get_logger()

DEFAULT_CONFIG_FILE = "/etc/git-lfs-authenticate.conf"
CONFIG_ENV_VAR = "GIT_LFS_AUTHENTICATE_CONFIG"


@attrs.define(frozen=True, slots=True)
class LfsConfiguration:
    """
    Downstream LFS server the authorization payload points at.

    Attributes:
        url: Base URL of the LFS server
        user: HTTP basic auth user
        password: HTTP basic auth password
    """

    url: str = ""
    user: str = ""
    password: str = attrs.field(default="", repr=False)


@attrs.define(frozen=True, slots=True)
class Configuration:
    lfs: LfsConfiguration
    ldap: DirectoryConfiguration


def resolve_config_path(
    override: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Pick the configuration file path.

    Precedence: explicit override, then GIT_LFS_AUTHENTICATE_CONFIG,
    then /etc/git-lfs-authenticate.conf.
    """
    if override:
        return override
    environ = os.environ if environ is None else environ
    return environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE


def split_list(value: str) -> List[str]:
    """Split a comma separated value, dropping blanks."""
    return [item.strip() for item in value.split(",") if item.strip()]


def _get_float(section: configparser.SectionProxy, key: str) -> Optional[float]:
    raw = section.get(key, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{section.name}.{key}: invalid number {raw!r}") from e


def parse_configuration(parser: configparser.ConfigParser) -> Configuration:
    """Build a Configuration from parsed INI sections."""
    # Missing sections read as empty, like missing keys
    ldap = parser["Ldap"] if parser.has_section("Ldap") else _empty_section(parser, "Ldap")
    lfs = parser["Lfs"] if parser.has_section("Lfs") else _empty_section(parser, "Lfs")

    try:
        insecure = ldap.getboolean("InsecureSkipVerify", fallback=True)
    except ValueError as e:
        raise ConfigurationError(f"Ldap.InsecureSkipVerify: {e}") from e

    try:
        directory = DirectoryConfiguration(
            urls=split_list(ldap.get("Urls", "")),
            groups=split_list(ldap.get("Groups", "")),
            base_dn=_get_base_dn(ldap),
            cacert=ldap.get("Cacert", "").strip(),
            insecure_skip_verify=insecure,
            connect_timeout=_get_float(ldap, "ConnectTimeout"),
            receive_timeout=_get_float(ldap, "ReceiveTimeout"),
        )
    except ValueError as e:
        raise ConfigurationError(f"Ldap: {e}") from e

    return Configuration(
        lfs=LfsConfiguration(
            url=lfs.get("Url", "").strip(),
            user=lfs.get("User", "").strip(),
            password=lfs.get("Password", ""),
        ),
        ldap=directory,
    )


def _get_base_dn(section: configparser.SectionProxy) -> str:
    # BaseDn, when set, overrides the older Base key
    return section.get("BaseDn", "").strip() or section.get("Base", "").strip()


def _empty_section(parser: configparser.ConfigParser, name: str) -> configparser.SectionProxy:
    parser.add_section(name)
    return parser[name]


def load_configuration(path: str) -> Configuration:
    """
    Read and parse the configuration file.

    Raises:
        ConfigurationError: file unreadable or malformed
    """
    # Keys are case sensitive (Urls, Base, ...) and values may hold '%'
    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str

    try:
        with open(path, encoding="utf-8") as handle:
            parser.read_file(handle)
    except OSError as e:
        raise ConfigurationError(f"open {path}: {e.strerror or e}") from e
    except configparser.Error as e:
        raise ConfigurationError(str(e)) from e

    config = parse_configuration(parser)

    logger.debug(
        "configuration_loaded",
        path=path,
        ldap_urls=len(config.ldap.urls),
        allowed_groups=list(config.ldap.groups),
        cacert=config.ldap.cacert or None,
    )

    return config
