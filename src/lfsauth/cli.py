"""
git-lfs-authenticate command line entry point.

Invoked by git-lfs over SSH as:

    git-lfs-authenticate <namespace>/<repository> <upload|download> [oid]

On success the JSON authorization payload is written to stdout. Any failure
is reported on stderr with exit status 1.
"""

from __future__ import annotations

import os
import pwd
from typing import Optional, Sequence

import attrs
import click
import structlog

from lfsauth.config import Configuration, load_configuration, resolve_config_path
from lfsauth.core.exceptions import ArgumentError, LfsAuthError, NotAuthorisedError
from lfsauth.core.types import Decision
from lfsauth.lfs.response import SshAuthResponse, build_response
from lfsauth.log import DEBUG_ENV_VAR, configure_logging
from lfsauth.membership.resolver import Connector, MembershipResolver
from lfsauth.transport.connector import connect

logger = structlog.get_logger()

OPERATIONS = ("upload", "download")


@attrs.define(frozen=True, slots=True)
class LfsRequest:
    operation: str
    namespace: str
    repository: str


def parse_arguments(args: Sequence[str]) -> LfsRequest:
    """
    Validate the arguments git-lfs passes over SSH.

    Raises:
        ArgumentError: wrong argument count, operation or path
    """
    if len(args) < 2:
        raise ArgumentError(f"Expected at least 2 arguments, got {len(args)}")

    if len(args) > 3:
        # the legacy API also passes an OID, which is accepted and ignored
        raise ArgumentError(f"Expected no more than 3 arguments, got {len(args)}")

    path, operation = args[0], args[1]

    if operation not in OPERATIONS:
        raise ArgumentError(
            f"Unknown LFS operation: {operation!r}, expected 'download' or 'upload'"
        )

    parts = path.split("/")
    if len(parts) != 2:
        raise ArgumentError(
            f"Cannot figure out namespace and repository from path: {path!r}"
        )

    return LfsRequest(operation=operation, namespace=parts[0], repository=parts[1])


def current_username() -> str:
    """
    Login name of the real user id, from the password database.

    $USER and $LOGNAME are not consulted.
    """
    uid = os.getuid()
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError as e:
        raise LfsAuthError(f"user: unknown userid {uid}") from e


def authorize(
    request: LfsRequest,
    config: Configuration,
    username: str,
    connector: Connector = connect,
) -> SshAuthResponse:
    """
    Check the user against the directory and build the LFS payload.

    Raises:
        ExhaustedError: no directory endpoint could answer
        NotAuthorisedError: the directory answered and the user is not allowed
    """
    decision = MembershipResolver(config=config.ldap, connector=connector).resolve(username)

    if decision.decision is Decision.INDETERMINATE:
        raise decision.cause
    if decision.decision is Decision.DENIED:
        raise NotAuthorisedError()

    logger.info(
        "lfs_access_granted",
        username=username,
        operation=request.operation,
        namespace=request.namespace,
        repository=request.repository,
    )
    return build_response(config.lfs, request.namespace, request.repository)


@click.command(
    context_settings={"ignore_unknown_options": True, "help_option_names": ["--help"]}
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option(
    "--config",
    "config_path",
    default=None,
    help="Configuration file (default $GIT_LFS_AUTHENTICATE_CONFIG or /etc/git-lfs-authenticate.conf)",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(
    ctx: click.Context,
    args: Sequence[str],
    config_path: Optional[str],
    verbose: bool,
) -> None:
    """Authorize an LFS transfer by LDAP group membership."""
    configure_logging(verbose or bool(os.environ.get(DEBUG_ENV_VAR)))

    try:
        request = parse_arguments(args)

        path = resolve_config_path(config_path)
        try:
            config = load_configuration(path)
        except LfsAuthError as e:
            raise LfsAuthError(f"Failed to read {path!r}: {e}") from e

        response = authorize(request, config, current_username(), connector=connect)
    except LfsAuthError as e:
        click.echo(str(e), err=True)
        ctx.exit(1)

    click.echo(response.to_json(), nl=False)


if __name__ == "__main__":
    main()
