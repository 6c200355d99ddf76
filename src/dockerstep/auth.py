"""Registry authentication resolution for Docker steps.

A step that names a ``server_id`` authenticates against the registry with the
credential stored under that id. The credential must carry a username, a
password and an ``email`` entry in its configuration block; anything less is
rejected before a Docker client is built.

Example usage:
    >>> from dockerstep.auth import resolve_auth_config
    >>> from dockerstep.settings import load_settings
    >>>
    >>> auth = resolve_auth_config(load_settings(), "docker-hub")
    >>> auth.server_address
    'https://index.docker.io/v1/'
"""

from __future__ import annotations

from typing import NoReturn

from pydantic import BaseModel, ConfigDict, Field

from dockerstep.exceptions import IncompleteAuthorizationError
from dockerstep.logging import get_logger
from dockerstep.settings import Server, Settings

DEFAULT_REGISTRY = "https://index.docker.io/v1/"
EMAIL_PROPERTY = "email"

logger = get_logger(__name__)


class AuthConfig(BaseModel):
    """Registry authentication payload handed to the Docker client.

    Attributes:
        username: Registry username
        password: Registry password or token
        email: Account email
        server_address: Registry the credentials apply to
    """

    model_config = ConfigDict(frozen=True)

    username: str
    password: str = Field(repr=False)
    email: str
    server_address: str = DEFAULT_REGISTRY


def _email_of(server: Server) -> str | None:
    if server.configuration is None:
        return None
    node = server.configuration.get_child(EMAIL_PROPERTY)
    if node is None:
        return None
    return node.value


def _incomplete(server_id: str, missing: str) -> NoReturn:
    logger.error("auth_config_incomplete", server_id=server_id, missing=missing)
    raise IncompleteAuthorizationError(missing)


def resolve_auth_config(
    settings: Settings | None,
    server_id: str | None,
    registry_url: str | None = None,
) -> AuthConfig | None:
    """Resolve the auth config for ``server_id``.

    Args:
        settings: Server credential store
        server_id: Credential to use; None or empty skips authentication
        registry_url: Registry address override (defaults to Docker Hub)

    Returns:
        Populated AuthConfig, or None when no server id is configured

    Raises:
        IncompleteAuthorizationError: If the credential is missing or lacks
            username, password, configuration or email
    """
    if not server_id:
        logger.debug("auth_resolution_skipped")
        return None

    server = settings.get_server(server_id) if settings is not None else None
    if server is None:
        _incomplete(server_id, f"server credential {server_id!r}")

    username = server.username
    password = server.password
    email = _email_of(server)

    # Checked in order; the first gap aborts resolution
    if not username:
        _incomplete(server_id, "username")
    if not password:
        _incomplete(server_id, "password")
    if server.configuration is None:
        _incomplete(server_id, "configuration")
    if not email:
        _incomplete(server_id, EMAIL_PROPERTY)

    auth_config = AuthConfig(
        username=username,
        password=password,
        email=email,
        server_address=registry_url or DEFAULT_REGISTRY,
    )

    logger.info(
        "auth_config_resolved",
        server_id=server_id,
        username=auth_config.username,
        server_address=auth_config.server_address,
    )
    return auth_config
