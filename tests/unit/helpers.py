"""Test doubles and credential constants shared by the unit tests.

RecordingBuilder stands in for the Docker client builder, so steps can be
exercised without a Docker daemon. make_server builds server credentials the
way a settings file would.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

from dockerstep.auth import AuthConfig
from dockerstep.settings import ConfigNode, Server

DOCKER_HOST = "testhost"
DOCKER_CERT_PATH = Path(__file__).parent.parent / "resources" / "certs"
SERVER_ID = "testId"
REGISTRY_URL = "https://my.docker.reg"
USERNAME = "username"
PASSWORD = "password"
EMAIL = "user@host.domain"


class RecordingBuilder:
    """Client builder test double recording every configuration call."""

    def __init__(self, client: Any | None = None) -> None:
        self.client = client if client is not None else MagicMock(name="docker_client")
        self.calls: list[tuple[str, Any]] = []
        self.uri_value: str | None = None
        self.certificates: Any = None
        self.auth: AuthConfig | None = None
        self.built = False

    def uri(self, uri: str) -> RecordingBuilder:
        self.calls.append(("uri", uri))
        self.uri_value = uri
        return self

    def docker_certificates(self, certificates: Any) -> RecordingBuilder:
        self.calls.append(("docker_certificates", certificates))
        self.certificates = certificates
        return self

    def auth_config(self, auth_config: AuthConfig) -> RecordingBuilder:
        self.calls.append(("auth_config", auth_config))
        self.auth = auth_config
        return self

    def build(self) -> Any:
        self.calls.append(("build", None))
        self.built = True
        return self.client


def make_server(
    username: str | None = USERNAME,
    password: str | None = PASSWORD,
    email: str | None = EMAIL,
    with_configuration: bool = True,
) -> Server:
    """Create a server credential; pass None to leave a field out."""
    configuration = None
    if with_configuration:
        configuration = ConfigNode(name="configuration")
        if email is not None:
            configuration.add_child(ConfigNode(name="email", value=email))
    return Server(id=SERVER_ID, username=username, password=password, configuration=configuration)
