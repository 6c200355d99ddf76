"""Docker client construction for dockerstep.

Steps never instantiate ``docker.DockerClient`` directly. They configure a
ClientBuilder (daemon URI, TLS certificates, registry auth) and build the
client once everything has been resolved, so nothing talks to the daemon
before configuration has been validated.

Example usage:
    >>> from pathlib import Path
    >>> from dockerstep.client import DockerClientBuilder, load_docker_certificates
    >>>
    >>> builder = DockerClientBuilder.from_env()
    >>> builder.uri("tcp://docker.example.com:2376")
    >>> builder.docker_certificates(load_docker_certificates(Path("/etc/docker/certs")))
    >>> client = builder.build()
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

from docker.errors import APIError, DockerException, TLSParameterError
from docker.tls import TLSConfig
from docker.utils import kwargs_from_env

import docker
from dockerstep.auth import AuthConfig
from dockerstep.exceptions import CertificateError
from dockerstep.logging import get_logger

CA_CERT_NAME = "ca.pem"
CLIENT_CERT_NAME = "cert.pem"
CLIENT_KEY_NAME = "key.pem"


class ClientBuilder(Protocol):
    """Capabilities a Docker step needs from a client builder."""

    def uri(self, uri: str) -> ClientBuilder: ...

    def docker_certificates(self, certificates: TLSConfig) -> ClientBuilder: ...

    def auth_config(self, auth_config: AuthConfig) -> ClientBuilder: ...

    def build(self) -> Any: ...


def load_docker_certificates(cert_path: Path) -> TLSConfig:
    """Load the TLS configuration stored in a Docker certificate directory.

    The directory must contain ``ca.pem``, ``cert.pem`` and ``key.pem``, the
    layout docker-machine and ``DOCKER_CERT_PATH`` use.

    Args:
        cert_path: Directory holding the certificates

    Returns:
        TLSConfig verifying the daemon against ``ca.pem``

    Raises:
        CertificateError: If the directory or one of the files is missing
    """
    if not cert_path.is_dir():
        raise CertificateError(f"Docker certificate directory not found: {cert_path}")

    ca_cert = cert_path / CA_CERT_NAME
    client_cert = cert_path / CLIENT_CERT_NAME
    client_key = cert_path / CLIENT_KEY_NAME

    missing = [p.name for p in (ca_cert, client_cert, client_key) if not p.is_file()]
    if missing:
        raise CertificateError(
            f"Docker certificate directory {cert_path} is missing {', '.join(missing)}"
        )

    try:
        return TLSConfig(
            client_cert=(str(client_cert), str(client_key)),
            ca_cert=str(ca_cert),
            verify=True,
        )
    except TLSParameterError as e:
        raise CertificateError(f"Invalid Docker certificates in {cert_path}: {e}") from e


class DockerClientBuilder:
    """Builder for ``docker.DockerClient`` instances.

    Attributes:
        base_url: Daemon URI (None uses the SDK default socket)
        tls: TLS configuration, or None for plain connections
        timeout: Read timeout in seconds (None waits indefinitely)
    """

    def __init__(
        self,
        base_url: str | None = None,
        tls: TLSConfig | None = None,
        timeout: int | None = None,
    ) -> None:
        self.base_url = base_url
        self.tls = tls
        self.timeout = timeout
        self._auth_config: AuthConfig | None = None
        self.logger = get_logger(__name__)

    @classmethod
    def from_env(
        cls, environment: dict[str, str] | None = None, timeout: int | None = None
    ) -> DockerClientBuilder:
        """Seed a builder from DOCKER_HOST, DOCKER_CERT_PATH and DOCKER_TLS_VERIFY.

        Raises:
            DockerException: If the environment holds an unusable TLS setup
        """
        kwargs = kwargs_from_env(environment=environment)
        return cls(
            base_url=kwargs.get("base_url"),
            tls=kwargs.get("tls") or None,
            timeout=timeout,
        )

    def uri(self, uri: str) -> DockerClientBuilder:
        self.base_url = uri
        return self

    def docker_certificates(self, certificates: TLSConfig) -> DockerClientBuilder:
        self.tls = certificates
        return self

    def auth_config(self, auth_config: AuthConfig) -> DockerClientBuilder:
        self._auth_config = auth_config
        return self

    def build(self) -> docker.DockerClient:
        """Create the client and log it in to the configured registry.

        Returns:
            Connected Docker client

        Raises:
            DockerException: If the daemon is unreachable or rejects the login
            requests.exceptions.RequestException: If the connection drops during login
        """
        try:
            client = docker.DockerClient(
                base_url=self.base_url,
                tls=self.tls or False,
                timeout=self.timeout,
            )
        except DockerException as e:
            self.logger.error(
                "docker_client_connection_failed",
                base_url=self.base_url,
                tls=self.tls is not None,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        self.logger.info(
            "docker_client_connected",
            base_url=self.base_url,
            tls=self.tls is not None,
        )

        if self._auth_config is not None:
            auth = self._auth_config
            try:
                client.login(
                    username=auth.username,
                    password=auth.password,
                    email=auth.email,
                    registry=auth.server_address,
                )
            except Exception as e:
                # Any login failure closes the client before propagating
                self.logger.error(
                    "registry_authentication_failed",
                    registry=auth.server_address,
                    username=auth.username,
                    error=str(e),
                    error_type=type(e).__name__,
                    status_code=e.status_code if isinstance(e, APIError) else None,
                )
                client.close()
                raise

            self.logger.info(
                "registry_authentication_succeeded",
                registry=auth.server_address,
                username=auth.username,
            )

        return client
