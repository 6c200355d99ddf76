"""Abstract base for build steps that need a configured Docker client.

A DockerStep resolves everything a Docker client needs (daemon URI, TLS
certificates, registry credentials) from its configuration and the server
credential store, builds the client, and hands it to ``run``. Subclasses only
implement ``run``.

Example usage:
    >>> from dockerstep.config import DockerConfig
    >>>
    >>> class PingStep(DockerStep):
    ...     name = "ping"
    ...
    ...     def run(self, docker_client):
    ...         docker_client.ping()
    >>>
    >>> PingStep(DockerConfig(host="unix:///var/run/docker.sock")).execute()
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Any

from dockerstep.auth import resolve_auth_config
from dockerstep.client import ClientBuilder, DockerClientBuilder, load_docker_certificates
from dockerstep.config import DockerConfig
from dockerstep.exceptions import StepExecutionError
from dockerstep.logging import bind_step_context, clear_step_context, get_logger
from dockerstep.settings import Settings


class DockerStep(ABC):
    """Base class for steps operating on a Docker daemon.

    Attributes:
        name: Step name used in logs
        config: Docker connection and authentication settings
        settings: Server credential store (None when no credentials exist)
        logger: Structured logger instance
    """

    name = "docker"

    def __init__(self, config: DockerConfig, settings: Settings | None = None) -> None:
        self.config = config
        self.settings = settings
        self.logger = get_logger(__name__)

    def get_builder(self) -> ClientBuilder:
        """Return the client builder to configure.

        The default builder starts from the DOCKER_* environment variables.
        """
        return DockerClientBuilder.from_env(timeout=self.config.read_timeout_seconds)

    @abstractmethod
    def run(self, docker_client: Any) -> None:
        """Perform the step's work with a ready Docker client."""

    def execute(self) -> None:
        """Configure a Docker client and run the step with it.

        Raises:
            StepExecutionError: Wrapping whatever failed while configuring the
                client or running the step (available as ``__cause__``)
        """
        if self.config.skip:
            self.logger.info("step_skipped", step=self.name)
            return

        bind_step_context(step=self.name, execution_id=uuid.uuid4().hex[:12])
        client = None
        try:
            builder = self.get_builder()

            if self.config.host:
                builder.uri(self.config.host)

            if self.config.cert_path:
                builder.docker_certificates(load_docker_certificates(self.config.cert_path))

            auth_config = resolve_auth_config(
                self.settings, self.config.server_id, self.config.registry_url
            )
            if auth_config is not None:
                builder.auth_config(auth_config)

            client = builder.build()
            self.logger.info("step_started", host=self.config.host)
            self.run(client)
            self.logger.info("step_completed")
        except Exception as e:
            self.logger.error(
                "step_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StepExecutionError("Exception caught") from e
        finally:
            if client is not None:
                client.close()
            clear_step_context()
