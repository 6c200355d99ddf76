"""Step reporting the Docker daemon version."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from dockerstep.config import DockerConfig
from dockerstep.settings import Settings
from dockerstep.step import DockerStep


class DaemonInfo(BaseModel):
    """Version details reported by the Docker daemon.

    Attributes:
        version: Docker engine version string
        api_version: Docker API version string
        os: Daemon operating system
        arch: Daemon architecture
    """

    version: str | None = Field(default=None, description="Docker version")
    api_version: str | None = Field(default=None, description="API version")
    os: str | None = Field(default=None, description="Daemon OS")
    arch: str | None = Field(default=None, description="Daemon architecture")


class InfoStep(DockerStep):
    """Query the daemon version; the result is kept in ``daemon_info``."""

    name = "info"

    def __init__(self, config: DockerConfig, settings: Settings | None = None) -> None:
        super().__init__(config, settings)
        self.daemon_info: DaemonInfo | None = None

    def run(self, docker_client: Any) -> None:
        version_info: dict[str, Any] = docker_client.version()
        self.daemon_info = DaemonInfo(
            version=version_info.get("Version"),
            api_version=version_info.get("ApiVersion"),
            os=version_info.get("Os"),
            arch=version_info.get("Arch"),
        )
        self.logger.info(
            "docker_daemon_info",
            version=self.daemon_info.version,
            api_version=self.daemon_info.api_version,
        )
