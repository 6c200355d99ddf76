"""Step pushing an image to its registry.

The push runs with whatever registry credentials the base step attached to
the client, so a ``server_id`` must be configured for private registries.
"""

from __future__ import annotations

import re
from typing import Any

from docker.errors import APIError
from docker.utils import parse_repository_tag
from pydantic import BaseModel, Field

from dockerstep.config import DockerConfig
from dockerstep.settings import Settings
from dockerstep.step import DockerStep

_DIGEST_PATTERN = re.compile(r"digest:\s*(sha256:[a-f0-9]{64})")


class PushResult(BaseModel):
    """Result of an image push.

    Attributes:
        image: Image reference that was pushed
        digest: Image digest reported by the registry
        push_log: Collected push log lines
    """

    image: str = Field(description="Image pushed")
    digest: str | None = Field(default=None, description="Image digest from registry")
    push_log: list[str] = Field(default_factory=list, description="Push log lines")


class PushImageStep(DockerStep):
    """Push ``image`` (``repository[:tag]``, tag defaults to latest)."""

    name = "push"

    def __init__(
        self, image: str, config: DockerConfig, settings: Settings | None = None
    ) -> None:
        super().__init__(config, settings)
        self.image = image
        self.result: PushResult | None = None

    def run(self, docker_client: Any) -> None:
        repository, tag = parse_repository_tag(self.image)
        tag = tag or "latest"

        self.logger.info("docker_push_started", repository=repository, tag=tag)

        push_response = docker_client.images.push(
            repository=repository,
            tag=tag,
            stream=True,
            decode=True,
        )

        result = PushResult(image=f"{repository}:{tag}")
        for log_entry in push_response:
            if not isinstance(log_entry, dict):
                continue

            if "error" in log_entry:
                result.push_log.append(f"ERROR: {log_entry['error']}")
                self.result = result
                raise APIError(log_entry["error"])

            status_msg = log_entry.get("status", "")
            if status_msg:
                progress_msg = log_entry.get("progress", "")
                result.push_log.append(f"{status_msg} {progress_msg}".rstrip())
                match = _DIGEST_PATTERN.search(status_msg)
                if match:
                    result.digest = match.group(1)

            aux = log_entry.get("aux")
            if isinstance(aux, dict):
                result.digest = aux.get("Digest") or aux.get("digest") or result.digest

        self.result = result
        self.logger.info(
            "docker_push_succeeded",
            image=result.image,
            digest=result.digest,
            log_lines=len(result.push_log),
        )
