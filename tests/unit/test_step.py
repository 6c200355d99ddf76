"""Unit tests for the DockerStep base class.

Tests cover:
- Host URI and TLS certificates handed to the client builder
- Registry authentication resolved from server credentials
- Failure wrapping for incomplete credentials
- Client lifecycle (close after run, also on failure)
- Skipping Docker work
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from docker.tls import TLSConfig

from dockerstep.auth import DEFAULT_REGISTRY
from dockerstep.client import DockerClientBuilder
from dockerstep.config import DockerConfig
from dockerstep.exceptions import (
    INCOMPLETE_AUTHORIZATION_MESSAGE,
    CertificateError,
    IncompleteAuthorizationError,
    StepExecutionError,
)
from dockerstep.settings import Server, Settings
from dockerstep.step import DockerStep
from tests.unit.helpers import (
    DOCKER_CERT_PATH,
    DOCKER_HOST,
    EMAIL,
    PASSWORD,
    REGISTRY_URL,
    SERVER_ID,
    USERNAME,
    RecordingBuilder,
    make_server,
)


class StubStep(DockerStep):
    """Step recording the client it was run with."""

    name = "stub"

    def __init__(
        self,
        config: DockerConfig,
        settings: Settings | None = None,
        builder: RecordingBuilder | None = None,
        error: Exception | None = None,
    ) -> None:
        super().__init__(config, settings)
        self.builder = builder or RecordingBuilder()
        self.error = error
        self.builder_requests = 0
        self.received_client: Any = None

    def get_builder(self) -> RecordingBuilder:
        self.builder_requests += 1
        return self.builder

    def run(self, docker_client: Any) -> None:
        self.received_client = docker_client
        if self.error is not None:
            raise self.error


def _execute_expecting_failure(step: StubStep) -> BaseException | None:
    with pytest.raises(StepExecutionError) as exc_info:
        step.execute()
    return exc_info.value.__cause__


def _assert_incomplete(cause: BaseException | None) -> None:
    assert cause is not None
    assert type(cause) is IncompleteAuthorizationError
    assert str(cause).startswith(INCOMPLETE_AUTHORIZATION_MESSAGE)


class TestConnectionSettings:
    """Tests for daemon URI and certificate configuration."""

    def test_docker_host_set(self, builder: RecordingBuilder) -> None:
        """Test that host and certificates reach the builder."""
        config = DockerConfig(host=DOCKER_HOST, cert_path=DOCKER_CERT_PATH)
        step = StubStep(config, builder=builder)

        step.execute()

        assert builder.uri_value == DOCKER_HOST
        assert isinstance(builder.certificates, TLSConfig)
        assert builder.certificates.ca_cert == str(DOCKER_CERT_PATH / "ca.pem")

    def test_nothing_configured_uses_builder_defaults(self, builder: RecordingBuilder) -> None:
        """Test that an unconfigured step only builds the client."""
        step = StubStep(DockerConfig(), builder=builder)

        step.execute()

        assert builder.calls == [("build", None)]

    def test_missing_cert_path_fails_before_build(
        self, builder: RecordingBuilder, tmp_path: Path
    ) -> None:
        """Test that an unusable certificate directory aborts the step."""
        config = DockerConfig(cert_path=tmp_path / "missing")
        step = StubStep(config, builder=builder)

        cause = _execute_expecting_failure(step)

        assert isinstance(cause, CertificateError)
        assert builder.built is False

    def test_configuration_precedes_build(self, builder: RecordingBuilder) -> None:
        """Test that the client is built only after all configuration."""
        config = DockerConfig(host=DOCKER_HOST, cert_path=DOCKER_CERT_PATH, server_id=SERVER_ID)
        step = StubStep(config, Settings(servers=[make_server()]), builder=builder)

        step.execute()

        assert [name for name, _ in builder.calls] == [
            "uri",
            "docker_certificates",
            "auth_config",
            "build",
        ]


class TestIncompleteCredentials:
    """Tests for rejected server credentials."""

    @pytest.mark.parametrize(
        "server",
        [
            make_server(username=None),
            make_server(password=None),
            make_server(with_configuration=False),
            make_server(email=None),
        ],
        ids=["no_username", "no_password", "no_configuration", "no_email"],
    )
    def test_incomplete_server_fails(self, server: Server, builder: RecordingBuilder) -> None:
        """Test that each missing credential item aborts the step."""
        config = DockerConfig(server_id=SERVER_ID)
        step = StubStep(config, Settings(servers=[server]), builder=builder)

        cause = _execute_expecting_failure(step)

        _assert_incomplete(cause)
        assert builder.auth is None
        assert builder.built is False
        assert step.received_client is None

    def test_unknown_server_id_fails(self, builder: RecordingBuilder) -> None:
        """Test that a server id missing from settings counts as incomplete."""
        config = DockerConfig(server_id="unknown")
        step = StubStep(config, Settings(servers=[make_server()]), builder=builder)

        _assert_incomplete(_execute_expecting_failure(step))

    def test_no_settings_store_fails(self, builder: RecordingBuilder) -> None:
        """Test that a server id without any settings store fails."""
        step = StubStep(DockerConfig(server_id=SERVER_ID), None, builder=builder)

        _assert_incomplete(_execute_expecting_failure(step))

    def test_outer_error_message(self, builder: RecordingBuilder) -> None:
        """Test the message of the wrapping execution error."""
        server = make_server(username=None)
        step = StubStep(DockerConfig(server_id=SERVER_ID), Settings(servers=[server]), builder=builder)

        with pytest.raises(StepExecutionError, match="Exception caught"):
            step.execute()


class TestAuthorizationConfiguration:
    """Tests for auth configs attached to the builder."""

    def test_authorization_configuration(
        self, settings: Settings, builder: RecordingBuilder
    ) -> None:
        """Test that a complete credential produces a default-registry auth config."""
        step = StubStep(DockerConfig(server_id=SERVER_ID), settings, builder=builder)

        step.execute()

        auth_config = builder.auth
        assert auth_config is not None
        assert auth_config.email == EMAIL
        assert auth_config.password == PASSWORD
        assert auth_config.username == USERNAME
        assert auth_config.server_address == DEFAULT_REGISTRY

    def test_authorization_configuration_with_server_address(
        self, settings: Settings, builder: RecordingBuilder
    ) -> None:
        """Test that the registry URL override becomes the server address."""
        config = DockerConfig(server_id=SERVER_ID, registry_url=REGISTRY_URL)
        step = StubStep(config, settings, builder=builder)

        step.execute()

        assert builder.auth is not None
        assert builder.auth.server_address == REGISTRY_URL

    def test_no_server_id_skips_authentication(
        self, settings: Settings, builder: RecordingBuilder
    ) -> None:
        """Test that no auth config is attached without a server id."""
        step = StubStep(DockerConfig(), settings, builder=builder)

        step.execute()

        assert builder.auth is None
        assert builder.built is True


class TestClientLifecycle:
    """Tests for client handling around run()."""

    def test_run_receives_built_client(self, builder: RecordingBuilder) -> None:
        """Test that run() gets the client produced by the builder."""
        step = StubStep(DockerConfig(), builder=builder)

        step.execute()

        assert step.received_client is builder.client

    def test_client_closed_after_run(self, builder: RecordingBuilder) -> None:
        """Test that the client is closed once the step is done."""
        step = StubStep(DockerConfig(), builder=builder)

        step.execute()

        builder.client.close.assert_called_once()

    def test_client_closed_when_run_fails(self, builder: RecordingBuilder) -> None:
        """Test that a failing run still closes the client and is wrapped."""
        error = RuntimeError("boom")
        step = StubStep(DockerConfig(), builder=builder, error=error)

        cause = _execute_expecting_failure(step)

        assert cause is error
        builder.client.close.assert_called_once()

    def test_build_failure_is_wrapped(self) -> None:
        """Test that builder errors surface as the cause of the step error."""
        builder = RecordingBuilder()
        failure = ConnectionError("daemon unreachable")
        builder.build = MagicMock(side_effect=failure)  # type: ignore[method-assign]
        step = StubStep(DockerConfig(), builder=builder)

        assert _execute_expecting_failure(step) is failure


class TestSkip:
    """Tests for skipping Docker work."""

    def test_skip_never_requests_builder(self, settings: Settings) -> None:
        """Test that a skipped step does no Docker work at all."""
        config = DockerConfig(skip=True, server_id=SERVER_ID)
        step = StubStep(config, settings)

        step.execute()

        assert step.builder_requests == 0
        assert step.received_client is None

    def test_skip_ignores_incomplete_credentials(self) -> None:
        """Test that a skipped step does not validate credentials."""
        config = DockerConfig(skip=True, server_id=SERVER_ID)
        step = StubStep(config, Settings())

        step.execute()


class TestDefaultBuilder:
    """Tests for the builder a step uses unless overridden."""

    def test_default_builder_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that the default builder is seeded from DOCKER_HOST."""
        monkeypatch.setenv("DOCKER_HOST", "tcp://env-host:2375")
        monkeypatch.delenv("DOCKER_TLS_VERIFY", raising=False)
        monkeypatch.delenv("DOCKER_CERT_PATH", raising=False)

        class PlainStep(DockerStep):
            def run(self, docker_client: Any) -> None:
                pass

        builder = PlainStep(DockerConfig(read_timeout_seconds=30)).get_builder()

        assert isinstance(builder, DockerClientBuilder)
        assert builder.base_url == "tcp://env-host:2375"
        assert builder.timeout == 30

    def test_execute_uses_default_builder(self, settings: Settings) -> None:
        """Test that execute() configures the builder returned by from_env."""
        recording = RecordingBuilder()

        class PlainStep(DockerStep):
            def run(self, docker_client: Any) -> None:
                pass

        with patch(
            "dockerstep.step.DockerClientBuilder.from_env", return_value=recording
        ) as mock_from_env:
            PlainStep(DockerConfig(host=DOCKER_HOST, server_id=SERVER_ID), settings).execute()

        mock_from_env.assert_called_once_with(timeout=None)
        assert recording.uri_value == DOCKER_HOST
        assert recording.auth is not None
        assert recording.auth.username == USERNAME
