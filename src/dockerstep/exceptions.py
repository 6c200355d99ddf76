"""Exception hierarchy for dockerstep."""

from __future__ import annotations

INCOMPLETE_AUTHORIZATION_MESSAGE = "Incomplete Docker registry authorization credentials."


class DockerStepError(Exception):
    """Base class for all dockerstep errors."""


class StepExecutionError(DockerStepError):
    """A Docker step failed; the host build should abort the step.

    ``execute()`` raises this with the underlying failure chained as
    ``__cause__``.
    """


class IncompleteAuthorizationError(StepExecutionError):
    """The selected server credential lacks a username, password or email."""

    def __init__(self, missing: str) -> None:
        self.missing = missing
        super().__init__(
            f"{INCOMPLETE_AUTHORIZATION_MESSAGE} "
            f"Missing {missing}. Please provide all of username, password, and email or none."
        )


class CertificateError(DockerStepError):
    """The Docker certificate directory could not be turned into a TLS config."""


class SettingsError(DockerStepError):
    """The settings store could not be read."""
