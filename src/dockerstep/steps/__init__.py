"""Concrete Docker steps built on DockerStep."""

from __future__ import annotations

from dockerstep.steps.info import DaemonInfo, InfoStep
from dockerstep.steps.push import PushImageStep, PushResult

__all__ = [
    "DaemonInfo",
    "InfoStep",
    "PushImageStep",
    "PushResult",
]
