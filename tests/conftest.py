"""Shared fixtures for bundleresolver tests."""

import pytest

from bundleresolver.config import (
    CLUSTER_VERSION_TTL_ENV,
    RUNTIME_CONSTRAINTS_ENV,
    SOLVER_NAME_ENV,
    SYSTEM_CONSTRAINTS_ENV,
)


@pytest.fixture(autouse=True)
def resolver_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Start every test without resolver settings in the environment."""
    for name in (
        SYSTEM_CONSTRAINTS_ENV,
        RUNTIME_CONSTRAINTS_ENV,
        CLUSTER_VERSION_TTL_ENV,
        SOLVER_NAME_ENV,
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
