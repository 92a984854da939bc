"""Environment-driven resolver settings.

The resolver reads a handful of environment variables at process start:

- ``SYSTEM_CONSTRAINTS``: ``"true"`` enables the platform-version constraint
  provider. Any other value, or unset, leaves it off.
- ``RUNTIME_CONSTRAINTS``: path to the runtime-constraints policy file. Unset
  means no runtime constraints.
- ``CLUSTER_VERSION_TTL``: seconds a fetched cluster version stays cached.
  Unset keeps it for the life of the process.
- ``SOLVER_NAME``: python-sat solver backend, ``g3`` (Glucose 3) by default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from bundleresolver.exceptions import ConfigurationError

SYSTEM_CONSTRAINTS_ENV = "SYSTEM_CONSTRAINTS"
RUNTIME_CONSTRAINTS_ENV = "RUNTIME_CONSTRAINTS"
CLUSTER_VERSION_TTL_ENV = "CLUSTER_VERSION_TTL"
SOLVER_NAME_ENV = "SOLVER_NAME"

DEFAULT_SOLVER_NAME = "g3"


@dataclass(frozen=True)
class ResolverSettings:
    """Process-level resolver configuration.

    Attributes:
        system_constraints_enabled: Whether the platform-version provider is
            attached at startup.
        runtime_constraints_path: Policy file for the runtime-constraints
            provider, or None when the provider should stay inert.
        cluster_version_ttl: Maximum age in seconds of a cached cluster
            version. None means it never expires.
        solver_name: python-sat solver backend name.
    """

    system_constraints_enabled: bool = False
    runtime_constraints_path: str | None = None
    cluster_version_ttl: float | None = None
    solver_name: str = DEFAULT_SOLVER_NAME

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ResolverSettings:
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Raises:
            ConfigurationError: If ``CLUSTER_VERSION_TTL`` is not a positive
                number.
        """
        env = os.environ if environ is None else environ

        ttl: float | None = None
        raw_ttl = env.get(CLUSTER_VERSION_TTL_ENV, "").strip()
        if raw_ttl:
            try:
                ttl = float(raw_ttl)
            except ValueError:
                raise ConfigurationError(
                    f"{CLUSTER_VERSION_TTL_ENV} must be a number of seconds, got {raw_ttl!r}"
                ) from None
            if ttl <= 0:
                raise ConfigurationError(
                    f"{CLUSTER_VERSION_TTL_ENV} must be positive, got {raw_ttl!r}"
                )

        return cls(
            system_constraints_enabled=env.get(SYSTEM_CONSTRAINTS_ENV) == "true",
            runtime_constraints_path=env.get(RUNTIME_CONSTRAINTS_ENV),
            cluster_version_ttl=ttl,
            solver_name=env.get(SOLVER_NAME_ENV) or DEFAULT_SOLVER_NAME,
        )
