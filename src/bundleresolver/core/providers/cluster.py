"""Cluster properties: the running platform version.

The platform version is read from the cluster's singleton ClusterVersion
resource (named ``version``) and parsed from its desired release. Fetching
is lazy so that building a resolver does not require a reachable cluster.

``ClusterProperties`` caches the first successful answer. By default the
cached version never expires, treating the platform version as fixed for the
life of the process; a ``ttl`` bounds its age instead, and ``refresh()``
drops it explicitly. Failures are never cached: the next call fetches again.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol

import httpx

from bundleresolver.core.version import Version
from bundleresolver.exceptions import (
    ClusterVersionError,
    ConfigurationError,
    InvalidVersionError,
)

logger = logging.getLogger(__name__)

# Name of the ClusterVersion singleton.
CLUSTER_VERSION_NAME = "version"

CLUSTER_VERSION_PATH = "/apis/config.openshift.io/v1/clusterversions/{name}"

# Timeout for cluster API requests (seconds).
DEFAULT_TIMEOUT: float = 30.0

SERVICE_ACCOUNT_DIR = Path("/var/run/secrets/kubernetes.io/serviceaccount")


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------


class ClusterVersionClient(Protocol):
    """Reads a ClusterVersion resource by name."""

    def get(self, name: str) -> Mapping[str, Any] | None:
        """Return the resource as a mapping.

        Raises on transport or API errors.
        """
        ...


class HttpClusterVersionClient:
    """ClusterVersion client over the cluster's REST API using ``httpx``.

    Args:
        server: API server base URL, e.g. ``https://10.0.0.1:443``.
        token: Bearer token for authentication.
        verify: TLS verification: True, False, or a CA bundle path.
        timeout: Request timeout in seconds.
        transport: Optional ``httpx`` transport, used to stub the API.
    """

    def __init__(
        self,
        server: str,
        *,
        token: str | None = None,
        verify: bool | str = True,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=server,
            headers=headers,
            verify=verify,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def in_cluster(
        cls,
        environ: Mapping[str, str] | None = None,
        service_account_dir: Path = SERVICE_ACCOUNT_DIR,
    ) -> HttpClusterVersionClient:
        """Build a client from the pod's service account.

        Raises:
            ConfigurationError: If not running inside a cluster.
        """
        env = os.environ if environ is None else environ
        host = env.get("KUBERNETES_SERVICE_HOST")
        port = env.get("KUBERNETES_SERVICE_PORT")
        if not host or not port:
            raise ConfigurationError(
                "unable to load in-cluster configuration, KUBERNETES_SERVICE_HOST "
                "and KUBERNETES_SERVICE_PORT must be defined"
            )
        if ":" in host:
            host = f"[{host}]"

        token_file = service_account_dir / "token"
        try:
            token = token_file.read_text().strip()
        except OSError as exc:
            raise ConfigurationError(f"cannot read service account token: {exc}") from exc

        ca_file = service_account_dir / "ca.crt"
        verify: bool | str = str(ca_file) if ca_file.exists() else True
        return cls(f"https://{host}:{port}", token=token, verify=verify)

    def get(self, name: str) -> Mapping[str, Any]:
        resp = self._client.get(CLUSTER_VERSION_PATH.format(name=name))
        resp.raise_for_status()
        return resp.json()

    def close(self) -> None:
        self._client.close()


# ---------------------------------------------------------------------------
# ClusterProperties
# ---------------------------------------------------------------------------


class ClusterProperties:
    """Lazily fetched, cached platform version.

    Args:
        client: ClusterVersion client. None is accepted so that the error
            surfaces on first use rather than at construction.
        ttl: Maximum age in seconds of the cached version. None keeps it
            for the life of the object.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        client: ClusterVersionClient | None,
        *,
        ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lock = threading.Lock()
        self._client = client
        self._ttl = ttl
        self._clock = clock
        self._version: Version | None = None
        self._fetched_at = 0.0

    def version(self) -> Version:
        """Return the cluster's desired release version.

        Concurrent first callers are serialized by the lock; each one that
        finds no cached version performs its own fetch.

        Raises:
            ClusterVersionError: If the version cannot be fetched or parsed.
        """
        with self._lock:
            if self._version is None or self._expired():
                self._version = None
                version = self._query_cluster_version()
                self._version = version
                self._fetched_at = self._clock()
                logger.debug("Fetched cluster version %s", version)
            return self._version

    def refresh(self) -> None:
        """Forget the cached version; the next call fetches again."""
        with self._lock:
            self._version = None

    def _expired(self) -> bool:
        return self._ttl is not None and self._clock() - self._fetched_at >= self._ttl

    def _query_cluster_version(self) -> Version:
        if self._client is None:
            raise ClusterVersionError("nil client")

        try:
            resource = self._client.get(CLUSTER_VERSION_NAME)
        except Exception as exc:
            raise ClusterVersionError(f"failed to get cluster version: {exc}") from exc

        if resource is None:
            # A client returning nothing without raising breaks its contract.
            raise ClusterVersionError("incorrect client behavior observed")
        if not isinstance(resource, Mapping):
            raise ClusterVersionError(
                f"unexpected cluster version resource of type {type(resource).__name__}"
            )

        desired = _desired_version(resource)
        if not desired:
            # The release version hasn't been set yet
            raise ClusterVersionError("desired release missing from resource")

        try:
            return Version.parse_tolerant(desired)
        except InvalidVersionError as exc:
            raise ClusterVersionError(f"resource has invalid desired release: {exc}") from exc


def _desired_version(resource: Mapping[str, Any]) -> str:
    status = resource.get("status")
    if not isinstance(status, Mapping):
        return ""
    desired = status.get("desired")
    if not isinstance(desired, Mapping):
        return ""
    version = desired.get("version")
    return version if isinstance(version, str) else ""
