"""Runtime-constraints provider.

Loads a static, file-defined policy excluding catalog entries by package or
by label, independent of the cluster version. The file path comes from the
``RUNTIME_CONSTRAINTS`` environment variable. The document is YAML (or JSON,
which YAML parses too)::

    properties:
      - type: olm.package
        value:
          packageName: boba-fett
      - type: olm.label
        value: '{"label": "deprecated-api"}'

``olm.package`` entries become package predicates and ``olm.label`` entries
label predicates; other property types are ignored. A value may be an inline
mapping or a JSON string.

The file is read once, at construction. A missing path leaves the provider
inert. A file that cannot be read or parsed also leaves it inert: an optional
policy must never stop the resolver from starting. Such failures are logged
as warnings and kept on ``load_error`` so callers can surface them.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from bundleresolver.config import RUNTIME_CONSTRAINTS_ENV
from bundleresolver.core.cache.models import LABEL_TYPE, PACKAGE_TYPE, Entry
from bundleresolver.core.cache.predicates import LabelPredicate, PackagePredicate, Predicate
from bundleresolver.core.providers.base import ConstraintProvider, ProviderKind
from bundleresolver.core.solver.constraints import Constraint, Prohibited

logger = logging.getLogger(__name__)


class RuntimeConstraintsLoadError(ValueError):
    """The runtime-constraints document is malformed."""


class RuntimeConstraintsProvider(ConstraintProvider):
    """Prohibits entries matching any file-defined exclusion predicate.

    Args:
        path: Policy file to load. None makes the provider inert.
    """

    kind = ProviderKind.RUNTIME_CONSTRAINTS

    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        self._path = None if path is None else Path(path)
        self._predicates: tuple[Predicate, ...] = ()
        self.load_error: Exception | None = None
        if self._path is not None:
            self._load(self._path)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RuntimeConstraintsProvider:
        """Build the provider from ``RUNTIME_CONSTRAINTS``.

        An unset variable yields an inert provider.
        """
        env = os.environ if environ is None else environ
        return cls(env.get(RUNTIME_CONSTRAINTS_ENV))

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def predicates(self) -> tuple[Predicate, ...]:
        return self._predicates

    def constraints(self, entry: Entry) -> list[Constraint]:
        matched = [p for p in self._predicates if p.test(entry)]
        if not matched:
            return []
        reasons = "; ".join(str(p) for p in matched)
        return [Prohibited(entry, f"{entry.identifier} excluded by runtime constraints: {reasons}")]

    def _load(self, path: Path) -> None:
        try:
            self._predicates = tuple(_parse_document(path.read_text()))
        except (OSError, UnicodeDecodeError, yaml.YAMLError, RuntimeConstraintsLoadError) as exc:
            self.load_error = exc
            self._predicates = ()
            logger.warning(
                "Ignoring runtime constraints from %s: %s", path, exc
            )
            return
        logger.info(
            "Loaded %d runtime constraint(s) from %s", len(self._predicates), path
        )


def _parse_document(text: str) -> list[Predicate]:
    document = yaml.safe_load(text)
    if document is None:
        return []
    if not isinstance(document, dict):
        raise RuntimeConstraintsLoadError("document must be a mapping with a 'properties' list")
    properties = document.get("properties") or []
    if not isinstance(properties, list):
        raise RuntimeConstraintsLoadError("'properties' must be a list")

    predicates: list[Predicate] = []
    for index, prop in enumerate(properties):
        if not isinstance(prop, dict) or "type" not in prop:
            raise RuntimeConstraintsLoadError(f"property #{index} has no type")
        prop_type = prop["type"]
        if prop_type == PACKAGE_TYPE:
            name = _field(prop, "packageName", index)
            predicates.append(PackagePredicate(name))
        elif prop_type == LABEL_TYPE:
            label = _field(prop, "label", index)
            predicates.append(LabelPredicate(label))
        else:
            logger.debug("Ignoring runtime constraint property of type %r", prop_type)
    return predicates


def _field(prop: dict[str, Any], key: str, index: int) -> str:
    value = prop.get("value")
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError as exc:
            raise RuntimeConstraintsLoadError(
                f"property #{index} ({prop['type']}) has a malformed value: {exc}"
            ) from exc
    if not isinstance(value, dict):
        raise RuntimeConstraintsLoadError(
            f"property #{index} ({prop['type']}) value must be a mapping"
        )
    field = value.get(key)
    if not isinstance(field, str) or not field:
        raise RuntimeConstraintsLoadError(
            f"property #{index} ({prop['type']}) is missing {key!r}"
        )
    return field
