"""bundleresolver: Constraint-based dependency resolution for operator bundle catalogs."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"
