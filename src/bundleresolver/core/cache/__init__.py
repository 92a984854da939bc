"""Catalog cache: entries, predicates, and the in-memory index.

All public names are re-exported here so callers can write
``from bundleresolver.core.cache import Cache, Entry, PackagePredicate``.
"""

from bundleresolver.core.cache.cache import Cache, CacheHolder
from bundleresolver.core.cache.models import (
    DEPRECATED_TYPE,
    GVK_REQUIRED_TYPE,
    GVK_TYPE,
    LABEL_REQUIRED_TYPE,
    LABEL_TYPE,
    MAX_OPENSHIFT_VERSION_TYPE,
    PACKAGE_REQUIRED_TYPE,
    PACKAGE_TYPE,
    Entry,
    GroupVersionKind,
    Property,
    SourceInfo,
)
from bundleresolver.core.cache.predicates import (
    AndPredicate,
    BundleNamePredicate,
    CatalogPredicate,
    ChannelPredicate,
    FuncPredicate,
    LabelPredicate,
    NonePredicate,
    NotPredicate,
    OrPredicate,
    PackagePredicate,
    Predicate,
    ProvidingAPIPredicate,
    VersionCeilingPredicate,
    VersionInRangePredicate,
    dependency_predicate,
)

__all__ = [
    "Cache",
    "CacheHolder",
    "Entry",
    "GroupVersionKind",
    "Property",
    "SourceInfo",
    "DEPRECATED_TYPE",
    "GVK_REQUIRED_TYPE",
    "GVK_TYPE",
    "LABEL_REQUIRED_TYPE",
    "LABEL_TYPE",
    "MAX_OPENSHIFT_VERSION_TYPE",
    "PACKAGE_REQUIRED_TYPE",
    "PACKAGE_TYPE",
    "Predicate",
    "AndPredicate",
    "BundleNamePredicate",
    "CatalogPredicate",
    "ChannelPredicate",
    "FuncPredicate",
    "LabelPredicate",
    "NonePredicate",
    "NotPredicate",
    "OrPredicate",
    "PackagePredicate",
    "ProvidingAPIPredicate",
    "VersionCeilingPredicate",
    "VersionInRangePredicate",
    "dependency_predicate",
]
