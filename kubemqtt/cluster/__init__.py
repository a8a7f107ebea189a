"""
Cluster - Kubernetes API clients, pod reader and manifest operations
"""
from .client import KubeAPIs, KubeConfigError, KubePodReader, load_kube_apis
from .manifests import (
    ManifestApplier,
    ManifestError,
    ManifestRef,
    UnsupportedKindError,
    SUPPORTED_KINDS,
    manifest_ref,
    parse_manifests,
)

__all__ = [
    "KubeAPIs",
    "KubeConfigError",
    "KubePodReader",
    "load_kube_apis",
    "ManifestApplier",
    "ManifestError",
    "ManifestRef",
    "UnsupportedKindError",
    "SUPPORTED_KINDS",
    "manifest_ref",
    "parse_manifests",
]
