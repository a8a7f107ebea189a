"""
Manifest Operations
===================

Aplica/borra manifests (YAML o JSON) contra la API de Kubernetes.

- apply: create; si ya existe (409) hace patch
- delete: delete por kind/name/namespace; 404 cuenta como "not found"

Kinds soportados: Deployment, Service, ConfigMap, Secret, Pod.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List

import yaml
from kubernetes.client.exceptions import ApiException

from .client import KubeAPIs

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"

# kind -> (api group attr, sufijo de los métodos namespaced_*)
SUPPORTED_KINDS: Dict[str, tuple] = {
    "Deployment": ("apps", "deployment"),
    "Service": ("core", "service"),
    "ConfigMap": ("core", "config_map"),
    "Secret": ("core", "secret"),
    "Pod": ("core", "pod"),
}


class ManifestError(Exception):
    """Manifest inválido."""
    pass


class UnsupportedKindError(ManifestError):
    """Kind sin operaciones registradas."""

    def __init__(self, kind: str):
        supported = ', '.join(sorted(SUPPORTED_KINDS))
        super().__init__(f"kind '{kind}' not supported. Supported kinds: {supported}")
        self.kind = kind


@dataclass(frozen=True)
class ManifestRef:
    kind: str
    name: str
    namespace: str

    def __str__(self) -> str:
        return f"{self.kind.lower()}/{self.name}"


def parse_manifests(body: str) -> List[Dict[str, Any]]:
    """
    Parsea uno o más documentos YAML/JSON separados por '---'.

    Raises:
        ManifestError: YAML inválido, documento no-mapping, o ningún documento
    """
    try:
        documents = [doc for doc in yaml.safe_load_all(body) if doc is not None]
    except yaml.YAMLError as e:
        raise ManifestError(f"invalid manifest: {e}") from e

    if not documents:
        raise ManifestError("empty manifest")

    for doc in documents:
        if not isinstance(doc, dict):
            raise ManifestError(f"manifest must be a mapping, got {type(doc).__name__}")
    return documents


def manifest_ref(manifest: Dict[str, Any]) -> ManifestRef:
    """
    Raises:
        ManifestError: Falta kind o metadata.name
        UnsupportedKindError: Kind no soportado
    """
    kind = manifest.get("kind")
    if not kind:
        raise ManifestError("manifest has no 'kind'")
    if kind not in SUPPORTED_KINDS:
        raise UnsupportedKindError(kind)

    metadata = manifest.get("metadata") or {}
    name = metadata.get("name")
    if not name:
        raise ManifestError(f"{kind} manifest has no metadata.name")

    return ManifestRef(kind=kind, name=name, namespace=metadata.get("namespace") or DEFAULT_NAMESPACE)


class ManifestApplier:
    """Operaciones apply/delete sobre KubeAPIs."""

    def __init__(self, apis: KubeAPIs):
        self.apis = apis

    def _method(self, ref: ManifestRef, verb: str):
        api_attr, suffix = SUPPORTED_KINDS[ref.kind]
        return getattr(getattr(self.apis, api_attr), f"{verb}_namespaced_{suffix}")

    def apply(self, manifest: Dict[str, Any]) -> str:
        ref = manifest_ref(manifest)
        try:
            self._method(ref, "create")(namespace=ref.namespace, body=manifest)
            outcome = "created"
        except ApiException as e:
            if e.status != 409:
                raise
            self._method(ref, "patch")(name=ref.name, namespace=ref.namespace, body=manifest)
            outcome = "configured"

        logger.info(
            f"☸️ {ref} {outcome}",
            extra={
                "component": "manifests",
                "event": f"manifest_{outcome}",
                "kind": ref.kind,
                "name": ref.name,
                "namespace": ref.namespace,
            }
        )
        return f"{ref} {outcome}"

    def delete(self, manifest: Dict[str, Any]) -> str:
        ref = manifest_ref(manifest)
        try:
            self._method(ref, "delete")(name=ref.name, namespace=ref.namespace)
            outcome = "deleted"
        except ApiException as e:
            if e.status != 404:
                raise
            outcome = "not found"

        logger.info(
            f"☸️ {ref} {outcome}",
            extra={
                "component": "manifests",
                "event": "manifest_deleted" if outcome == "deleted" else "manifest_not_found",
                "kind": ref.kind,
                "name": ref.name,
                "namespace": ref.namespace,
            }
        )
        return f"{ref} {outcome}"
