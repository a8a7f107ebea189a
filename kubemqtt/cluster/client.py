"""
Kubernetes Client
=================

Construcción de los clientes de la API de Kubernetes y el adaptador
PodLister usado por los reporters.

- kubeconfig si KUBE_CONF_PATH está configurado, si no in-cluster config
- Un único lugar donde se carga la configuración (el resto recibe clientes)
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from kubernetes import client, config

logger = logging.getLogger(__name__)


class KubeConfigError(Exception):
    """No se pudo cargar la configuración de Kubernetes."""
    pass


@dataclass(frozen=True)
class KubeAPIs:
    core: client.CoreV1Api
    apps: client.AppsV1Api


def load_kube_apis(config_path: Optional[str] = None) -> KubeAPIs:
    """
    Crea los clientes de la API.

    Args:
        config_path: kubeconfig (None = in-cluster service account)

    Raises:
        KubeConfigError: Si la configuración no se puede cargar
    """
    try:
        if config_path:
            config.load_kube_config(config_file=config_path)
            source = "kubeconfig"
        else:
            config.load_incluster_config()
            source = "in-cluster"
    except (config.ConfigException, OSError) as e:
        raise KubeConfigError(
            f"failed to load kubernetes config ({config_path or 'in-cluster'}): {e}"
        ) from e

    logger.info(
        "☸️ Kubernetes config loaded",
        extra={
            "component": "kube",
            "event": "config_loaded",
            "source": source,
            "config_path": config_path,
        }
    )
    return KubeAPIs(core=client.CoreV1Api(), apps=client.AppsV1Api())


class KubePodReader:
    """
    PodLister sobre CoreV1Api.

    Lista Pods de todos los namespaces, sin label selector.
    """

    def __init__(self, core_api: client.CoreV1Api):
        self.core_api = core_api

    def list_pods(self) -> List[Any]:
        """
        Raises:
            kubernetes.client.ApiException: Si la API rechaza el listado
        """
        pod_list = self.core_api.list_pod_for_all_namespaces()
        return list(pod_list.items or [])
