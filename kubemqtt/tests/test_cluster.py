"""
Cluster Tests
=============

Tests de los adaptadores de Kubernetes (API mockeada).

Invariantes testeadas:
1. KubePodReader lista todos los namespaces, en el orden de la API
2. Config: kubeconfig si hay path, si no in-cluster; errores → KubeConfigError
3. Manifests: parseo multi-documento, namespace por defecto, kinds soportados
"""
from unittest.mock import Mock, patch

import pytest
from kubernetes import config as kube_config
from kubernetes.client import V1ObjectMeta, V1Pod, V1PodList

from kubemqtt.cluster import (
    KubeConfigError,
    KubePodReader,
    ManifestError,
    UnsupportedKindError,
    load_kube_apis,
    manifest_ref,
    parse_manifests,
)
from kubemqtt.ports import PodLister


@pytest.mark.unit
@pytest.mark.kube
class TestKubePodReader:

    def test_lists_all_namespaces_in_api_order(self):
        pods = [V1Pod(metadata=V1ObjectMeta(name=name)) for name in ("b", "a", "c")]
        core = Mock()
        core.list_pod_for_all_namespaces.return_value = V1PodList(items=pods)

        reader = KubePodReader(core)

        assert isinstance(reader, PodLister)
        assert [pod.metadata.name for pod in reader.list_pods()] == ["b", "a", "c"]
        core.list_pod_for_all_namespaces.assert_called_once_with()

    def test_api_errors_propagate(self):
        """
        Invariante: el reader no se traga errores (el reporter decide).
        """
        core = Mock()
        core.list_pod_for_all_namespaces.side_effect = RuntimeError("unauthorized")

        with pytest.raises(RuntimeError):
            KubePodReader(core).list_pods()


@pytest.mark.unit
@pytest.mark.kube
class TestLoadKubeApis:

    @patch("kubemqtt.cluster.client.config")
    def test_kubeconfig_when_path_set(self, mock_config):
        mock_config.ConfigException = kube_config.ConfigException

        load_kube_apis("/tmp/kubeconfig")

        mock_config.load_kube_config.assert_called_once_with(config_file="/tmp/kubeconfig")
        mock_config.load_incluster_config.assert_not_called()

    @patch("kubemqtt.cluster.client.config")
    def test_incluster_when_no_path(self, mock_config):
        mock_config.ConfigException = kube_config.ConfigException

        load_kube_apis(None)

        mock_config.load_incluster_config.assert_called_once_with()
        mock_config.load_kube_config.assert_not_called()

    @patch("kubemqtt.cluster.client.config")
    def test_config_failure_raises(self, mock_config):
        mock_config.ConfigException = kube_config.ConfigException
        mock_config.load_incluster_config.side_effect = kube_config.ConfigException("no service account")

        with pytest.raises(KubeConfigError) as exc_info:
            load_kube_apis(None)

        assert "in-cluster" in str(exc_info.value)


@pytest.mark.unit
@pytest.mark.kube
class TestManifests:

    def test_parse_multiple_documents(self):
        docs = parse_manifests("kind: ConfigMap\nmetadata: {name: a}\n---\nkind: Secret\nmetadata: {name: b}\n")

        assert [doc["kind"] for doc in docs] == ["ConfigMap", "Secret"]

    def test_parse_json(self):
        docs = parse_manifests('{"kind": "Service", "metadata": {"name": "svc"}}')

        assert docs == [{"kind": "Service", "metadata": {"name": "svc"}}]

    def test_non_mapping_rejected(self):
        with pytest.raises(ManifestError):
            parse_manifests("- just\n- a list\n")

    def test_invalid_yaml_rejected(self):
        with pytest.raises(ManifestError):
            parse_manifests("kind: [unclosed")

    def test_default_namespace(self):
        ref = manifest_ref({"kind": "Pod", "metadata": {"name": "p"}})

        assert ref.namespace == "default"
        assert str(ref) == "pod/p"

    def test_missing_name_rejected(self):
        with pytest.raises(ManifestError):
            manifest_ref({"kind": "Pod", "metadata": {}})

    def test_unsupported_kind(self):
        with pytest.raises(UnsupportedKindError) as exc_info:
            manifest_ref({"kind": "CronJob", "metadata": {"name": "c"}})

        assert exc_info.value.kind == "CronJob"
