"""
MQTT Command Tests
==================

Tests del lado de comandos (Control Plane).

Invariantes testeadas:
1. Registry básico: register, execute, is_available
2. CommandNotAvailableError cuando comando no existe
3. Parseo de '<deviceID>@<command>|<body>'
4. apply: create, y patch si ya existe (409)
5. delete: 404 = "not found"
6. Toda respuesta lleva el device id y el comando
"""
import json
from types import SimpleNamespace
from unittest.mock import MagicMock, Mock

import pytest
from kubernetes.client.exceptions import ApiException

from kubemqtt.cluster import ManifestApplier
from kubemqtt.control import (
    CommandNotAvailableError,
    CommandParseError,
    CommandRegistry,
    MessageHandler,
    parse_command,
)

CONFIG_MAP = {"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "demo"}, "data": {"k": "v"}}

DEPLOYMENT_YAML = """
apiVersion: apps/v1
kind: Deployment
metadata:
  name: web
  namespace: edge
spec:
  replicas: 1
"""


@pytest.mark.unit
@pytest.mark.mqtt
class TestCommandRegistry:
    """Tests de CommandRegistry (infraestructura)"""

    def test_register_and_execute_passes_args(self):
        """
        Invariante: comando registrado se ejecuta con los args de execute().
        """
        registry = CommandRegistry()
        received = []

        registry.register('apply', lambda body: received.append(body), "Apply")
        registry.execute('apply', "manifest")

        assert received == ["manifest"]

    def test_execute_unregistered_raises_error(self):
        registry = CommandRegistry()

        with pytest.raises(CommandNotAvailableError) as exc_info:
            registry.execute('nonexistent_command')

        assert 'nonexistent_command' in str(exc_info.value)
        assert 'Available commands' in str(exc_info.value)

    def test_is_available_and_help(self):
        registry = CommandRegistry()
        assert not registry.is_available('apply')

        registry.register('apply', lambda body: None, "Create or update")
        registry.register('delete', lambda body: None, "Delete")

        assert registry.is_available('apply')
        assert registry.available_commands == {'apply', 'delete'}
        assert registry.get_help() == {'apply': "Create or update", 'delete': "Delete"}

    def test_overwrite_command_logs_warning(self, caplog):
        registry = CommandRegistry()
        registry.register('cmd', lambda: None, "First")

        with caplog.at_level('WARNING'):
            registry.register('cmd', lambda: None, "Second")

        assert any("sobrescribiendo" in record.message.lower() for record in caplog.records)

    def test_execute_returns_handler_result(self):
        registry = CommandRegistry()
        registry.register('cmd', lambda: "result_value", "Test")

        assert registry.execute('cmd') == "result_value"


@pytest.mark.unit
@pytest.mark.mqtt
class TestParseCommand:
    """Tests del parseo del payload"""

    def test_parse_valid_payload(self):
        command = parse_command("node01@Apply|kind: ConfigMap")

        assert command.device_id == "node01"
        assert command.name == "apply"
        assert command.body == "kind: ConfigMap"

    def test_body_may_contain_pipes_and_at(self):
        command = parse_command("node01@apply|a|b@c")

        assert command.body == "a|b@c"

    def test_missing_pipe_raises(self):
        with pytest.raises(CommandParseError):
            parse_command("node01@apply")

    def test_missing_at_raises(self):
        with pytest.raises(CommandParseError):
            parse_command("node01apply|body")

    def test_empty_command_raises(self):
        with pytest.raises(CommandParseError):
            parse_command("node01@|body")

    def test_reply_format(self):
        assert parse_command("node01@delete|x").reply("done") == "node01@delete|done"


@pytest.mark.integration
@pytest.mark.mqtt
@pytest.mark.kube
class TestMessageHandler:
    """Tests del handler con la API de Kubernetes mockeada"""

    def make_handler(self):
        apis = Mock()
        handler = MessageHandler(ManifestApplier(apis), cmd_topic="/dType/dID/cmd")
        return handler, apis

    def test_cmd_topics(self):
        handler, _ = self.make_handler()

        assert handler.get_cmd_topic() == "/dType/dID/cmd"
        assert handler.cmdexe_topic == "/dType/dID/cmdexe"

    def test_apply_creates_resource(self):
        handler, apis = self.make_handler()
        payload = f"node01@apply|{json.dumps(CONFIG_MAP)}".encode()

        reply = handler.handle("/dType/dID/cmd", payload)

        assert reply == "node01@apply|configmap/demo created"
        apis.core.create_namespaced_config_map.assert_called_once_with(namespace="default", body=CONFIG_MAP)

    def test_apply_existing_resource_patches(self):
        """
        Invariante: apply sobre un recurso existente (409) hace patch.
        """
        handler, apis = self.make_handler()
        apis.apps.create_namespaced_deployment.side_effect = ApiException(status=409, reason="Conflict")

        reply = handler.handle("/t", f"node01@apply|{DEPLOYMENT_YAML}".encode())

        assert reply == "node01@apply|deployment/web configured"
        apis.apps.patch_namespaced_deployment.assert_called_once()
        assert apis.apps.patch_namespaced_deployment.call_args.kwargs["namespace"] == "edge"

    def test_delete_missing_resource_is_not_found(self):
        handler, apis = self.make_handler()
        apis.apps.delete_namespaced_deployment.side_effect = ApiException(status=404, reason="Not Found")

        reply = handler.handle("/t", f"node01@delete|{DEPLOYMENT_YAML}".encode())

        assert reply == "node01@delete|deployment/web not found"

    def test_delete_multiple_documents(self):
        handler, apis = self.make_handler()
        body = DEPLOYMENT_YAML + "---\n" + json.dumps(CONFIG_MAP)

        reply = handler.handle("/t", f"node01@delete|{body}".encode())

        assert reply == "node01@delete|deployment/web deleted,configmap/demo deleted"
        apis.apps.delete_namespaced_deployment.assert_called_once_with(name="web", namespace="edge")
        apis.core.delete_namespaced_config_map.assert_called_once_with(name="demo", namespace="default")

    def test_api_error_reported(self):
        handler, apis = self.make_handler()
        apis.core.create_namespaced_config_map.side_effect = ApiException(status=403, reason="Forbidden")

        reply = handler.handle("/t", f"node01@apply|{json.dumps(CONFIG_MAP)}".encode())

        assert reply == "node01@apply|error: 403 Forbidden"

    def test_unsupported_kind_reported(self):
        handler, _ = self.make_handler()
        body = json.dumps({"kind": "Job", "metadata": {"name": "j"}})

        reply = handler.handle("/t", f"node01@apply|{body}".encode())

        assert reply.startswith("node01@apply|error: kind 'Job' not supported")

    def test_unknown_command_reported(self):
        handler, _ = self.make_handler()

        reply = handler.handle("/t", b"node01@restart|{}")

        assert reply == "node01@restart|error: unknown command 'restart'"

    def test_invalid_manifest_reported(self):
        handler, _ = self.make_handler()

        reply = handler.handle("/t", b"node01@apply|")

        assert reply == "node01@apply|error: empty manifest"

    def test_malformed_payload_has_no_reply(self):
        handler, _ = self.make_handler()

        assert handler.handle("/t", b"garbage") is None
        assert handler.handle("/t", b"\xff\xfe@apply|x") is None

    def test_callback_publishes_reply_to_cmdexe(self):
        handler, _ = self.make_handler()
        client = MagicMock()
        client.publish.return_value.rc = 0
        msg = SimpleNamespace(topic="/dType/dID/cmd", payload=f"node01@apply|{json.dumps(CONFIG_MAP)}".encode())

        handler.command()(client, None, msg)

        client.publish.assert_called_once_with(
            "/dType/dID/cmdexe", "node01@apply|configmap/demo created", qos=0, retain=False
        )

    def test_callback_ignores_malformed_payload(self):
        handler, _ = self.make_handler()
        client = MagicMock()

        handler.command()(client, None, SimpleNamespace(topic="/t", payload=b"garbage"))

        client.publish.assert_not_called()
