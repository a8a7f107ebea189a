"""
MQTT Plane Tests
================

Tests del Data Plane (puerto Publisher) y del Control Plane, con el cliente
paho mockeado (no requiere broker).

Invariantes testeadas:
1. publish() espera el ack antes de retornar
2. No conectado / rc de error / sin ack → PublishError
3. Control Plane se suscribe al topic de comandos al conectar
4. TLS con CA ilegible o inválido → MQTTOptionsError
"""
from unittest.mock import MagicMock, Mock

import paho.mqtt.client as mqtt
import pytest

from kubemqtt.broker import MQTTOptionsError, broker_url, build_tls_context
from kubemqtt.config import MQTTBrokerSettings, MQTTSettings, MQTTTLSSettings
from kubemqtt.control import MQTTControlPlane
from kubemqtt.data import MQTTDataPlane
from kubemqtt.ports import Publisher, PublishError


def make_info(rc=mqtt.MQTT_ERR_SUCCESS, published=True, wait_error=None):
    info = Mock()
    info.rc = rc
    info.is_published.return_value = published
    if wait_error is not None:
        info.wait_for_publish.side_effect = wait_error
    return info


def make_data_plane(info=None, connected=True, timeout=2.0):
    client = MagicMock()
    client.publish.return_value = info or make_info()
    plane = MQTTDataPlane(MQTTSettings(), publish_timeout=timeout, client=client)
    if connected:
        plane._on_connect(client, None, {}, 0)
    return plane, client


@pytest.mark.unit
@pytest.mark.mqtt
class TestDataPlanePublish:
    """Tests del publish con ack"""

    def test_implements_publisher_port(self):
        plane, _ = make_data_plane()

        assert isinstance(plane, Publisher)

    def test_publish_waits_for_ack(self):
        """
        Invariante: publish() retorna solo después de wait_for_publish().
        """
        info = make_info()
        plane, client = make_data_plane(info=info, timeout=3.0)

        plane.publish("/dType/dID/attrs", "payload", qos=0, retain=False)

        client.publish.assert_called_once_with("/dType/dID/attrs", "payload", qos=0, retain=False)
        info.wait_for_publish.assert_called_once_with(timeout=3.0)
        assert plane.get_stats()["messages_published"] == 1

    def test_not_connected_raises(self):
        plane, client = make_data_plane(connected=False)

        with pytest.raises(PublishError) as exc_info:
            plane.publish("/t", "payload")

        assert exc_info.value.rc == mqtt.MQTT_ERR_NO_CONN
        client.publish.assert_not_called()

    def test_client_rc_error_raises(self):
        plane, _ = make_data_plane(info=make_info(rc=mqtt.MQTT_ERR_QUEUE_SIZE))

        with pytest.raises(PublishError) as exc_info:
            plane.publish("/t", "payload")

        assert exc_info.value.rc == mqtt.MQTT_ERR_QUEUE_SIZE
        assert plane.get_stats()["publish_errors"] == 1

    def test_missing_ack_raises(self):
        """
        Invariante: sin ack dentro del timeout → PublishError (no se reintenta).
        """
        plane, client = make_data_plane(info=make_info(published=False))

        with pytest.raises(PublishError) as exc_info:
            plane.publish("/t", "payload")

        assert "no ack" in str(exc_info.value)
        assert client.publish.call_count == 1

    def test_wait_runtime_error_raises(self):
        plane, _ = make_data_plane(info=make_info(wait_error=RuntimeError("connection lost")))

        with pytest.raises(PublishError):
            plane.publish("/t", "payload")

    def test_disconnect_callback_marks_disconnected(self):
        plane, client = make_data_plane()
        assert plane.is_connected

        plane._on_disconnect(client, None, {}, 7)

        assert not plane.is_connected
        with pytest.raises(PublishError):
            plane.publish("/t", "payload")

    def test_failed_connect_does_not_mark_connected(self):
        plane, client = make_data_plane(connected=False)

        plane._on_connect(client, None, {}, 5)

        assert not plane.is_connected

    def test_connect_exception_returns_false(self):
        plane, client = make_data_plane(connected=False)
        client.connect.side_effect = OSError("connection refused")

        assert plane.connect(timeout=0.01) is False


@pytest.mark.unit
@pytest.mark.mqtt
class TestControlPlane:
    """Tests del Control Plane"""

    def make_plane(self, subscribe_rc=mqtt.MQTT_ERR_SUCCESS):
        handler = Mock()
        handler.get_cmd_topic.return_value = "/dType/dID/cmd"
        client = MagicMock()
        client.subscribe.return_value = (subscribe_rc, 1)
        plane = MQTTControlPlane(MQTTSettings(), handler, client=client)
        return plane, client, handler

    def test_registers_command_callback(self):
        plane, client, handler = self.make_plane()

        client.message_callback_add.assert_called_once_with("/dType/dID/cmd", handler.command.return_value)

    def test_subscribes_on_connect(self):
        """
        Invariante: cada conexión exitosa (re)suscribe el topic de comandos.
        """
        plane, client, _ = self.make_plane()

        plane._on_connect(client, None, {}, 0)

        client.subscribe.assert_called_once_with("/dType/dID/cmd", qos=0)
        assert plane.is_subscribed

    def test_subscribe_error_is_logged(self, caplog):
        plane, client, _ = self.make_plane(subscribe_rc=mqtt.MQTT_ERR_NO_CONN)

        with caplog.at_level('ERROR'):
            plane._on_connect(client, None, {}, 0)

        assert not plane.is_subscribed
        assert any("subscribe error" in record.message for record in caplog.records)

    def test_failed_connect_does_not_subscribe(self):
        plane, client, _ = self.make_plane()

        plane._on_connect(client, None, {}, 5)

        client.subscribe.assert_not_called()


@pytest.mark.unit
@pytest.mark.mqtt
class TestBrokerOptions:
    """Tests de la construcción de opciones MQTT"""

    def test_broker_url_scheme(self):
        plain = MQTTSettings(broker=MQTTBrokerSettings(host="broker", port=1883))
        tls = MQTTSettings(
            broker=MQTTBrokerSettings(host="broker", port=8883),
            tls=MQTTTLSSettings(enabled=True, ca_path="/etc/ca.pem"),
        )

        assert broker_url(plain) == "tcp://broker:1883"
        assert broker_url(tls) == "tls://broker:8883"

    def test_unreadable_ca_raises(self, tmp_path):
        missing = tmp_path / "missing.pem"

        with pytest.raises(MQTTOptionsError) as exc_info:
            build_tls_context(str(missing))

        assert "can not read" in str(exc_info.value)

    def test_invalid_ca_raises(self, tmp_path):
        bogus = tmp_path / "bogus.pem"
        bogus.write_text("not a certificate")

        with pytest.raises(MQTTOptionsError) as exc_info:
            build_tls_context(str(bogus))

        assert "failed to parse root certificate" in str(exc_info.value)
