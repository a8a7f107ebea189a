#!/usr/bin/env python3
"""
CLI para enviar comandos MQTT al operator
=========================================

Uso:
    kubemqtt-cmd apply deployment.yaml --topic /dType/dID/cmd --device-id dID
    kubemqtt-cmd delete deployment.yaml --topic /dType/dID/cmd --device-id dID --wait 5

Con --wait espera la respuesta en el topic cmdexe ('<topic>exe').
"""
import argparse
import sys
from pathlib import Path
from queue import Empty, Queue
from typing import List, Optional

import paho.mqtt.client as mqtt

from ..broker import MQTTOptionsError, build_mqtt_client
from ..config import MQTTBrokerSettings, MQTTSettings, MQTTTLSSettings


def build_payload(device_id: str, command: str, manifest: str) -> str:
    return f"{device_id}@{command}|{manifest}"


def send_command(
    settings: MQTTSettings,
    topic: str,
    payload: str,
    wait: float = 0.0,
    reply_topic: Optional[str] = None,
) -> bool:
    """Publica un comando y opcionalmente espera la respuesta."""
    client = build_mqtt_client(settings, "kubemqtt-cmd")
    replies: Queue = Queue()

    if wait > 0:
        reply_topic = reply_topic or f"{topic}exe"
        client.on_message = lambda c, userdata, msg: replies.put(msg.payload.decode('utf-8', 'replace'))

    print(f"🔌 Conectando a {settings.broker.host}:{settings.broker.port}...")
    try:
        client.connect(settings.broker.host, settings.broker.port, keepalive=settings.broker.keepalive)
    except Exception as e:
        print(f"❌ Error conectando: {e}")
        return False

    client.loop_start()
    try:
        if wait > 0:
            client.subscribe(reply_topic, qos=0)

        print(f"📤 Enviando comando a {topic}")
        info = client.publish(topic, payload, qos=0)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            print(f"❌ Error enviando comando: {mqtt.error_string(info.rc)}")
            return False
        try:
            info.wait_for_publish(timeout=5.0)
        except (RuntimeError, ValueError) as e:
            print(f"❌ Error enviando comando: {e}")
            return False
        if not info.is_published():
            print("❌ Comando no enviado después de 5.0s")
            return False
        print("✅ Comando enviado")

        if wait > 0:
            try:
                print(f"📥 {replies.get(timeout=wait)}")
            except Empty:
                print(f"⚠️ Sin respuesta en {reply_topic} después de {wait}s")
                return False
        return True
    finally:
        client.disconnect()
        client.loop_stop()


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="CLI para enviar comandos Kubernetes vía MQTT"
    )
    parser.add_argument("command", choices=["apply", "delete"], help="Comando a enviar")
    parser.add_argument("manifest", help="Manifest YAML/JSON ('-' = stdin)")
    parser.add_argument("--topic", required=True, help="Command topic (MQTT_CMD_TOPIC del operator)")
    parser.add_argument("--device-id", required=True, help="Device id incluido en el payload")
    parser.add_argument("--broker", default="localhost", help="MQTT broker host (default: localhost)")
    parser.add_argument("--port", type=int, default=1883, help="MQTT broker port (default: 1883)")
    parser.add_argument("--username", default=None)
    parser.add_argument("--password", default=None)
    parser.add_argument("--ca", default=None, help="CA PEM para TLS (activa TLS)")
    parser.add_argument("--wait", type=float, default=0.0, help="Segundos a esperar la respuesta (0 = no esperar)")

    args = parser.parse_args(argv)

    manifest = sys.stdin.read() if args.manifest == "-" else Path(args.manifest).read_text()
    settings = MQTTSettings(
        broker=MQTTBrokerSettings(
            host=args.broker,
            port=args.port,
            username=args.username,
            password=args.password,
        ),
        tls=MQTTTLSSettings(enabled=bool(args.ca), ca_path=args.ca),
    )

    try:
        success = send_command(
            settings,
            args.topic,
            build_payload(args.device_id, args.command, manifest),
            wait=args.wait,
        )
    except MQTTOptionsError as e:
        print(f"❌ {e}")
        success = False
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
