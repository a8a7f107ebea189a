"""
kubemqtt Test Suite
===================

Tests de invariantes críticos.

Philosophy:
- Focus on invariants (properties that must always be true)
- Test critical paths (reporter lifecycle, MQTT publish, commands)
- Sin broker ni cluster reales: paho y kubernetes mockeados

Modules:
- test_reporters: lifecycle controller + formato/política del reporte de Pods
- test_data_plane: publish con ack, control plane, opciones TLS
- test_mqtt_commands: registry, parseo y ejecución de comandos
- test_cluster: adaptadores de Kubernetes y manifests
- test_config_validation: validación Pydantic + env vars
- test_controller_lifecycle: setup/shutdown del operator
- test_logging: formatter JSON y trace context
"""
