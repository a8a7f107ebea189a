"""
kubemqtt - Kubernetes state and commands over MQTT
==================================================

Reporta el estado de los Pods de un cluster como telemetría MQTT y ejecuta
comandos MQTT como acciones sobre la API de Kubernetes.

Public API:
- OperatorConfig: Configuración del sistema (YAML o env)
- OperatorController: Controlador principal
- PodStateReporter / BaseReporter: Reporters periódicos
- MQTTDataPlane: Publisher MQTT con ack
- MQTTControlPlane / MessageHandler: Comandos MQTT

Usage:
    # Run operator
    python -m kubemqtt

    # Or programmatically
    from kubemqtt import OperatorConfig, OperatorController

    controller = OperatorController(OperatorConfig.from_env())
    controller.run()
"""

__version__ = "1.0.0"

from .config import OperatorConfig
from .app import OperatorController, main
from .control import MQTTControlPlane, MessageHandler
from .data import MQTTDataPlane
from .reporters import BaseReporter, PodStateReporter, ReporterImpl

__all__ = [
    # Config
    "OperatorConfig",
    # App
    "OperatorController",
    "main",
    # Control Plane
    "MQTTControlPlane",
    "MessageHandler",
    # Data Plane
    "MQTTDataPlane",
    # Reporters
    "BaseReporter",
    "PodStateReporter",
    "ReporterImpl",
]
