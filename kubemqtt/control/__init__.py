"""
Control Plane - MQTT commands to Kubernetes actions
"""
from .handler import Command, CommandParseError, MessageHandler, parse_command
from .plane import MQTTControlPlane
from .registry import CommandNotAvailableError, CommandRegistry

__all__ = [
    "Command",
    "CommandParseError",
    "MessageHandler",
    "parse_command",
    "MQTTControlPlane",
    "CommandNotAvailableError",
    "CommandRegistry",
]
