"""
Configuration Module
====================

Provides configuration loading with Pydantic validation.

Usage:
    from kubemqtt.config import OperatorConfig
    config = OperatorConfig.from_yaml("config/kubemqtt/config.yaml")
    config = OperatorConfig.from_env()
"""
from .schemas import (
    OperatorConfig,
    OperatorEnvSettings,
    MQTTSettings,
    MQTTBrokerSettings,
    MQTTTLSSettings,
    MQTTTopicsSettings,
    KubeSettings,
    ReporterSettings,
    LoggingSettings,
    parse_bool,
)

__all__ = [
    'OperatorConfig',
    'OperatorEnvSettings',
    'MQTTSettings',
    'MQTTBrokerSettings',
    'MQTTTLSSettings',
    'MQTTTopicsSettings',
    'KubeSettings',
    'ReporterSettings',
    'LoggingSettings',
    'parse_bool',
]
