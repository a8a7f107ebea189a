"""
Pydantic Configuration Schemas
================================

Type-safe configuration validation usando Pydantic v2.

Dos fuentes soportadas:
- YAML (from_yaml): secretos MQTT pueden overridearse por env vars
- Entorno (from_env): variables MQTT_* / KUBE_CONF_PATH / DEVICE_* / REPORT_*,
  leídas con pydantic-settings (y .env vía python-dotenv en el entry point)

Usage:
    config = OperatorConfig.from_yaml("config/kubemqtt/config.yaml")
    config = OperatorConfig.from_env()
"""
from typing import Any, Dict, Literal, Optional
from pathlib import Path
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import os


# ============================================================================
# MQTT Configuration
# ============================================================================

class MQTTBrokerSettings(BaseModel):
    """MQTT broker connection settings"""
    host: str = Field(
        default="localhost",
        description="MQTT broker hostname"
    )
    port: int = Field(
        default=8883,
        ge=1,
        le=65535,
        description="MQTT broker port"
    )
    username: Optional[str] = Field(
        default=None,
        description="MQTT username (optional, from env)"
    )
    password: Optional[str] = Field(
        default=None,
        description="MQTT password (optional, from env)"
    )
    client_id: str = Field(
        default="kube-go",
        min_length=1,
        description="Base MQTT client id (planes append a suffix)"
    )
    keepalive: int = Field(
        default=60,
        ge=1,
        description="Keepalive interval in seconds"
    )


class MQTTTLSSettings(BaseModel):
    """TLS settings (server verification against a CA bundle)"""
    enabled: bool = Field(
        default=False,
        description="Connect with TLS (tls://)"
    )
    ca_path: Optional[str] = Field(
        default=None,
        description="Path to the root CA certificate (PEM)"
    )

    @model_validator(mode='after')
    def validate_ca_when_enabled(self):
        """TLS requires a CA bundle"""
        if self.enabled and not self.ca_path:
            raise ValueError("ca_path is required when TLS is enabled")
        return self


class MQTTTopicsSettings(BaseModel):
    """MQTT topic configuration"""
    cmd: Optional[str] = Field(
        default=None,
        description="Inbound command topic (None disables the control plane)"
    )
    cmdexe: Optional[str] = Field(
        default=None,
        description="Command result topic (default: '<cmd>exe')"
    )

    @property
    def cmdexe_topic(self) -> Optional[str]:
        if self.cmdexe:
            return self.cmdexe
        if self.cmd:
            return f"{self.cmd}exe"
        return None


class MQTTSettings(BaseModel):
    """Complete MQTT configuration"""
    broker: MQTTBrokerSettings = Field(default_factory=MQTTBrokerSettings)
    tls: MQTTTLSSettings = Field(default_factory=MQTTTLSSettings)
    topics: MQTTTopicsSettings = Field(default_factory=MQTTTopicsSettings)


# ============================================================================
# Kubernetes Configuration
# ============================================================================

class KubeSettings(BaseModel):
    """Kubernetes client configuration"""
    config_path: Optional[str] = Field(
        default=None,
        description="kubeconfig path (None = in-cluster config)"
    )


# ============================================================================
# Reporter Configuration
# ============================================================================

class ReporterSettings(BaseModel):
    """Pod state reporter settings"""
    enabled: bool = Field(
        default=True,
        description="Start the pod state reporter"
    )
    device_type: str = Field(
        default="",
        description="Device type segment of the attrs topic"
    )
    device_id: str = Field(
        default="",
        description="Device id segment of the attrs topic"
    )
    interval_sec: float = Field(
        default=1.0,
        gt=0,
        description="Seconds between report cycles"
    )
    target_label_key: str = Field(
        default="app",
        description="Pod label reported as 'podlabel'"
    )
    publish_timeout_sec: float = Field(
        default=5.0,
        gt=0,
        description="Max seconds to wait for each publish acknowledgement"
    )


# ============================================================================
# Logging Configuration
# ============================================================================

class LoggingSettings(BaseModel):
    """Logging configuration (JSON structured logging)"""
    level: Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'] = Field(
        default='INFO',
        description="Log level"
    )
    json_indent: Optional[int] = Field(
        default=None,
        ge=0,
        le=4,
        description="JSON indent for pretty-print (None=compact, 2=readable)"
    )
    paho_level: Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'] = Field(
        default='WARNING',
        description="Paho MQTT library log level"
    )
    file: Optional[str] = Field(
        default=None,
        description="Path to log file (None=stdout). If specified, enables file rotation."
    )
    max_bytes: int = Field(
        default=10485760,  # 10 MB
        ge=1024,
        description="Maximum bytes per log file before rotation (default 10 MB)"
    )
    backup_count: int = Field(
        default=5,
        ge=0,
        description="Number of backup log files to keep"
    )


# ============================================================================
# Environment Source
# ============================================================================

_TRUE_STRINGS = {"1", "t", "true"}
_FALSE_STRINGS = {"0", "f", "false"}


def parse_bool(value: Optional[str], default: bool) -> bool:
    """
    Parse '1/t/true' and '0/f/false' (case-insensitive).

    Anything else, including None, yields the default.
    """
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_STRINGS:
        return True
    if normalized in _FALSE_STRINGS:
        return False
    return default


class OperatorEnvSettings(BaseSettings):
    """Flat view of the process environment (one field per variable)."""
    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_ignore_empty=True,
        extra='ignore',
    )

    mqtt_host: Optional[str] = None
    mqtt_port: Optional[int] = None
    mqtt_username: Optional[str] = None
    mqtt_password: Optional[str] = None
    mqtt_client_id: Optional[str] = None
    mqtt_use_tls: Optional[str] = None
    mqtt_tls_ca_path: Optional[str] = None
    mqtt_cmd_topic: Optional[str] = None
    mqtt_cmdexe_topic: Optional[str] = None

    kube_conf_path: Optional[str] = None

    reporter_enabled: Optional[str] = None
    device_type: Optional[str] = None
    device_id: Optional[str] = None
    report_interval_sec: Optional[float] = None
    report_target_label_key: Optional[str] = None
    report_publish_timeout_sec: Optional[float] = None

    log_level: Optional[str] = None
    log_file: Optional[str] = None
    log_json_indent: Optional[int] = None
    paho_log_level: Optional[str] = None

    def to_config_dict(self) -> Dict[str, Any]:
        """Nested dict for OperatorConfig; unset variables are left out."""
        def pick(**values: Any) -> Dict[str, Any]:
            return {k: v for k, v in values.items() if v is not None}

        return {
            "mqtt": {
                "broker": pick(
                    host=self.mqtt_host,
                    port=self.mqtt_port,
                    username=self.mqtt_username,
                    password=self.mqtt_password,
                    client_id=self.mqtt_client_id,
                ),
                "tls": pick(
                    # Missing or unparseable MQTT_USE_TLS means TLS on
                    enabled=parse_bool(self.mqtt_use_tls, default=True),
                    ca_path=self.mqtt_tls_ca_path,
                ),
                "topics": pick(
                    cmd=self.mqtt_cmd_topic,
                    cmdexe=self.mqtt_cmdexe_topic,
                ),
            },
            "kube": pick(config_path=self.kube_conf_path),
            "reporter": pick(
                enabled=(
                    parse_bool(self.reporter_enabled, default=True)
                    if self.reporter_enabled is not None else None
                ),
                device_type=self.device_type,
                device_id=self.device_id,
                interval_sec=self.report_interval_sec,
                target_label_key=self.report_target_label_key,
                publish_timeout_sec=self.report_publish_timeout_sec,
            ),
            "logging": pick(
                level=self.log_level.upper() if self.log_level else None,
                file=self.log_file,
                json_indent=self.log_json_indent,
                paho_level=self.paho_log_level.upper() if self.paho_log_level else None,
            ),
        }


# ============================================================================
# Root Configuration
# ============================================================================

class OperatorConfig(BaseModel):
    """
    Root configuration with full validation.

    Loads from YAML or from the environment and validates all settings.
    Environment variables override YAML for sensitive data.
    """
    mqtt: MQTTSettings = Field(default_factory=MQTTSettings)
    kube: KubeSettings = Field(default_factory=KubeSettings)
    reporter: ReporterSettings = Field(default_factory=ReporterSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_yaml(cls, config_path: str) -> 'OperatorConfig':
        """
        Load and validate configuration from YAML file.

        Args:
            config_path: Path to config.yaml

        Returns:
            Validated OperatorConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValidationError: If config is invalid
        """
        import yaml

        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create it from config/kubemqtt/config.yaml.example"
            )

        with open(config_file, 'r') as f:
            config_dict = yaml.safe_load(f) or {}

        # Override sensitive data from environment variables
        broker = config_dict.setdefault('mqtt', {}).setdefault('broker', {})
        if os.getenv('MQTT_USERNAME'):
            broker['username'] = os.getenv('MQTT_USERNAME')
        if os.getenv('MQTT_PASSWORD'):
            broker['password'] = os.getenv('MQTT_PASSWORD')

        return cls(**config_dict)

    @classmethod
    def from_env(cls) -> 'OperatorConfig':
        """
        Build configuration from environment variables.

        Raises:
            ValidationError: If a variable has an invalid value
        """
        return cls(**OperatorEnvSettings().to_config_dict())
