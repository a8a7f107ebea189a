"""
Structured Logging Infrastructure
==================================

JSON logging para queryability en producción.

Design Philosophy:
- Solo JSON (no dual output)
- Trace correlation vía contextvars (un trace por ciclo de reporte / comando)
- Helpers para casos comunes (MQTT publish, comandos, ciclos, errores)
- File rotation opcional (RotatingFileHandler)

Usage:
    from kubemqtt.logging import setup_logging

    # Stdout (desarrollo)
    setup_logging(level="INFO")

    # File con rotation (producción)
    setup_logging(level="INFO", log_file="logs/kubemqtt.log")

    # Con trace propagation
    from kubemqtt.logging import trace_context, get_trace_id

    with trace_context(generate_trace_id("report")):
        logger.info("Reporting", extra={"trace_id": get_trace_id()})
"""
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

# ============================================================================
# Trace Context
# ============================================================================

trace_id_var: ContextVar[Optional[str]] = ContextVar('trace_id', default=None)


def get_trace_id() -> Optional[str]:
    """Trace ID del contexto actual, o None fuera de un trace_context."""
    return trace_id_var.get()


def generate_trace_id(prefix: str = "trace") -> str:
    """
    Genera un nuevo trace ID único.

    Args:
        prefix: Prefijo para el trace ID (ej: "report", "cmd-apply")

    Returns:
        Trace ID en formato: {prefix}-{short_uuid}
    """
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


@contextmanager
def trace_context(trace_id: Optional[str] = None):
    """
    Context manager para propagar trace_id en toda la call stack.

    Usage:
        with trace_context(generate_trace_id("cmd")):
            handle_command()
    """
    if trace_id is None:
        trace_id = generate_trace_id()

    token = trace_id_var.set(trace_id)
    try:
        yield trace_id
    finally:
        trace_id_var.reset(token)


# ============================================================================
# Logger Setup
# ============================================================================

class KubeMQTTJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter con nombres de campo cortos y trace_id automático."""

    def __init__(self, *args, global_fields: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.global_fields = global_fields or {}

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['level'] = log_record.pop('levelname', None) or record.levelname
        log_record['logger'] = log_record.pop('name', None) or record.name

        current_trace_id = get_trace_id()
        if current_trace_id and 'trace_id' not in log_record:
            log_record['trace_id'] = current_trace_id

        for key, value in self.global_fields.items():
            if key not in log_record:
                log_record[key] = value


def setup_logging(
    level: str = "INFO",
    indent: Optional[int] = None,
    add_fields: Optional[Dict[str, Any]] = None,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    paho_level: str = "WARNING",
) -> None:
    """
    Configura structured logging (JSON) para toda la aplicación.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        indent: JSON indent para pretty-print (None = compact, 2 = readable)
        add_fields: Campos globales (ej: {"device_id": "node-01"})
        log_file: Path al archivo de logs (None = stdout). Si se especifica, usa rotation.
        max_bytes: Tamaño máximo por archivo antes de rotar (default 10 MB)
        backup_count: Número de archivos backup a mantener (default 5)
        paho_level: Nivel del logger 'paho' (la librería MQTT es muy verbosa)
    """
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        handler = RotatingFileHandler(
            filename=str(log_path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        print(
            f"📄 Logging to file: {log_file} (max: {max_bytes//1024//1024}MB, backups: {backup_count})",
            file=sys.stderr
        )
    else:
        handler = logging.StreamHandler(sys.stdout)

    formatter = KubeMQTTJsonFormatter(
        '%(timestamp)s %(level)s %(logger)s %(message)s',
        timestamp=True,
        json_indent=indent,
        global_fields=add_fields,
    )
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper()))

    logging.getLogger('paho').setLevel(getattr(logging, paho_level.upper()))


# ============================================================================
# Helper Functions
# ============================================================================

def log_mqtt_command(
    logger: logging.Logger,
    command: str,
    topic: str,
    device_id: Optional[str] = None,
    trace_id: Optional[str] = None
) -> None:
    """
    Helper para logs de comandos MQTT entrantes (Control Plane).

    Args:
        logger: Logger instance
        command: Nombre del comando (apply, delete)
        topic: MQTT topic donde llegó
        device_id: Device ID del payload (opcional)
        trace_id: Trace ID (usa contexto si no se especifica)
    """
    extra = {
        "component": "control_plane",
        "command": command,
        "mqtt_topic": topic,
        "trace_id": trace_id or get_trace_id()
    }

    if device_id is not None:
        extra["device_id"] = device_id

    logger.info(f"📥 Comando recibido: {command}", extra=extra)


def log_mqtt_publish(
    logger: logging.Logger,
    topic: str,
    qos: int,
    payload_size: int,
    success: bool = True,
    error_code: Optional[int] = None,
    component: str = "data_plane",
) -> None:
    """
    Helper para logs de publicación MQTT.

    Args:
        logger: Logger instance
        topic: MQTT topic
        qos: QoS level
        payload_size: Tamaño del payload en bytes
        success: Si la publicación fue exitosa
        error_code: Código de error MQTT (si success=False)
        component: Componente que genera el log
    """
    extra = {
        "component": component,
        "mqtt_topic": topic,
        "qos": qos,
        "payload_size_bytes": payload_size,
        "success": success
    }

    if error_code is not None:
        extra["mqtt_error_code"] = error_code

    if success:
        logger.debug(f"📤 Mensaje publicado a {topic}", extra=extra)
    else:
        logger.warning(f"⚠️ Error publicando a {topic}", extra=extra)


def log_report_cycle(
    logger: logging.Logger,
    topic: str,
    pods: int,
    published: int,
    failed: int,
    component: str = "pod_state_reporter",
) -> None:
    """
    Helper para el resumen de un ciclo de reporte.

    Args:
        logger: Logger instance
        topic: Attrs topic del ciclo
        pods: Pods listados
        published: Mensajes publicados con ack
        failed: Mensajes con error de publicación
        component: Componente que genera el log
    """
    extra = {
        "component": component,
        "event": "report_cycle",
        "mqtt_topic": topic,
        "report": {
            "pods": pods,
            "published": published,
            "failed": failed,
        }
    }

    if failed:
        logger.warning(
            f"⚠️ Report cycle: {published}/{pods} published, {failed} failed",
            extra=extra
        )
    else:
        logger.debug(f"📊 Report cycle: {published}/{pods} published", extra=extra)


def log_error_with_context(
    logger: logging.Logger,
    message: str,
    exception: Optional[Exception] = None,
    component: str = "unknown",
    event: Optional[str] = None,
    trace_id: Optional[str] = None,
    **kwargs: Any
) -> None:
    """
    Helper para logs de errores con contexto completo.

    Args:
        logger: Logger instance
        message: Mensaje de error
        exception: Excepción capturada (opcional)
        component: Componente donde ocurrió el error
        event: Evento que causó el error
        trace_id: Trace ID (usa contexto si no se especifica)
        **kwargs: Contexto adicional (broker_host, topic, etc.)
    """
    extra = {
        "component": component,
        "trace_id": trace_id or get_trace_id()
    }

    if event:
        extra["event"] = event

    if exception:
        extra["error_type"] = type(exception).__name__
        extra["error_message"] = str(exception)

    extra.update(kwargs)

    if exception:
        logger.error(f"{message}: {exception}", extra=extra, exc_info=True)
    else:
        logger.error(message, extra=extra)


__all__ = [
    # Setup
    "setup_logging",
    "KubeMQTTJsonFormatter",
    # Trace context
    "trace_context",
    "get_trace_id",
    "generate_trace_id",
    # Helpers
    "log_mqtt_command",
    "log_mqtt_publish",
    "log_report_cycle",
    "log_error_with_context",
]
