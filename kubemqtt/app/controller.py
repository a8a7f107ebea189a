"""
Kubernetes ⇄ MQTT Operator
==========================

Control Plane: comandos MQTT → acciones sobre la API de Kubernetes
Data Plane: estado de los Pods → mensajes MQTT periódicos (PodStateReporter)
"""
import argparse
import logging
import signal
import sys
from concurrent import futures
from threading import Event
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from .builder import OperatorBuilder
from ..broker import MQTTOptionsError
from ..cluster import KubeConfigError
from ..config import OperatorConfig
from ..logging import log_error_with_context, setup_logging

logger = logging.getLogger(__name__)

FINISH_TIMEOUT_SEC = 10.0


class OperatorController:
    """
    Controlador del operator.

    Responsabilidad: Orquestación y lifecycle management
    - Setup de componentes (delega construcción a OperatorBuilder)
    - Signal handling (SIGINT/SIGTERM)
    - Cleanup ordenado: reporter → control plane → data plane
    """

    def __init__(self, config: OperatorConfig, builder: Optional[OperatorBuilder] = None):
        self.config = config
        self.builder = builder or OperatorBuilder(config)

        self.kube_apis = None
        self.data_plane = None
        self.control_plane = None
        self.reporter = None

        self.shutdown_event = Event()

    def setup(self) -> bool:
        """
        Inicializa clientes, conexiones MQTT y reporter.

        Returns:
            bool: True si setup exitoso, False si falla
        """
        logger.info("🚀 start main")

        try:
            self.kube_apis = self.builder.build_kube_apis()
            self.data_plane = self.builder.build_data_plane()
            self.control_plane = self.builder.build_control_plane(self.kube_apis)
        except (KubeConfigError, MQTTOptionsError) as e:
            log_error_with_context(
                logger,
                message="❌ Setup failed",
                exception=e,
                component="controller",
                event="setup_error",
            )
            return False

        if not self.data_plane.connect(timeout=10):
            logger.error("❌ No se pudo conectar Data Plane")
            return False

        if self.control_plane is not None and not self.control_plane.connect(timeout=10):
            logger.error("❌ No se pudo conectar Control Plane")
            return False

        logger.info("Connected to server, start loop")

        self.reporter = self.builder.build_reporter(self.data_plane, self.kube_apis)
        if self.reporter is not None:
            self.reporter.start_reporting()

        return True

    def run(self) -> int:
        """
        Setup + espera hasta SIGINT/SIGTERM + cleanup.

        Returns:
            Exit code (0 ok, 1 si el setup falló)
        """
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        if not self.setup():
            self.cleanup()
            return 1

        try:
            while not self.shutdown_event.is_set():
                self.shutdown_event.wait(timeout=1.0)
        except KeyboardInterrupt:
            logger.info("⚠️ Interrupción forzada...")
            self.shutdown_event.set()

        self.cleanup()
        return 0

    def _signal_handler(self, signum, frame):
        """Handler para señales (Ctrl+C, SIGTERM)"""
        logger.info(
            "⚠️ Señal de terminación recibida...",
            extra={"component": "controller", "event": "signal", "signum": signum}
        )
        self.shutdown_event.set()

    def stop_reporter(self, timeout: float = FINISH_TIMEOUT_SEC) -> bool:
        """
        Pide el stop del reporter y espera su señal de fin.

        Returns:
            True si el reporter terminó dentro del timeout (o no había reporter)
        """
        if self.reporter is None:
            return True

        self.reporter.get_stop_ch().set()
        try:
            self.reporter.get_finish_ch().result(timeout=timeout)
            return True
        except futures.TimeoutError:
            logger.warning(
                f"⚠️ Reporter did not finish within {timeout}s",
                extra={"component": "controller", "event": "reporter_stop_timeout"}
            )
            return False

    def cleanup(self):
        """Libera recursos en orden inverso al setup."""
        logger.info("🧹 Limpiando recursos...")

        try:
            self.stop_reporter()
        except Exception as e:
            logger.error(f"❌ Error deteniendo reporter: {e}")

        if self.control_plane:
            try:
                self.control_plane.disconnect()
                logger.info("✅ Control Plane desconectado")
            except Exception as e:
                logger.error(f"❌ Error desconectando Control Plane: {e}")

        if self.data_plane:
            try:
                stats = self.data_plane.get_stats()
                logger.info("📊 Data Plane stats", extra={"component": "data_plane", "stats": stats})
                self.data_plane.disconnect()
                logger.info("✅ Data Plane desconectado")
            except Exception as e:
                logger.error(f"❌ Error desconectando Data Plane: {e}")

        logger.info("finish main")


# ============================================================================
# MAIN
# ============================================================================

def load_config(config_path: Optional[str]) -> OperatorConfig:
    """YAML si se pasó --config, si no variables de entorno."""
    if config_path:
        return OperatorConfig.from_yaml(config_path)
    return OperatorConfig.from_env()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Bridge Kubernetes pod state and commands over MQTT"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML config file (default: read MQTT_*/KUBE_CONF_PATH/DEVICE_*/REPORT_* env vars)"
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    """Punto de entrada principal"""
    load_dotenv()
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ValidationError as e:
        print("❌ Invalid configuration:")
        for error in e.errors():
            field = " -> ".join(str(loc) for loc in error['loc'])
            print(f"   • {field}: {error['msg']}")
        sys.exit(1)
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        sys.exit(1)

    setup_logging(
        level=config.logging.level,
        indent=config.logging.json_indent,
        log_file=config.logging.file,
        max_bytes=config.logging.max_bytes,
        backup_count=config.logging.backup_count,
        paho_level=config.logging.paho_level,
    )

    controller = OperatorController(config)

    try:
        exit_code = controller.run()
    except Exception as e:
        logger.error(f"❌ Error fatal: {e}", exc_info=True)
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
