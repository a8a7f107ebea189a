"""
Base Reporter
=============

Lifecycle controller genérico para reporters periódicos.

- BaseReporter: timer + señal de stop + señal de fin (thread único)
- ReporterImpl: ABC de un solo método (report) que ejecuta un ciclo

Diseño:
- El controller orquesta, el impl reporta (SRP)
- Stop cooperativo: threading.Event observado entre ticks
- Fin one-shot: concurrent.futures.Future resuelto al salir del loop
- Ticks no se encolan: si un ciclo se atrasa, los ticks perdidos se descartan

Usage:
    reporter = PodStateReporter(...)
    reporter.start_reporting()
    ...
    reporter.get_stop_ch().set()
    reporter.get_finish_ch().result(timeout=10)
"""
import logging
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future
from enum import Enum
from threading import Event, Lock, Thread
from typing import Any, Optional

from ..logging import generate_trace_id, log_error_with_context, trace_context

logger = logging.getLogger(__name__)


class ReporterAlreadyStartedError(RuntimeError):
    """start_reporting() fue llamado más de una vez en la misma instancia."""
    pass


class ReporterState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class ReporterImpl(ABC):
    """
    Capability de reporte: un ciclo completo para un topic.

    Implementaciones concretas:
    - PodStateReporterImpl: estado de Pods como mensajes pipe-delimited
    """

    @abstractmethod
    def report(self, topic: str) -> Any:
        """
        Ejecuta un ciclo de sampling + publish.

        Args:
            topic: Topic destino de los mensajes

        Note:
            Los errores se loggean dentro del impl; el controller no
            inspecciona el valor retornado.
        """
        pass


class BaseReporter:
    """
    Lifecycle controller: Idle → Running → Stopping → Stopped.

    Contract:
    - get_attrs_topic(): "/" + device_type + "/" + device_id + "/attrs" (sin validar)
    - start_reporting(): lanza exactamente un thread; llamarlo dos veces
      lanza ReporterAlreadyStartedError
    - get_stop_ch(): Event que el owner setea para pedir el stop
    - get_finish_ch(): Future resuelto una sola vez cuando el loop termina.
      Su valor (False) no significa nada: esperar la completitud, no leer
      éxito/fallo de él.
    """

    def __init__(
        self,
        device_type: str,
        device_id: str,
        interval: float,
        impl: ReporterImpl,
        name: Optional[str] = None,
    ):
        self.device_type = device_type
        self.device_id = device_id
        self.interval = interval
        self.impl = impl
        self.name = name or self.__class__.__name__

        self._stop_event = Event()
        self._finish: Future = Future()
        self._lock = Lock()
        self._state = ReporterState.IDLE
        self._thread: Optional[Thread] = None
        self.cycles = 0

    def get_attrs_topic(self) -> str:
        return "/" + self.device_type + "/" + self.device_id + "/attrs"

    def get_stop_ch(self) -> Event:
        return self._stop_event

    def get_finish_ch(self) -> Future:
        return self._finish

    @property
    def state(self) -> ReporterState:
        with self._lock:
            return self._state

    def start_reporting(self):
        """
        Arranca el loop de reporte en un thread daemon.

        Raises:
            ReporterAlreadyStartedError: Si ya fue arrancado antes
        """
        with self._lock:
            if self._state is not ReporterState.IDLE:
                raise ReporterAlreadyStartedError(
                    f"{self.name} already started (state={self._state.value})"
                )
            self._state = ReporterState.RUNNING

        self._thread = Thread(target=self._run, name=f"{self.name}-loop", daemon=True)
        self._thread.start()

        logger.info(
            f"▶️ {self.name} started",
            extra={
                "component": "reporter",
                "event": "reporter_started",
                "reporter": self.name,
                "topic": self.get_attrs_topic(),
                "interval_sec": self.interval,
            }
        )

    def stop(self):
        """Pide el stop (equivalente a setear get_stop_ch())."""
        self._stop_event.set()

    def _run(self):
        topic = self.get_attrs_topic()
        next_tick = time.monotonic() + self.interval

        try:
            while True:
                timeout = max(0.0, next_tick - time.monotonic())
                if self._stop_event.wait(timeout):
                    break

                self._tick(topic)

                now = time.monotonic()
                if self.interval > 0:
                    next_tick += self.interval
                    if next_tick <= now:
                        # Ticks perdidos durante un ciclo lento se descartan
                        skipped = int((now - next_tick) // self.interval) + 1
                        next_tick += skipped * self.interval
                else:
                    next_tick = now
        finally:
            with self._lock:
                self._state = ReporterState.STOPPING
            logger.info(
                f"⏹️ {self.name} stopping",
                extra={
                    "component": "reporter",
                    "event": "reporter_stopping",
                    "reporter": self.name,
                    "cycles": self.cycles,
                }
            )
            with self._lock:
                self._state = ReporterState.STOPPED
            self._finish.set_result(False)

    def _tick(self, topic: str):
        self.cycles += 1
        with trace_context(generate_trace_id("report")):
            try:
                self.impl.report(topic)
            except Exception as e:
                log_error_with_context(
                    logger,
                    message=f"❌ Unhandled error in {self.name} cycle",
                    exception=e,
                    component="reporter",
                    event="report_exception",
                    topic=topic,
                )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(topic={self.get_attrs_topic()!r}, state={self.state.value})"
