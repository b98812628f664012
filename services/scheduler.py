import logging
import threading
from typing import Callable, Optional


logger = logging.getLogger(__name__)


class SyncScheduler:
    """Timer único del proceso para el sync automático.

    `start()` reemplaza cualquier timer activo; `stop()` es idempotente.
    Un error en un tick se loguea y el timer sigue vivo.
    """

    def __init__(self, job: Callable[[], object], *, name: str = "sync-scheduler"):
        self._job = job
        self._name = name
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._interval_minutes: Optional[float] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def interval_minutes(self) -> Optional[float]:
        return self._interval_minutes if self._thread is not None else None

    def start(self, interval_minutes: float = 5) -> None:
        interval_minutes = float(interval_minutes)
        if interval_minutes <= 0:
            raise ValueError("interval_minutes debe ser > 0")

        with self._lock:
            self._stop_locked()
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._loop,
                args=(stop_event, interval_minutes * 60),
                name=self._name,
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            self._interval_minutes = interval_minutes
            thread.start()

        logger.info("Sync automático iniciado cada %s min", interval_minutes)

    def stop(self) -> None:
        with self._lock:
            was_running = self._thread is not None
            self._stop_locked()
        if was_running:
            logger.info("Sync automático detenido")

    def _stop_locked(self) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        if self._thread is not threading.current_thread():
            # Si hay un tick en curso termina solo; no se espera la pasada completa
            self._thread.join(timeout=1)
        self._thread = None
        self._stop_event = None
        self._interval_minutes = None

    def _loop(self, stop_event: threading.Event, interval_seconds: float) -> None:
        while not stop_event.wait(interval_seconds):
            self.run_once()

    def run_once(self):
        try:
            return self._job()
        except Exception:
            logger.exception("Error en sync automático")
            return None
