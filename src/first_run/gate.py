"""First Run Gate — ожидание first run данных перед началом измерений.

Во время первого запуска нужно дождаться двух независимых сигналов:
- Advertising ID (получен или окончательно не получен)
- завершение install referrer handshake (успех, ошибка или таймаут)

wait_for_first_run_data блокирует вызывающий поток не дольше max_wait_ms и
просыпается сразу, как только оба сигнала пришли. Исключений не бросает:
после возврата вызывающий код проверяет is_waiting() / флаги и решает, что
делать с частичными данными.

Gate одноразовый: один first run эпизод, один meaningful wait.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from src.core.domain.referrer import HandshakeState
from src.first_run.config import FirstRunConfig
from src.first_run.handshake import ReferrerHandshake
from src.first_run.log import get_logger
from src.first_run.referrer_client import AttributionSink, InstallReferrerClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class FirstRunWaitResult:
    """Результат wait_for_first_run_data."""

    complete: bool
    cancelled: bool
    timed_out: bool

    # Состояние сигналов на момент возврата
    advertising_id_ready: bool
    referrer_sequence_done: bool
    handshake_state: Optional[HandshakeState]

    elapsed_ms: float


class FirstRunGate:
    """Gate из двух монотонных флагов + condition.

    Флаги меняются только false → true. Все чтения/записи флагов и
    пробуждения выполняются под одним lock.
    """

    def __init__(
        self,
        client_factory: Callable[[], InstallReferrerClient],
        sink: AttributionSink,
        config: Optional[FirstRunConfig] = None,
    ):
        """
        Args:
            client_factory: создает платформенный install referrer клиент
            sink: хранилище referrer строки и timestamps
            config: конфигурация (default FirstRunConfig())
        """
        self.config = config or FirstRunConfig()
        self._client_factory = client_factory
        self._sink = sink

        self._condition = threading.Condition(threading.Lock())
        self._advertising_id_ready = False
        self._referrer_sequence_done = False
        self._cancel_generation = 0

        self._handshake_started = False
        self._handshake: Optional[ReferrerHandshake] = None

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def signal_advertising_id_ready(self) -> None:
        """Advertising ID получен (или окончательно не получен)."""
        with self._condition:
            if self._advertising_id_ready:
                return
            self._advertising_id_ready = True
            self._notify_if_complete()

    def signal_referrer_sequence_done(self) -> None:
        """Install referrer sequence завершена (успех, ошибка или таймаут)."""
        with self._condition:
            if self._referrer_sequence_done:
                return
            self._referrer_sequence_done = True
            self._notify_if_complete()

    def _notify_if_complete(self) -> None:
        # Вызывается под lock, только при первом выставлении флага
        if self._advertising_id_ready and self._referrer_sequence_done:
            self._condition.notify_all()
            logger.debug("COMPLETE")

    # =========================================================================
    # WAIT
    # =========================================================================

    def wait_for_first_run_data(self, max_wait_ms: Optional[int] = None) -> FirstRunWaitResult:
        """Старт referrer handshake и ожидание обоих сигналов.

        Args:
            max_wait_ms: бюджет ожидания (default config.wait_time_ms);
                отрицательные значения трактуются как 0

        Returns:
            FirstRunWaitResult (complete / cancelled / timed_out)
        """
        if max_wait_ms is None:
            max_wait_ms = self.config.wait_time_ms
        if max_wait_ms < 0:
            logger.warning(f"waitForFirstRunData() negative budget {max_wait_ms}ms, using 0")
            max_wait_ms = 0

        logger.debug("waitForFirstRunData(START)")
        started = time.monotonic()
        # Бюджет и cancel отсчитываются от входа, включая старт handshake
        deadline = started + max_wait_ms / 1000.0
        with self._condition:
            generation = self._cancel_generation

        self._start_referrer_handshake()

        with self._condition:
            self._condition.wait_for(
                lambda: self._is_complete() or self._cancel_generation != generation,
                timeout=max(0.0, deadline - time.monotonic()),
            )
            complete = self._is_complete()
            cancelled = not complete and self._cancel_generation != generation
            advertising_id_ready = self._advertising_id_ready
            referrer_sequence_done = self._referrer_sequence_done
            handshake = self._handshake

        if cancelled:
            logger.warning("waitForFirstRunData() interrupted")

        logger.debug("waitForFirstRunData(COMPLETE)")

        return FirstRunWaitResult(
            complete=complete,
            cancelled=cancelled,
            timed_out=not complete and not cancelled,
            advertising_id_ready=advertising_id_ready,
            referrer_sequence_done=referrer_sequence_done,
            handshake_state=handshake.state if handshake is not None else None,
            elapsed_ms=(time.monotonic() - started) * 1000.0,
        )

    def _start_referrer_handshake(self) -> None:
        with self._condition:
            if self._handshake_started:
                logger.debug("Install referrer handshake already started")
                return
            self._handshake_started = True

        try:
            client = self._client_factory()
        except Exception:
            logger.exception("Install referrer client unavailable")
            self.signal_referrer_sequence_done()
            return

        handshake = ReferrerHandshake(
            client=client,
            sink=self._sink,
            on_complete=self.signal_referrer_sequence_done,
            timeout_ms=self.config.referrer_connection_timeout_ms,
        )
        with self._condition:
            self._handshake = handshake

        handshake.start()

    # =========================================================================
    # QUERIES / CANCEL
    # =========================================================================

    def _is_complete(self) -> bool:
        return self._advertising_id_ready and self._referrer_sequence_done

    def is_waiting(self) -> bool:
        """True если хотя бы один сигнал еще не пришел."""
        with self._condition:
            return not self._is_complete()

    def cancel(self) -> None:
        """Разбудить ожидающий поток без выставления флагов."""
        with self._condition:
            self._cancel_generation += 1
            self._condition.notify_all()

    @property
    def advertising_id_ready(self) -> bool:
        with self._condition:
            return self._advertising_id_ready

    @property
    def referrer_sequence_done(self) -> bool:
        with self._condition:
            return self._referrer_sequence_done

    @property
    def handshake(self) -> Optional[ReferrerHandshake]:
        with self._condition:
            return self._handshake
