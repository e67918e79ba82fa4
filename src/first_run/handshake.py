"""Referrer Handshake — обмен с платформенным install referrer сервисом.

State machine:
- IDLE → CONNECTING при старте
- CONNECTING → CONNECTED (OK) → COMPLETED
- CONNECTING → ERRORED (код ошибки платформы или исключение при старте)
- CONNECTING → TIMED_OUT (внутренний таймер)
- CONNECTING → DISCONNECTED (не терминальное, сервис может ответить позже)

Все терминальные переходы вызывают on_complete ровно один раз, какой бы
producer (callback сервиса, таймер, ошибка) ни пришел первым.
Повторов нет.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Optional

from src.core.contracts import validate_referrer_details
from src.core.domain.referrer import HandshakeState, InstallReferrerResponse, ReferrerDetails
from src.first_run.log import get_logger
from src.first_run.referrer_client import AttributionSink, InstallReferrerClient

logger = get_logger(__name__)


# Допустимые переходы; все прочие отбрасываются (гонки producer'ов)
_ALLOWED_TRANSITIONS: Dict[HandshakeState, FrozenSet[HandshakeState]] = {
    HandshakeState.IDLE: frozenset({HandshakeState.CONNECTING}),
    HandshakeState.CONNECTING: frozenset({
        HandshakeState.CONNECTED,
        HandshakeState.DISCONNECTED,
        HandshakeState.ERRORED,
        HandshakeState.TIMED_OUT,
    }),
    HandshakeState.DISCONNECTED: frozenset({
        HandshakeState.CONNECTED,
        HandshakeState.DISCONNECTED,
        HandshakeState.ERRORED,
        HandshakeState.TIMED_OUT,
    }),
    HandshakeState.CONNECTED: frozenset({
        HandshakeState.COMPLETED,
        HandshakeState.TIMED_OUT,
    }),
    HandshakeState.COMPLETED: frozenset(),
    HandshakeState.ERRORED: frozenset(),
    HandshakeState.TIMED_OUT: frozenset(),
}


@dataclass(frozen=True)
class HandshakeOutcome:
    """Терминальный результат handshake."""

    state: HandshakeState
    response_code: Optional[int]
    elapsed_ms: float

    # Для отладки
    details: str


class ReferrerHandshake:
    """Одна попытка install referrer handshake.

    Сам объект является InstallReferrerStateListener для клиента.
    Ни один метод не пробрасывает исключения платформы наружу.
    """

    def __init__(
        self,
        client: InstallReferrerClient,
        sink: AttributionSink,
        on_complete: Callable[[], None],
        timeout_ms: int,
    ):
        """
        Args:
            client: платформенный install referrer клиент
            sink: хранилище для referrer строки и timestamps
            on_complete: уведомление о завершении (вызывается ровно один раз)
            timeout_ms: внутренний таймаут ожидания callback сервиса
        """
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")

        self._client = client
        self._sink = sink
        self._on_complete = on_complete
        self.timeout_ms = timeout_ms

        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None

        self.state = HandshakeState.IDLE
        self.attempt_start_time: Optional[float] = None
        self.timeout_deadline: Optional[float] = None
        self.response_code: Optional[int] = None
        self.outcome: Optional[HandshakeOutcome] = None

    # =========================================================================
    # START
    # =========================================================================

    def start(self) -> None:
        """Старт соединения и таймера. Повторный вызов игнорируется."""
        with self._lock:
            if not self._transition(HandshakeState.CONNECTING):
                return
            self.attempt_start_time = time.monotonic()
            self.timeout_deadline = self.attempt_start_time + self.timeout_ms / 1000.0

        try:
            self._client.start_connection(self)
        except Exception:
            # Соединение не стартовало, закрывать нечего
            logger.exception("Exception")
            self._on_response_error(InstallReferrerResponse.GENERAL_EXCEPTION)
            return

        self._arm_timeout()

    def _arm_timeout(self) -> None:
        with self._lock:
            # Callback мог прийти синхронно внутри start_connection
            if self.state.is_terminal:
                return
            # Отсчет от attempt_start_time: медленный start_connection не сдвигает deadline
            timer = threading.Timer(self._remaining_timeout_s(), self._on_timeout)
            timer.daemon = True
            self._timer = timer
            timer.start()

    # =========================================================================
    # LISTENER CALLBACKS
    # =========================================================================

    def on_install_referrer_setup_finished(self, response_code: int) -> None:
        # Может вызываться в контексте, который нельзя блокировать надолго
        logger.debug(f"onInstallReferrerSetupFinished() CODE: {response_code}")
        if response_code == InstallReferrerResponse.OK:
            self._on_response_ok()
        else:
            self._safely_end_connection()
            self._on_response_error(response_code)

    def on_install_referrer_service_disconnected(self) -> None:
        logger.debug("onInstallReferrerServiceDisconnected()")
        # Binding остается активным; setup_finished придет при следующем подключении
        with self._lock:
            self._transition(HandshakeState.DISCONNECTED)

    # =========================================================================
    # TERMINAL PATHS
    # =========================================================================

    def _on_response_ok(self) -> None:
        logger.debug("onInstallReferrerResponseOK()")
        with self._lock:
            if not self._transition(HandshakeState.CONNECTED):
                return

        try:
            details = self._fetch_referrer_details()
            if details is not None:
                self._forward_referrer_details(details)
        except Exception:
            # Ошибка извлечения не проваливает handshake
            logger.exception("ReferrerDetails exception")

        self._safely_end_connection()
        self._finish(
            HandshakeState.COMPLETED,
            InstallReferrerResponse.OK,
            "Install referrer received",
        )

    def _on_response_error(self, response_code: int) -> None:
        """Ошибка платформы или исключение при старте.

        - SERVICE_UNAVAILABLE: сервис недоступен (обновляется или отсутствует)
        - FEATURE_NOT_SUPPORTED: API недоступен на устройстве
        - DEVELOPER_ERROR: неверное использование (повторное подключение и т.п.)
        - GENERAL_EXCEPTION: исключение при start_connection

        Код важен только для диагностики.
        """
        description = InstallReferrerResponse.describe(response_code)
        logger.debug(f"onInstallReferrerResponseError({response_code})")
        self._finish(
            HandshakeState.ERRORED,
            int(response_code),
            f"Install referrer error: {description}",
        )

    def _on_timeout(self) -> None:
        with self._lock:
            if self.state.is_terminal:
                return
        logger.debug("Install Referrer Service Callback Timeout")
        self._safely_end_connection()
        self._finish(
            HandshakeState.TIMED_OUT,
            None,
            f"No install referrer callback within {self.timeout_ms}ms",
        )

    def _finish(self, new_state: HandshakeState, response_code: Optional[int], details: str) -> None:
        with self._lock:
            if not self._transition(new_state):
                return
            self.response_code = response_code
            self.outcome = HandshakeOutcome(
                state=new_state,
                response_code=response_code,
                elapsed_ms=self._elapsed_ms(),
                details=details,
            )
            timer, self._timer = self._timer, None

        if timer is not None:
            timer.cancel()

        self._on_complete()

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _transition(self, new_state: HandshakeState) -> bool:
        """Переход состояния. Вызывается под self._lock."""
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            logger.debug(f"Handshake transition ignored: {self.state.value} → {new_state.value}")
            return False
        self.state = new_state
        return True

    def _fetch_referrer_details(self) -> Optional[ReferrerDetails]:
        raw = self._client.get_install_referrer()
        if raw is None:
            return None
        data = dict(raw)
        validate_referrer_details(data)
        return ReferrerDetails.model_validate(data)

    def _forward_referrer_details(self, details: ReferrerDetails) -> None:
        logger.debug(f"Install Referrer: {details.install_referrer}")
        self._sink.set_install_referrer(details.install_referrer)

        if details.has_install_begin_timestamp:
            self._sink.set_install_begin_timestamp_seconds(details.install_begin_timestamp_seconds)

        if details.has_referrer_click_timestamp:
            self._sink.set_referrer_click_timestamp_seconds(details.referrer_click_timestamp_seconds)

        logger.debug(
            f"Install Referrer Timestamps: [{details.referrer_click_timestamp_seconds},"
            f"{details.install_begin_timestamp_seconds}]"
        )

    def _safely_end_connection(self) -> None:
        try:
            if self._client.is_ready():
                self._client.end_connection()
        except Exception:
            logger.exception("endConnection exception")

    def _remaining_timeout_s(self) -> float:
        if self.timeout_deadline is None:
            return self.timeout_ms / 1000.0
        return max(0.0, self.timeout_deadline - time.monotonic())

    def _elapsed_ms(self) -> float:
        if self.attempt_start_time is None:
            return 0.0
        return (time.monotonic() - self.attempt_start_time) * 1000.0
