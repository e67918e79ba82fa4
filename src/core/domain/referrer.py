"""
ReferrerDetails — Модель install referrer записи

Immutable Pydantic модели для данных, получаемых от платформенного
install referrer сервиса, и снапшота атрибуции первого запуска.
Полная совместимость с JSON Schema (src/core/contracts/schema/referrer_details.json).
"""

from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class InstallReferrerResponse(IntEnum):
    """
    Код ответа install referrer сервиса.

    Закрытый набор кодов платформы + GENERAL_EXCEPTION для исключений,
    пойманных при старте соединения.
    """

    OK = 0
    SERVICE_UNAVAILABLE = 1
    FEATURE_NOT_SUPPORTED = 2
    DEVELOPER_ERROR = 3
    GENERAL_EXCEPTION = -100

    @classmethod
    def describe(cls, code: int) -> str:
        """Имя кода для логов; UNKNOWN(<code>) для кодов вне набора."""
        try:
            return cls(code).name
        except ValueError:
            return f"UNKNOWN({code})"


class HandshakeState(str, Enum):
    """
    Состояние referrer handshake.

    Терминальные: COMPLETED, ERRORED, TIMED_OUT.
    DISCONNECTED не терминальное (сервис может ответить позже).
    """

    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    DISCONNECTED = "DISCONNECTED"
    COMPLETED = "COMPLETED"
    ERRORED = "ERRORED"
    TIMED_OUT = "TIMED_OUT"

    @property
    def is_terminal(self) -> bool:
        return self in (
            HandshakeState.COMPLETED,
            HandshakeState.ERRORED,
            HandshakeState.TIMED_OUT,
        )


# =============================================================================
# REFERRER DETAILS MODEL
# =============================================================================


class ReferrerDetails(BaseModel):
    """
    Install referrer запись от платформенного сервиса.

    Timestamps в Unix epoch seconds; 0 означает "отсутствует".
    """

    install_referrer: str = Field(..., description="Raw referrer строка")
    referrer_click_timestamp_seconds: int = Field(
        0, ge=0, description="Время клика по referrer (Unix sec, 0 = нет)"
    )
    install_begin_timestamp_seconds: int = Field(
        0, ge=0, description="Время начала установки (Unix sec, 0 = нет)"
    )

    model_config = {"frozen": True}

    @property
    def has_referrer_click_timestamp(self) -> bool:
        return self.referrer_click_timestamp_seconds != 0

    @property
    def has_install_begin_timestamp(self) -> bool:
        return self.install_begin_timestamp_seconds != 0


# =============================================================================
# FIRST RUN ATTRIBUTION SNAPSHOT
# =============================================================================


class FirstRunAttribution(BaseModel):
    """
    Снапшот атрибуции, переданной во внешнее хранилище за первый запуск.

    None означает, что значение не передавалось (в т.ч. нулевые timestamps).
    """

    install_referrer: Optional[str] = Field(
        None, description="Referrer строка (nullable)"
    )
    install_begin_timestamp_seconds: Optional[int] = Field(
        None, gt=0, description="Время начала установки (Unix sec, nullable)"
    )
    referrer_click_timestamp_seconds: Optional[int] = Field(
        None, gt=0, description="Время клика по referrer (Unix sec, nullable)"
    )

    model_config = {"frozen": True}
