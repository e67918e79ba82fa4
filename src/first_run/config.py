"""Конфигурация first run логики.

- wait_time_ms: общий бюджет ожидания first run данных
- referrer_timeout_margin_ms: насколько внутренний таймаут referrer handshake
  короче общего бюджета (handshake должен завершиться раньше ожидающего потока)
"""

import os
from dataclasses import dataclass
from typing import Final

# Общий бюджет ожидания first run данных (миллисекунды)
FIRST_RUN_LOGIC_WAIT_TIME_MS: Final[int] = 60_000

# Запас между внутренним таймаутом handshake и общим бюджетом (миллисекунды)
REFERRER_TIMEOUT_MARGIN_MS: Final[int] = 100


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else int(v)


@dataclass(frozen=True)
class FirstRunConfig:
    """Конфигурация first run gate.

    Инвариант: 0 <= referrer_timeout_margin_ms < wait_time_ms,
    т.е. внутренний таймаут handshake всегда положителен и строго меньше
    общего бюджета ожидания.
    """
    wait_time_ms: int = FIRST_RUN_LOGIC_WAIT_TIME_MS
    referrer_timeout_margin_ms: int = REFERRER_TIMEOUT_MARGIN_MS

    def __post_init__(self):
        if self.wait_time_ms <= 0:
            raise ValueError(f"wait_time_ms must be positive, got {self.wait_time_ms}")
        if self.referrer_timeout_margin_ms < 0:
            raise ValueError(
                f"referrer_timeout_margin_ms must be non-negative, got {self.referrer_timeout_margin_ms}"
            )
        if self.referrer_timeout_margin_ms >= self.wait_time_ms:
            raise ValueError(
                f"referrer_timeout_margin_ms ({self.referrer_timeout_margin_ms}) "
                f"must be less than wait_time_ms ({self.wait_time_ms})"
            )

    @property
    def referrer_connection_timeout_ms(self) -> int:
        """Внутренний таймаут referrer handshake."""
        return self.wait_time_ms - self.referrer_timeout_margin_ms

    @staticmethod
    def from_env() -> "FirstRunConfig":
        return FirstRunConfig(
            wait_time_ms=_env_int("FIRST_RUN_WAIT_TIME_MS", FIRST_RUN_LOGIC_WAIT_TIME_MS),
            referrer_timeout_margin_ms=_env_int(
                "FIRST_RUN_REFERRER_TIMEOUT_MARGIN_MS", REFERRER_TIMEOUT_MARGIN_MS
            ),
        )
