"""First Run — синхронизация first run данных (Advertising ID + Install Referrer).

- FirstRunGate: ожидание обоих сигналов с ограничением по времени
- ReferrerHandshake: install referrer handshake с внутренним таймаутом

Хост вызывает configure_logging() при старте, если сам не настраивает logging.
"""

from .config import FirstRunConfig
from .gate import FirstRunGate, FirstRunWaitResult
from .handshake import HandshakeOutcome, ReferrerHandshake
from .log import configure_logging
from .referrer_client import (
    AttributionSink,
    InMemoryAttributionSink,
    InstallReferrerClient,
    InstallReferrerStateListener,
)

__all__ = [
    "FirstRunConfig",
    "FirstRunGate",
    "FirstRunWaitResult",
    "ReferrerHandshake",
    "HandshakeOutcome",
    "AttributionSink",
    "InMemoryAttributionSink",
    "InstallReferrerClient",
    "InstallReferrerStateListener",
    "configure_logging",
]
