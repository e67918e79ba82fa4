"""Внешние коллабораторы first run логики.

- InstallReferrerClient: платформенный install referrer клиент
- InstallReferrerStateListener: callbacks, которые клиент вызывает
- AttributionSink: хранилище параметров/атрибуции

Реальные реализации живут на стороне платформы; здесь только протоколы
и in-memory sink.
"""

import threading
from typing import Any, Mapping, Optional, Protocol

from src.core.domain.referrer import FirstRunAttribution


class InstallReferrerStateListener(Protocol):
    """Callbacks платформенного install referrer сервиса."""

    def on_install_referrer_setup_finished(self, response_code: int) -> None:
        ...

    def on_install_referrer_service_disconnected(self) -> None:
        ...


class InstallReferrerClient(Protocol):
    """Платформенный install referrer клиент.

    start_connection может вызвать listener синхронно, из другого потока
    или не вызвать никогда.
    """

    def start_connection(self, listener: InstallReferrerStateListener) -> None:
        ...

    def is_ready(self) -> bool:
        ...

    def end_connection(self) -> None:
        ...

    def get_install_referrer(self) -> Optional[Mapping[str, Any]]:
        """Raw referrer запись (см. referrer_details.json) или None."""
        ...


class AttributionSink(Protocol):
    """Хранилище атрибуции/параметров первого запуска."""

    def set_install_referrer(self, install_referrer: str) -> None:
        ...

    def set_install_begin_timestamp_seconds(self, timestamp_seconds: int) -> None:
        ...

    def set_referrer_click_timestamp_seconds(self, timestamp_seconds: int) -> None:
        ...


class InMemoryAttributionSink:
    """Потокобезопасный in-memory AttributionSink."""

    def __init__(self):
        self._lock = threading.Lock()
        self._install_referrer: Optional[str] = None
        self._install_begin_timestamp_seconds: Optional[int] = None
        self._referrer_click_timestamp_seconds: Optional[int] = None

    def set_install_referrer(self, install_referrer: str) -> None:
        with self._lock:
            self._install_referrer = install_referrer

    def set_install_begin_timestamp_seconds(self, timestamp_seconds: int) -> None:
        with self._lock:
            self._install_begin_timestamp_seconds = timestamp_seconds

    def set_referrer_click_timestamp_seconds(self, timestamp_seconds: int) -> None:
        with self._lock:
            self._referrer_click_timestamp_seconds = timestamp_seconds

    def snapshot(self) -> FirstRunAttribution:
        with self._lock:
            return FirstRunAttribution(
                install_referrer=self._install_referrer,
                install_begin_timestamp_seconds=self._install_begin_timestamp_seconds,
                referrer_click_timestamp_seconds=self._referrer_click_timestamp_seconds,
            )
