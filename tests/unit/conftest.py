"""Общие fixtures для first run тестов: fake install referrer клиент и sink."""

import threading
import time

import pytest

from src.core.domain.referrer import InstallReferrerResponse
from src.first_run.config import FirstRunConfig
from src.first_run.referrer_client import InMemoryAttributionSink


class FakeInstallReferrerClient:
    """Скриптуемый install referrer клиент.

    - response_code=None: сервис молчит (callback не приходит)
    - delay_s=0: callback синхронно внутри start_connection
    - delay_s>0: callback из отдельного потока
    - start_delay_s>0: start_connection блокирует вызывающий поток
    """

    def __init__(
        self,
        response_code=None,
        delay_s=0.0,
        referrer=None,
        start_exception=None,
        referrer_exception=None,
        ready_on_start=False,
        start_delay_s=0.0,
    ):
        self.response_code = response_code
        self.delay_s = delay_s
        self.referrer = referrer
        self.start_exception = start_exception
        self.referrer_exception = referrer_exception
        self.ready_on_start = ready_on_start
        self.start_delay_s = start_delay_s

        self.listener = None
        self.ready = False
        self.start_calls = 0
        self.end_calls = 0

    def start_connection(self, listener):
        self.start_calls += 1
        if self.start_delay_s > 0:
            time.sleep(self.start_delay_s)
        if self.start_exception is not None:
            raise self.start_exception
        self.listener = listener
        self.ready = self.ready_on_start

        if self.response_code is None:
            return
        if self.delay_s <= 0:
            self.deliver(self.response_code)
        else:
            timer = threading.Timer(self.delay_s, self.deliver, args=(self.response_code,))
            timer.daemon = True
            timer.start()

    def deliver(self, response_code):
        self.ready = response_code == InstallReferrerResponse.OK
        self.listener.on_install_referrer_setup_finished(response_code)

    def disconnect(self):
        self.listener.on_install_referrer_service_disconnected()

    def is_ready(self):
        return self.ready

    def end_connection(self):
        self.end_calls += 1
        self.ready = False

    def get_install_referrer(self):
        if self.referrer_exception is not None:
            raise self.referrer_exception
        return self.referrer


@pytest.fixture
def referrer_payload():
    """Валидная install referrer запись."""
    return {
        "install_referrer": "utm_source=google-play&utm_medium=organic",
        "referrer_click_timestamp_seconds": 1700000000,
        "install_begin_timestamp_seconds": 1700000042,
    }


@pytest.fixture
def sink():
    return InMemoryAttributionSink()


@pytest.fixture
def fast_config():
    """Короткий бюджет: wait 300ms, handshake timeout 200ms."""
    return FirstRunConfig(wait_time_ms=300, referrer_timeout_margin_ms=100)


@pytest.fixture
def make_client():
    """Фабрика FakeInstallReferrerClient."""
    def _make(**kwargs):
        return FakeInstallReferrerClient(**kwargs)
    return _make
