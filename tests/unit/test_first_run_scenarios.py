"""Сценарные тесты first run последовательности.

Scenarios:
- Advertising ID на 10ms, referrer OK на 50ms, бюджет 2000ms → выход ~50ms
- Advertising ID не приходит, referrer OK на 5ms, бюджет 300ms → выход ~300ms
- Referrer сервис молчит, внутренний таймаут = бюджет - 100ms → handshake
  завершается по таймауту до общего дедлайна, completion ровно один раз
"""

import threading

import pytest

from src.core.domain.referrer import HandshakeState, InstallReferrerResponse
from src.first_run.config import FirstRunConfig
from src.first_run.gate import FirstRunGate


class CountingGate(FirstRunGate):
    """FirstRunGate, считающий вызовы signal_referrer_sequence_done."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.referrer_signal_calls = 0

    def signal_referrer_sequence_done(self) -> None:
        self.referrer_signal_calls += 1
        super().signal_referrer_sequence_done()


class TestFirstRunScenarios:

    def test_both_signals_before_deadline(self, make_client, sink, referrer_payload):
        client = make_client(
            response_code=InstallReferrerResponse.OK,
            referrer=referrer_payload,
            delay_s=0.05,
        )
        gate = FirstRunGate(
            client_factory=lambda: client,
            sink=sink,
            config=FirstRunConfig(wait_time_ms=2000),
        )
        ad_id = threading.Timer(0.01, gate.signal_advertising_id_ready)
        ad_id.start()

        result = gate.wait_for_first_run_data(2000)
        ad_id.join()

        assert result.complete
        assert not gate.is_waiting()
        assert 40 <= result.elapsed_ms < 1000
        assert sink.snapshot().install_referrer == referrer_payload["install_referrer"]

    def test_advertising_id_never_arrives(self, make_client, sink, referrer_payload):
        client = make_client(
            response_code=InstallReferrerResponse.OK,
            referrer=referrer_payload,
            delay_s=0.005,
        )
        gate = FirstRunGate(
            client_factory=lambda: client,
            sink=sink,
            config=FirstRunConfig(wait_time_ms=300),
        )

        result = gate.wait_for_first_run_data(300)

        assert result.timed_out
        assert gate.is_waiting()
        assert gate.referrer_sequence_done
        assert not gate.advertising_id_ready
        assert 280 <= result.elapsed_ms < 1300

    def test_silent_referrer_service_times_out_first(self, make_client, sink):
        client = make_client(ready_on_start=True)
        config = FirstRunConfig(wait_time_ms=300, referrer_timeout_margin_ms=100)
        gate = CountingGate(client_factory=lambda: client, sink=sink, config=config)
        gate.signal_advertising_id_ready()

        result = gate.wait_for_first_run_data(config.wait_time_ms)

        assert result.complete
        assert result.handshake_state == HandshakeState.TIMED_OUT
        # Handshake таймаут (200ms) разбудил ожидающего до общего дедлайна (300ms)
        assert result.elapsed_ms < config.wait_time_ms
        assert result.elapsed_ms >= 180
        assert gate.referrer_signal_calls == 1
        assert client.end_calls == 1

    @pytest.mark.parametrize(
        "response_code",
        [
            InstallReferrerResponse.SERVICE_UNAVAILABLE,
            InstallReferrerResponse.FEATURE_NOT_SUPPORTED,
            InstallReferrerResponse.DEVELOPER_ERROR,
        ],
    )
    def test_referrer_error_is_completion(self, make_client, sink, response_code):
        client = make_client(response_code=response_code, delay_s=0.01)
        gate = CountingGate(
            client_factory=lambda: client,
            sink=sink,
            config=FirstRunConfig(wait_time_ms=2000),
        )
        gate.signal_advertising_id_ready()

        result = gate.wait_for_first_run_data(2000)

        assert result.complete
        assert result.handshake_state == HandshakeState.ERRORED
        assert gate.referrer_signal_calls == 1
        assert sink.snapshot().install_referrer is None

    def test_slow_start_times_out_before_outer_deadline(self, make_client, sink):
        client = make_client(ready_on_start=True, start_delay_s=0.15)
        config = FirstRunConfig(wait_time_ms=300, referrer_timeout_margin_ms=100)
        gate = CountingGate(client_factory=lambda: client, sink=sink, config=config)
        gate.signal_advertising_id_ready()

        result = gate.wait_for_first_run_data(config.wait_time_ms)

        assert result.complete
        assert result.handshake_state == HandshakeState.TIMED_OUT
        assert gate.handshake.outcome.elapsed_ms < config.wait_time_ms
        assert result.elapsed_ms < config.wait_time_ms
        assert gate.referrer_signal_calls == 1
