"""
tests/test_signal_lifecycle.py

SignalLifecycleController: Idle -> Generating -> Ready -> Executing -> Executed,
plus the manual path through ExecutingManual.
"""

import asyncio

import pytest

from trading_console.config.trading import TradingConfig
from trading_console.core.models import ExecutionReceipt, ManualExecutionReceipt, SignalStatus
from trading_console.errors import (
    AlreadyExecutedError,
    ConsoleApiError,
    ExecutionError,
    InvalidTransitionError,
    ParseError,
    SignalGenerationError,
)
from trading_console.signals.lifecycle import (
    Executed,
    Failed,
    Idle,
    Ready,
    SignalLifecycleController,
    meets_threshold,
    parse_manual_signal,
)

from conftest import make_signal

MANUAL_JSON = '{"symbol": "BTCUSDT", "direction": "SHORT", "entry": 65000, "sl": 66000, "tp": 63000}'


def test_generate_moves_to_ready_holding_the_returned_signal(service):
    controller = SignalLifecycleController(service)
    config = TradingConfig.build(confidence_threshold=75)

    signal = asyncio.run(controller.generate(config))

    assert isinstance(controller.state, Ready)
    assert controller.state.signal is signal
    assert signal.symbol == "BTCUSDT"
    assert signal.entry == 65000 and signal.sl == 64000 and signal.tp == 67000
    assert signal.confidence == 80
    assert service.calls[0] == ("generate_signal", ("BTCUSDT", "gpt-3.5-turbo", ("15m", "1h", "4h")))


def test_generate_is_forbidden_in_auto_mode(service):
    controller = SignalLifecycleController(service)
    with pytest.raises(InvalidTransitionError):
        asyncio.run(controller.generate(TradingConfig.build(is_auto_mode=True)))
    assert service.calls == []
    assert isinstance(controller.state, Idle)


def test_generate_is_forbidden_while_generating(service):
    service.delays["generate_signal"] = 0.05
    controller = SignalLifecycleController(service)
    config = TradingConfig()

    async def scenario():
        first = asyncio.create_task(controller.generate(config))
        await asyncio.sleep(0.01)
        with pytest.raises(InvalidTransitionError):
            await controller.generate(config)
        return await first

    asyncio.run(scenario())
    assert service.count("generate_signal") == 1
    assert isinstance(controller.state, Ready)


def test_generation_failure_returns_to_idle(service):
    service.failures["generate_signal"] = ConsoleApiError("OpenAI unavailable")
    controller = SignalLifecycleController(service)

    with pytest.raises(SignalGenerationError, match="OpenAI unavailable"):
        asyncio.run(controller.generate(TradingConfig()))
    assert isinstance(controller.state, Idle)


def test_execute_flips_status_and_rejects_second_attempt(service):
    controller = SignalLifecycleController(service)

    async def scenario():
        signal = await controller.generate(TradingConfig())
        await controller.execute(signal, is_testnet=True)
        return signal

    signal = asyncio.run(scenario())
    assert signal.status == SignalStatus.EXECUTED
    assert isinstance(controller.state, Executed)
    assert controller.state.transaction_id == "tx-1"
    assert service.count("execute_trade") == 1

    with pytest.raises(AlreadyExecutedError):
        asyncio.run(controller.execute(signal, is_testnet=True))
    assert service.count("execute_trade") == 1


def test_execute_rejects_copy_of_executed_signal(service):
    controller = SignalLifecycleController(service)

    async def scenario():
        signal = await controller.generate(TradingConfig())
        stale_copy = signal.model_copy()
        await controller.execute(signal, is_testnet=False)
        with pytest.raises(AlreadyExecutedError):
            await controller.execute(stale_copy, is_testnet=False)

    asyncio.run(scenario())
    assert service.count("execute_trade") == 1


def test_remote_reported_failure_returns_to_ready(service):
    service.execute_receipt = ExecutionReceipt(success=False, message="Insufficient margin")
    controller = SignalLifecycleController(service)

    async def scenario():
        signal = await controller.generate(TradingConfig())
        with pytest.raises(ExecutionError, match="Insufficient margin"):
            await controller.execute(signal, is_testnet=True)
        return signal

    signal = asyncio.run(scenario())
    assert isinstance(controller.state, Ready)
    assert signal.status == SignalStatus.ACTIVE


def test_transport_failure_is_retryable_by_operator(service):
    service.failures["execute_trade"] = ConsoleApiError("timeout")
    controller = SignalLifecycleController(service)

    async def scenario():
        signal = await controller.generate(TradingConfig())
        with pytest.raises(ExecutionError):
            await controller.execute(signal, is_testnet=True)
        del service.failures["execute_trade"]
        await controller.execute(signal, is_testnet=True)

    asyncio.run(scenario())
    assert service.count("execute_trade") == 2
    assert isinstance(controller.state, Executed)


def test_execute_outside_ready_is_rejected(service):
    controller = SignalLifecycleController(service)
    with pytest.raises(InvalidTransitionError):
        asyncio.run(controller.execute(make_signal(), is_testnet=True))
    assert service.calls == []


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "   ",
        "not json",
        "[1, 2]",
        '{"direction": "LONG", "entry": 1}',
        '{"symbol": "BTCUSDT", "direction": "UP", "entry": 1}',
        '{"symbol": "BTCUSDT", "direction": "LONG", "entry": 0}',
        '{"symbol": "BTCUSDT", "direction": "LONG", "entry": "65000"}',
    ],
)
def test_malformed_manual_input_fails_before_any_request(service, raw):
    controller = SignalLifecycleController(service)
    with pytest.raises(ParseError):
        asyncio.run(controller.execute_manual(raw, is_testnet=True))
    assert service.calls == []
    assert isinstance(controller.state, Idle)


def test_manual_execution_keeps_the_service_copy_of_the_signal(service):
    controller = SignalLifecycleController(service)

    executed = asyncio.run(controller.execute_manual(MANUAL_JSON, is_testnet=False))

    assert service.calls == [("execute_manual", (MANUAL_JSON, False))]
    assert executed.signal.id == "sig-manual"
    assert executed.signal.leverage == 20
    assert executed.signal.status == SignalStatus.EXECUTED
    assert controller.current_signal is executed.signal


def test_manual_execution_failure_moves_to_failed(service):
    service.manual_receipt = ManualExecutionReceipt(success=False, message="Invalid signal")
    controller = SignalLifecycleController(service)

    with pytest.raises(ExecutionError, match="Invalid signal"):
        asyncio.run(controller.execute_manual(MANUAL_JSON, is_testnet=True))
    assert isinstance(controller.state, Failed)

    # a failed manual attempt does not block a fresh generation
    asyncio.run(controller.generate(TradingConfig()))
    assert isinstance(controller.state, Ready)


def test_threshold_is_informational():
    config = TradingConfig.build(confidence_threshold=90)
    assert meets_threshold(make_signal(confidence=95), config)
    assert not meets_threshold(make_signal(confidence=80), config)


def test_parse_manual_signal_returns_payload():
    payload = parse_manual_signal(MANUAL_JSON)
    assert payload["direction"] == "SHORT"


def test_chart_prompt_failure_is_surfaced(service):
    controller = SignalLifecycleController(service)
    assert asyncio.run(controller.request_chart_prompt(TradingConfig())) == "chart data"

    service.failures["chart_data_prompt"] = ConsoleApiError("no candles")
    with pytest.raises(SignalGenerationError, match="no candles"):
        asyncio.run(controller.request_chart_prompt(TradingConfig()))


def test_dismiss_returns_finished_signal_to_idle(service):
    controller = SignalLifecycleController(service)

    async def scenario():
        signal = await controller.generate(TradingConfig())
        await controller.execute(signal, True)
        controller.dismiss()

    asyncio.run(scenario())
    assert isinstance(controller.state, Idle)
    assert controller.current_signal is None


def test_dismiss_is_refused_while_generating(service):
    service.delays["generate_signal"] = 0.05
    controller = SignalLifecycleController(service)

    async def scenario():
        pending = asyncio.create_task(controller.generate(TradingConfig()))
        await asyncio.sleep(0.01)
        with pytest.raises(InvalidTransitionError):
            controller.dismiss()
        return await pending

    asyncio.run(scenario())
    assert isinstance(controller.state, Ready)
