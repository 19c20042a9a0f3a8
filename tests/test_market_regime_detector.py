import asyncio

import httpx
import pytest

from tokenoracle.data_sources import OracleDataSources
from tokenoracle.market_regime_detector import MarketRegimeDetector
from tokenoracle.types import MarketRegime, OracleConfig


def _price_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"solana": {"usd": 150.0}})


def make_detector(client=None):
    sources = OracleDataSources(OracleConfig(), http_client=client or httpx.AsyncClient(
        transport=httpx.MockTransport(_price_handler)))
    return MarketRegimeDetector(sources, 60)


def test_initial_regime_is_low_activity():
    detector = make_detector()
    assert detector.current_regime == MarketRegime.LOW_ACTIVITY
    assert detector.price_history_length == 0


def test_zero_interval_rejected():
    with pytest.raises(ValueError):
        MarketRegimeDetector(OracleDataSources(OracleConfig()), 0)


def test_price_history_management():
    detector = make_detector()
    for i in range(1, 61):
        detector.update_price_history(float(i))
    history = detector.price_history
    assert len(history) == 60
    assert history[0] == 1.0
    assert history[59] == 60.0

    detector.update_price_history(61.0)
    history = detector.price_history
    assert len(history) == 60
    assert history[0] == 2.0
    assert history[59] == 61.0


def test_price_trend_upward():
    detector = make_detector()
    detector.update_price_history(100.0)
    detector.update_price_history(105.0)
    assert detector.calculate_price_trend() == pytest.approx(0.05, abs=0.001)


def test_price_trend_downward():
    detector = make_detector()
    detector.update_price_history(100.0)
    detector.update_price_history(95.0)
    assert detector.calculate_price_trend() == pytest.approx(-0.05, abs=0.001)


def test_price_trend_needs_two_points():
    detector = make_detector()
    detector.update_price_history(100.0)
    assert detector.calculate_price_trend() == 0.0


def test_regime_high_congestion():
    detector = make_detector()
    assert detector.determine_regime(150.0, 2.0, 3500.0, 50_000_000.0) == MarketRegime.HIGH_CONGESTION


def test_regime_choppy():
    detector = make_detector()
    assert detector.determine_regime(150.0, 6.0, 2000.0, 50_000_000.0) == MarketRegime.CHOPPY


def test_regime_low_activity():
    detector = make_detector()
    assert detector.determine_regime(150.0, 1.0, 1000.0, 30_000_000.0) == MarketRegime.LOW_ACTIVITY


def test_regime_bullish_with_rising_history():
    detector = make_detector()
    for price in range(100, 111):
        detector.update_price_history(float(price))
    assert detector.determine_regime(110.0, 1.0, 2000.0, 50_000_000.0) == MarketRegime.BULLISH


def test_regime_bearish_with_falling_history():
    detector = make_detector()
    for price in range(110, 99, -1):
        detector.update_price_history(float(price))
    assert detector.determine_regime(100.0, 1.0, 2000.0, 50_000_000.0) == MarketRegime.BEARISH


def test_short_history_falls_back_to_low_activity():
    detector = make_detector()
    for price in range(100, 105):
        detector.update_price_history(float(price))
    assert detector.determine_regime(104.0, 1.0, 2000.0, 50_000_000.0) == MarketRegime.LOW_ACTIVITY


@pytest.mark.asyncio
async def test_analyze_records_price_and_updates_regime():
    async with httpx.AsyncClient(transport=httpx.MockTransport(_price_handler)) as client:
        detector = make_detector(client)
        regime = await detector.analyze_market_regime()
        assert detector.price_history == [150.0]
        assert detector.current_regime == regime
        assert regime in (MarketRegime.LOW_ACTIVITY, MarketRegime.HIGH_CONGESTION)


@pytest.mark.asyncio
async def test_run_performs_first_analysis_immediately():
    async with httpx.AsyncClient(transport=httpx.MockTransport(_price_handler)) as client:
        detector = make_detector(client)
        task = asyncio.create_task(detector.run())
        try:
            for _ in range(200):
                if detector.price_history_length:
                    break
                await asyncio.sleep(0.01)
        finally:
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
        assert detector.price_history == [150.0]