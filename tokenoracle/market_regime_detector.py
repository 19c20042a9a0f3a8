"""Background classification of the overall market into regimes."""

from __future__ import annotations

import asyncio
import logging
from collections import deque

from .data_sources import OracleDataSources
from .types import MarketRegime

logger = logging.getLogger(__name__)

MAX_PRICE_HISTORY = 60
DEFAULT_TPS = 1000.0
DEFAULT_DEX_VOLUME = 50_000_000.0
BULLISH_VOLUME_THRESHOLD = 40_000_000.0


class MarketRegimeDetector:
    """Periodically reads market indicators and keeps ``current_regime`` up to date."""

    def __init__(self, data_sources: OracleDataSources, detection_interval_seconds: float) -> None:
        if detection_interval_seconds <= 0:
            raise ValueError("detection interval must be positive")
        self.data_sources = data_sources
        self.detection_interval = float(detection_interval_seconds)
        self.current_regime = MarketRegime.LOW_ACTIVITY
        self._price_history: deque[float] = deque(maxlen=MAX_PRICE_HISTORY)

    @property
    def price_history(self) -> list[float]:
        """Recorded SOL prices, oldest first."""
        return list(self._price_history)

    @property
    def price_history_length(self) -> int:
        return len(self._price_history)

    async def run(self) -> None:
        """Analyse the market every interval, forever; failures are logged and skipped."""
        logger.info(
            "MarketRegimeDetector started. Analysis interval: %s seconds",
            self.detection_interval,
        )
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            try:
                await self.analyze_market_regime()
            except Exception as exc:  # keep the background loop alive
                logger.warning("Failed to analyze market regime: %s", exc)
            next_tick += self.detection_interval
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    async def analyze_market_regime(self) -> MarketRegime:
        """Gather indicators, update ``current_regime`` and return it."""
        logger.debug("Performing market regime analysis...")

        try:
            sol_price = await self.data_sources.fetch_sol_price_usd()
        except Exception as exc:
            logger.warning("Failed to fetch SOL price: %s", exc)
            sol_price = 0.0

        if sol_price > 0.0:
            self.update_price_history(sol_price)

        volatility = self.data_sources.calculate_sol_volatility(list(self._price_history))

        try:
            network_tps = await self.data_sources.fetch_network_tps()
        except Exception as exc:
            logger.warning("Failed to fetch network TPS: %s", exc)
            network_tps = DEFAULT_TPS

        try:
            dex_volume = await self.data_sources.fetch_global_dex_volume()
        except Exception as exc:
            logger.warning("Failed to fetch DEX volume: %s", exc)
            dex_volume = DEFAULT_DEX_VOLUME

        new_regime = self.determine_regime(sol_price, volatility, network_tps, dex_volume)

        if new_regime != self.current_regime:
            logger.info(
                "Market Regime Shift Detected: %s -> %s (SOL: $%.2f, Vol: %.1f%%, "
                "TPS: %.0f, DEX Vol: $%.0f)",
                self.current_regime, new_regime, sol_price, volatility, network_tps, dex_volume,
            )
            self.current_regime = new_regime
        else:
            logger.debug(
                "Market regime unchanged: %s (SOL: $%.2f, Vol: %.1f%%, TPS: %.0f)",
                self.current_regime, sol_price, volatility, network_tps,
            )
        return new_regime

    def update_price_history(self, new_price: float) -> None:
        """Append a price, dropping the oldest once the history is full."""
        self._price_history.append(new_price)

    def determine_regime(
        self,
        sol_price: float,
        volatility_percent: float,
        tps: float,
        dex_volume: float,
    ) -> MarketRegime:
        """Rule-based classification of the current market."""
        if tps > 3000.0:
            logger.debug("High TPS detected (%.0f), classifying as HighCongestion", tps)
            return MarketRegime.HIGH_CONGESTION

        if volatility_percent > 5.0:
            logger.debug("High volatility detected (%.1f%%), classifying as Choppy",
                         volatility_percent)
            return MarketRegime.CHOPPY

        if len(self._price_history) > 10 and sol_price > 0.0:
            trend = self.calculate_price_trend()
            if trend > 0.02 and dex_volume > BULLISH_VOLUME_THRESHOLD and tps > 1500.0:
                logger.debug("Bullish conditions: price trend %.1f%%, volume $%.0f, TPS %.0f",
                             trend * 100.0, dex_volume, tps)
                return MarketRegime.BULLISH
            if trend < -0.02:
                logger.debug("Bearish conditions: price trend %.1f%%", trend * 100.0)
                return MarketRegime.BEARISH

        logger.debug("Default to LowActivity (price points: %d)", len(self._price_history))
        return MarketRegime.LOW_ACTIVITY

    def calculate_price_trend(self) -> float:
        """Relative change from the oldest to the newest recorded price."""
        if len(self._price_history) < 2:
            return 0.0
        first, last = self._price_history[0], self._price_history[-1]
        if first <= 0.0:
            return 0.0
        return (last - first) / first