"""Detection of suspicious patterns in token behaviour."""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Iterable, Sequence

from .types import CreatorHoldings, HolderData, OracleConfig, TokenData, VolumeData

logger = logging.getLogger(__name__)


class AnomalyType(Enum):
    """Kinds of suspicious token behaviour."""

    SUSPICIOUS_VOLUME_GROWTH = "suspicious_volume_growth"
    HIGH_TRANSACTION_COUNT = "high_transaction_count"
    HIGH_HOLDER_CONCENTRATION = "high_holder_concentration"
    CREATOR_QUICK_SELL = "creator_quick_sell"
    PUMP_AND_DUMP = "pump_and_dump"
    ABNORMAL_HOLDER_GROWTH = "abnormal_holder_growth"
    LIQUIDITY_MANIPULATION = "liquidity_manipulation"


_SEVERITY = {
    AnomalyType.SUSPICIOUS_VOLUME_GROWTH: 0.8,
    AnomalyType.HIGH_TRANSACTION_COUNT: 0.6,
    AnomalyType.HIGH_HOLDER_CONCENTRATION: 0.7,
    AnomalyType.CREATOR_QUICK_SELL: 0.9,
    AnomalyType.PUMP_AND_DUMP: 1.0,
    AnomalyType.ABNORMAL_HOLDER_GROWTH: 0.7,
    AnomalyType.LIQUIDITY_MANIPULATION: 0.9,
}


class AnomalyDetector:
    """Looks for manipulation patterns in token data."""

    def __init__(self, config: OracleConfig) -> None:
        self.config = config

    def detect_anomalies(self, token_data: TokenData) -> bool:
        """Whether any anomaly is present."""
        anomalies = self.identify_all_anomalies(token_data)
        if anomalies:
            logger.warning(
                "Detected %d anomalies: %s", len(anomalies), [a.name for a in anomalies]
            )
            return True
        logger.debug("No anomalies detected")
        return False

    def identify_all_anomalies(self, token_data: TokenData) -> list[AnomalyType]:
        """At most one anomaly per category, in a fixed order of checks."""
        checks: tuple[Callable[[], AnomalyType | None], ...] = (
            lambda: self._check_volume(token_data.volume_data),
            lambda: self._check_holder_distribution(token_data.holder_distribution),
            lambda: self._check_creator_behavior(token_data.creator_holdings),
            lambda: self._check_price_pattern(token_data.price_history),
            lambda: self._check_holder_growth(token_data.holder_history),
            lambda: self._check_liquidity(token_data),
        )
        anomalies = [found for check in checks if (found := check()) is not None]
        logger.debug("Identified %d anomalies", len(anomalies))
        return anomalies

    def _check_volume(self, volume_data: VolumeData) -> AnomalyType | None:
        if volume_data.volume_growth_rate > 10.0:
            logger.warning("Suspicious volume growth: %sx", volume_data.volume_growth_rate)
            return AnomalyType.SUSPICIOUS_VOLUME_GROWTH
        if volume_data.transaction_count > 1000:
            logger.warning("High transaction count: %d", volume_data.transaction_count)
            return AnomalyType.HIGH_TRANSACTION_COUNT
        return None

    def _check_holder_distribution(
        self, holders: Sequence[HolderData]
    ) -> AnomalyType | None:
        if not holders:
            return None
        top = holders[0].percentage
        if top > 0.5:
            logger.warning("High top holder concentration: %.1f%%", top * 100.0)
            return AnomalyType.HIGH_HOLDER_CONCENTRATION
        top_3 = sum(holder.percentage for holder in holders[:3])
        if top_3 > 0.8:
            logger.warning("High top 3 holder concentration: %.1f%%", top_3 * 100.0)
            return AnomalyType.HIGH_HOLDER_CONCENTRATION
        return None

    def _check_creator_behavior(self, creator: CreatorHoldings) -> AnomalyType | None:
        if creator.first_sell_timestamp is not None:
            time_to_sell = max(0, int(time.time()) - creator.first_sell_timestamp)
            if time_to_sell < self.config.thresholds.creator_sell_penalty_threshold:
                logger.warning("Creator quick sell: %ds after launch", time_to_sell)
                return AnomalyType.CREATOR_QUICK_SELL

        if creator.initial_balance > 0:
            sold = (creator.initial_balance - creator.current_balance) / creator.initial_balance
            if sold > 0.8 and creator.sell_transactions > 5:
                logger.warning(
                    "Creator massive sell-off: %.1f%% in %d transactions",
                    sold * 100.0,
                    creator.sell_transactions,
                )
                return AnomalyType.CREATOR_QUICK_SELL
        return None

    def _check_price_pattern(self, price_history: Iterable[float]) -> AnomalyType | None:
        prices = list(price_history)
        if len(prices) < 3:
            return None
        for start, peak, end in zip(prices, prices[1:], prices[2:]):
            if start > 0.0 and peak > 0.0 and end > 0.0:
                pump = peak / start
                dump = end / peak
                if pump > 5.0 and dump < 0.5:
                    logger.warning("Pump and dump pattern: %sx pump, %sx dump", pump, dump)
                    return AnomalyType.PUMP_AND_DUMP
        return None

    def _check_holder_growth(self, holder_history: Iterable[int]) -> AnomalyType | None:
        holders = list(holder_history)
        if len(holders) < 2:
            return None
        for previous, current in zip(holders, holders[1:]):
            if previous > 0:
                growth = current / previous
                if growth > 20.0:
                    logger.warning(
                        "Abnormal holder growth: %d to %d (%.1fx)", previous, current, growth
                    )
                    return AnomalyType.ABNORMAL_HOLDER_GROWTH
        return None

    def _check_liquidity(self, token_data: TokenData) -> AnomalyType | None:
        pool = token_data.liquidity_pool
        if pool is None:
            return None
        liquidity = pool.sol_amount
        if liquidity > 0.0:
            ratio = token_data.volume_data.current_volume / liquidity
            if ratio > 100.0:
                logger.warning("Liquidity manipulation: volume/liquidity ratio = %.1f", ratio)
                return AnomalyType.LIQUIDITY_MANIPULATION
        if pool.token_amount > 0.0:
            price = pool.sol_amount / (pool.token_amount / 10.0**9)
            if price > 1.0:
                logger.warning("Suspicious token price: %s SOL", price)
                return AnomalyType.LIQUIDITY_MANIPULATION
        return None

    def anomaly_severity(self, anomaly_type: AnomalyType) -> float:
        """Severity from 0.0 (minor) to 1.0 (critical)."""
        return _SEVERITY[anomaly_type]

    def calculate_anomaly_score(self, anomalies: Sequence[AnomalyType]) -> float:
        """Mean severity of the anomalies, capped at 1.0; 0.0 when there are none."""
        if not anomalies:
            return 0.0
        total = sum(self.anomaly_severity(anomaly) for anomaly in anomalies)
        return min(total / len(anomalies), 1.0)