"""Feature scoring: each aspect of a token becomes a score between 0.0 and 1.0."""

from __future__ import annotations

import logging
import time

from .types import Feature, FeatureScores, OracleConfig, PremintCandidate, TokenData

logger = logging.getLogger(__name__)


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


class OracleFeatureComputer:
    """Computes every feature score for a candidate token."""

    def __init__(self, config: OracleConfig) -> None:
        self.config = config

    @property
    def _thresholds(self):
        return self.config.thresholds

    def compute_all_features(
        self, candidate: PremintCandidate, token_data: TokenData
    ) -> FeatureScores:
        scores = FeatureScores()
        scores.set(Feature.LIQUIDITY, self.compute_liquidity_score(token_data))
        scores.set(Feature.HOLDER_DISTRIBUTION, self.compute_holder_distribution_score(token_data))
        scores.set(Feature.VOLUME_GROWTH, self.compute_volume_growth_score(token_data))
        scores.set(Feature.HOLDER_GROWTH, self.compute_holder_growth_score(token_data))
        scores.set(Feature.PRICE_CHANGE, self.compute_price_change_score(token_data))
        scores.set(Feature.JITO_BUNDLE_PRESENCE, self.compute_jito_bundle_score(candidate))
        scores.set(Feature.CREATOR_SELL_SPEED, self.compute_creator_sell_score(token_data))
        scores.set(Feature.METADATA_QUALITY, self.compute_metadata_quality_score(token_data))
        scores.set(Feature.SOCIAL_ACTIVITY, self.compute_social_activity_score(token_data))
        logger.debug("Computed feature scores: %s", scores.to_dict())
        return scores

    def compute_liquidity_score(self, token_data: TokenData) -> float:
        """0.0 below the minimum liquidity, 1.0 at ten times it, linear between."""
        pool = token_data.liquidity_pool
        if pool is None:
            logger.debug("No liquidity pool found")
            return 0.0
        liquidity = pool.sol_amount
        minimum = self._thresholds.min_liquidity_sol
        maximum = minimum * 10.0
        if liquidity < minimum:
            score = 0.0
        elif liquidity >= maximum:
            score = 1.0
        else:
            score = (liquidity - minimum) / (maximum - minimum)
        logger.debug("Liquidity score: %s SOL -> %s", liquidity, score)
        return _clamp(score)

    def compute_holder_distribution_score(self, token_data: TokenData) -> float:
        """Higher for a less concentrated top ten."""
        holders = token_data.holder_distribution
        if not holders:
            return 0.0
        top_10 = sum(holder.percentage for holder in holders[:10])
        if top_10 >= 0.9:
            score = 0.0
        elif top_10 >= 0.7:
            score = 0.2
        elif top_10 >= 0.5:
            score = 0.5
        elif top_10 >= 0.3:
            score = 0.8
        else:
            score = 1.0
        logger.debug("Holder distribution: top 10 = %.2f%% -> score %s", top_10 * 100.0, score)
        return score

    def compute_volume_growth_score(self, token_data: TokenData) -> float:
        growth = token_data.volume_data.volume_growth_rate
        ceiling = self._thresholds.volume_growth_threshold * 5.0
        if growth <= 1.0:
            score = 0.0
        elif growth >= ceiling:
            score = 1.0
        else:
            score = (growth - 1.0) / (ceiling - 1.0)
        logger.debug("Volume growth: %sx -> score %s", growth, score)
        return _clamp(score)

    def compute_holder_growth_score(self, token_data: TokenData) -> float:
        history = token_data.holder_history
        if len(history) < 2:
            return 0.5
        initial, current = history[0], history[-1]
        growth = current / max(initial, 1)
        ceiling = self._thresholds.holder_growth_threshold * 3.0
        if growth <= 1.0:
            score = 0.0
        elif growth >= ceiling:
            score = 1.0
        else:
            score = (growth - 1.0) / (ceiling - 1.0)
        logger.debug("Holder growth: %sx (%s -> %s) -> score %s", growth, initial, current, score)
        return _clamp(score)

    def compute_price_change_score(self, token_data: TokenData) -> float:
        """Rewards moderate gains; declines and extreme pumps score lower."""
        history = token_data.price_history
        if len(history) < 2:
            return 0.5
        initial, current = history[0], history[-1]
        change = (current - initial) / max(initial, 0.0001)
        if change <= -0.5:
            score = 0.0
        elif change <= 0.0:
            score = 0.2
        elif change <= 0.5:
            score = 0.5 + change
        elif change <= 2.0:
            score = 0.8
        elif change <= 10.0:
            score = 0.9
        else:
            score = 0.7
        logger.debug("Price change: %.2f%% -> score %s", change * 100.0, score)
        return _clamp(score)

    def compute_jito_bundle_score(self, candidate: PremintCandidate) -> float:
        if candidate.is_jito_bundle is None:
            score = 0.5
        elif candidate.is_jito_bundle:
            score = 0.8
        else:
            score = 0.3
        logger.debug("Jito bundle presence: %s -> score %s", candidate.is_jito_bundle, score)
        return score

    def compute_creator_sell_score(self, token_data: TokenData) -> float:
        """Lower when the creator has sold much, and halved when selling started recently."""
        creator = token_data.creator_holdings
        if creator.sell_transactions == 0:
            return 1.0

        if creator.initial_balance > 0:
            sold = (creator.initial_balance - creator.current_balance) / creator.initial_balance
        else:
            sold = 0.0

        time_penalty = 1.0
        if creator.first_sell_timestamp is not None:
            elapsed = max(0, int(time.time()) - creator.first_sell_timestamp)
            if elapsed < self._thresholds.creator_sell_penalty_threshold:
                time_penalty = 0.5

        score = (1.0 - sold) * time_penalty
        logger.debug("Creator sell: %.1f%% sold, %s tx, time_penalty %s -> score %s",
                     sold * 100.0, creator.sell_transactions, time_penalty, score)
        return _clamp(score)

    def compute_metadata_quality_score(self, token_data: TokenData) -> float:
        """0.2 for each of name, symbol, description, image and attributes that looks right."""
        metadata = token_data.metadata
        if metadata is None:
            logger.debug("No metadata available")
            return 0.0

        checks = (
            len(metadata.name.encode()) > 2,
            0 < len(metadata.symbol.encode()) <= 10,
            len(metadata.description.encode()) > 20,
            metadata.image.startswith("http"),
            bool(metadata.attributes),
        )
        factors = sum(checks)
        score = 0.2 * factors
        logger.debug("Metadata quality: %d/5 factors -> score %s", factors, score)
        return _clamp(score)

    def compute_social_activity_score(self, token_data: TokenData) -> float:
        social = token_data.social_activity
        threshold = self._thresholds.social_activity_threshold
        total = (
            social.twitter_mentions * 0.4
            + social.telegram_members * 0.3
            + social.discord_members * 0.3
        )
        if total >= threshold * 5.0:
            score = 1.0
        elif total >= threshold:
            score = total / (threshold * 5.0)
        else:
            score = total / threshold * 0.5
        logger.debug("Social activity: total=%.1f -> score %s", total, score)
        return _clamp(score)