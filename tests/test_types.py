from collections import deque

import pytest

from tokenoracle.types import (
    CreatorHoldings,
    Feature,
    FeatureScores,
    MarketRegime,
    OracleConfig,
    PremintCandidate,
    SocialActivity,
    TokenData,
    VolumeData,
)


def test_volume_data_default():
    volume_data = VolumeData()
    assert volume_data.initial_volume == 0.0
    assert volume_data.current_volume == 0.0
    assert volume_data.volume_growth_rate == 1.0
    assert volume_data.transaction_count == 0
    assert volume_data.buy_sell_ratio == 1.0


def test_creator_holdings_default():
    holdings = CreatorHoldings()
    assert holdings.initial_balance == 0
    assert holdings.current_balance == 0
    assert holdings.first_sell_timestamp is None
    assert holdings.sell_transactions == 0


def test_social_activity_default():
    social = SocialActivity()
    assert social.twitter_mentions == 0
    assert social.telegram_members == 0
    assert social.discord_members == 0
    assert social.social_score == 0.0


def test_feature_scores_operations():
    scores = FeatureScores()
    scores.set(Feature.LIQUIDITY, 0.8)
    scores.set(Feature.VOLUME_GROWTH, 0.6)

    assert scores.get(Feature.LIQUIDITY) == 0.8
    assert scores.get(Feature.VOLUME_GROWTH) == 0.6
    assert scores.get(Feature.HOLDER_DISTRIBUTION) == 0.0

    as_dict = scores.to_dict()
    assert as_dict.get("liquidity") == 0.8
    assert as_dict.get("volume_growth") == 0.6


def test_feature_scores_from_dict():
    scores = FeatureScores.from_dict({"liquidity": 0.9, "volume_growth": 0.7})
    assert scores.get(Feature.LIQUIDITY) == 0.9
    assert scores.get(Feature.VOLUME_GROWTH) == 0.7
    assert scores.get(Feature.HOLDER_DISTRIBUTION) == 0.0


def test_feature_scores_from_dict_ignores_unknown_names():
    scores = FeatureScores.from_dict({"liquidity": 0.4, "moon_factor": 1.0})
    assert scores.to_dict() == {"liquidity": 0.4}


def test_feature_scores_round_trip():
    scores = FeatureScores()
    for i, feature in enumerate(Feature.all()):
        scores.set(feature, i / 10)
    restored = FeatureScores.from_dict(scores.to_dict())
    assert restored == scores


def test_set_overwrites_previous_value():
    scores = FeatureScores()
    scores.set(Feature.PRICE_CHANGE, 0.2)
    scores.set(Feature.PRICE_CHANGE, 0.9)
    assert scores.get(Feature.PRICE_CHANGE) == 0.9


def test_feature_all_lists_every_feature_once():
    features = Feature.all()
    assert len(features) == 9
    assert len(set(features)) == 9
    assert features[0] is Feature.LIQUIDITY


@pytest.mark.parametrize(
    "feature, name",
    [
        (Feature.LIQUIDITY, "liquidity"),
        (Feature.HOLDER_DISTRIBUTION, "holder_distribution"),
        (Feature.VOLUME_GROWTH, "volume_growth"),
    ],
)
def test_feature_names(feature, name):
    assert feature.value == name


def test_oracle_config_default_thresholds():
    config = OracleConfig()
    assert config.thresholds.min_liquidity_sol == 10.0
    assert config.pump_fun_api_key is None
    assert config.rpc_retry_attempts > 0


def test_token_data_defaults_are_independent():
    first = TokenData()
    second = TokenData()
    first.holder_history.append(5)
    assert second.holder_history == deque()
    assert first.volume_data == VolumeData()


def test_premint_candidate_optional_fields():
    candidate = PremintCandidate(
        mint="TestMintAddress",
        creator="TestCreatorAddress",
        program="test",
        slot=12345,
        timestamp=1640995200,
    )
    assert candidate.instruction_summary is None
    assert candidate.is_jito_bundle is None


def test_market_regime_members_distinct():
    assert MarketRegime.LOW_ACTIVITY != MarketRegime.BULLISH
    assert MarketRegime("choppy") is MarketRegime.CHOPPY