"""Data types shared by the oracle: candidates, token data, configuration and features."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


@dataclass
class PremintCandidate:
    """A freshly observed token launch waiting to be scored."""

    mint: str
    creator: str
    program: str
    slot: int
    timestamp: int
    instruction_summary: str | None = None
    is_jito_bundle: bool | None = None


@dataclass
class Attribute:
    """A single metadata attribute."""

    trait_type: str
    value: str


@dataclass
class Metadata:
    """Off-chain token metadata."""

    name: str
    symbol: str
    description: str = ""
    image: str = ""
    attributes: list[Attribute] = field(default_factory=list)


@dataclass
class HolderData:
    """One holder's share of the supply."""

    address: str
    percentage: float
    is_whale: bool = False


class PoolType(Enum):
    RAYDIUM = "raydium"
    PUMP_FUN = "pump_fun"
    ORCA = "orca"


@dataclass
class LiquidityPool:
    """Liquidity available for a token."""

    sol_amount: float
    token_amount: float
    pool_address: str
    pool_type: PoolType


@dataclass
class VolumeData:
    """Trading volume and transaction activity."""

    initial_volume: float = 0.0
    current_volume: float = 0.0
    volume_growth_rate: float = 1.0
    transaction_count: int = 0
    buy_sell_ratio: float = 1.0


@dataclass
class CreatorHoldings:
    """What the creator holds and how they have sold."""

    initial_balance: int = 0
    current_balance: int = 0
    first_sell_timestamp: int | None = None
    sell_transactions: int = 0


@dataclass
class SocialActivity:
    """Social media reach of a token."""

    twitter_mentions: int = 0
    telegram_members: int = 0
    discord_members: int = 0
    social_score: float = 0.0


@dataclass
class TokenData:
    """Everything known about a token at scoring time."""

    supply: int = 0
    decimals: int = 9
    metadata_uri: str = ""
    metadata: Metadata | None = None
    holder_distribution: list[HolderData] = field(default_factory=list)
    liquidity_pool: LiquidityPool | None = None
    volume_data: VolumeData = field(default_factory=VolumeData)
    creator_holdings: CreatorHoldings = field(default_factory=CreatorHoldings)
    holder_history: deque[int] = field(default_factory=deque)
    price_history: deque[float] = field(default_factory=deque)
    social_activity: SocialActivity = field(default_factory=SocialActivity)


@dataclass
class Thresholds:
    """Scoring thresholds."""

    min_liquidity_sol: float = 10.0
    volume_growth_threshold: float = 2.0
    holder_growth_threshold: float = 2.0
    creator_sell_penalty_threshold: int = 300
    social_activity_threshold: float = 100.0


@dataclass
class OracleConfig:
    """Oracle configuration."""

    thresholds: Thresholds = field(default_factory=Thresholds)
    rpc_retry_attempts: int = 3
    pump_fun_api_key: str | None = None


class MarketRegime(Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    CHOPPY = "choppy"
    HIGH_CONGESTION = "high_congestion"
    LOW_ACTIVITY = "low_activity"


class Feature(Enum):
    LIQUIDITY = "liquidity"
    HOLDER_DISTRIBUTION = "holder_distribution"
    VOLUME_GROWTH = "volume_growth"
    HOLDER_GROWTH = "holder_growth"
    PRICE_CHANGE = "price_change"
    JITO_BUNDLE_PRESENCE = "jito_bundle_presence"
    CREATOR_SELL_SPEED = "creator_sell_speed"
    METADATA_QUALITY = "metadata_quality"
    SOCIAL_ACTIVITY = "social_activity"

    @classmethod
    def all(cls) -> list[Feature]:
        """Every feature, in declaration order."""
        return list(cls)


@dataclass
class FeatureScores:
    """Normalised score per feature; unset features read as 0.0."""

    scores: dict[Feature, float] = field(default_factory=dict)

    def set(self, feature: Feature, value: float) -> None:
        self.scores[feature] = float(value)

    def get(self, feature: Feature) -> float:
        return self.scores.get(feature, 0.0)

    def to_dict(self) -> dict[str, float]:
        """Scores keyed by feature name."""
        return {feature.value: value for feature, value in self.scores.items()}

    @classmethod
    def from_dict(cls, mapping: Mapping[str, float]) -> FeatureScores:
        """Build scores from a name-keyed mapping; unknown names are ignored."""
        known = {feature.value: feature for feature in Feature}
        return cls(
            {known[name]: float(value) for name, value in mapping.items() if name in known}
        )