"""Token information and market-wide indicators gathered from external sources."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections import deque
from datetime import datetime, timezone
from types import TracebackType
from typing import Awaitable, Callable, Iterable, Iterator, Sequence, TypeVar

import httpx

from .types import (
    Attribute,
    CreatorHoldings,
    HolderData,
    LiquidityPool,
    Metadata,
    OracleConfig,
    PoolType,
    PremintCandidate,
    SocialActivity,
    TokenData,
    VolumeData,
)

logger = logging.getLogger(__name__)

DEFAULT_SOL_PRICE_URL = (
    "http://localhost:8080/api/v3/simple/price?ids=solana&vs_currencies=usd"
)
METADATA_TIMEOUT_SECONDS = 10.0

_T = TypeVar("_T")


class DataSourceError(RuntimeError):
    """Raised when external data cannot be fetched or understood."""


_RETRYABLE = (DataSourceError, httpx.HTTPError)


def _backoff_delays(base_ms: int, max_delay: float, count: int) -> Iterator[float]:
    """Exponential delays in seconds: base, base**2, ... milliseconds, capped."""
    current = base_ms
    for _ in range(count):
        yield min(current / 1000, max_delay)
        current *= base_ms


async def _retry(operation: Callable[[], Awaitable[_T]], delays: Iterable[float]) -> _T:
    for delay in delays:
        try:
            return await operation()
        except _RETRYABLE as exc:
            logger.debug("Attempt failed (%s); retrying in %.1fs", exc, delay)
            await asyncio.sleep(delay)
    return await operation()


def _parse_metadata(payload: object) -> Metadata:
    if not isinstance(payload, dict):
        raise DataSourceError("Failed to parse metadata")
    try:
        return Metadata(
            name=str(payload["name"]),
            symbol=str(payload["symbol"]),
            description=str(payload.get("description", "")),
            image=str(payload.get("image", "")),
            attributes=[
                Attribute(trait_type=str(item["trait_type"]), value=str(item["value"]))
                for item in payload.get("attributes", [])
            ],
        )
    except (KeyError, TypeError) as exc:
        raise DataSourceError("Failed to parse metadata") from exc


class OracleDataSources:
    """Fetches token data and market indicators, with retries."""

    def __init__(
        self,
        config: OracleConfig,
        rpc_endpoints: Sequence[str] = (),
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self.rpc_endpoints = list(rpc_endpoints)
        self.sol_price_url = DEFAULT_SOL_PRICE_URL
        self._owns_client = http_client is None
        self._http = http_client if http_client is not None else httpx.AsyncClient()

    async def __aenter__(self) -> OracleDataSources:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this object created it."""
        if self._owns_client:
            await self._http.aclose()

    async def fetch_token_data_with_retries(self, candidate: PremintCandidate) -> TokenData:
        delays = _backoff_delays(100, 5.0, self.config.rpc_retry_attempts)
        return await _retry(lambda: self.fetch_token_data(candidate), delays)

    async def fetch_token_data(self, candidate: PremintCandidate) -> TokenData:
        """Gather everything known about a candidate's token."""
        if not self.rpc_endpoints:
            raise DataSourceError("No RPC clients available")

        supply, decimals = 1_000_000_000, 9
        metadata_uri = f"https://example.com/metadata/{candidate.mint}.json"
        try:
            metadata: Metadata | None = await self._fetch_metadata(metadata_uri)
        except _RETRYABLE as exc:
            logger.debug("Metadata unavailable for %s: %s", candidate.mint, exc)
            metadata = None

        holders = self._holder_distribution()
        pool = self._liquidity_pool()
        price_history: deque[float] = deque()
        if pool is not None:
            price_history.append(pool.sol_amount / (pool.token_amount / 10**decimals))

        token_data = TokenData(
            supply=supply,
            decimals=decimals,
            metadata_uri=metadata_uri,
            metadata=metadata,
            holder_distribution=holders,
            liquidity_pool=pool,
            volume_data=self._volume_data(),
            creator_holdings=CreatorHoldings(
                initial_balance=150_000_000,
                current_balance=135_000_000,
                first_sell_timestamp=candidate.timestamp - 3600,
                sell_transactions=3,
            ),
            holder_history=deque([len(holders)]),
            price_history=price_history,
            social_activity=SocialActivity(
                twitter_mentions=5,
                telegram_members=150,
                discord_members=75,
                social_score=0.3,
            ),
        )
        logger.debug("Fetched complete token data for %s", candidate.mint)
        return token_data

    async def _fetch_metadata(self, uri: str) -> Metadata:
        response = await self._http.get(uri, timeout=METADATA_TIMEOUT_SECONDS)
        if not response.is_success:
            raise DataSourceError(f"Failed to fetch metadata: {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise DataSourceError("Failed to parse metadata") from exc
        metadata = _parse_metadata(payload)
        logger.debug("Fetched metadata: %s", metadata.name)
        return metadata

    @staticmethod
    def _holder_distribution() -> list[HolderData]:
        return [
            HolderData(address="Creator", percentage=15.0, is_whale=True),
            HolderData(address="LargeHolder", percentage=8.0, is_whale=True),
            HolderData(address="MediumHolder1", percentage=3.5, is_whale=False),
        ]

    def _liquidity_pool(self) -> LiquidityPool | None:
        if self.config.pump_fun_api_key is None:
            logger.debug("No liquidity pools found")
            return None
        return LiquidityPool(
            sol_amount=25.0,
            token_amount=1_000_000.0,
            pool_address="MockPumpFunPool",
            pool_type=PoolType.PUMP_FUN,
        )

    @staticmethod
    def _volume_data() -> VolumeData:
        transaction_count = 150
        estimated_volume = transaction_count * 10.0
        initial_volume = estimated_volume * 0.3
        growth = estimated_volume / initial_volume if initial_volume > 0 else 1.0
        return VolumeData(
            initial_volume=initial_volume,
            current_volume=estimated_volume,
            volume_growth_rate=growth,
            transaction_count=transaction_count,
            buy_sell_ratio=1.0,
        )

    async def fetch_sol_price_usd(self) -> float:
        """Current SOL price in USD from the simple-price API at ``sol_price_url``."""

        async def attempt() -> float:
            response = await self._http.get(self.sol_price_url)
            try:
                payload = response.json()
            except ValueError as exc:
                raise DataSourceError("Failed to parse SOL price") from exc
            try:
                price = payload["solana"]["usd"]
            except (KeyError, TypeError, IndexError):
                price = None
            if isinstance(price, bool) or not isinstance(price, (int, float)):
                raise DataSourceError("Failed to parse SOL price")
            logger.debug("Fetched SOL price: $%.2f", price)
            return float(price)

        return await _retry(attempt, _backoff_delays(500, 3.0, 3))

    def calculate_sol_volatility(self, price_history: Sequence[float]) -> float:
        """Population standard deviation as a percentage of the mean price."""
        if len(price_history) < 2:
            return 0.0
        mean = sum(price_history) / len(price_history)
        variance = sum((p - mean) ** 2 for p in price_history) / len(price_history)
        std_dev = math.sqrt(variance)
        if mean == 0:
            return math.nan if std_dev == 0 else math.copysign(math.inf, std_dev)
        return std_dev / mean * 100.0

    async def fetch_network_tps(self) -> float:
        """Estimated network transactions per second for the current UTC hour."""
        hour = datetime.now(timezone.utc).hour
        if 14 <= hour <= 22:
            tps = 2000.0 + hour * 50.0
        else:
            tps = 1000.0 + hour * 20.0
        logger.debug("Network TPS estimate: %.1f", tps)
        return tps

    async def fetch_global_dex_volume(self) -> float:
        """Estimated daily DEX volume in USD, following a daily cycle."""
        seconds_of_day = int(time.time()) % 86400
        factor = abs(math.sin(seconds_of_day / 86400 * 2.0 * math.pi))
        base_volume = 50_000_000.0
        volume = base_volume + base_volume * 0.5 * factor
        logger.debug("Global DEX volume estimate: $%.0f", volume)
        return volume