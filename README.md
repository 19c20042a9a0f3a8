# tokenoracle

Building blocks for a token-scoring trading oracle.

- `tokenoracle.types`: dataclasses and enums shared by everything else,
  among them `PremintCandidate`, `TokenData`, `OracleConfig` (with its
  `Thresholds`), `MarketRegime`, `Feature` and `FeatureScores`.
- `tokenoracle.features`: `OracleFeatureComputer` turns token data into nine
  feature scores between 0.0 and 1.0: liquidity, holder distribution, volume
  growth, holder growth, price change, Jito bundle presence, creator sell
  speed, metadata quality and social activity.
- `tokenoracle.anomaly`: `AnomalyDetector` flags suspicious volume growth,
  high transaction counts, concentrated holdings, quick creator selling,
  pump-and-dump price moves, abnormal holder growth and liquidity
  manipulation. It also rates their severity.
- `tokenoracle.market_regime_detector`: `MarketRegimeDetector` classifies the
  market as high congestion, choppy, bullish, bearish or low activity.
- `tokenoracle.data_sources`: `OracleDataSources` gathers token data and the
  market indicators the regime detector uses.
- `tokenoracle.decision_ledger`: `DecisionLedger` stores scored decisions and
  their outcomes in SQLite.
- `tokenoracle.circuit_breaker`: `CircuitBreaker` tracks RPC endpoint health.
- `tokenoracle.observability`: `CorrelationId`, structured JSON event logging
  and the `InMemoryMetrics` collector.
- `tokenoracle.nonce_manager`: `IndexSlotManager` hands out a bounded number
  of index slots to concurrent workers.

## Usage

### Feature scores and anomalies

```python
from tokenoracle.types import OracleConfig, PremintCandidate, TokenData
from tokenoracle.features import OracleFeatureComputer
from tokenoracle.anomaly import AnomalyDetector

config = OracleConfig()
candidate = PremintCandidate(
    mint="ExampleMint", creator="ExampleCreator", program="pump.fun",
    slot=12345, timestamp=1640995200, is_jito_bundle=True,
)
token_data = TokenData()

scores = OracleFeatureComputer(config).compute_all_features(candidate, token_data)
print(scores.to_dict())  # {"liquidity": 0.0, ..., "jito_bundle_presence": 0.8, ...}

detector = AnomalyDetector(config)
anomalies = detector.identify_all_anomalies(token_data)
print(detector.detect_anomalies(token_data))
print(detector.calculate_anomaly_score(anomalies))  # mean severity, at most 1.0
```

Each `compute_*_score` method of `OracleFeatureComputer` can also be called on
its own. `FeatureScores.get` returns 0.0 for a feature that was never set.
`FeatureScores.from_dict` ignores names that are not features.

### Market regime

```python
import asyncio
from tokenoracle.types import OracleConfig
from tokenoracle.data_sources import OracleDataSources
from tokenoracle.market_regime_detector import MarketRegimeDetector

async def main():
    async with OracleDataSources(OracleConfig()) as sources:
        detector = MarketRegimeDetector(sources, detection_interval_seconds=60)
        print(await detector.analyze_market_regime())
        print(detector.current_regime)

asyncio.run(main())
```

The rules are applied in this order:

1. Network TPS above 3000 gives high congestion.
2. Volatility above 5% gives choppy.
3. With more than 10 recorded prices, a rise of more than 2% with DEX volume
   above 40M and TPS above 1500 gives bullish.
4. With more than 10 recorded prices, a fall of more than 2% gives bearish.
5. Anything else gives low activity.

The detector keeps the last 60 prices. `run()` repeats the analysis every
interval, forever, and logs any failure without stopping.

`OracleDataSources.fetch_sol_price_usd` reads `{"solana": {"usd": ...}}` from
the URL in its `sol_price_url` attribute. Set that attribute to your price
service. It retries with exponential back-off.

### Decision ledger

```python
from tokenoracle.types import PremintCandidate
from tokenoracle.decision_ledger import (
    DecisionLedger, Outcome, OutcomeKind, ScoredCandidate, TransactionRecord,
)

candidate = PremintCandidate("ExampleMint", "ExampleCreator", "pump.fun", 1, 1000)
scored = ScoredCandidate(base=candidate, mint=candidate.mint, predicted_score=80,
                         reason="strong liquidity")

with DecisionLedger("decisions.db") as ledger:
    ledger.insert_record(TransactionRecord(
        scored_candidate=scored, timestamp_decision_made=1000,
        transaction_signature="ExampleSignature",
    ))
    ledger.update_outcome("ExampleSignature", Outcome(OutcomeKind.LOSS, -0.5))
    for record in ledger.get_records_since(0):
        print(record.actual_outcome)
```

Outcomes are stored as JSON, for example `"NotExecuted"` or `{"Loss":-0.5}`.
In `update_outcome`, a price, amount or timestamp passed as `None` leaves the
stored value as it was. `DecisionLedger.run(record_queue, outcome_queue)` takes
records and outcome updates from two `asyncio.Queue`s. It stops once both
queues have yielded `None`.

### Endpoint health

```python
from tokenoracle.circuit_breaker import CircuitBreaker

breaker = CircuitBreaker(failure_threshold=3, cooldown_seconds=60, sample_size=50)
breaker.record_success("primary")
for _ in range(3):
    breaker.record_failure("backup")

print(breaker.endpoint_state("backup"))   # EndpointState.DEGRADED, still usable
print(breaker.available_endpoints())      # healthy and degraded
print(breaker.healthy_endpoints())        # healthy only
```

An endpoint becomes degraded after `failure_threshold` consecutive failures.
It goes into cooldown in either of two cases:

- twice that many consecutive failures;
- a success rate below 30% once `sample_size` attempts are on record.

When the cooldown has passed, `is_available` lets the endpoint back as
degraded. A degraded endpoint with no current failures and a success rate
above 70% becomes healthy again.

### Correlation IDs, event logs and counters

```python
from tokenoracle.observability import CorrelationId, InMemoryMetrics, log_buy_attempt

cid = CorrelationId.new()                 # "sniper-<millis>-<n>"
event = log_buy_attempt(cid, "ExampleMint", "pump.fun", 4)

collector = InMemoryMetrics()
collector.counter("buys", 5)
collector.counter("buys", 3)
print(collector.get_counter("buys"))      # 8
print(collector.get_counter("sells"))     # None
```

The `log_*` functions write to the standard `logging` module and return the
event dict they logged. `InMemoryMetrics` adds gauge and histogram values to
the counter of the same name, truncated to whole numbers. It ignores tags.

### Index slots

```python
from tokenoracle.nonce_manager import IndexSlotManager

manager = IndexSlotManager(capacity=4)

async def work():
    async with await manager.acquire_index() as lease:
        print(lease.index, manager.available_permits)
```

Slots are handed out lowest free index first. A lease releases its slot when
the `async with` block ends. `acquire_nonce` and `release_nonce` do the same
without a lease. `acquire_nonce` returns a random placeholder public key
together with the index.

## What this package does not do

- It has no command-line program and no long-running service of its own. You
  start `MarketRegimeDetector.run` and `DecisionLedger.run` from your own
  asyncio code.
- It does not read the chain:
  - `OracleDataSources.fetch_token_data` only fetches metadata over HTTP. It
    fills supply, holders, volume, creator holdings and social activity with
    fixed values.
  - It reports a liquidity pool only when `OracleConfig.pump_fun_api_key` is
    set.
  - `fetch_network_tps` and `fetch_global_dex_volume` are estimates from the
    time of day.
- It does not build, sign or send transactions.
- It keeps no registry of latency histograms or percentiles. `InMemoryMetrics`
  keeps summed counters only.

## Tests

The tests use pytest and pytest-asyncio, both listed in the `test` extra:

```
pip install -e ".[test]"
pytest
```