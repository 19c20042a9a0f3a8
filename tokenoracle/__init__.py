"""Token feature scoring, anomaly detection, market regime tracking, decision ledger,
RPC endpoint health, structured logging and index slot leasing for a trading oracle."""

__version__ = "0.1.0"

__all__ = [
    "anomaly",
    "circuit_breaker",
    "data_sources",
    "decision_ledger",
    "features",
    "market_regime_detector",
    "nonce_manager",
    "observability",
    "types",
]