"""Persistent record of scoring decisions and their trading outcomes."""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from os import PathLike
from types import TracebackType
from typing import Any, Awaitable, Callable, TypeVar

from .types import PremintCandidate

logger = logging.getLogger(__name__)

DEFAULT_DB_FILE = "./decisions.db"

_T = TypeVar("_T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS transaction_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    mint TEXT NOT NULL,
    score INTEGER NOT NULL,
    reason TEXT NOT NULL,
    feature_scores TEXT NOT NULL,
    calculation_time INTEGER NOT NULL,
    anomaly_detected BOOLEAN NOT NULL,
    timestamp_decision_made INTEGER NOT NULL,

    transaction_signature TEXT,
    buy_price_sol REAL,
    sell_price_sol REAL,
    amount_bought_tokens REAL,
    amount_sold_tokens REAL,
    initial_sol_spent REAL,
    final_sol_received REAL,

    timestamp_transaction_sent INTEGER,
    timestamp_outcome_evaluated INTEGER,
    actual_outcome TEXT NOT NULL,
    market_context_snapshot TEXT NOT NULL
);
"""

_INSERT = """
INSERT INTO transaction_records (
    mint, score, reason, feature_scores, calculation_time, anomaly_detected,
    timestamp_decision_made, transaction_signature, actual_outcome, market_context_snapshot,
    buy_price_sol, sell_price_sol, amount_bought_tokens, amount_sold_tokens,
    initial_sol_spent, final_sol_received, timestamp_transaction_sent, timestamp_outcome_evaluated
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_UPDATE = """
UPDATE transaction_records
SET
    actual_outcome = ?,
    buy_price_sol = COALESCE(?, buy_price_sol),
    sell_price_sol = COALESCE(?, sell_price_sol),
    initial_sol_spent = COALESCE(?, initial_sol_spent),
    final_sol_received = COALESCE(?, final_sol_received),
    timestamp_outcome_evaluated = COALESCE(?, timestamp_outcome_evaluated)
WHERE transaction_signature = ?;
"""

_SELECT_SINCE = """
SELECT * FROM transaction_records
WHERE timestamp_decision_made >= ?
ORDER BY timestamp_decision_made ASC;
"""


class OutcomeKind(Enum):
    """What became of a decision."""

    PROFIT = "Profit"
    LOSS = "Loss"
    BREAK_EVEN = "BreakEven"
    NOT_EXECUTED = "NotExecuted"
    PENDING_CONFIRMATION = "PendingConfirmation"

    @property
    def carries_amount(self) -> bool:
        return self in (OutcomeKind.PROFIT, OutcomeKind.LOSS)


@dataclass(frozen=True)
class Outcome:
    """The result of a decision; profits and losses carry a SOL amount."""

    kind: OutcomeKind
    amount_sol: float | None = None

    def __post_init__(self) -> None:
        if self.kind.carries_amount and self.amount_sol is None:
            raise ValueError(f"{self.kind.value} outcome needs an amount")
        if not self.kind.carries_amount and self.amount_sol is not None:
            raise ValueError(f"{self.kind.value} outcome takes no amount")

    def to_json(self) -> str:
        """Externally tagged JSON: ``"NotExecuted"`` or ``{"Loss":-0.5}``."""
        if self.amount_sol is None:
            return json.dumps(self.kind.value)
        return json.dumps({self.kind.value: self.amount_sol}, separators=(",", ":"))

    @classmethod
    def from_json(cls, text: str) -> Outcome:
        data = json.loads(text)
        if isinstance(data, str):
            return cls(OutcomeKind(data))
        if isinstance(data, dict) and len(data) == 1:
            ((name, amount),) = data.items()
            if isinstance(amount, bool) or not isinstance(amount, (int, float)):
                raise ValueError(f"outcome amount must be a number, got {amount!r}")
            return cls(OutcomeKind(name), float(amount))
        raise ValueError(f"not an outcome: {text!r}")


@dataclass
class ScoredCandidate:
    """A candidate together with the score the oracle gave it."""

    base: PremintCandidate
    mint: str
    predicted_score: int
    reason: str
    feature_scores: dict[str, float] = field(default_factory=dict)
    calculation_time: int = 0
    anomaly_detected: bool = False
    timestamp: int = 0


@dataclass
class TransactionRecord:
    """One decision and, as it becomes known, its execution and outcome."""

    scored_candidate: ScoredCandidate
    timestamp_decision_made: int
    actual_outcome: Outcome = field(
        default_factory=lambda: Outcome(OutcomeKind.NOT_EXECUTED)
    )
    id: int | None = None
    transaction_signature: str | None = None
    buy_price_sol: float | None = None
    sell_price_sol: float | None = None
    amount_bought_tokens: float | None = None
    amount_sold_tokens: float | None = None
    initial_sol_spent: float | None = None
    final_sol_received: float | None = None
    timestamp_transaction_sent: int | None = None
    timestamp_outcome_evaluated: int | None = None
    market_context_snapshot: dict[str, Any] = field(default_factory=dict)


OutcomeUpdate = tuple[
    str, Outcome, "float | None", "float | None", "float | None", "float | None", "int | None"
]


class DecisionLedger:
    """SQLite-backed store of decisions and their outcomes."""

    def __init__(self, db_path: str | PathLike[str] = DEFAULT_DB_FILE) -> None:
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        with self._conn:
            self._conn.execute(_SCHEMA)
        logger.info("DecisionLedger initialized and connected to %s", db_path)

    def __enter__(self) -> DecisionLedger:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._conn.close()

    def insert_record(self, record: TransactionRecord) -> int:
        """Store a new record; returns its row id."""
        candidate = record.scored_candidate
        logger.debug("Inserting new transaction record for mint: %s", candidate.mint)
        params = (
            candidate.mint,
            candidate.predicted_score,
            candidate.reason,
            json.dumps(candidate.feature_scores),
            candidate.calculation_time,
            candidate.anomaly_detected,
            record.timestamp_decision_made,
            record.transaction_signature,
            record.actual_outcome.to_json(),
            json.dumps(record.market_context_snapshot),
            record.buy_price_sol,
            record.sell_price_sol,
            record.amount_bought_tokens,
            record.amount_sold_tokens,
            record.initial_sol_spent,
            record.final_sol_received,
            record.timestamp_transaction_sent,
            record.timestamp_outcome_evaluated,
        )
        with self._conn:
            cursor = self._conn.execute(_INSERT, params)
        return cursor.lastrowid

    def update_outcome(
        self,
        signature: str,
        outcome: Outcome,
        buy_price_sol: float | None = None,
        sell_price_sol: float | None = None,
        initial_sol_spent: float | None = None,
        final_sol_received: float | None = None,
        timestamp_evaluated: int | None = None,
    ) -> int:
        """Set the outcome of records with this signature; None keeps a stored value.

        Returns the number of records updated.
        """
        logger.debug("Updating outcome for signature: %s", signature)
        params = (
            outcome.to_json(),
            buy_price_sol,
            sell_price_sol,
            initial_sol_spent,
            final_sol_received,
            timestamp_evaluated,
            signature,
        )
        with self._conn:
            cursor = self._conn.execute(_UPDATE, params)
        return cursor.rowcount

    def get_records_since(self, timestamp: int) -> list[TransactionRecord]:
        """Records decided at or after ``timestamp``, oldest first."""
        rows = self._conn.execute(_SELECT_SINCE, (timestamp,)).fetchall()
        return [self._record_from_row(row) for row in rows]

    @staticmethod
    def _record_from_row(row: sqlite3.Row) -> TransactionRecord:
        decided = row["timestamp_decision_made"]
        scored = ScoredCandidate(
            base=PremintCandidate(
                mint=row["mint"], creator="", program="", slot=0, timestamp=decided
            ),
            mint=row["mint"],
            predicted_score=row["score"],
            reason=row["reason"],
            feature_scores=json.loads(row["feature_scores"]),
            calculation_time=row["calculation_time"],
            anomaly_detected=bool(row["anomaly_detected"]),
            timestamp=decided,
        )
        return TransactionRecord(
            id=row["id"],
            scored_candidate=scored,
            transaction_signature=row["transaction_signature"],
            buy_price_sol=row["buy_price_sol"],
            sell_price_sol=row["sell_price_sol"],
            amount_bought_tokens=row["amount_bought_tokens"],
            amount_sold_tokens=row["amount_sold_tokens"],
            initial_sol_spent=row["initial_sol_spent"],
            final_sol_received=row["final_sol_received"],
            timestamp_decision_made=decided,
            timestamp_transaction_sent=row["timestamp_transaction_sent"],
            timestamp_outcome_evaluated=row["timestamp_outcome_evaluated"],
            actual_outcome=Outcome.from_json(row["actual_outcome"]),
            market_context_snapshot=json.loads(row["market_context_snapshot"]),
        )

    async def run(
        self,
        record_queue: asyncio.Queue[TransactionRecord | None],
        outcome_queue: asyncio.Queue[OutcomeUpdate | None],
    ) -> None:
        """Store records and apply outcome updates until both queues yield None."""
        logger.info("DecisionLedger is running...")
        await asyncio.gather(
            self._drain(record_queue, self._apply_record),
            self._drain(outcome_queue, self._apply_update),
        )
        logger.info("DecisionLedger queues closed. Shutting down.")

    @staticmethod
    async def _drain(
        queue: asyncio.Queue[_T | None], handle: Callable[[_T], None]
    ) -> None:
        while (item := await queue.get()) is not None:
            handle(item)
            await asyncio.sleep(0)

    def _apply_record(self, record: TransactionRecord) -> None:
        try:
            self.insert_record(record)
        except Exception:
            logger.exception("Failed to insert transaction record")

    def _apply_update(self, update: OutcomeUpdate) -> None:
        signature = update[0]
        try:
            self.update_outcome(*update)
        except Exception:
            logger.exception("Failed to update outcome for signature %s", signature)