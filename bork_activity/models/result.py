"""PipelineResult model definition"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_serializer

from bork_activity.models.activity import (
    ActivityStats,
    NormalizedTransaction,
    PaginationCursor,
    StopReason,
)


class PipelineStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


class PipelineResult(BaseModel):
    """
    Outcome of one wallet activity run, handed to the host as-is.

    Attributes:
        wallet_address: The validated address, or the raw input when validation failed
        status: complete, partial (graceful early stop) or failed
        partial: True whenever pagination stopped before the upstream ran out of pages
        error: Human readable failure or stop message
        stop_reason: Why pagination ended (None if it never started)
        normalized_transactions: Every successful record, in fetch order
        stats: Per-activity aggregates over normalized_transactions
        prices: USD price per coin type; unpriced coins are absent
        usd_by_activity: Per-activity coin sums valued in USD, priced coins only
        balances: Current balances when requested and available
        pages_fetched: Number of activity pages successfully read
        next_cursor: Cursor to resume from when more pages remain
    """
    wallet_address: Optional[str] = None
    status: PipelineStatus = PipelineStatus.COMPLETE
    partial: bool = False
    error: Optional[str] = None
    stop_reason: Optional[StopReason] = None
    normalized_transactions: List[NormalizedTransaction] = Field(default_factory=list)
    stats: ActivityStats = Field(default_factory=ActivityStats)
    prices: Dict[str, float] = Field(default_factory=dict)
    usd_by_activity: Dict[str, Dict[str, float]] = Field(default_factory=dict)
    balances: Optional[Dict[str, Dict[str, Any]]] = None
    pages_fetched: int = 0
    next_cursor: Optional[PaginationCursor] = None

    @field_serializer('normalized_transactions')
    def _serialize_transactions(self, transactions: List[NormalizedTransaction]) -> List[Dict[str, Any]]:
        return [tx.as_record() for tx in transactions]
