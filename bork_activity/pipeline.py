"""Wallet activity pipeline: fetch, normalize, aggregate, price"""
import logging
import threading
from enum import Enum
from typing import Dict, List, Optional

from bork_activity.aggregation import ActivityAggregator
from bork_activity.config import Settings
from bork_activity.errors import BorkActivityError, ValidationError
from bork_activity.models.activity import (
    ActivityStats,
    NormalizedTransaction,
    PaginationCursor,
    PriceTable,
    StopReason,
    parse_wallet_address,
)
from bork_activity.models.result import PipelineResult, PipelineStatus
from bork_activity.normalizer import RecordNormalizer
from bork_activity.services.blockberry import BlockberryAPI
from bork_activity.services.prices import PriceEnricher

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    AGGREGATING = "aggregating"
    DONE = "done"
    FAILED = "failed"


class WalletActivityPipeline:
    """Drives one wallet query from the first page to the priced result.

    Every run owns its cursor, stats and price table; nothing is shared
    between runs, so independent pipelines can run side by side.
    """

    def __init__(self, settings: Settings, api: Optional[BlockberryAPI] = None,
                 price_enricher: Optional[PriceEnricher] = None,
                 normalizer: Optional[RecordNormalizer] = None,
                 aggregator: Optional[ActivityAggregator] = None):
        self.settings = settings
        self.api = api or BlockberryAPI(settings)
        self.price_enricher = price_enricher or PriceEnricher(settings)
        self.normalizer = normalizer or RecordNormalizer()
        self.aggregator = aggregator or ActivityAggregator()
        self.state = PipelineState.IDLE

    def run(self, address: Optional[str], cancel_event: Optional[threading.Event] = None,
            cursor: Optional[PaginationCursor] = None, include_balances: bool = False) -> PipelineResult:
        """Run the pipeline for one wallet. Never raises pipeline errors."""
        self.state = PipelineState.IDLE
        try:
            address = parse_wallet_address(address)
        except ValidationError as e:
            logger.error(f"Rejected wallet address: {e}")
            self.state = PipelineState.FAILED
            return PipelineResult(
                wallet_address=address if isinstance(address, str) else None,
                status=PipelineStatus.FAILED,
                error=str(e)
            )

        logger.info(f"Fetching activity for wallet: {address}")
        cursor = cursor or PaginationCursor.start()
        stats = self.aggregator.empty()
        transactions: List[NormalizedTransaction] = []
        pages = 0
        stop_reason = StopReason.EXHAUSTED
        error: Optional[BorkActivityError] = None
        max_pages = self.settings.MAX_PAGES

        while cursor.has_more:
            if cancel_event is not None and cancel_event.is_set():
                stop_reason = StopReason.CANCELLED
                break
            if max_pages is not None and pages >= max_pages:
                stop_reason = StopReason.PAGE_LIMIT
                break

            self.state = PipelineState.FETCHING
            page = self.api.fetch_page(address, cursor, cancel_event)

            if page.terminal:
                stop_reason = page.stop_reason or StopReason.UPSTREAM_ERROR
                error = page.error
                break

            self.state = PipelineState.AGGREGATING
            page_transactions = self.normalizer.normalize_page(page.records)
            # Stats are only replaced once the whole page has been folded
            stats = self.aggregator.aggregate(page_transactions, initial=stats)
            transactions.extend(page_transactions)
            pages += 1
            cursor = page.next_cursor
            logger.info(f"Page {pages}: kept {len(page_transactions)} of {len(page.records)} records")

        prices = PriceTable()
        balances = None
        if stop_reason != StopReason.CANCELLED:
            prices = self.price_enricher.enrich(self._coin_types(transactions, stats))
            if include_balances:
                balances = self._balances(address, cancel_event)

        result = self._result(address, stop_reason, error, transactions, stats, prices, balances, pages, cursor)
        self.state = PipelineState.FAILED if result.status == PipelineStatus.FAILED else PipelineState.DONE
        logger.info(f"Finished {address}: {result.status.value} after {pages} pages, "
                    f"{len(transactions)} transactions")
        return result

    def _coin_types(self, transactions: List[NormalizedTransaction], stats: ActivityStats) -> set:
        coins = stats.coin_types()
        for tx in transactions:
            coins.update(movement.coin_type for movement in tx.coin_movements)
        return coins

    def _usd_values(self, stats: ActivityStats, prices: PriceTable) -> Dict[str, Dict[str, float]]:
        values = {}
        for activity, amounts in stats.amounts_by_activity.items():
            for coin, amount in amounts.items():
                value = prices.value_of(coin, amount)
                if value is not None:
                    values.setdefault(activity, {})[coin] = value
        return values

    def _balances(self, address: str, cancel_event: Optional[threading.Event]) -> Optional[dict]:
        try:
            return self.api.get_balances(address, cancel_event)
        except BorkActivityError as e:
            logger.warning(f"Balance lookup failed for {address}: {e}")
            return None

    def _result(self, address: str, stop_reason: StopReason, error: Optional[BorkActivityError],
                transactions: List[NormalizedTransaction], stats: ActivityStats, prices: PriceTable,
                balances: Optional[dict], pages: int, cursor: PaginationCursor) -> PipelineResult:
        if stop_reason == StopReason.EXHAUSTED:
            status = PipelineStatus.COMPLETE
        elif stop_reason == StopReason.UPSTREAM_ERROR:
            status = PipelineStatus.FAILED
        else:
            status = PipelineStatus.PARTIAL

        message = None
        if error is not None:
            message = str(error)
        elif stop_reason == StopReason.CANCELLED:
            message = "Cancelled by caller"
        elif stop_reason == StopReason.PAGE_LIMIT:
            message = f"Stopped after {pages} pages"

        return PipelineResult(
            wallet_address=address,
            status=status,
            partial=status != PipelineStatus.COMPLETE,
            error=message,
            stop_reason=stop_reason,
            normalized_transactions=transactions,
            stats=stats,
            prices=prices.prices,
            usd_by_activity=self._usd_values(stats, prices),
            balances=balances,
            pages_fetched=pages,
            next_cursor=cursor if cursor.has_more else None
        )
