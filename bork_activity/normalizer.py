"""Turns raw Blockberry activity records into NormalizedTransactions"""
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bork_activity.models.activity import (
    UNKNOWN_COIN,
    AssetMovement,
    CoinAmount,
    CoinMovement,
    Movement,
    NormalizedTransaction,
)

logger = logging.getLogger(__name__)

SUCCESS_STATUS = "success"
ASSET_DETAILS_TYPE = "NFT"


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse an upstream number (int, float or numeric string), None if unusable"""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


class RecordNormalizer:
    """Unifies coin-movement and collectible records into one shape"""

    def normalize(self, raw: Any) -> Optional[NormalizedTransaction]:
        """Normalize one record; None unless its status is success"""
        if not isinstance(raw, dict):
            logger.debug(f"Dropping non-object record: {type(raw).__name__}")
            return None

        status = raw.get('txStatus')
        if not isinstance(status, str) or status.lower() != SUCCESS_STATUS:
            return None

        details = _dict(raw.get('details'))
        dto = _dict(details.get('detailsDto'))

        return NormalizedTransaction(
            timestamp=self._timestamp(raw.get('timestamp')),
            activity_types=self._activity_types(raw.get('activityType')),
            movement=self._movement(details, dto),
            digest=raw.get('digest') if isinstance(raw.get('digest'), str) else None
        )

    def normalize_page(self, records: Iterable[Any]) -> List[NormalizedTransaction]:
        normalized = []
        for raw in records:
            tx = self.normalize(raw)
            if tx is not None:
                normalized.append(tx)
        return normalized

    def _movement(self, details: Dict[str, Any], dto: Dict[str, Any]) -> Movement:
        asset_type = dto.get('nftType')
        if details.get('type') == ASSET_DETAILS_TYPE and isinstance(asset_type, str) and asset_type:
            return AssetMovement(asset_type=asset_type, price=to_decimal(dto.get('price')) or Decimal(0))

        coins = []
        raw_coins = dto.get('coins')
        for coin in raw_coins if isinstance(raw_coins, list) else []:
            coin = _dict(coin)
            coin_type = coin.get('coinType')
            amount = to_decimal(coin.get('amount'))
            if isinstance(coin_type, str) and coin_type and amount is not None:
                coins.append(CoinAmount(coin_type=coin_type, amount=amount))

        if not coins:
            coins.append(CoinAmount(coin_type=UNKNOWN_COIN, amount=Decimal(0)))
        return CoinMovement(coins=tuple(coins))

    def _activity_types(self, value: Any) -> Tuple[str, ...]:
        labels = value if isinstance(value, list) else [value]
        # dict.fromkeys keeps first-seen order while dropping repeats
        return tuple(dict.fromkeys(label for label in labels if isinstance(label, str) and label))

    def _timestamp(self, value: Any) -> Optional[datetime]:
        """Epoch milliseconds to an aware UTC datetime"""
        millis = to_decimal(value)
        if millis is None:
            return None
        try:
            return datetime.fromtimestamp(float(millis) / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
