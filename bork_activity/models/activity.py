"""Domain models for wallet activity ingestion"""
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Set, Tuple, Union

from bork_activity.errors import BorkActivityError, ValidationError

UNKNOWN_COIN = "unknown"

WALLET_ADDRESS_PATTERN = re.compile(r'^0x[a-fA-F0-9]{64}$')


def parse_wallet_address(address: Optional[str]) -> str:
    """Validate a Sui wallet address (0x followed by 64 hex characters)"""
    if not address or not isinstance(address, str):
        raise ValidationError("Wallet address is required")

    address = address.strip()
    if not WALLET_ADDRESS_PATTERN.match(address):
        raise ValidationError(f"Invalid wallet address: {address!r}")
    return address


@dataclass(frozen=True)
class PaginationCursor:
    """Continuation token plus whether the upstream has more pages"""
    token: Optional[str] = None
    has_more: bool = True

    @classmethod
    def start(cls) -> 'PaginationCursor':
        return cls(token=None, has_more=True)


class StopReason(str, Enum):
    """Why pagination ended"""
    EXHAUSTED = "exhausted"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_ERROR = "upstream_error"
    CANCELLED = "cancelled"
    PAGE_LIMIT = "page_limit"


@dataclass
class FetchResult:
    """One page worth of raw records and where to continue from"""
    records: List[Dict[str, Any]]
    next_cursor: PaginationCursor
    terminal: bool
    stop_reason: Optional[StopReason] = None
    error: Optional[BorkActivityError] = None


@dataclass(frozen=True)
class CoinAmount:
    """Balance change of a single fungible coin"""
    coin_type: str
    amount: Decimal


@dataclass(frozen=True)
class CoinMovement:
    """Fungible coin transfer, swap, deposit..."""
    KIND: ClassVar[str] = "coin"

    coins: Tuple[CoinAmount, ...]


@dataclass(frozen=True)
class AssetMovement:
    """Collectible (NFT) event"""
    KIND: ClassVar[str] = "asset"

    asset_type: str
    price: Decimal = Decimal(0)


Movement = Union[CoinMovement, AssetMovement]


@dataclass(frozen=True)
class NormalizedTransaction:
    """Successful upstream record reduced to one uniform shape"""
    timestamp: Optional[datetime]
    activity_types: Tuple[str, ...]
    movement: Movement
    digest: Optional[str] = None

    @property
    def is_asset(self) -> bool:
        return isinstance(self.movement, AssetMovement)

    @property
    def coin_movements(self) -> Tuple[CoinAmount, ...]:
        if isinstance(self.movement, CoinMovement):
            return self.movement.coins
        return ()

    @property
    def asset_type(self) -> Optional[str]:
        if isinstance(self.movement, AssetMovement):
            return self.movement.asset_type
        return None

    @property
    def asset_price(self) -> Optional[Decimal]:
        if isinstance(self.movement, AssetMovement):
            return self.movement.price
        return None

    def as_record(self) -> Dict[str, Any]:
        """Flat view with the movement tagged by kind, as handed to the host"""
        return {
            'timestamp': self.timestamp,
            'activity_types': list(self.activity_types),
            'is_asset': self.is_asset,
            'coin_movements': [asdict(coin) for coin in self.coin_movements],
            'asset_type': self.asset_type,
            'asset_price': self.asset_price,
            'movement': {'kind': self.movement.KIND, **asdict(self.movement)},
            'digest': self.digest
        }


@dataclass
class AssetActivityStats:
    """Collectible totals for one activity type"""
    count: int = 0
    total_price: Decimal = Decimal(0)
    per_asset_type_counts: Dict[str, int] = field(default_factory=dict)


@dataclass
class ActivityStats:
    """Per-activity coin sums and collectible totals"""
    amounts_by_activity: Dict[str, Dict[str, Decimal]] = field(default_factory=dict)
    assets_by_activity: Dict[str, AssetActivityStats] = field(default_factory=dict)

    def coin_types(self) -> Set[str]:
        """All coin types with a running sum under any activity"""
        return {coin for coins in self.amounts_by_activity.values() for coin in coins}


@dataclass
class PriceTable:
    """USD price per coin type; a missing entry means unknown, not zero"""
    prices: Dict[str, float] = field(default_factory=dict)

    def price_of(self, coin_type: str) -> Optional[float]:
        return self.prices.get(coin_type)

    def value_of(self, coin_type: str, amount: Decimal) -> Optional[float]:
        price = self.price_of(coin_type)
        if price is None:
            return None
        return float(amount) * price
