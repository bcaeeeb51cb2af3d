"""Per-activity statistics over normalized transactions"""
from decimal import Decimal
from typing import Dict, Iterable, Optional

from bork_activity.models.activity import ActivityStats, AssetActivityStats, NormalizedTransaction


class ActivityAggregator:
    """Folds NormalizedTransactions into ActivityStats.

    fold() and merge() never mutate their arguments and only ever add to
    running sums, so the reduction is associative and commutative: any
    ordering of the records, or any split of them into pages that are
    folded separately and merged, gives the same ActivityStats.
    """

    def empty(self) -> ActivityStats:
        return ActivityStats()

    def fold(self, stats: ActivityStats, tx: NormalizedTransaction) -> ActivityStats:
        """Return stats with tx added under each of its activity types"""
        return self.merge(stats, self.of(tx))

    def of(self, tx: NormalizedTransaction) -> ActivityStats:
        """Stats for a single transaction"""
        stats = ActivityStats()
        for activity in tx.activity_types:
            if tx.is_asset:
                asset_stats = AssetActivityStats(count=1, total_price=tx.asset_price or Decimal(0))
                if tx.asset_type:
                    asset_stats.per_asset_type_counts[tx.asset_type] = 1
                stats.assets_by_activity[activity] = asset_stats
            else:
                coins: Dict[str, Decimal] = {}
                for movement in tx.coin_movements:
                    coins[movement.coin_type] = coins.get(movement.coin_type, Decimal(0)) + movement.amount
                stats.amounts_by_activity[activity] = coins
        return stats

    def merge(self, left: ActivityStats, right: ActivityStats) -> ActivityStats:
        """Sum two ActivityStats key by key"""
        amounts = {activity: dict(coins) for activity, coins in left.amounts_by_activity.items()}
        for activity, coins in right.amounts_by_activity.items():
            totals = amounts.setdefault(activity, {})
            for coin, amount in coins.items():
                totals[coin] = totals.get(coin, Decimal(0)) + amount

        assets = {
            activity: AssetActivityStats(
                count=entry.count,
                total_price=entry.total_price,
                per_asset_type_counts=dict(entry.per_asset_type_counts)
            )
            for activity, entry in left.assets_by_activity.items()
        }
        for activity, entry in right.assets_by_activity.items():
            totals = assets.setdefault(activity, AssetActivityStats())
            totals.count += entry.count
            totals.total_price += entry.total_price
            for asset_type, count in entry.per_asset_type_counts.items():
                totals.per_asset_type_counts[asset_type] = totals.per_asset_type_counts.get(asset_type, 0) + count

        return ActivityStats(amounts_by_activity=amounts, assets_by_activity=assets)

    def aggregate(self, transactions: Iterable[NormalizedTransaction],
                  initial: Optional[ActivityStats] = None) -> ActivityStats:
        stats = initial if initial is not None else self.empty()
        for tx in transactions:
            stats = self.fold(stats, tx)
        return stats
