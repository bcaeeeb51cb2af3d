"""DexScreener token price lookups"""
import logging
import math
from typing import Dict, Iterable, List, Optional

import requests

from bork_activity.config import Settings
from bork_activity.errors import PriceLookupFailure
from bork_activity.models.activity import UNKNOWN_COIN, PriceTable

logger = logging.getLogger(__name__)

class PriceEnricher:
    """Batched USD price lookup for the coin types seen in one run"""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.config = settings.prices
        self.session = session or requests.Session()

    def enrich(self, coin_types: Iterable[str]) -> PriceTable:
        """Build a PriceTable; coins the service cannot price are left out"""
        coins = sorted({coin for coin in coin_types if coin and coin != UNKNOWN_COIN})
        if not coins:
            return PriceTable()

        prices: Dict[str, float] = {}
        for batch in self._batches(coins):
            try:
                prices.update(self._lookup(batch))
            except PriceLookupFailure as e:
                logger.warning(f"Price lookup failed for {len(batch)} coins: {e}")

        missing = len(coins) - len(prices)
        if missing:
            logger.info(f"No USD price for {missing} of {len(coins)} coins")
        return PriceTable(prices)

    def _batches(self, coins: List[str]) -> List[List[str]]:
        size = self.config.batch_size
        return [coins[i:i + size] for i in range(0, len(coins), size)]

    def _lookup(self, coins: List[str]) -> Dict[str, float]:
        url = f"{self.config.base_url}/{','.join(coins)}"
        logger.info(f"Fetching token prices from: {url}")

        try:
            response = self.session.get(url, headers={'accept': 'application/json'}, timeout=self.config.timeout)
        except requests.RequestException as e:
            raise PriceLookupFailure(str(e)) from e

        if response.status_code != 200:
            raise PriceLookupFailure(f"Error fetching token prices: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise PriceLookupFailure(f"Invalid JSON from price service: {e}") from e

        if not isinstance(data, list):
            raise PriceLookupFailure(f"Unexpected price response type: {type(data).__name__}")

        requested = set(coins)
        prices = {}
        for entry in data:
            if not isinstance(entry, dict):
                continue
            base_token = entry.get('baseToken') or {}
            address = base_token.get('address') if isinstance(base_token, dict) else None
            # First pair listed for a token is its most liquid one
            if address not in requested or address in prices:
                continue
            try:
                price = float(entry['priceUsd'])
            except (KeyError, TypeError, ValueError):
                continue
            if math.isfinite(price):
                prices[address] = price
        return prices
