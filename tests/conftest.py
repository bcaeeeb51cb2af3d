"""Shared fixtures: zero-delay settings, stub HTTP sessions, record builders."""

import json
from typing import Any, List, Optional

import pytest
import requests

from bork_activity.config import Settings

WALLET = "0x" + "ab" * 32


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = str(payload) if isinstance(payload, Exception) else json.dumps(payload)
        self.text = text

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class StubSession:
    """Returns queued responses in order and records every GET."""

    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": dict(params or {}), "headers": headers, "timeout": timeout})
        if not self.responses:
            raise AssertionError(f"unexpected request to {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_settings(**overrides) -> Settings:
    values = dict(
        BLOCKBERRY_API_KEY="test-key",
        PAGE_DELAY_SECONDS=0,
        BACKOFF_BASE_SECONDS=0,
        TRANSPORT_RETRY_DELAY=0,
        MAX_RATE_LIMIT_RETRIES=5,
        MAX_PAGES=None,
    )
    values.update(overrides)
    return Settings(**values)


def coin_record(activity, coins, status="SUCCESS", timestamp=1737743524190, details_type="DEX"):
    return {
        "txStatus": status,
        "activityType": activity,
        "timestamp": timestamp,
        "digest": "digest-" + str(timestamp),
        "details": {
            "type": details_type,
            "detailsDto": {"coins": [{"coinType": c, "amount": a} for c, a in coins]},
        },
    }


def asset_record(activity, nft_type, price=None, status="SUCCESS", timestamp=1737743524190):
    dto = {"nftType": nft_type}
    if price is not None:
        dto["price"] = price
    return {
        "txStatus": status,
        "activityType": activity,
        "timestamp": timestamp,
        "details": {"type": "NFT", "detailsDto": dto},
    }


def activity_page(records, has_more=False, cursor=None) -> FakeResponse:
    return FakeResponse(200, {"content": records, "hasNextPage": has_more, "nextCursor": cursor})


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection reset")
