import json

import pytest

from bork_activity import __main__ as entry
from bork_activity.models.activity import PaginationCursor
from bork_activity.models.result import PipelineResult, PipelineStatus
from conftest import WALLET, make_settings


class RecordingPipeline:
    instances = []

    def __init__(self, settings):
        self.settings = settings
        self.calls = []
        RecordingPipeline.instances.append(self)

    def run(self, address, cursor=None, include_balances=False):
        self.calls.append((address, cursor, include_balances))
        status = PipelineStatus.COMPLETE if address else PipelineStatus.FAILED
        return PipelineResult(wallet_address=address, status=status, error=None if address else "missing")


def setup(monkeypatch, tmp_path, **overrides):
    RecordingPipeline.instances = []
    monkeypatch.setattr(entry, "settings", make_settings(OUTPUT_DIR=str(tmp_path), **overrides))
    monkeypatch.setattr(entry, "WalletActivityPipeline", RecordingPipeline)


def test_writes_results_json(monkeypatch, tmp_path):
    setup(monkeypatch, tmp_path)

    exit_code = entry.run([WALLET, "--max-pages", "2", "--cursor", "abc", "--balances"])

    assert exit_code == 0
    pipeline = RecordingPipeline.instances[0]
    assert pipeline.settings.MAX_PAGES == 2
    assert pipeline.calls == [(WALLET, PaginationCursor(token="abc", has_more=True), True)]
    written = json.loads((tmp_path / "results.json").read_text())
    assert written["wallet_address"] == WALLET
    assert written["status"] == "complete"


def test_falls_back_to_default_wallet(monkeypatch, tmp_path):
    setup(monkeypatch, tmp_path, DEFAULT_WALLET_ADDRESS=WALLET)

    assert entry.run([]) == 0
    assert RecordingPipeline.instances[0].calls[0][0] == WALLET


def test_failed_run_exits_non_zero(monkeypatch, tmp_path):
    setup(monkeypatch, tmp_path)
    output = tmp_path / "out.json"

    assert entry.run(["--output", str(output)]) == 1
    assert json.loads(output.read_text())["status"] == "failed"


@pytest.mark.parametrize("max_pages", ["0", "-3"])
def test_max_pages_below_one_is_rejected(monkeypatch, tmp_path, max_pages):
    setup(monkeypatch, tmp_path)

    with pytest.raises(SystemExit) as exc:
        entry.run([WALLET, "--max-pages", max_pages])

    assert exc.value.code == 2
    assert RecordingPipeline.instances == []
    assert not (tmp_path / "results.json").exists()
