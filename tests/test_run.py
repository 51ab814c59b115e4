"""
Unit tests for run.py CLI commands.
"""

import json
import logging

import pytest

import run
from monitor.logger import ConsoleFormatter


def _cleanup_handlers():
    """Drop handlers main() attached so later tests do not write to a closed capture."""
    root = logging.getLogger()
    for h in root.handlers[:]:
        if isinstance(h, logging.FileHandler) or isinstance(h.formatter, ConsoleFormatter):
            h.close()
            root.removeHandler(h)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for var in ("DEFAULT_TAX_RATE", "DEFAULT_FEE_TYPE", "DEFAULT_PROCESSOR_FEE_PERCENTAGE",
                "ANALYTICS_STATUS_FILTER", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    yield
    _cleanup_handlers()


def _write_store(tmp_path, fee_configs=None, restaurants=None, venues=None):
    path = tmp_path / "store.json"
    path.write_text(json.dumps({
        "feeConfigs": fee_configs or {},
        "restaurants": restaurants or {},
        "venues": venues or {},
    }))
    return str(path)


def _write_orders(tmp_path, lines):
    path = tmp_path / "orders.jsonl"
    path.write_text("\n".join(lines) + "\n")
    return str(path)


class TestParseArgs:
    def test_quote_args(self):
        args = run.parse_args(["quote", "--store", "s.json", "--restaurant", "r1", "--subtotal-cents", "2500"])
        assert args.command == "quote"
        assert args.subtotal_cents == 2500
        assert args.breakdown is False

    def test_command_required(self):
        with pytest.raises(SystemExit):
            run.parse_args([])


class TestQuoteCommand:
    def test_quote_with_defaults(self, tmp_path, capsys):
        store = _write_store(tmp_path)
        code = run.main(["quote", "--store", store, "--restaurant", "r1", "--subtotal-cents", "2500"])
        assert code == run.EXIT_OK
        out = json.loads(capsys.readouterr().out)
        assert out["quote"]["totalCents"] == 3030
        assert out["quote"]["taxCents"] == 213

    def test_quote_breakdown(self, tmp_path, capsys):
        store = _write_store(
            tmp_path,
            restaurants={"r1": {"venueId": "v1"}},
            venues={"v1": {"defaultFeePercentage": 5, "venueName": "Food Hall"}},
        )
        code = run.main(["quote", "--store", store, "--restaurant", "r1",
                         "--subtotal-cents", "4000", "--breakdown"])
        assert code == run.EXIT_OK
        out = json.loads(capsys.readouterr().out)
        assert out["quote"]["venueName"] == "Food Hall"
        assert out["breakdown"]["desired_venue_fee"] == 2.0
        assert "platformShortfall" in out["margins"]

    def test_quote_from_items(self, tmp_path, capsys):
        store = _write_store(tmp_path)
        items = tmp_path / "items.json"
        items.write_text(json.dumps([{"price": 12.50, "quantity": 2}]))
        code = run.main(["quote", "--store", store, "--restaurant", "r1", "--items", str(items)])
        assert code == run.EXIT_OK
        out = json.loads(capsys.readouterr().out)
        assert out["quote"]["subtotalCents"] == 2500
        assert out["quote"]["totalCents"] == 3030

    def test_empty_items_rejected(self, tmp_path):
        store = _write_store(tmp_path)
        items = tmp_path / "items.json"
        items.write_text("[]")
        code = run.main(["quote", "--store", store, "--restaurant", "r1", "--items", str(items)])
        assert code == run.EXIT_CONFIG_ERROR

    def test_subtotal_and_items_exclusive(self):
        with pytest.raises(SystemExit):
            run.parse_args(["quote", "--store", "s.json", "--restaurant", "r1",
                            "--subtotal-cents", "100", "--items", "i.json"])

    def test_degenerate_config_exit_code(self, tmp_path, capsys):
        store = _write_store(tmp_path, fee_configs={"r1": {"processorFeePercentage": 100}})
        code = run.main(["quote", "--store", store, "--restaurant", "r1", "--subtotal-cents", "2500"])
        assert code == run.EXIT_CONFIG_ERROR
        assert capsys.readouterr().out == ""


class TestSplitCommand:
    def test_split(self, tmp_path, capsys):
        store = _write_store(tmp_path, fee_configs={"r1": {"taxRate": 0}})
        code = run.main(["split", "--store", store, "--restaurant", "r1", "--total-cents", "1267"])
        assert code == run.EXIT_OK
        split = json.loads(capsys.readouterr().out)["split"]
        assert split["processorFeeAmount"] == 67
        assert split["platformFeeAmount"] == 200
        assert split["restaurantAmount"] == 1000

    def test_invalid_total(self, tmp_path):
        store = _write_store(tmp_path)
        code = run.main(["split", "--store", store, "--restaurant", "r1", "--total-cents", "0"])
        assert code == run.EXIT_CONFIG_ERROR


class TestAnalyticsCommands:
    def _orders(self, tmp_path):
        return _write_orders(tmp_path, [
            json.dumps({"restaurantId": "A", "total": 10, "serviceFee": 1,
                        "createdAt": "2026-03-01T12:00:00Z", "status": "completed"}),
            json.dumps({"restaurantId": "A", "total": 20, "serviceFee": 2,
                        "createdAt": "2026-03-02T12:00:00Z", "status": "completed"}),
            json.dumps({"restaurantId": "B", "total": 5, "serviceFee": 0.5,
                        "createdAt": "2026-03-02T13:00:00Z", "status": "completed"}),
            json.dumps({"restaurantId": "B", "total": 99, "status": "refunded"}),
            "{not json",
            "",
        ])

    def test_analytics_defaults_to_completed(self, tmp_path, capsys):
        code = run.main(["analytics", "--orders", self._orders(tmp_path), "--top", "1"])
        assert code == run.EXIT_OK
        out = json.loads(capsys.readouterr().out)
        assert out["analytics"]["order_count"] == 3
        assert out["analytics"]["total_revenue"] == 35.0
        assert out["topRestaurants"][0]["restaurantId"] == "A"

    def test_analytics_empty_status_counts_all(self, tmp_path, capsys):
        code = run.main(["analytics", "--orders", self._orders(tmp_path), "--status", ""])
        assert code == run.EXIT_OK
        assert json.loads(capsys.readouterr().out)["analytics"]["order_count"] == 4

    def test_trends(self, tmp_path, capsys):
        code = run.main(["trends", "--orders", self._orders(tmp_path), "--group-by", "day"])
        assert code == run.EXIT_OK
        out = json.loads(capsys.readouterr().out)
        assert list(out["trends"]) == ["2026-03-01", "2026-03-02"]
        assert out["trends"]["2026-03-02"]["payments"] == 2
        assert out["totalPeriods"] == 2


class TestLoaders:
    def test_load_orders_skips_bad_lines(self, tmp_path, caplog):
        path = _write_orders(tmp_path, ['{"total": 1}', "oops"])
        with caplog.at_level(logging.WARNING, logger="run"):
            orders = run.load_orders(path)
        assert orders == [{"total": 1}]
        assert "Skipping" in caplog.text

    def test_load_store(self, tmp_path):
        store = run.load_store(_write_store(tmp_path, fee_configs={"r1": {"feeType": "fixed"}}))
        assert store.get_fee_config("r1") == {"feeType": "fixed"}
        assert store.get_venue_fee_config("v1") is None
