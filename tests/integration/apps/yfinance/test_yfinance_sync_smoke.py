from __future__ import annotations

import datetime as dt
import importlib
from pathlib import Path

import pandas as pd
import polars as pl
import pytest

from vol_forecasting.datasets.yfinance import yfinance_time_series_path

pytestmark = pytest.mark.integration

SYNC_YML = "config/yfinance/time_series_sync.yml"


def _sync_module():
    return importlib.import_module("vol_forecasting.apps.yfinance.sync")


def _fake_sync_writing(rows: dict[str, list[dt.datetime]]):
    """A stand-in for the download that writes `rows` as the processed panel."""
    captured: dict[str, object] = {}

    def _fake_sync(**kwargs):
        captured.update(kwargs)
        records = [
            {"date": d, "ticker": ticker, "close": 100.0 + i}
            for ticker, dates in rows.items()
            for i, d in enumerate(dates)
        ]
        out = yfinance_time_series_path(kwargs["proc_root"])
        out.parent.mkdir(parents=True, exist_ok=True)
        pl.DataFrame(records).write_parquet(out)
        return out

    return _fake_sync, captured


def _bdays(start: str, end: str) -> list[dt.datetime]:
    return [d.to_pydatetime() for d in pd.bdate_range(start, end)]


def test_sync_help_mentions_close_panel(run_help) -> None:
    run_help(_sync_module(), "index / vol-index close panel")


def test_sync_print_config_exposes_panel(run_print_config, assert_paths_exist) -> None:
    cfg = run_print_config(_sync_module(), SYNC_YML)
    assert_paths_exist(
        cfg,
        [
            ("paths", "proc_root"),
            ("panel", "index_ticker"),
            ("panel", "vol_indices"),
            ("report", "coverage_csv"),
        ],
    )
    assert cfg["panel"] == {"index_ticker": "SPX", "vol_indices": ["VIX", "VIX3M", "VIX1Y"]}
    assert cfg["report"]["min_rows"] == 252


def test_sync_panel_flags_override_yaml(capsys, parse_printed_config) -> None:
    _sync_module().main(
        [
            "--config",
            SYNC_YML,
            "--index-ticker",
            "NDX",
            "--vol-indices",
            "VXN",
            "--coverage-csv",
            "reports/coverage.csv",
            "--no-overwrite",
            "--print-config",
        ]
    )
    cfg = parse_printed_config(capsys.readouterr().out)
    assert cfg["panel"] == {"index_ticker": "NDX", "vol_indices": ["VXN"]}
    assert cfg["report"]["coverage_csv"] == "reports/coverage.csv"
    assert cfg["overwrite"] is False


@pytest.mark.parametrize(
    ("index_ticker", "vol_indices", "match"),
    [
        ("SPX", [], "at least one implied-vol index"),
        ("", ["VIX"], "index_ticker must be set"),
        ("^VIX", ["VIX", "VIX3M"], "also listed as a vol index"),
    ],
)
def test_panel_tickers_rejects_unusable_panels(index_ticker, vol_indices, match) -> None:
    with pytest.raises(ValueError, match=match):
        _sync_module().panel_tickers(index_ticker, vol_indices)


def test_panel_tickers_normalizes_and_dedupes() -> None:
    out = _sync_module().panel_tickers("^spx", ["vix", "^VIX", " VIX3M "])
    assert out == ["SPX", "VIX", "VIX3M"]


def test_sync_rejects_index_listed_as_vol_index_before_download(
    monkeypatch, tmp_path: Path
) -> None:
    mod = _sync_module()
    monkeypatch.setattr(
        mod,
        "sync_yfinance_time_series",
        lambda **kwargs: pytest.fail("nothing should be downloaded for an invalid panel"),
    )
    with pytest.raises(ValueError, match="also listed as a vol index"):
        mod.main(
            [
                "--config",
                SYNC_YML,
                "--proc-root",
                str(tmp_path / "proc"),
                "--vol-indices",
                "VIX",
                "SPX",
            ]
        )


def test_sync_dry_run_no_side_effects(monkeypatch, tmp_path: Path) -> None:
    mod = _sync_module()
    raw_root = tmp_path / "raw"
    proc_root = tmp_path / "proc"
    coverage_csv = tmp_path / "coverage.csv"

    monkeypatch.setattr(
        mod,
        "sync_yfinance_time_series",
        lambda **kwargs: pytest.fail("sync_yfinance_time_series() should not run in dry-run"),
    )
    mod.main(
        [
            "--config",
            SYNC_YML,
            "--raw-root",
            str(raw_root),
            "--proc-root",
            str(proc_root),
            "--coverage-csv",
            str(coverage_csv),
            "--dry-run",
        ]
    )

    assert not raw_root.exists()
    assert not proc_root.exists()
    assert not coverage_csv.exists()


def test_sync_downloads_panel_and_writes_coverage(monkeypatch, tmp_path: Path) -> None:
    mod = _sync_module()
    proc_root = tmp_path / "proc"
    coverage_csv = tmp_path / "reports" / "coverage.csv"
    fake_sync, captured = _fake_sync_writing(
        {
            "SPX": _bdays("2021-01-04", "2021-03-31"),
            "VIX": _bdays("2021-02-01", "2021-03-31"),
        }
    )
    monkeypatch.setattr(mod, "sync_yfinance_time_series", fake_sync)

    mod.main(
        [
            "--config",
            SYNC_YML,
            "--raw-root",
            str(tmp_path / "raw"),
            "--proc-root",
            str(proc_root),
            "--vol-indices",
            "^VIX",
            "--coverage-csv",
            str(coverage_csv),
            "--log-file",
            str(tmp_path / "sync.log"),
        ]
    )

    assert captured["tickers"] == ["SPX", "VIX"]
    assert captured["proc_root"] == proc_root

    coverage = pd.read_csv(coverage_csv, index_col="ticker", parse_dates=["first_date", "last_date"])
    assert coverage.index.tolist() == ["SPX", "VIX"]
    assert coverage.loc["SPX", "n_rows"] == len(_bdays("2021-01-04", "2021-03-31"))
    assert coverage.loc["VIX", "first_date"] == pd.Timestamp("2021-02-01")
    assert (coverage["n_missing"] == 0).all()

    log_text = (tmp_path / "sync.log").read_text()
    assert "Common window: 2021-02-01 -> 2021-03-31" in log_text
    assert "VIX has only" in log_text


def test_sync_fails_when_a_vol_index_comes_back_empty(monkeypatch, tmp_path: Path) -> None:
    mod = _sync_module()
    coverage_csv = tmp_path / "coverage.csv"
    fake_sync, _ = _fake_sync_writing(
        {"SPX": _bdays("2021-01-04", "2021-01-29"), "VIX": _bdays("2021-01-04", "2021-01-29")}
    )
    monkeypatch.setattr(mod, "sync_yfinance_time_series", fake_sync)

    with pytest.raises(RuntimeError, match="No rows synced for: \\['VIX3M'\\]"):
        mod.main(
            [
                "--config",
                SYNC_YML,
                "--raw-root",
                str(tmp_path / "raw"),
                "--proc-root",
                str(tmp_path / "proc"),
                "--vol-indices",
                "VIX",
                "VIX3M",
                "--coverage-csv",
                str(coverage_csv),
            ]
        )

    coverage = pd.read_csv(coverage_csv, index_col="ticker")
    assert coverage.loc["VIX3M", "n_rows"] == 0


def test_common_window_is_none_without_overlap() -> None:
    mod = _sync_module()
    coverage = pd.DataFrame(
        {
            "first_date": pd.to_datetime(["2020-01-01", "2021-01-01"]),
            "last_date": pd.to_datetime(["2020-06-30", "2021-06-30"]),
            "n_rows": [120, 120],
            "n_missing": [0, 0],
        },
        index=pd.Index(["SPX", "VIX"], name="ticker"),
    )
    assert mod.common_window(coverage) is None

    coverage.loc["VIX", "first_date"] = pd.Timestamp("2020-03-02")
    assert mod.common_window(coverage) == (pd.Timestamp("2020-03-02"), pd.Timestamp("2020-06-30"))
