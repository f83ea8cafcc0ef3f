"""Tests for the traffic runner CLI."""

import sys, os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

import json

import pytest

from bench import trace_runner
from bench.traffic import TrafficConfig


def test_run_sw_only_counts():
    cfg = TrafficConfig(ticks=500, seed=5, in_valid_prob=1.0, out_ready_prob=1.0)
    result = trace_runner.run_sw_only(cfg)
    assert result["mode"] == "sw_only"
    assert result["ticks"] == 500
    assert result["in_fires"] == 500
    assert result["out_fires"] == 499
    assert result["in_flight"] == 1


def test_run_sw_only_chain():
    cfg = TrafficConfig(ticks=400, seed=2, stages=3, reset_prob=0.02)
    result = trace_runner.run_sw_only(cfg)
    assert result["in_fires"] - result["out_fires"] >= 0
    assert result["resets"] > 0


def test_run_sw_only_held_resets():
    cfg = TrafficConfig(ticks=400, seed=9, in_valid_prob=0.8,
                        reset_hold_prob=0.05)
    result = trace_runner.run_sw_only(cfg)
    assert result["reset_holds"] > 0
    assert result["resets"] == 0
    assert result["in_flight"] <= 1


def test_main_writes_results(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(trace_runner, "RESULTS_DIR", str(tmp_path))
    trace_runner.main(["--mode", "sw_only", "--ticks", "50", "--seed", "9"])

    files = list(tmp_path.glob("*.json"))
    assert len(files) == 1
    data = json.loads(files[0].read_text())
    assert data["mode"] == "sw_only"
    assert data["config"]["ticks"] == 50
    assert data["results"][0]["ticks"] == 50
    assert "Results saved to" in capsys.readouterr().out


def test_main_rejects_bad_config(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(trace_runner, "RESULTS_DIR", str(tmp_path))
    with pytest.raises(SystemExit) as exc:
        trace_runner.main(["--data-width", "0", "--out-ready-prob", "2"])
    assert exc.value.code == 1
    out = capsys.readouterr().out
    assert "data_width" in out and "out_ready_prob" in out
    assert not list(tmp_path.glob("*.json"))


def test_main_rejects_hw_chain(monkeypatch, tmp_path):
    monkeypatch.setattr(trace_runner, "RESULTS_DIR", str(tmp_path))
    with pytest.raises(SystemExit):
        trace_runner.main(["--mode", "hw_sim", "--stages", "2"])
