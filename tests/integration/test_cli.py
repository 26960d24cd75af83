from __future__ import annotations

import json
from pathlib import Path

from src.integration.cli import main

CONFIG = """\
schema: luxor/config/v1
params:
  admin: admin-key
  bonus_rate: 100000
  max_stake_count_to_get_bonus: 10
  fee_treasury_rate: 50000
  initial_lxr_allocation_vault: 1000000
market:
  reserve_in: 1000000
  reserve_out: 1000000
"""


def _config(tmp_path: Path) -> str:
    path = tmp_path / "luxor.yaml"
    path.write_text(CONFIG, encoding="utf-8")
    return str(path)


def test_purchase_quote_in_bonus_tier(tmp_path: Path, capsys) -> None:
    rc = main(["purchase", "--config", _config(tmp_path), "--lxr-amount", "10000", "--treasury-balance", "1000000"])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out == {"lxr_amount": 10_000, "sol_amount": 9116, "bonus": True}


def test_purchase_quote_after_bonus(tmp_path: Path, capsys) -> None:
    rc = main(
        [
            "purchase",
            "--config", _config(tmp_path),
            "--lxr-amount", "10000",
            "--treasury-balance", "500000",
            "--stake-count", "10",
        ]
    )
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["sol_amount"] == 5064
    assert out["bonus"] is False


def test_buyback_quote(tmp_path: Path, capsys) -> None:
    rc = main(["buyback", "--config", _config(tmp_path), "--withdrawn", "20000"])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["fee_to_treasury"] == 1000
    assert out["swap"]["input_amount"] == 19_000
    assert out["lxr_bought"] == out["swap"]["output_amount"]


def test_rejected_quote_exit_code(tmp_path: Path, capsys) -> None:
    # 19 lamports at 5% rounds the treasury fee to zero.
    rc = main(["buyback", "--config", _config(tmp_path), "--withdrawn", "19"])
    assert rc == 1
    assert "zero_result" in capsys.readouterr().err


def test_missing_config_exit_code(tmp_path: Path, capsys) -> None:
    rc = main(["buyback", "--config", str(tmp_path / "missing.yaml"), "--withdrawn", "20000"])
    assert rc == 2
    assert "invalid input" in capsys.readouterr().err
