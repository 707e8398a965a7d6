"""
Tests for replay script_loader: load_csv, load_dataframe.
"""

from pathlib import Path

import pandas as pd
import pytest

from replay.script_loader import load_csv, load_dataframe


def test_load_dataframe_normalizes_aliases_and_sorts():
    df = pd.DataFrame({
        "Time": [5, 1, 3],
        "CMD": [" Submit", "undo", "DELETE "],
        "Number": [12, None, 7],
    })
    out = load_dataframe(df, room_id="CAFE01")
    assert list(out.columns) == ["at", "action", "value"]
    assert list(out["at"]) == [1.0, 3.0, 5.0]
    assert list(out["action"]) == ["undo", "delete", "submit"]
    assert list(out["value"]) == [None, 7, 12]
    assert out.attrs.get("room") == "CAFE01"


def test_load_dataframe_keeps_order_for_equal_times():
    df = pd.DataFrame({"at": [1, 1, 1], "action": ["submit", "delete", "undo"], "value": [1, 1, None]})
    assert list(load_dataframe(df)["action"]) == ["submit", "delete", "undo"]


def test_value_column_is_optional():
    out = load_dataframe(pd.DataFrame({"t": [0.5], "action": ["wait"]}))
    assert out.loc[0, "value"] is None
    assert out.loc[0, "at"] == 0.5


def test_unknown_action_rejected():
    with pytest.raises(ValueError, match="refund"):
        load_dataframe(pd.DataFrame({"at": [0], "action": ["refund"], "value": [1]}))


def test_missing_column_rejected():
    with pytest.raises(ValueError, match="action"):
        load_dataframe(pd.DataFrame({"at": [0], "value": [1]}))


def test_negative_time_rejected():
    with pytest.raises(ValueError):
        load_dataframe(pd.DataFrame({"at": [-1], "action": ["wait"]}))


def test_load_csv_empty_cells_become_none(tmp_path):
    path = tmp_path / "shift.csv"
    path.write_text("at,action,value\n0,submit,101\n2.5,undo,\n1,ttl,10\n")
    out = load_csv(path)
    assert list(out["action"]) == ["submit", "ttl", "undo"]
    assert list(out["value"]) == ["101", "10", None]
    assert list(out["at"]) == [0.0, 1.0, 2.5]


def test_load_csv_uses_sample_data():
    """Use the sample shift script in examples/data if present."""
    csv_path = Path(__file__).resolve().parent.parent / "examples" / "data" / "sample_shift.csv"
    if not csv_path.exists():
        pytest.skip("sample_shift.csv not found")
    df = load_csv(csv_path, room_id="CAFE01")
    assert not df.empty
    assert set(df.columns) == {"at", "action", "value"}
    assert df["at"].is_monotonic_increasing
    assert df.attrs.get("room") == "CAFE01"
