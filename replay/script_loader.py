"""
Load a shift script (timed staff actions) from CSV or DataFrame for replay.

Expects columns at (seconds from the start of the shift), action and value.
Common aliases are accepted; rows come back sorted by time.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any

import pandas as pd


COLUMNS = ("at", "action", "value")
ACTIONS = frozenset({"submit", "delete", "undo", "ttl", "disconnect", "reconnect", "wait"})


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Lowercase column names; map common aliases to at/action/value."""
    out = df.copy()
    out.columns = [str(c).lower().strip() for c in out.columns]
    renames = {
        "time": "at",
        "t": "at",
        "seconds": "at",
        "cmd": "action",
        "command": "action",
        "number": "value",
        "arg": "value",
    }
    out = out.rename(columns={k: v for k, v in renames.items() if k in out.columns and v not in out.columns})
    return out


def _clean_value(value: Any) -> Any:
    """Empty cells become None; integral floats (from numeric columns with gaps) become int."""
    if value is None:
        return None
    if isinstance(value, float):
        if math.isnan(value):
            return None
        return int(value) if value.is_integer() else value
    if isinstance(value, str):
        value = value.strip()
        return value or None
    if hasattr(value, "item"):
        return _clean_value(value.item())
    return value


def _finish(df: pd.DataFrame, room_id: str | None) -> pd.DataFrame:
    missing = [c for c in ("at", "action") if c not in df.columns]
    if missing:
        raise ValueError(f"Script is missing column(s): {', '.join(missing)}")
    if "value" not in df.columns:
        df["value"] = None
    df = df[list(COLUMNS)].copy()
    df["at"] = pd.to_numeric(df["at"], errors="raise").astype(float)
    if (df["at"] < 0).any():
        raise ValueError("Script times must not be negative")
    df["action"] = df["action"].astype(str).str.lower().str.strip()
    unknown = sorted(set(df["action"]) - ACTIONS)
    if unknown:
        raise ValueError(f"Unknown script action(s): {', '.join(unknown)}")
    # Built as an object Series so None and ints are not coerced to float NaN.
    df["value"] = pd.Series([_clean_value(v) for v in df["value"]], index=df.index, dtype=object)
    df = df.sort_values("at", kind="mergesort").reset_index(drop=True)
    if room_id is not None:
        df.attrs["room"] = room_id
    return df


def load_csv(path: str | Path, *, room_id: str | None = None) -> pd.DataFrame:
    """
    Load a shift script from a CSV file.

    Parameters
    ----------
    path : str or Path
        Path to the CSV file.
    room_id : str, optional
        Room to replay into (stored in df.attrs['room'] if provided).

    Returns
    -------
    pd.DataFrame
        Columns at (float seconds), action (lowercase) and value (None when
        empty), sorted by at.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    return _finish(_normalize_columns(df), room_id)


def load_dataframe(df: pd.DataFrame, *, room_id: str | None = None) -> pd.DataFrame:
    """
    Normalize a DataFrame into a shift script.

    Parameters
    ----------
    df : pd.DataFrame
        Raw DataFrame (columns may be mixed case or aliased).
    room_id : str, optional
        Room to store in df.attrs['room'].

    Returns
    -------
    pd.DataFrame
        Normalized script with at, action, value.
    """
    return _finish(_normalize_columns(df), room_id)
