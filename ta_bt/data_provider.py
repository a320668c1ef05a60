"""Daily bars from CSV."""

from __future__ import annotations

from pathlib import Path
from typing import List

import pandas as pd

from .types import Bar

DATE_ALIASES = ("date", "datetime", "timestamp", "time")

# lower-cased header -> Bar field; "adj close" only fills in when there is no close
_FIELD_ALIASES = {
    "open": "open",
    "high": "high",
    "low": "low",
    "close": "close",
    "volume": "volume",
    "vol": "volume",
}


def load_bars_csv(csv_path: str | Path) -> List[Bar]:
    """Bars from a Date,Open,High,Low,Close[,Volume] CSV.

    Headers are matched case-insensitively. Rows come back sorted by date with
    duplicate dates collapsed to the last row; a missing volume column reads as 0.
    """
    path = Path(csv_path)
    if not path.exists():
        raise FileNotFoundError(str(path))

    raw = pd.read_csv(path)
    headers = {str(c).strip().lower(): c for c in raw.columns}

    date_col = next((headers[a] for a in DATE_ALIASES if a in headers), None)
    if date_col is None:
        raise ValueError(f"{path.name}: no date column (tried {', '.join(DATE_ALIASES)})")

    cols = {field: headers[h] for h, field in _FIELD_ALIASES.items() if h in headers}
    if "close" not in cols:
        adj = headers.get("adj close", headers.get("adjclose"))
        if adj is not None:
            cols["close"] = adj
    missing = [f for f in ("open", "high", "low", "close") if f not in cols]
    if missing:
        raise ValueError(f"{path.name}: missing OHLC columns {missing}")

    df = pd.DataFrame({field: raw[col].astype(float) for field, col in cols.items()})
    if "volume" not in df.columns:
        df["volume"] = 0.0
    df.index = pd.to_datetime(raw[date_col])
    df = df[~df.index.duplicated(keep="last")].sort_index()

    return [
        Bar(
            date=ts.to_pydatetime(),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        )
        for ts, row in zip(df.index, df.itertuples(index=False))
    ]
