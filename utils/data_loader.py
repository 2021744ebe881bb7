"""
utils/data_loader.py
────────────────────
Loads manufacturer records from a JSON, CSV or Excel export of the
manufacturer collection.

Flat exports are tolerated:
  - `headquarters.country` / `headquarters_country` columns are nested back
    into a `headquarters` object;
  - list columns (servicesOffered, certifications) may be `;`-delimited strings;
  - empty cells become None.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from config.settings import get_settings
from models.errors import InvalidInputError
from models.schemas import ManufacturerProfile, as_profile
from utils.logger import logger

_HQ_COLUMN = re.compile(r"^headquarters[._](country|city|address)$", re.I)


def _read(path: Path) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix == ".json":
        return pd.read_json(path, orient="records", dtype=False)
    if suffix == ".csv":
        return pd.read_csv(path)
    if suffix in (".xlsx", ".xls"):
        return pd.read_excel(path, engine="openpyxl")
    raise InvalidInputError(f"Unsupported manufacturer file format: '{suffix}'")


def _nest_headquarters(df: pd.DataFrame) -> pd.DataFrame:
    hq_cols = {c: _HQ_COLUMN.match(c).group(1).lower() for c in df.columns if _HQ_COLUMN.match(c)}
    if not hq_cols:
        return df

    def _row_hq(row: pd.Series) -> Optional[dict[str, Any]]:
        hq = {key: row[col] for col, key in hq_cols.items() if row[col] is not None}
        return hq or None

    nested = df.apply(_row_hq, axis=1)
    df = df.drop(columns=list(hq_cols))
    if "headquarters" not in df.columns:
        df["headquarters"] = nested
    else:
        df["headquarters"] = df["headquarters"].where(df["headquarters"].notna(), nested)
    return df


def load_manufacturer_frame(path: str | Path) -> pd.DataFrame:
    """Read a manufacturer export into a DataFrame of raw records."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Manufacturer data not found at {path}.")

    logger.info(f"Loading manufacturers from {path}")
    df = _read(path)
    df = df.dropna(how="all")
    df.columns = [str(c).strip() for c in df.columns]
    df = df.astype(object).where(pd.notna(df), None)
    df = _nest_headquarters(df)
    logger.info(f"Manufacturer file '{path.name}': {len(df)} rows × {len(df.columns)} columns")
    return df


def load_manufacturers(path: str | Path | None = None) -> list[ManufacturerProfile]:
    """Validate every row into a ManufacturerProfile (defaults to settings)."""
    if path is None:
        path = get_settings().manufacturers_path
    df = load_manufacturer_frame(path)
    profiles = [as_profile(record) for record in df.to_dict(orient="records")]
    logger.info(f"Loaded {len(profiles)} manufacturer profiles")
    return profiles
