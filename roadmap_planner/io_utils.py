from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pandas as pd
from dateutil import parser as dateparser

from .ledger import normalize_available_days
from .models import (
    DEFAULT_DAYS_PER_MONTH,
    DEFAULT_HORIZON_MONTHS,
    VALUE_LEVERS,
    ZERO_EFFORT_POLICIES,
    ZERO_EFFORT_UNPLACED,
    CapacityRecord,
    PlanningConfig,
)
from .months import Month, MonthLike, next_n_months, parse_optional_month

logger = logging.getLogger(__name__)

_INITIATIVE_REQUIRED_COLUMNS = {
    "id",
    "name",
    "effort",
}

_INITIATIVE_OPTIONAL_COLUMNS = {
    "value_lever": "",
    "uplift": 0.0,
    "confidence": 0.0,
    "start_month": None,
    "deadline_month": None,
    "is_mandatory": False,
    "created_at": None,
    "updated_at": None,
}

_CAPACITY_REQUIRED_COLUMNS = {"month", "available_days"}


def _require_columns(df: pd.DataFrame, required: Iterable[str], source: str) -> None:
    missing = [col for col in sorted(required) if col not in df.columns]
    if missing:
        raise ValueError(f"{source} missing required columns: {', '.join(missing)}")


def _parse_bool(value: object) -> bool:
    if pd.api.types.is_bool(value):
        return bool(value)
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return False
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "t", "1", "yes", "y"}:
            return True
        if lowered in {"false", "f", "0", "no", "n", ""}:
            return False
    raise ValueError(f"cannot interpret boolean value '{value}'")


def _parse_month_column(df: pd.DataFrame, column: str) -> pd.Series:
    def _convert(value: object) -> Optional[Month]:
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return None
        try:
            return parse_optional_month(value)
        except (ValueError, TypeError) as exc:
            raise ValueError(f"invalid month in '{column}': {value}") from exc

    return df[column].map(_convert).astype(object)


def normalize_initiatives(df: pd.DataFrame) -> pd.DataFrame:
    """Clamp numeric fields and parse months so the engine can trust its input."""
    _require_columns(df, _INITIATIVE_REQUIRED_COLUMNS, "initiatives")
    df = df.copy()
    for column, default in _INITIATIVE_OPTIONAL_COLUMNS.items():
        if column not in df.columns:
            df[column] = default
    for column in ("uplift", "confidence", "effort"):
        numeric = pd.to_numeric(df[column], errors="coerce")
        bad = numeric.isna() & df[column].notna()
        for row_id, raw in zip(df.loc[bad, "id"], df.loc[bad, column]):
            logger.warning("initiative %s has non-numeric %s %r", row_id, column, raw)
        df[column] = numeric.astype(float)
    # effort stays NaN when unreadable so the scheduler can flag it
    df["effort"] = df["effort"].clip(lower=0.0)
    df["uplift"] = df["uplift"].fillna(0.0).clip(lower=0.0)
    df["confidence"] = df["confidence"].fillna(0.0).clip(lower=0.0, upper=100.0)
    df["is_mandatory"] = df["is_mandatory"].map(_parse_bool)
    df["start_month"] = _parse_month_column(df, "start_month")
    df["deadline_month"] = _parse_month_column(df, "deadline_month")
    df["value_lever"] = df["value_lever"].fillna("").astype(str).str.strip()
    unknown = sorted({lever for lever in df["value_lever"] if lever and lever not in VALUE_LEVERS})
    if unknown:
        logger.warning("unrecognised value levers kept as-is: %s", ", ".join(unknown))
    return df


def load_initiatives(path: str | Path) -> pd.DataFrame:
    try:
        df = pd.read_csv(path, dtype={"id": str})
    except pd.errors.EmptyDataError as exc:
        raise ValueError("initiatives file is empty") from exc
    _require_columns(df, _INITIATIVE_REQUIRED_COLUMNS, "initiatives.csv")
    if df["id"].duplicated().any():
        dupes = ", ".join(sorted(set(df.loc[df["id"].duplicated(), "id"])))
        raise ValueError(f"initiatives.csv contains duplicate ids: {dupes}")
    return normalize_initiatives(df)


def normalize_capacity(df: pd.DataFrame) -> pd.DataFrame:
    """Parse months and round available days the way the ledger books them."""
    _require_columns(df, _CAPACITY_REQUIRED_COLUMNS, "capacity")
    df = df.copy()
    try:
        df["available_days"] = pd.to_numeric(df["available_days"])
    except (ValueError, TypeError) as exc:
        raise ValueError("invalid numeric value in column 'available_days'") from exc
    df["available_days"] = df["available_days"].map(normalize_available_days)
    try:
        df["month"] = df["month"].map(Month.parse).astype(object)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"invalid month in capacity: {exc}") from exc
    return df[["month", "available_days"]]


def load_capacity(path: str | Path) -> pd.DataFrame:
    path = Path(path)
    if path.suffix.lower() == ".json":
        data = json.loads(path.read_text())
        if not isinstance(data, list):
            raise ValueError("capacity file must be a JSON array")
        for entry in data:
            if not isinstance(entry, dict):
                raise ValueError("capacity entries must be objects")
        if data:
            df = pd.DataFrame(data)
        else:
            df = pd.DataFrame(columns=["month", "available_days"])
    else:
        df = pd.read_csv(path, dtype={"month": str})
    return normalize_capacity(df)


def capacity_records_from_df(df: pd.DataFrame) -> List[CapacityRecord]:
    return [
        CapacityRecord(month=Month.parse(row.month), available_days=float(row.available_days))
        for row in df.itertuples(index=False)
    ]


def fill_capacity_horizon(
    records: Iterable[CapacityRecord],
    start: MonthLike,
    months: int,
    default_days: float = DEFAULT_DAYS_PER_MONTH,
) -> List[CapacityRecord]:
    """Contiguous horizon of ``months`` records beginning at ``start``.

    Recorded months keep their value; gaps get ``default_days``. Records
    outside the horizon are dropped.
    """
    recorded: Dict[Month, float] = {record.month: record.available_days for record in records}
    horizon: List[CapacityRecord] = []
    for month in next_n_months(months, start):
        if month in recorded:
            horizon.append(CapacityRecord(month=month, available_days=recorded[month]))
        else:
            horizon.append(CapacityRecord(month=month, available_days=float(default_days)))
    return horizon


def capacity_frame(records: Iterable[CapacityRecord]) -> pd.DataFrame:
    rows = [{"month": record.month, "available_days": record.available_days} for record in records]
    return pd.DataFrame(rows, columns=["month", "available_days"])


def load_config(path: str | Path) -> PlanningConfig:
    data = json.loads(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError("config file must be a JSON object")
    planning_start_raw = data.get("planning_start")
    planning_start: date
    if planning_start_raw is None:
        planning_start = date.today().replace(day=1)
    else:
        try:
            planning_start = dateparser.isoparse(planning_start_raw).date()
        except (ValueError, TypeError) as exc:
            raise ValueError("planning_start must be a valid ISO date string") from exc
    horizon = data.get("horizon_months", DEFAULT_HORIZON_MONTHS)
    if not isinstance(horizon, int) or isinstance(horizon, bool) or horizon <= 0:
        raise ValueError("horizon_months must be a positive integer")
    default_days = data.get("default_days_per_month", DEFAULT_DAYS_PER_MONTH)
    if not isinstance(default_days, (int, float)) or isinstance(default_days, bool):
        raise ValueError("default_days_per_month must be a number")
    if default_days < 0:
        raise ValueError("default_days_per_month must not be negative")
    zero_effort_policy = data.get("zero_effort_policy", ZERO_EFFORT_UNPLACED)
    if zero_effort_policy not in ZERO_EFFORT_POLICIES:
        allowed = ", ".join(ZERO_EFFORT_POLICIES)
        raise ValueError(f"zero_effort_policy must be one of: {allowed}")
    logging_level = data.get("logging_level", "INFO")
    if not isinstance(logging_level, str):
        raise ValueError("logging_level must be a string")
    return PlanningConfig(
        planning_start=planning_start,
        horizon_months=horizon,
        default_days_per_month=float(default_days),
        zero_effort_policy=zero_effort_policy,
        logging_level=logging_level,
    )


def ensure_directory(path: str | Path) -> Path:
    target = Path(path)
    target.mkdir(parents=True, exist_ok=True)
    return target


def write_csv(df: pd.DataFrame, path: str | Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
