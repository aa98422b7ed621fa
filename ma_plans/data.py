from __future__ import annotations

import io
import logging
import re
import warnings
from dataclasses import asdict, dataclass, fields
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from ma_plans.filters import DEFAULT_CARRIERS, PLAN_TYPE_OPTIONS, PlanFilters, allowed_carriers, normalize_filters

logger = logging.getLogger(__name__)

UNKNOWN_CARRIER = "Unknown"
UNKNOWN_TYPE = "UNKNOWN"
PLAN_TYPES = tuple(PLAN_TYPE_OPTIONS)

PLAN_COLUMNS = {
    "Plan Name": "name",
    "Carrier": "carrier",
    "Specialists": "specialist_copay",
    "Monthly Premium": "premium",
    "Over the Counter": "otc",
    "Summary of Benefits": "sob_link",
}
EXPECTED_COLUMNS = list(PLAN_COLUMNS)

# First match wins; a C-SNP PPO is a CSNP, not a MAPD.
TYPE_KEYWORDS = [
    ("CSNP", ("C-SNP",)),
    ("DSNP", ("D-SNP", "DSNP")),
    ("MA-ONLY", ("MA ONLY", "MA-ONLY")),
    ("MAPD", ("MAPD", "PPO", "HMO")),
]

AMOUNT_PATTERN = re.compile(r"\$?(\d+(?:,\d{3})*(?:\.\d{2})?)")
DOLLAR_TOKEN_PATTERN = re.compile(r"\$[\d,]+")

CSV_MIME_TYPES = {"text/csv"}


@dataclass(frozen=True)
class PlanRecord:
    name: str
    carrier: str
    specialist_copay: str
    premium: str
    otc: str
    sob_link: str
    type: str


PLAN_FIELDS = [f.name for f in fields(PlanRecord)]
PLAN_FRAME_COLUMNS = PLAN_FIELDS + ["otc_amount"]

PlanList = Union[pd.DataFrame, Sequence[PlanRecord]]


def cell_text(row: Mapping[str, object], column: str) -> str:
    """Return a raw CSV cell as text, or "" when the column is absent or blank."""
    value = row.get(column)
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value)


def classify_plan_type(name: Optional[str]) -> str:
    upper = (name or "").upper()
    for plan_type, keywords in TYPE_KEYWORDS:
        if any(k in upper for k in keywords):
            return plan_type
    return UNKNOWN_TYPE


def highest_amount(text: object) -> float:
    """Largest US-dollar-like amount in free text, 0.0 when none is found."""
    if not text or not isinstance(text, str):
        return 0.0
    amounts = []
    for match in AMOUNT_PATTERN.finditer(text):
        token = match.group(0).replace("$", "").replace(",", "")
        try:
            amounts.append(float(token))
        except ValueError:
            continue
    return max(amounts) if amounts else 0.0


def summarize_otc(text: object) -> str:
    if not text or not isinstance(text, str):
        return "N/A"
    tokens = DOLLAR_TOKEN_PATTERN.findall(text)
    return " / ".join(tokens) if tokens else text


def format_currency_0(value: object) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    return f"${float(value):,.0f}"


# ---------------- Transformer ----------------
def transform_row(row: Mapping[str, object]) -> PlanRecord:
    values = {field_name: cell_text(row, column) for column, field_name in PLAN_COLUMNS.items()}
    values["carrier"] = values["carrier"] or UNKNOWN_CARRIER
    return PlanRecord(**values, type=classify_plan_type(values["name"]))


def transform_rows(rows: Iterable[Mapping[str, object]]) -> List[PlanRecord]:
    return [transform_row(row) for row in rows]


def empty_plans_frame() -> pd.DataFrame:
    return pd.DataFrame({c: pd.Series(dtype=float if c == "otc_amount" else object) for c in PLAN_FRAME_COLUMNS})


def plans_frame(records: Sequence[PlanRecord]) -> pd.DataFrame:
    if not records:
        return empty_plans_frame()
    df = pd.DataFrame([asdict(r) for r in records], columns=PLAN_FIELDS)
    df["otc_amount"] = df["otc"].apply(highest_amount).astype(float)
    return df


def as_plans_frame(plans: PlanList) -> pd.DataFrame:
    if isinstance(plans, pd.DataFrame):
        return plans
    return plans_frame(list(plans))


# ---------------- Upload decoding ----------------
def is_csv_upload(filename: Optional[str], mime_type: Optional[str] = None) -> bool:
    if mime_type in CSV_MIME_TYPES:
        return True
    return bool(filename) and str(filename).endswith(".csv")


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.info("Upload is not valid UTF-8, decoding as latin-1")
        return content.decode("latin-1")


def _keep_leading_fields(line: List[str]) -> List[str]:
    # A callable here makes over-long lines tolerated instead of raising; pandas then
    # trims the returned fields to the header width.
    return line


def read_plan_csv(content: bytes) -> Optional[pd.DataFrame]:
    """Parse uploaded CSV bytes into a string-only frame, or None if unparsable."""
    if not content:
        logger.warning("Upload is empty, nothing to parse")
        return None
    text = _decode(content)
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            df = pd.read_csv(
                io.StringIO(text),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                index_col=False,
                engine="python",
                on_bad_lines=_keep_leading_fields,
            )
    except pd.errors.EmptyDataError:
        logger.warning("Upload has no header row, nothing to parse")
        return None
    except (pd.errors.ParserError, ValueError):
        logger.exception("Could not parse uploaded CSV")
        return None
    df.columns = [str(c).strip() for c in df.columns]
    return df


def parse_csv_rows(content: bytes) -> Optional[List[Dict[str, object]]]:
    df = read_plan_csv(content)
    if df is None:
        return None
    return df.to_dict(orient="records")


def load_plan_data(content: bytes, filename: str = "") -> Optional[Dict[str, object]]:
    """Decode one upload into a fresh plan list; None means keep the current one."""
    raw = read_plan_csv(content)
    if raw is None:
        return None
    records = transform_rows(raw.to_dict(orient="records"))
    columns = list(raw.columns)
    missing = [c for c in EXPECTED_COLUMNS if c not in columns]
    if missing:
        logger.info("Upload %s is missing columns: %s", filename or "<unnamed>", ", ".join(missing))
    logger.debug("Loaded %d plans from %s", len(records), filename or "<unnamed>")
    return {
        "files": [filename] if filename else [],
        "columns": columns,
        "missing_columns": missing,
        "plans": plans_frame(records),
    }


# ---------------- Facets + view ----------------
def derive_carrier_facets(plans: PlanList, defaults: Sequence[str] = DEFAULT_CARRIERS) -> List[str]:
    """Carriers seen in the data that are neither a default nor "Unknown", in first-seen order."""
    df = as_plans_frame(plans)
    if df.empty:
        return []
    seen = pd.unique(df["carrier"].astype(object))
    return [c for c in seen if c != UNKNOWN_CARRIER and c not in defaults]


def view_plans(
    plans: PlanList,
    plan_type: str = "",
    selected_carriers: Sequence[str] = DEFAULT_CARRIERS,
    sort_by: str = "",
    *,
    defaults: Sequence[str] = DEFAULT_CARRIERS,
) -> pd.DataFrame:
    base = as_plans_frame(plans)
    df = base.copy()
    if df.empty:
        return df

    if plan_type:
        df = df[df["type"] == plan_type]

    others = derive_carrier_facets(base, defaults)
    df = df[df["carrier"].isin(allowed_carriers(selected_carriers, defaults, others))]

    if sort_by in {"otc-high", "otc-low"}:
        df = df.sort_values("otc_amount", ascending=sort_by == "otc-low", kind="stable")
    return df


def prepare_context(filters: dict | PlanFilters, data_ctx: Dict[str, object]) -> Dict[str, object]:
    plans = data_ctx.get("plans")
    plans = empty_plans_frame() if plans is None else plans.copy()
    filt = filters if isinstance(filters, PlanFilters) else normalize_filters(filters)

    return {
        "files": data_ctx.get("files", []),
        "columns": data_ctx.get("columns", []),
        "missing_columns": data_ctx.get("missing_columns", []),
        "plans": plans,
        "other_carriers": derive_carrier_facets(plans, DEFAULT_CARRIERS),
        "filtered_plans": view_plans(plans, filt.plan_type, filt.selected_carriers, filt.sort_by),
    }
