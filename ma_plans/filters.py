from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

DEFAULT_CARRIERS = ("Humana Inc.", "Cigna", "Devoted Health", "UnitedHealthcare", "Aetna Inc.")
OTHER_CARRIER = "Other"

PLAN_TYPE_OPTIONS = ["CSNP", "DSNP", "MA-ONLY", "MAPD", "UNKNOWN"]
SORT_OPTIONS = {
    "": "No Sorting",
    "otc-high": "Highest OTC Amount",
    "otc-low": "Lowest OTC Amount",
}


@dataclass(frozen=True)
class PlanFilters:
    plan_type: str = ""
    selected_carriers: List[str] = field(default_factory=lambda: list(DEFAULT_CARRIERS))
    sort_by: str = ""


def _as_str_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values:
        return []
    return [v for v in values if isinstance(v, str)]


def normalize_filters(raw: dict) -> PlanFilters:
    plan_type = raw.get("plan_type") or ""
    if plan_type not in PLAN_TYPE_OPTIONS:
        plan_type = ""

    carriers = raw.get("selected_carriers")
    selected_carriers = list(DEFAULT_CARRIERS) if carriers is None else _as_str_list(carriers)

    sort_by = raw.get("sort_by") or ""
    if sort_by not in SORT_OPTIONS:
        sort_by = ""

    return PlanFilters(plan_type=plan_type, selected_carriers=selected_carriers, sort_by=sort_by)


# ---------------- Carrier selection ----------------
def toggle_carrier(selection: Sequence[str], carrier: str) -> List[str]:
    if carrier in selection:
        return [c for c in selection if c != carrier]
    return [*selection, carrier]


def select_all_carriers(defaults: Sequence[str], others: Sequence[str]) -> List[str]:
    options = list(defaults)
    if others:
        options.append(OTHER_CARRIER)
    return options


def select_no_carriers() -> List[str]:
    return []


def allowed_carriers(selection: Sequence[str], defaults: Sequence[str], others: Sequence[str]) -> List[str]:
    """Carrier values that pass the carrier filter.

    With "Other" selected every default or discovered carrier passes, whether
    or not its own checkbox is ticked; otherwise only carriers named in the
    selection do. "Unknown" is never in `others`, so it only passes if it is
    literally selected.
    """
    if OTHER_CARRIER in selection:
        return [*defaults, *others]
    return list(selection)


def carrier_matches(carrier: str, selection: Sequence[str], defaults: Sequence[str], others: Sequence[str]) -> bool:
    return carrier in allowed_carriers(selection, defaults, others)
