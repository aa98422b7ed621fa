from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from ma_plans.data import UNKNOWN_CARRIER, UNKNOWN_TYPE, empty_plans_frame
from ma_plans.filters import PlanFilters


def compute_debug(filters: PlanFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    plans: pd.DataFrame = ctx.get("plans", empty_plans_frame())
    filtered: pd.DataFrame = ctx.get("filtered_plans", empty_plans_frame())
    payload = {
        "filters": asdict(filters),
        "files": list(ctx.get("files", [])),
        "columns": list(ctx.get("columns", [])),
        "missing_columns": list(ctx.get("missing_columns", [])),
        "row_counts": {
            "plan_rows": int(len(plans)),
            "visible_rows": int(len(filtered)),
        },
        "checks": {
            "unknown_type_rows": 0,
            # No carrier checkbox reaches these rows.
            "unknown_carrier_rows": 0,
            "no_otc_amount_rows": 0,
        },
        "carrier_counts": [],
        "unknown_type_names": [],
    }
    if plans.empty:
        return payload

    payload["checks"] = {
        "unknown_type_rows": int((plans["type"] == UNKNOWN_TYPE).sum()),
        "unknown_carrier_rows": int((plans["carrier"] == UNKNOWN_CARRIER).sum()),
        "no_otc_amount_rows": int((plans["otc_amount"] <= 0).sum()),
    }
    carrier_counts = plans["carrier"].value_counts().reset_index(name="plans")
    carrier_counts.columns = ["carrier", "plans"]
    payload["carrier_counts"] = carrier_counts.to_dict(orient="records")
    unknown = plans[plans["type"] == UNKNOWN_TYPE]
    payload["unknown_type_names"] = unknown["name"].drop_duplicates().head(20).tolist()
    return payload
