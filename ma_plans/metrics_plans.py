from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from ma_plans.charts import plans_by_type_chart, to_vega_spec
from ma_plans.data import PLAN_FIELDS, PLAN_TYPES, empty_plans_frame, summarize_otc
from ma_plans.filters import PlanFilters


def compute_plans(filters: PlanFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    plans: pd.DataFrame = ctx.get("plans", empty_plans_frame())
    df: pd.DataFrame = ctx.get("filtered_plans", empty_plans_frame()).copy()
    others = ctx.get("other_carriers", []) or []

    type_counts = df["type"].value_counts() if not df.empty else pd.Series(dtype=int)
    kpis = {
        "plan_count": int(len(plans)),
        "visible_count": int(len(df)),
        "type_counts": {t: int(type_counts.get(t, 0)) for t in PLAN_TYPES},
        "max_otc_amount": float(df["otc_amount"].max()) if not df.empty else None,
        "other_carrier_count": len(others),
    }
    if df.empty:
        return {"filters": asdict(filters), "kpis": kpis, "rows": [], "charts": {}}

    table = df[PLAN_FIELDS].copy()
    table["otc_summary"] = table["otc"].apply(summarize_otc)
    table["otc_full"] = table["otc"].where(table["otc"] != "", "N/A")

    return {
        "filters": asdict(filters),
        "kpis": kpis,
        "rows": table.to_dict(orient="records"),
        "charts": {"plans_by_type": to_vega_spec(plans_by_type_chart(df))},
    }
