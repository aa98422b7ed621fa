from __future__ import annotations

from typing import Any, Dict

import altair as alt
import pandas as pd

from ma_plans.filters import PLAN_TYPE_OPTIONS

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def plans_by_type_chart(plans: pd.DataFrame) -> alt.Chart:
    counts = (
        plans.groupby(["type", "carrier"])
        .size()
        .reset_index(name="plans")
    )
    return (
        alt.Chart(counts)
        .mark_bar()
        .encode(
            x=alt.X("type:N", title="Plan Type", sort=PLAN_TYPE_OPTIONS),
            y=alt.Y("plans:Q", title="Plans", axis=alt.Axis(format="d", tickMinStep=1)),
            color=alt.Color("carrier:N", title="Carrier"),
            tooltip=["type", "carrier", alt.Tooltip("plans:Q", format=",")],
        )
        .properties(height=260)
    )
