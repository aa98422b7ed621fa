"""Unit tests for ma_plans/filters.py: filter normalization and carrier selection."""

from ma_plans.filters import (
    DEFAULT_CARRIERS,
    OTHER_CARRIER,
    PlanFilters,
    allowed_carriers,
    carrier_matches,
    normalize_filters,
    select_all_carriers,
    select_no_carriers,
    toggle_carrier,
)


# ── normalize_filters ─────────────────────────────────────────────────────────

def test_normalize_filters_defaults():
    filt = normalize_filters({})
    assert filt == PlanFilters()
    assert filt.selected_carriers == list(DEFAULT_CARRIERS)
    assert filt.plan_type == ""
    assert filt.sort_by == ""


def test_normalize_filters_keeps_valid_values():
    filt = normalize_filters({"plan_type": "DSNP", "selected_carriers": ["Cigna", "Other"], "sort_by": "otc-high"})
    assert filt.plan_type == "DSNP"
    assert filt.selected_carriers == ["Cigna", "Other"]
    assert filt.sort_by == "otc-high"


def test_normalize_filters_unknown_type_means_no_filter():
    assert normalize_filters({"plan_type": "PDP"}).plan_type == ""


def test_normalize_filters_unknown_sort_means_no_sort():
    assert normalize_filters({"sort_by": "premium"}).sort_by == ""


def test_normalize_filters_empty_selection_stays_empty():
    assert normalize_filters({"selected_carriers": []}).selected_carriers == []


def test_normalize_filters_drops_non_string_carriers():
    assert normalize_filters({"selected_carriers": ["Cigna", None, 3]}).selected_carriers == ["Cigna"]


# ── carrier selection ────────────────────────────────────────────────────────

def test_toggle_carrier_removes_selected():
    assert toggle_carrier(["Cigna", "Aetna Inc."], "Cigna") == ["Aetna Inc."]


def test_toggle_carrier_appends_unselected():
    assert toggle_carrier(["Cigna"], OTHER_CARRIER) == ["Cigna", OTHER_CARRIER]


def test_toggle_carrier_does_not_mutate_input():
    selection = ["Cigna"]
    toggle_carrier(selection, "Aetna Inc.")
    assert selection == ["Cigna"]


def test_select_all_without_others():
    assert select_all_carriers(DEFAULT_CARRIERS, []) == list(DEFAULT_CARRIERS)


def test_select_all_with_others_adds_sentinel():
    assert select_all_carriers(DEFAULT_CARRIERS, ["SmallCo"]) == [*DEFAULT_CARRIERS, OTHER_CARRIER]


def test_select_none():
    assert select_no_carriers() == []


# ── carrier predicate ────────────────────────────────────────────────────────

def test_carrier_matches_literal_selection():
    assert carrier_matches("Cigna", ["Cigna"], DEFAULT_CARRIERS, ["SmallCo"])
    assert not carrier_matches("Aetna Inc.", ["Cigna"], DEFAULT_CARRIERS, ["SmallCo"])
    assert not carrier_matches("SmallCo", ["Cigna"], DEFAULT_CARRIERS, ["SmallCo"])


def test_carrier_matches_other_includes_defaults_and_others():
    selection = [OTHER_CARRIER]
    assert carrier_matches("SmallCo", selection, DEFAULT_CARRIERS, ["SmallCo"])
    # Defaults pass with "Other" ticked even when their own box is not.
    assert carrier_matches("Cigna", selection, DEFAULT_CARRIERS, ["SmallCo"])


def test_carrier_matches_unknown_excluded_by_other():
    assert not carrier_matches("Unknown", [*DEFAULT_CARRIERS, OTHER_CARRIER], DEFAULT_CARRIERS, ["SmallCo"])


def test_carrier_matches_unknown_when_literally_selected():
    assert carrier_matches("Unknown", ["Unknown"], DEFAULT_CARRIERS, [])


def test_allowed_carriers_empty_selection():
    assert allowed_carriers([], DEFAULT_CARRIERS, ["SmallCo"]) == []
