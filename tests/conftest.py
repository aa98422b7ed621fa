"""Shared fixtures: a small plan CSV upload and hand-built plan records."""

import pytest

from ma_plans.data import PlanRecord

HEADER = "Plan Name,Carrier,Specialists,Monthly Premium,Over the Counter,Summary of Benefits"


@pytest.fixture
def sample_csv() -> bytes:
    lines = [
        HEADER,
        "Cigna True Choice D-SNP (PPO),Cigna,$0,$0.00,$300 Food Card,https://example.com/cigna.pdf",
        "Mystery Plan,,$10,$5,$25 quarterly,https://example.com/mystery.pdf",
        "Humana Gold Plus (HMO),Humana Inc.,$35,$0,$50,https://example.com/humana.pdf",
    ]
    return ("\n".join(lines) + "\n").encode("utf-8")


def make_plan(name="Plan", carrier="Cigna", otc="", plan_type="MAPD") -> PlanRecord:
    return PlanRecord(
        name=name,
        carrier=carrier,
        specialist_copay="$0",
        premium="$0",
        otc=otc,
        sob_link=f"https://example.com/{name}.pdf",
        type=plan_type,
    )


@pytest.fixture
def mixed_plans():
    return [
        make_plan("humana-a", "Humana Inc.", "$50"),
        make_plan("smallco-a", "SmallCo", "$200", "DSNP"),
        make_plan("unknown-a", "Unknown", "$999", "UNKNOWN"),
        make_plan("smallco-b", "SmallCo", "no amount"),
        make_plan("aetna-a", "Aetna Inc.", "$75", "DSNP"),
    ]
