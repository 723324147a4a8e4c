from __future__ import annotations

import pytest

from mycrew_export.errors import FiltersRequired
from mycrew_export.filters import (
    FilterSettings,
    has_active_criteria,
    select_for_qr_batch,
    select_matching,
)
from mycrew_export.model import Contact, Location


# ── helpers ────────────────────────────────────────────────────────────────────

def _contact(first: str, last: str = "Doe", **kwargs) -> Contact:
    return Contact(first_name=first, last_name=last, **kwargs)


@pytest.fixture
def crew() -> list[Contact]:
    return [
        _contact("John", "Smith", job_titles=["Cadreur.se"],
                 locations=[Location("France", "Bretagne", has_vehicle=True)]),
        _contact("Maria", "Lopez", job_titles=["Mixeur.se"],
                 locations=[Location("Spain", "Catalonia", is_housed=True)]),
        _contact("Paul", "Martin", job_titles=["Cadreur.se", "Régisseur.se"], email="paul@smithfilms.fr",
                 locations=[Location("Spain"), Location("France", "Normandie", is_local_resident=True)]),
        _contact("Zoé", "Blanc"),
    ]


# ── Gating ─────────────────────────────────────────────────────────────────────

def test_qr_batch_requires_criteria(crew):
    with pytest.raises(FiltersRequired):
        select_for_qr_batch(crew, None, "")
    with pytest.raises(FiltersRequired):
        select_for_qr_batch(crew, FilterSettings(), "   ")


def test_qr_batch_search_only_is_enough(crew):
    selected = select_for_qr_batch(crew, None, "smith")
    assert [c.first_name for c in selected] == ["John", "Paul"]


def test_has_active_criteria():
    assert not has_active_criteria(None, None)
    assert not has_active_criteria(FilterSettings(regions=[]), "")
    assert has_active_criteria(FilterSettings(has_vehicle=True), "")
    assert has_active_criteria(None, "x")


# ── Matching ───────────────────────────────────────────────────────────────────

def test_no_criteria_selects_everyone(crew):
    assert select_matching(crew) == crew


def test_country_matches_any_location(crew):
    france = select_matching(crew, FilterSettings(country="France"))
    assert [c.first_name for c in france] == ["John", "Paul"]
    spain = select_matching(crew, FilterSettings(country="Spain"))
    assert [c.first_name for c in spain] == ["Maria", "Paul"]


def test_attribute_filters(crew):
    assert [c.first_name for c in select_matching(crew, FilterSettings(has_vehicle=True))] == ["John"]
    assert [c.first_name for c in select_matching(crew, FilterSettings(is_housed=True))] == ["Maria"]
    assert [c.first_name for c in select_matching(crew, FilterSettings(is_local_resident=True))] == ["Paul"]


def test_regions_and_job(crew):
    f = FilterSettings(regions={"Bretagne", "Normandie"})
    assert [c.first_name for c in select_matching(crew, f)] == ["John", "Paul"]
    f = FilterSettings(job="Cadreur.se", country="Spain")
    assert [c.first_name for c in select_matching(crew, f)] == ["Paul"]
    assert select_matching(crew, FilterSettings(job="Cadreur")) == []


def test_search_is_case_insensitive(crew):
    assert [c.first_name for c in select_matching(crew, search_text="MIXEUR")] == ["Maria"]
    assert [c.first_name for c in select_matching(crew, search_text="zoé blanc")] == ["Zoé"]


def test_filters_and_search_combine(crew):
    selected = select_matching(crew, FilterSettings(country="France"), "paul")
    assert [c.first_name for c in selected] == ["Paul"]
