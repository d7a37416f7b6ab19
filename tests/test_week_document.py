"""Tests for shaping a week's rows into the weekly Word template context."""
import pytest

from planner.errors import ConfigMissing
from planner.services.school_calendar import SchoolCalendar, get_calendar
from planner.services.week_document import (
    build_week_document,
    compare_periods,
    sort_by_period,
    week_caption,
)
from tests.conftest import make_row


def test_compare_periods_numeric_and_textual():
    assert compare_periods("2", "10") < 0
    assert compare_periods(" 3 ", 3) == 0
    assert compare_periods("b", "a") > 0
    assert compare_periods(None, "a") < 0


def test_sort_by_period_numeric_order():
    rows = [make_row(periode="10"), make_row(periode="2"), make_row(periode="1")]
    assert [r["Période"] for r in sort_by_period(rows)] == ["1", "2", "10"]


def test_sort_by_period_mixed_values_is_deterministic():
    # Pairs mixing a number and text fall back to string order, which is not
    # a total order across the whole list; only check the result is stable.
    rows = [make_row(periode="2"), make_row(periode="A"), make_row(periode="1")]
    first = [r["Période"] for r in sort_by_period(rows)]
    second = [r["Période"] for r in sort_by_period(list(rows))]
    assert first == second
    assert sorted(first) == ["1", "2", "A"]


def test_week_caption():
    assert week_caption(1, get_calendar()) == "du Dimanche le 25 Août 2024 à Jeudi 29 Août 2024"
    assert week_caption(50, get_calendar()) == "Semaine 50"


def test_build_week_document_groups_days_in_school_order():
    rows = [
        make_row(jour="Mardi", periode="2", matiere="Sciences"),
        make_row(jour="Samedi", matiere="Sport"),
        make_row(jour="Dimanche", periode="3", matiere="Arabe"),
        make_row(jour="Mardi", periode="1", matiere="Maths", **{"Leçon": "Fractions"}),
        "not a row",
        {"Matière": "sans jour"},
    ]
    doc = build_week_document(1, "6A", rows, "Réunion", get_calendar())
    context = doc.to_context()

    assert context["semaine"] == 1
    assert context["classe"] == "6A"
    assert context["notes"] == "Réunion"
    assert [d["jourDateComplete"] for d in context["jours"]] == [
        "Dimanche 25 Août 2024",
        "Mardi 27 Août 2024",
    ]
    mardi = context["jours"][1]["matieres"]
    assert [m["matiere"] for m in mardi] == ["Maths", "Sciences"]
    assert mardi[0] == {
        "matiere": "Maths",
        "Lecon": "Fractions",
        "travailDeClasse": "",
        "Support": "",
        "devoirs": "",
    }


def test_build_week_document_case_insensitive_headers():
    rows = [{" jour ": "Lundi", "MATIÈRE": "Histoire", "période": "1", "leçon": "Rome"}]
    context = build_week_document(2, "6A", rows, None, get_calendar()).to_context()
    assert context["notes"] == ""
    assert context["jours"][0]["matieres"][0]["matiere"] == "Histoire"
    assert context["jours"][0]["matieres"][0]["Lecon"] == "Rome"


def test_build_week_document_without_dates_is_config_error():
    with pytest.raises(ConfigMissing) as exc_info:
        build_week_document(50, "6A", [make_row()], "", get_calendar())
    assert exc_info.value.status_code == 500
    assert "S50" in exc_info.value.message


def test_build_week_document_only_start_date_needed():
    calendar = SchoolCalendar({4: ("2024-09-15", "bad")})
    context = build_week_document(4, "6A", [make_row(jour="Jeudi")], "", calendar).to_context()
    assert context["jours"][0]["jourDateComplete"] == "Jeudi 19 Septembre 2024"
    assert context["plageSemaine"] == "Semaine 4"
