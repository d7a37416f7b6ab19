"""
Tests for the composite-key row update: the pure staging helpers and POST /save-row.
"""
import pytest
from httpx import AsyncClient

from planner.errors import InvalidInput, MissingKeyField
from planner.services.row_upsert import apply_row_update, build_row_update
from tests.conftest import make_row, save_plan

TS = "2024-09-01T08:00:00.000Z"


# ---------------------------------------------------------------------------
# Staging
# ---------------------------------------------------------------------------

def test_build_row_update_reports_first_missing_key_field():
    partial = make_row(**{"Leçon": "x"})
    del partial["Jour"]
    partial["Période"] = "  "
    with pytest.raises(MissingKeyField) as exc_info:
        build_row_update(3, partial)
    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "Champ clé 'Jour' manquant/vide."


def test_build_row_update_rejects_bad_week_and_empty_row():
    with pytest.raises(InvalidInput):
        build_row_update(0, make_row())
    with pytest.raises(InvalidInput):
        build_row_update(True, make_row())
    with pytest.raises(InvalidInput):
        build_row_update(3, {})


def test_build_row_update_stages_only_present_content_fields():
    update = build_row_update(3, make_row(**{"Devoirs": "Ex 4"}), timestamp=TS)
    assert update.changes == {"Devoirs": "Ex 4", "updatedAt": TS}
    assert update.match["Matière"] == "Maths"


def test_build_row_update_uses_caller_spelling():
    partial = {
        "enseignant": "Zine",
        " CLASSE": "6A",
        "jour": "Lundi",
        "periode": "1",
        "Période": "1",
        "matière": "Maths",
        "leçon": "Fractions",
        "UpdatedAt": None,
    }
    update = build_row_update(3, partial, timestamp=TS)
    assert " CLASSE" in update.match
    assert update.changes == {"leçon": "Fractions", "UpdatedAt": TS}
    assert update.timestamp_key == "UpdatedAt"


def test_apply_row_update_leaves_input_untouched():
    rows = [make_row(**{"Leçon": "old"}), make_row(jour="Mardi")]
    update = build_row_update(3, make_row(**{"Leçon": "new"}), timestamp=TS)

    new_rows = apply_row_update(rows, update)
    assert new_rows[0]["Leçon"] == "new"
    assert new_rows[0]["updatedAt"] == TS
    assert rows[0]["Leçon"] == "old"
    assert new_rows[1] == rows[1]


def test_apply_row_update_requires_exact_key_values():
    rows = [make_row(periode=1)]
    update = build_row_update(3, make_row(periode="1"), timestamp=TS)
    assert apply_row_update(rows, update) is None


# ---------------------------------------------------------------------------
# POST /save-row
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_save_row_updates_matching_row(client: AsyncClient):
    await save_plan(client, 10, [
        make_row(**{"Leçon": "old", "Support": "Manuel"}),
        make_row(jour="Mardi", **{"Leçon": "autre"}),
    ])

    resp = await client.post(
        "/save-row",
        json={"week": 10, "data": make_row(**{"Leçon": "Fractions", "Devoirs": "Ex 2"})},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Ligne enregistrée."
    assert list(body["updatedData"]) == ["updatedAt"]
    assert body["updatedData"]["updatedAt"].endswith("Z")

    rows = (await client.get("/plans/10")).json()["planData"]
    assert rows[0]["Leçon"] == "Fractions"
    assert rows[0]["Devoirs"] == "Ex 2"
    assert rows[0]["Support"] == "Manuel"
    assert rows[0]["updatedAt"] == body["updatedData"]["updatedAt"]
    assert rows[1]["Leçon"] == "autre"
    assert "updatedAt" not in rows[1]


@pytest.mark.asyncio
async def test_save_row_second_update_wins(client: AsyncClient):
    await save_plan(client, 11, [make_row(**{"Leçon": "a", "Support": "TBI"})])

    await client.post("/save-row", json={"week": 11, "data": make_row(**{"Leçon": "b"})})
    await client.post("/save-row", json={"week": 11, "data": make_row(**{"Leçon": "c"})})

    row = (await client.get("/plans/11")).json()["planData"][0]
    assert row["Leçon"] == "c"
    assert row["Support"] == "TBI"


@pytest.mark.asyncio
async def test_save_row_unknown_week_is_not_found(client: AsyncClient):
    resp = await client.post("/save-row", json={"week": 12, "data": make_row()})
    assert resp.status_code == 404
    assert resp.json()["message"].startswith("Ligne non trouvée")

    # the week is not created as a side effect
    assert (await client.get("/plans/12")).json()["planData"] == []


@pytest.mark.asyncio
async def test_save_row_changed_key_is_not_found(client: AsyncClient):
    await save_plan(client, 13, [make_row()])
    resp = await client.post(
        "/save-row", json={"week": 13, "data": make_row(matiere="Français")}
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_save_row_missing_key_field(client: AsyncClient):
    await save_plan(client, 14, [make_row()])
    partial = make_row()
    partial["Enseignant"] = ""
    del partial["Classe"]

    resp = await client.post("/save-row", json={"week": 14, "data": partial})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Champ clé 'Enseignant' manquant/vide."


@pytest.mark.asyncio
async def test_save_row_rejects_empty_data(client: AsyncClient):
    resp = await client.post("/save-row", json={"week": 14, "data": {}})
    assert resp.status_code == 400
    assert "data" in resp.json()["message"]


@pytest.mark.asyncio
async def test_save_row_rejects_invalid_week(client: AsyncClient):
    resp = await client.post("/save-row", json={"week": 54, "data": make_row()})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Semaine invalide."
