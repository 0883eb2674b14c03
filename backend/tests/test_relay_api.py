"""
API tests for the query relay endpoint
"""
import json

import pytest


async def _insert(client, values, bulk=False):
    response = await client.post("/db", json={"action": "insert", "table": "videos", "values": values, "bulk": bulk})
    assert response.status_code == 200, response.text
    return response.json()["data"]


@pytest.mark.asyncio
async def test_insert_returns_created_row(client):
    row = await _insert(client, {"status": "QUEUED", "script": "hello"})

    assert row["id"] is not None
    assert row["status"] == "QUEUED"
    assert row["script"] == "hello"
    assert row["file_url"] is None


@pytest.mark.asyncio
async def test_bulk_insert_returns_all_rows_with_nulls_for_missing_fields(client):
    rows = await _insert(
        client,
        [
            {"status": "QUEUED", "script": "one", "hook": "h1"},
            {"status": "INIT", "script": "two"},
            {"status": "INIT", "hook": "h3"},
        ],
        bulk=True,
    )

    assert len(rows) == 3
    by_status_script = {(r["status"], r["script"], r["hook"]) for r in rows}
    assert by_status_script == {("QUEUED", "one", "h1"), ("INIT", "two", None), ("INIT", None, "h3")}


@pytest.mark.asyncio
async def test_select_filters_by_equality_and_orders(client):
    await _insert(
        client,
        [
            {"status": "QUEUED", "hook": "a"},
            {"status": "INIT", "hook": "b"},
            {"status": "QUEUED", "hook": "c"},
        ],
        bulk=True,
    )

    response = await client.post("/db", json={
        "action": "select",
        "table": "videos",
        "where": {"status": "QUEUED"},
        "order": {"column": "hook", "dir": "DESC"},
    })
    assert response.status_code == 200
    hooks = [r["hook"] for r in response.json()["data"]]
    assert hooks == ["c", "a"]

    response = await client.post("/db", json={"action": "select", "table": "videos", "order": {"column": "hook"}})
    assert [r["hook"] for r in response.json()["data"]] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_update_returns_single_row_or_null(client):
    await _insert(client, {"id": 5, "status": "INIT"})

    response = await client.post("/db", json={
        "action": "update", "table": "videos", "values": {"status": "X"}, "where": {"id": 5},
    })
    assert response.status_code == 200
    assert response.json()["data"]["id"] == 5
    assert response.json()["data"]["status"] == "X"

    response = await client.post("/db", json={
        "action": "update", "table": "videos", "values": {"status": "X"}, "where": {"id": 6},
    })
    assert response.status_code == 200
    assert response.json() == {"data": None}


@pytest.mark.asyncio
async def test_delete_reports_ok_and_removes_row(client):
    row = await _insert(client, {"status": "INIT"})

    response = await client.post("/db", json={"action": "delete", "table": "videos", "where": {"id": row["id"]}})
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    response = await client.post("/db", json={"action": "select", "table": "videos", "where": {"id": row["id"]}})
    assert response.json() == {"data": []}


@pytest.mark.asyncio
async def test_missing_table_is_client_error(client):
    response = await client.post("/db", json={"action": "select"})
    assert response.status_code == 400
    assert response.json()["error"] == "Missing table"


@pytest.mark.asyncio
async def test_empty_body_is_client_error(client):
    response = await client.post("/db")
    assert response.status_code == 400
    assert response.json()["error"] == "Missing table"


@pytest.mark.asyncio
async def test_unknown_action_is_client_error(client):
    response = await client.post("/db", json={"action": "upsert", "table": "videos"})
    assert response.status_code == 400
    assert response.json()["error"] == "Unknown action"


@pytest.mark.asyncio
async def test_only_post_is_allowed(client):
    response = await client.get("/db")
    assert response.status_code == 405
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_database_failure_surfaces_driver_message(client):
    response = await client.post("/db", json={"action": "select", "table": "no_such_table"})
    assert response.status_code == 500
    assert "no_such_table" in response.json()["error"]
    assert response.json()["code"] == "QUERY_FAILED"

    # The connection is usable again after a failed statement
    response = await client.post("/db", json={"action": "select", "table": "videos"})
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_object_values_are_stored_as_json_text(client):
    row = await _insert(client, {"status": "QUEUED", "script": {"a": 1, "b": [1, 2]}})
    assert json.loads(row["script"]) == {"a": 1, "b": [1, 2]}

    response = await client.post("/db", json={"action": "select", "table": "videos", "where": {"id": row["id"]}})
    assert response.status_code == 200
    [selected] = response.json()["data"]
    assert json.loads(selected["script"]) == {"a": 1, "b": [1, 2]}


@pytest.mark.asyncio
async def test_null_bulk_flag_means_single_insert(client):
    response = await client.post("/db", json={
        "action": "insert", "table": "videos", "values": {"status": "INIT"}, "bulk": None,
    })
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "INIT"


@pytest.mark.asyncio
async def test_table_name_is_case_insensitive(client):
    await _insert(client, {"status": "INIT", "hook": "mixed"})

    response = await client.post("/db", json={"action": "select", "table": "Videos"})
    assert response.status_code == 200
    assert [r["hook"] for r in response.json()["data"]] == ["mixed"]
