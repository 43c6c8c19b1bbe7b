"""Backup Route — export to the gist API and failure mapping.

Tests cover:
    - 201 from the gist API → index shows the gist URL; payload carries every page
    - Non-201 → 502 BACKUP_FAILED
"""

import json

import httpx


async def test_backup_success_shows_gist_url(client, proxy, gist_api):
    await proxy.create_page("Home", "# Welcome")
    await proxy.create_page("About", "About us")

    res = await client.get("/backup")

    assert res.status_code == 200
    assert "https://gist.example/1" in res.text
    sent = json.loads(gist_api["requests"][0].content)
    assert sent["files"] == {
        "About": {"content": "About us"},
        "Home": {"content": "# Welcome"},
    }


async def test_backup_rejected_is_bad_gateway(client, proxy, gist_api):
    await proxy.create_page("Home", "# Welcome")
    gist_api["response"] = httpx.Response(422, json={"message": "Validation Failed"})

    res = await client.get("/backup")

    assert res.status_code == 502
    body = res.json()["error"]
    assert body["code"] == "BACKUP_FAILED"
    assert "422" in body["message"]
