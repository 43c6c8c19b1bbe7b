"""Page Routes — HTML views, 303 redirects, and failure mapping.

Tests cover:
    - Index lists titles sorted; empty wiki message
    - Missing page renders the new-page editor
    - /save creates or replaces; /create and /delete redirect with 303
    - Database failures become 5xx JSON errors
"""

from wiki.api.dependencies import get_wiki_db
from wiki.api.routes.pages import render_markdown
from wiki.core.errors import DatabaseError
from wiki.main import app


class _BrokenWikiDb:
    async def fetch_all_pages(self):
        raise DatabaseError("Connection refused", "execute")

    async def fetch_page(self, title):
        raise DatabaseError("Connection refused", "execute")

    async def save_page(self, page_id, content):
        raise DatabaseError("database is locked", "execute")


async def test_empty_index(client):
    res = await client.get("/")
    assert res.status_code == 200
    assert "The wiki is currently empty!" in res.text


async def test_missing_page_renders_new_page_editor(client):
    res = await client.get("/wiki/Fresh")
    assert res.status_code == 200
    assert "<h1>A new page</h1>" in res.text
    assert 'name="newPage" value="yes"' in res.text
    assert 'name="id" value="-1"' in res.text


async def test_save_new_page_then_view_it(client):
    res = await client.post("/save", data={
        "id": "-1", "title": "TestTitle", "markdown": "# Hello\n\nworld", "newPage": "yes",
    })
    assert res.status_code == 303
    assert res.headers["location"] == "/wiki/TestTitle"

    page = await client.get("/wiki/TestTitle")
    assert "<h1>Hello</h1>" in page.text
    assert 'name="newPage" value="no"' in page.text


async def test_save_existing_page_replaces_content(client, proxy):
    await proxy.create_page("Notes", "old text")
    page = await proxy.fetch_page("Notes")

    res = await client.post("/save", data={
        "id": str(page.id), "title": "Notes", "markdown": "new text", "newPage": "no",
    })
    assert res.status_code == 303
    assert (await proxy.fetch_page("Notes")).content == "new text"


async def test_index_lists_pages_sorted(client, proxy):
    for title in ("Zeta", "Alpha", "Mid"):
        await proxy.create_page(title, "")
    text = (await client.get("/")).text
    assert text.index("Alpha") < text.index("Mid") < text.index("Zeta")


async def test_create_redirects_to_editor(client):
    res = await client.post("/create", data={"name": "Brand New"})
    assert res.status_code == 303
    assert res.headers["location"] == "/wiki/Brand%20New"


async def test_create_without_name_redirects_home(client):
    res = await client.post("/create", data={"name": ""})
    assert res.status_code == 303
    assert res.headers["location"] == "/"


async def test_delete_redirects_home(client, proxy):
    await proxy.create_page("Doomed", "bye")
    page = await proxy.fetch_page("Doomed")

    res = await client.post("/delete", data={"id": str(page.id)})
    assert res.status_code == 303
    assert res.headers["location"] == "/"
    assert "Doomed" not in await proxy.fetch_all_pages()


async def test_delete_requires_numeric_id(client):
    res = await client.post("/delete", data={"id": "abc"})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_database_failure_is_5xx(client):
    app.dependency_overrides[get_wiki_db] = lambda: _BrokenWikiDb()
    res = await client.get("/")
    assert res.status_code == 503
    assert res.json()["error"]["code"] == "DB_ERROR"

    res = await client.post("/save", data={
        "id": "1", "title": "X", "markdown": "y", "newPage": "no",
    })
    assert res.status_code == 503


async def test_health_endpoints(client):
    assert (await client.get("/api/v1/health/")).status_code == 200
    ready = await client.get("/api/v1/health/ready")
    assert ready.status_code == 200
    assert ready.json()["checks"] == {"database": "healthy", "bus": "healthy"}


def test_markdown_renders_raw_html_as_text():
    html = render_markdown('<script>alert(1)</script>\n\nHi <b onmouseover="x()">there</b>')
    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "<b " not in html


def test_markdown_still_renders_code_and_tables():
    html = render_markdown("```\n<tag>\n```\n\n| a | b |\n|---|---|\n| 1 | 2 |\n")
    assert "<pre><code>&lt;tag&gt;" in html
    assert "<table>" in html


async def test_page_body_cannot_inject_script(client, proxy):
    await proxy.create_page("Evil", "<script>alert(1)</script>")
    res = await client.get("/wiki/Evil")
    assert res.status_code == 200
    assert "<script>alert(1)</script>" not in res.text
