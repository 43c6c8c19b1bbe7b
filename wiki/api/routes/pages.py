"""Page Routes — index, page view/edit, and the create/save/delete form posts.

Invariants:
    - Mutating routes answer 303 See Other on success
    - Failures from the database client propagate to the global handlers (5xx)
    - A missing page renders an edit form for a new page (newPage=yes, id=-1)
    - Page bodies cannot inject markup: HTML written in the Markdown source is
      rendered as text

Design Decisions:
    - Markdown rendered here, at the edge; storage only ever sees raw Markdown
    - Titles are URL-quoted in redirects so spaces and slashes survive the round-trip
"""

import logging
from datetime import datetime
from urllib.parse import quote

import markdown
from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from wiki.api.dependencies import get_wiki_db, templates
from wiki.services.wiki_database import WikiDatabase

logger = logging.getLogger(__name__)
router = APIRouter(tags=["pages"])

EMPTY_PAGE_MARKDOWN = (
    "# A new page\n"
    "\n"
    "Feel-free to write in Markdown!\n"
)


def render_markdown(raw: str) -> str:
    """Markdown to HTML with raw HTML in the source escaped, never passed through."""
    md = markdown.Markdown(extensions=["fenced_code", "tables"])
    md.preprocessors.deregister("html_block")
    md.inlinePatterns.deregister("html")
    return md.convert(raw)


def page_location(title: str) -> str:
    return "/wiki/" + quote(title, safe="")


async def render_index(
    request: Request, wiki_db: WikiDatabase, backup_gist_url: str | None = None,
) -> HTMLResponse:
    """Index page listing every title in order."""
    pages = await wiki_db.fetch_all_pages()
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "title": "Wiki home",
            "pages": pages,
            "backup_gist_url": backup_gist_url,
            "page_location": page_location,
        },
    )


@router.get("/", response_class=HTMLResponse)
async def index(request: Request, wiki_db: WikiDatabase = Depends(get_wiki_db)):
    return await render_index(request, wiki_db)


@router.get("/wiki/{page}", response_class=HTMLResponse)
async def render_page(
    request: Request, page: str, wiki_db: WikiDatabase = Depends(get_wiki_db),
):
    """Show a page, or an editor pre-filled for a new page."""
    lookup = await wiki_db.fetch_page(page)
    raw_content = lookup.content if lookup.found else EMPTY_PAGE_MARKDOWN
    return templates.TemplateResponse(
        request,
        "page.html",
        {
            "title": page,
            "id": lookup.id if lookup.found else -1,
            "new_page": "no" if lookup.found else "yes",
            "raw_content": raw_content,
            "content": render_markdown(raw_content),
            "timestamp": datetime.now().isoformat(timespec="seconds"),
        },
    )


@router.post("/save")
async def save_page(
    title: str = Form(...),
    markdown_text: str = Form("", alias="markdown"),
    new_page: str = Form("no", alias="newPage"),
    page_id: int = Form(-1, alias="id"),
    wiki_db: WikiDatabase = Depends(get_wiki_db),
):
    """Create the page when newPage=yes, otherwise replace its content."""
    if new_page == "yes":
        await wiki_db.create_page(title, markdown_text)
    else:
        await wiki_db.save_page(page_id, markdown_text)
    return RedirectResponse(
        page_location(title), status_code=status.HTTP_303_SEE_OTHER,
    )


@router.post("/create")
async def create_page(name: str = Form("")):
    """Jump to the editor for a (possibly new) page name."""
    location = page_location(name) if name.strip() else "/"
    return RedirectResponse(location, status_code=status.HTTP_303_SEE_OTHER)


@router.post("/delete")
async def delete_page(
    page_id: int = Form(..., alias="id"),
    wiki_db: WikiDatabase = Depends(get_wiki_db),
):
    await wiki_db.delete_page(page_id)
    logger.info(f"Deleted page {page_id}")
    return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
