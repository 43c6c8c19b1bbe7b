"""Gist Backup Client — posts every page to a gist-style API as one backup.

Invariants:
    - One file per page, keyed by title, holding the raw Markdown
    - 201 Created with a JSON object holding html_url → that URL; any other
      status or an unusable 201 body → BackupError
    - Transport failures (connect, timeout) → BackupError; nothing is retried

Design Decisions:
    - httpx.AsyncClient injected or owned: tests pass a MockTransport-backed client
    - The response body is logged, never shown to the user
"""

import logging

import httpx

from wiki.core.errors import BackupError
from wiki.schemas.page import PageData

logger = logging.getLogger(__name__)

GITHUB_ACCEPT = "application/vnd.github.v3+json"


def build_gist_payload(
    pages: list[PageData], description: str = "A wiki backup", public: bool = True,
) -> dict:
    """Gist request body: {"description", "public", "files": {title: {"content"}}}."""
    return {
        "description": description,
        "public": public,
        "files": {page.title: {"content": page.content} for page in pages},
    }


class GistBackupClient:
    """Creates a gist containing the raw content of every page."""

    def __init__(
        self,
        api_url: str,
        token: str | None = None,
        public: bool = True,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_url = api_url
        self.public = public
        headers = {"Accept": GITHUB_ACCEPT}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._headers = headers
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def create_backup(self, pages: list[PageData]) -> str:
        """Upload the pages and return the gist URL."""
        payload = build_gist_payload(pages, public=self.public)
        try:
            response = await self._client.post(
                self.api_url, json=payload, headers=self._headers,
            )
        except httpx.HTTPError as e:
            logger.error(f"HTTP client error during backup: {e}", exc_info=True)
            raise BackupError(str(e) or type(e).__name__) from e

        if response.status_code != httpx.codes.CREATED:
            logger.error(
                f"Could not backup the wiki: {response.status_code} "
                f"{response.reason_phrase}\n{response.text}",
                extra={"status_code": response.status_code},
            )
            raise BackupError(
                f"{response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            gist = response.json()
        except ValueError as e:
            logger.error(f"Gist API answered 201 with a non-JSON body: {response.text}")
            raise BackupError("unreadable response from the backup service") from e
        url = gist.get("html_url") if isinstance(gist, dict) else None
        if not isinstance(url, str) or not url:
            logger.error(f"Gist API answered 201 without an html_url: {response.text}")
            raise BackupError("backup service did not return a gist URL")
        logger.info(f"Wiki backed up to {url} ({len(pages)} pages)")
        return url

    async def aclose(self) -> None:
        await self._client.aclose()
