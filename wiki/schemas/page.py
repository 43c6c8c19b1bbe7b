"""Page Schemas — action payloads and typed page results.

Invariants:
    - Each Action with input has exactly one request model; extra keys are ignored
    - PageLookup.id and .content are None exactly when found is False
    - Page ids accept ints or numeric strings (HTML forms post strings)

Design Decisions:
    - Payload keys match the bus wire format: page, title, content, id
    - PageLookup.to_reply() drops absent fields, so not-found replies are {"found": false}
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GetPageRequest(BaseModel):
    """get-page payload."""
    page: str = Field(min_length=1)


class CreatePageRequest(BaseModel):
    """create-page payload."""
    title: str = Field(min_length=1, max_length=255)
    content: str


class SavePageRequest(BaseModel):
    """save-page payload — full content replace keyed by id."""
    id: int
    content: str


class DeletePageRequest(BaseModel):
    """delete-page payload."""
    id: int


class PageData(BaseModel):
    """Title and raw Markdown of one page (backup export)."""
    model_config = ConfigDict(frozen=True)

    title: str
    content: str


class PageLookup(BaseModel):
    """Result of fetching a page by title. Not found is a result, not an error."""
    model_config = ConfigDict(frozen=True)

    found: bool
    id: int | None = None
    content: str | None = None

    @model_validator(mode="after")
    def check_fields_match_found(self) -> "PageLookup":
        if self.found and (self.id is None or self.content is None):
            raise ValueError("found page requires id and content")
        if not self.found and (self.id is not None or self.content is not None):
            raise ValueError("missing page cannot carry id or content")
        return self

    def to_reply(self) -> dict:
        return self.model_dump(exclude_none=True)
