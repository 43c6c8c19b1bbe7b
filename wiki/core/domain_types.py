"""Domain Types — the closed set of actions and page identity types.

Invariants:
    - Action values are the wire names carried in the "action" header
    - Any string that is not an Action value is a BadAction, never a fallthrough
    - Page ids are assigned by storage and never change

Design Decisions:
    - str Enum over Literal: Action("not-a-real-action") raises, giving a deterministic reject path
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

PageId = NewType("PageId", int)
PageTitle = NewType("PageTitle", str)


# ─── Enums ───────────────────────────────────────────────────────

class Action(str, Enum):
    """Operations accepted on the wiki database address."""
    ALL_PAGES = "all-pages"
    ALL_PAGES_DATA = "all-pages-data"
    GET_PAGE = "get-page"
    CREATE_PAGE = "create-page"
    SAVE_PAGE = "save-page"
    DELETE_PAGE = "delete-page"

    @classmethod
    def parse(cls, value: str) -> "Action | None":
        """Return the matching Action, or None for unknown strings."""
        try:
            return cls(value)
        except ValueError:
            return None
