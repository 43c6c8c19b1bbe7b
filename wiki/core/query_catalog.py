"""Query Catalog — immutable name → SQL template lookup, resolved once at startup.

Invariants:
    - Every SqlQuery member resolves to non-empty SQL with exactly SqlQuery.arity
      :named placeholders, or load() raises QueryCatalogError
    - The catalog never changes after load() (read-only mapping)
    - NamedQuery.params lists :placeholders in first-appearance order; positional
      parameters bind to them in that order

Design Decisions:
    - TOML over .properties: multi-line SQL without escaping, parsed by stdlib tomllib
    - One embedded file per SQL dialect; an external file overrides all of them
    - Placeholder names parsed with the same pattern SQLAlchemy's text() uses,
      so the gateway and text() agree on what a bind parameter is
"""

import logging
import re
import tomllib
from dataclasses import dataclass
from enum import Enum
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from wiki.core.errors import QueryCatalogError

logger = logging.getLogger(__name__)

DEFAULT_DIALECT = "sqlite"

# Same shape as sqlalchemy.sql.elements.TextClause._bind_params_regex
_BIND_PARAM = re.compile(r"(?<![:\w\x5c]):(\w+)(?!:)", re.UNICODE)


class SqlQuery(str, Enum):
    """Every named query the service needs."""
    CREATE_PAGES_TABLE = "create-pages-table"
    ALL_PAGES = "all-pages"
    ALL_PAGES_DATA = "all-pages-data"
    GET_PAGE = "get-page"
    CREATE_PAGE = "create-page"
    SAVE_PAGE = "save-page"
    DELETE_PAGE = "delete-page"

    @property
    def arity(self) -> int:
        """Number of positional values the page operations bind to this query."""
        return _ARITY[self]


_ARITY = {
    SqlQuery.CREATE_PAGES_TABLE: 0,
    SqlQuery.ALL_PAGES: 0,
    SqlQuery.ALL_PAGES_DATA: 0,
    SqlQuery.GET_PAGE: 1,
    SqlQuery.CREATE_PAGE: 2,
    SqlQuery.SAVE_PAGE: 2,
    SqlQuery.DELETE_PAGE: 1,
}


@dataclass(frozen=True)
class NamedQuery:
    """A SQL template plus its placeholder names in declaration order."""
    name: SqlQuery
    sql: str
    params: tuple[str, ...]

    @classmethod
    def parse(cls, name: SqlQuery, sql: str) -> "NamedQuery":
        params: list[str] = []
        for match in _BIND_PARAM.finditer(sql):
            if match.group(1) not in params:
                params.append(match.group(1))
        return cls(name=name, sql=sql.strip(), params=tuple(params))


class QueryCatalog:
    """Read-only SqlQuery → NamedQuery mapping."""

    def __init__(self, queries: Mapping[SqlQuery, NamedQuery]):
        self._queries = MappingProxyType(dict(queries))

    @classmethod
    def load(
        cls, source: str | Path | None = None, dialect: str = DEFAULT_DIALECT,
    ) -> "QueryCatalog":
        """Load templates from an external TOML file or the embedded default.

        Raises QueryCatalogError when the resource cannot be read or any
        required query is missing, blank, or has the wrong number of
        placeholders. Not retried.
        """
        raw = _read_source(source, dialect)
        missing = [
            q.value for q in SqlQuery
            if not isinstance(raw.get(q.value), str) or not raw[q.value].strip()
        ]
        if missing:
            raise QueryCatalogError(
                f"Missing SQL queries: {', '.join(missing)}",
            )
        known = {q.value for q in SqlQuery}
        for extra in sorted(set(raw) - known):
            logger.warning(f"Ignoring unknown query '{extra}'")
        queries = {q: NamedQuery.parse(q, raw[q.value]) for q in SqlQuery}
        mismatched = [
            f"{q.value} (expects {q.arity} :named placeholder(s), "
            f"found {len(named.params)})"
            for q, named in queries.items()
            if len(named.params) != q.arity
        ]
        if mismatched:
            raise QueryCatalogError(
                f"Wrong placeholders in SQL queries: {', '.join(mismatched)}",
            )
        return cls(queries)

    def get(self, query: SqlQuery) -> NamedQuery:
        """O(1) lookup. A missing entry is a programming error (KeyError)."""
        return self._queries[query]

    def __contains__(self, query: object) -> bool:
        return query in self._queries

    def __len__(self) -> int:
        return len(self._queries)


def _read_source(source: str | Path | None, dialect: str) -> dict:
    """Parse the TOML resource into a dict of query name → SQL."""
    try:
        if source is not None:
            logger.info(f"Loading SQL queries from {source}")
            with open(source, "rb") as f:
                return tomllib.load(f)
        return tomllib.loads(_embedded_queries(dialect))
    except OSError as e:
        raise QueryCatalogError(f"Cannot read SQL queries from {source}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise QueryCatalogError(f"Malformed SQL query resource: {e}") from e


def _embedded_queries(dialect: str) -> str:
    """Return the packaged TOML text for a dialect (falls back to sqlite)."""
    queries = resources.files("wiki.db").joinpath("queries")
    resource = queries.joinpath(f"{dialect}.toml")
    if not resource.is_file():
        logger.warning(
            f"No embedded queries for dialect '{dialect}', using {DEFAULT_DIALECT}",
        )
        resource = queries.joinpath(f"{DEFAULT_DIALECT}.toml")
    return resource.read_text(encoding="utf-8")
