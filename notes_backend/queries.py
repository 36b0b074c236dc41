"""
Note listing: owner scoping, search, sort and pagination.

The owner predicate is always applied first. Counts are taken from the
filtered set before slicing, and out-of-range pages are clamped to the last
page that has items.
"""
import math
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from notes_backend import config
from notes_database.models import Note

SORT_NEWEST = "newest"
SORT_OLDEST = "oldest"
SORT_MODES = (SORT_NEWEST, SORT_OLDEST)

_LIKE_ESCAPE = "\\"


def parse_page(raw) -> int:
    """Page number from a raw query value; anything unusable means page 1."""
    try:
        page = int(raw)
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1


def parse_sort(raw) -> str:
    return raw if raw in SORT_MODES else SORT_NEWEST


def normalize_search(raw) -> str:
    return raw.strip() if raw else ""


@dataclass(frozen=True)
class ListParams:
    page: int = 1
    sort: str = SORT_NEWEST
    search: str = ""

    @classmethod
    def from_query(cls, page=None, sort=None, search=None) -> "ListParams":
        return cls(page=parse_page(page), sort=parse_sort(sort), search=normalize_search(search))


@dataclass
class NotePage:
    items: List[Note] = field(default_factory=list)
    current_page: int = 1
    total_pages: int = 0
    total_items: int = 0
    sort: str = SORT_NEWEST
    search: str = ""

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages


def _escape_like(term: str) -> str:
    return (
        term.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )


# PUBLIC_INTERFACE
def list_notes(db: Session, owner_id: Optional[int], params: ListParams, page_size: int = config.PAGE_SIZE) -> NotePage:
    """
    Return one page of the owner's notes.

    Anonymous callers (owner_id is None) get an empty first page without
    touching the database.
    """
    sort = parse_sort(params.sort)
    search = normalize_search(params.search)
    if owner_id is None:
        return NotePage(sort=sort, search=search)

    query = db.query(Note).filter(Note.user_id == owner_id)
    if search:
        pattern = f"%{_escape_like(search)}%"
        query = query.filter(
            Note.title.ilike(pattern, escape=_LIKE_ESCAPE) | Note.content.ilike(pattern, escape=_LIKE_ESCAPE)
        )

    total_items = query.count()
    total_pages = math.ceil(total_items / page_size)

    page = parse_page(params.page)
    if total_items == 0:
        # nothing to slice; an arbitrarily large page must not reach OFFSET
        return NotePage(current_page=page, sort=sort, search=search)
    if page > total_pages:
        page = total_pages

    if sort == SORT_OLDEST:
        query = query.order_by(Note.created_at.asc(), Note.id.asc())
    else:
        query = query.order_by(Note.created_at.desc(), Note.id.desc())

    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return NotePage(
        items=items,
        current_page=page,
        total_pages=total_pages,
        total_items=total_items,
        sort=sort,
        search=search,
    )
