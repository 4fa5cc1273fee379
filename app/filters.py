"""
In-memory filtering of an already fetched note collection.

Everything here is pure: state objects are frozen and every transition
returns a new instance.
"""
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .schemas import Note

ALL = "all"


def _distinct(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


def distinct_courses(notes: Sequence[Note]) -> List[str]:
    return _distinct(note.course for note in notes)


def distinct_lecturers(notes: Sequence[Note]) -> List[str]:
    return _distinct(note.lecturer for note in notes)


def distinct_tags(notes: Sequence[Note]) -> List[str]:
    return _distinct(tag for note in notes for tag in note.tags)


@dataclass(frozen=True)
class FilterState:
    search_term: str = ""
    course: str = ALL
    lecturer: str = ALL
    tag: str = ALL

    def with_search_term(self, term: Optional[str]) -> "FilterState":
        return replace(self, search_term=term or "")

    def with_course(self, course: Optional[str]) -> "FilterState":
        return replace(self, course=course or ALL)

    def with_lecturer(self, lecturer: Optional[str]) -> "FilterState":
        return replace(self, lecturer=lecturer or ALL)

    def with_tag(self, tag: Optional[str]) -> "FilterState":
        return replace(self, tag=tag or ALL)

    def reset(self) -> "FilterState":
        return FilterState()

    @property
    def is_default(self) -> bool:
        return self == FilterState()


def matches(note: Note, filters: FilterState) -> bool:
    if filters.course != ALL and note.course != filters.course:
        return False
    if filters.lecturer != ALL and note.lecturer != filters.lecturer:
        return False
    if filters.tag != ALL and filters.tag not in note.tags:
        return False
    if not filters.search_term:
        return True
    term = filters.search_term.lower()
    return (
        term in note.title.lower()
        or term in note.course.lower()
        or term in note.lecturer.lower()
        or any(term in tag.lower() for tag in note.tags)
    )


def filter_notes(notes: Sequence[Note], filters: Optional[FilterState] = None) -> List[Note]:
    """Notes matching every active filter, in input order."""
    filters = filters or FilterState()
    return [note for note in notes if matches(note, filters)]


@dataclass(frozen=True)
class Catalog:
    """A point-in-time snapshot of notes plus the active filters."""

    notes: Tuple[Note, ...] = ()
    filters: FilterState = field(default_factory=FilterState)

    @classmethod
    def from_notes(cls, notes: Iterable[Note], filters: Optional[FilterState] = None) -> "Catalog":
        return cls(notes=tuple(notes), filters=filters or FilterState())

    def visible(self) -> List[Note]:
        return filter_notes(self.notes, self.filters)

    def facets(self) -> Dict[str, List[str]]:
        return {
            "courses": distinct_courses(self.notes),
            "lecturers": distinct_lecturers(self.notes),
            "tags": distinct_tags(self.notes),
        }

    def with_filters(self, filters: FilterState) -> "Catalog":
        return replace(self, filters=filters)

    def replace_note(self, updated: Note) -> "Catalog":
        return replace(
            self,
            notes=tuple(updated if note.id == updated.id else note for note in self.notes),
        )

    def remove_note(self, note_id: str) -> "Catalog":
        return replace(self, notes=tuple(note for note in self.notes if note.id != note_id))
