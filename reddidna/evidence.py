"""Evidence lookup: which citations back a displayed field, and the one open panel."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Union

from reddidna.models import Citation, EvidencedValue, Motivation, PersonalityAxis, PersonaReport, Trait

NO_QUOTE = "N/A"
NO_SOURCES = "No specific source was cited for this item."

Evidenced = Union[EvidencedValue, Motivation, PersonalityAxis, Trait]

_SEQUENCES = ("traits", "motivations", "personality", "behaviors", "frustrations", "goals")


@dataclass(frozen=True)
class CitationView:
    quote: str
    url: str

    @classmethod
    def of(cls, citation: Citation) -> "CitationView":
        return cls(quote=citation.quote or NO_QUOTE, url=citation.url)


@dataclass(frozen=True)
class EvidencePanel:
    citations: tuple[CitationView, ...]

    @property
    def empty(self) -> bool:
        return not self.citations


def evidenced_fields(report: PersonaReport) -> Iterator[tuple[str, Evidenced]]:
    """Every field of the report that can be asked for its sources, as (path, item)."""
    if report.summary_quote is not None:
        yield "summary_quote", report.summary_quote
    for name, item in report.profile_info.items():
        yield f"profile_info.{name}", item
    for seq in _SEQUENCES:
        for i, item in enumerate(getattr(report, seq)):
            yield f"{seq}.{i}", item
    if report.quote is not None:
        yield "quote", report.quote


def field_sources(report: PersonaReport, path: str) -> tuple[Citation, ...]:
    """Resolve a path like ``profile_info.age`` or ``behaviors.2`` to its citations.

    Raises KeyError for paths that do not name an evidenced field.
    """
    head, _, tail = path.partition(".")
    if head in ("summary_quote", "quote") and not tail:
        item = getattr(report, head)
        if item is None:
            raise KeyError(path)
        return item.sources
    if head == "profile_info" and tail:
        try:
            return getattr(report.profile_info, tail).sources
        except AttributeError:
            raise KeyError(path) from None
    if head in _SEQUENCES and tail.isdigit():
        items = getattr(report, head)
        index = int(tail)
        if index >= len(items):
            raise KeyError(path)
        return items[index].sources
    raise KeyError(path)


class EvidenceLookup:
    """Holds at most one open citation panel; opening a new one replaces it."""

    def __init__(self) -> None:
        self._current: EvidencePanel | None = None

    @property
    def current(self) -> EvidencePanel | None:
        return self._current

    def open(self, citations: tuple[Citation, ...] | list[Citation]) -> EvidencePanel:
        self._current = EvidencePanel(tuple(CitationView.of(c) for c in citations))
        return self._current

    def open_field(self, report: PersonaReport, path: str) -> EvidencePanel:
        return self.open(field_sources(report, path))

    def close(self) -> None:
        self._current = None
