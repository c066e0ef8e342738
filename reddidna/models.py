"""Persona report returned by the analysis service.

Wire names are camelCase (``summaryQuote``, ``profileInfo``...); Python
attributes are snake_case. Every model is frozen and every sequence is a tuple,
so a report cannot be edited in place once parsed.
"""
from typing import Annotated, Any, Iterator, Literal, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


class _Frozen(BaseModel):
    # Unknown keys are kept so the report can be sent back exactly as received.
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True, extra="allow")


class TextValue(_Frozen):
    kind: Literal["text"] = "text"
    text: str

    def __str__(self) -> str:
        return self.text


class NumberValue(_Frozen):
    kind: Literal["number"] = "number"
    number: int | float

    def __str__(self) -> str:
        n = self.number
        if isinstance(n, float) and n.is_integer():
            return str(int(n))
        return str(n)


def _tag_scalar(raw: Any) -> Any:
    # The service sends bare JSON scalars; wrap them so the union has a tag.
    if isinstance(raw, (TextValue, NumberValue, dict)):
        return raw
    if isinstance(raw, bool):
        return {"kind": "text", "text": str(raw).lower()}
    if isinstance(raw, (int, float)):
        return {"kind": "number", "number": raw}
    if isinstance(raw, str):
        return {"kind": "text", "text": raw}
    return raw


def _untag_scalar(value: Union[TextValue, NumberValue]) -> str | int | float:
    return value.text if isinstance(value, TextValue) else value.number


ScalarValue = Annotated[
    Union[TextValue, NumberValue],
    BeforeValidator(_tag_scalar),
    PlainSerializer(_untag_scalar),
]


class Citation(_Frozen):
    quote: str | None = None
    url: str = ""


class EvidencedValue(_Frozen):
    value: ScalarValue
    sources: tuple[Citation, ...] = ()

    def __str__(self) -> str:
        return str(self.value)


class Trait(_Frozen):
    name: str
    active: bool = False
    sources: tuple[Citation, ...] = ()


class Motivation(_Frozen):
    name: str
    value: int | float  # bar width in percent, not clamped
    sources: tuple[Citation, ...] = ()


class PersonalityAxis(_Frozen):
    name: str  # "Introvert-Extrovert"
    value: int | float  # marker position in percent, not clamped
    sources: tuple[Citation, ...] = ()

    @property
    def poles(self) -> tuple[str, str]:
        """Split the name on the first '-'; with no delimiter the right pole is empty."""
        left, _, right = self.name.partition("-")
        return left.strip(), right.strip()


PROFILE_FIELDS = ("age", "occupation", "status", "location", "tier", "archetype")


class ProfileInfo(_Frozen):
    age: EvidencedValue
    occupation: EvidencedValue
    status: EvidencedValue
    location: EvidencedValue
    tier: EvidencedValue
    archetype: EvidencedValue

    def items(self) -> Iterator[tuple[str, EvidencedValue]]:
        for name in PROFILE_FIELDS:
            yield name, getattr(self, name)


class PersonaReport(_Frozen):
    username: str
    summary_quote: EvidencedValue | None = None
    profile_image: str = ""
    profile_info: ProfileInfo
    traits: tuple[Trait, ...] = ()
    motivations: tuple[Motivation, ...] = ()
    personality: tuple[PersonalityAxis, ...] = ()
    behaviors: tuple[EvidencedValue, ...] = ()
    frustrations: tuple[EvidencedValue, ...] = ()
    goals: tuple[EvidencedValue, ...] = ()
    quote: EvidencedValue | None = None

    @property
    def archetype_label(self) -> str:
        return str(self.profile_info.archetype) or "User"

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict in the service's camelCase shape, with exactly the keys it sent."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
