# FILE: app/schemas/letterhead.py
from __future__ import annotations

from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import (AliasChoices, BaseModel, ConfigDict, Field,
                      model_validator)
from pydantic.alias_generators import to_camel


class _Camel(BaseModel):
    # stored documents use camelCase keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FieldKey(str, Enum):
    name = "name"
    address = "address"
    phone = "phone"
    email = "email"
    gstin = "gstin"
    registration = "registration"


ElementType = Literal["text", "html", "logo", "line", "field"]
TemplateType = Literal["billing", "report", "prescription", "general"]


class Position(_Camel):
    x: float = 0  # px relative to canvas
    y: float = 0


class Size(_Camel):
    w: float
    h: float


class ElementStyle(_Camel):
    color: Optional[str] = None
    font_family: Optional[str] = None
    font_size: Optional[float] = None  # px
    font_weight: Optional[Union[int, str]] = None
    font_style: Optional[Literal["normal", "italic", "oblique"]] = None
    text_align: Optional[Literal["left", "center", "right"]] = None
    z_index: Optional[int] = None


class _ElementBase(_Camel):
    id: str
    position: Position = Field(default_factory=Position)
    size: Optional[Size] = None
    style: Optional[ElementStyle] = None


class TextElement(_ElementBase):
    type: Literal["text"] = "text"
    text: str = ""


class HtmlElement(_ElementBase):
    type: Literal["html"] = "html"
    html: str = ""  # sanitized on render


class LogoElement(_ElementBase):
    type: Literal["logo"] = "logo"
    src: str = ""  # storage path, url or data uri


class LineElement(_ElementBase):
    type: Literal["line"] = "line"
    thickness: Optional[float] = None
    color: Optional[str] = None


class FieldElement(_ElementBase):
    type: Literal["field"] = "field"
    # known keys parse to FieldKey; anything else is kept and renders as [key]
    field: Union[FieldKey, str] = Field(
        union_mode="left_to_right",
        validation_alias=AliasChoices("field", "fieldKey"))
    label: Optional[str] = None  # optional prefix

    @property
    def field_name(self) -> str:
        if isinstance(self.field, FieldKey):
            return self.field.value
        return self.field


Element = Annotated[Union[TextElement, HtmlElement, LogoElement, LineElement,
                          FieldElement],
                    Field(discriminator="type")]


class Watermark(_Camel):
    text: Optional[str] = None
    color: Optional[str] = None  # rgba recommended
    angle: Optional[float] = None  # degrees
    opacity: Optional[float] = Field(default=None, ge=0, le=1)


class TemplateSettings(_Camel):
    primary_color: Optional[str] = None
    font_family: Optional[str] = None
    background_color: Optional[str] = None
    show_footer: bool = True
    watermark: Optional[Watermark] = None


def _check_unique_ids(elements: List[Element]) -> None:
    seen: set[str] = set()
    for el in elements:
        if el.id in seen:
            raise ValueError(f"duplicate element id: {el.id}")
        seen.add(el.id)


class LetterheadTemplate(_Camel):
    id: str
    name: str
    description: Optional[str] = None
    type: Optional[TemplateType] = None
    is_default: bool = False
    elements: List[Element] = Field(default_factory=list)
    settings: TemplateSettings = Field(default_factory=TemplateSettings)
    created_at: str
    updated_at: str

    @model_validator(mode="after")
    def _unique_element_ids(self) -> "LetterheadTemplate":
        _check_unique_ids(self.elements)
        return self


class LetterheadCreate(_Camel):
    name: str = "New Template"
    description: Optional[str] = None
    type: Optional[TemplateType] = None
    is_default: bool = False
    elements: Optional[List[Element]] = None  # None -> default layout
    settings: Optional[TemplateSettings] = None

    @model_validator(mode="after")
    def _unique_element_ids(self) -> "LetterheadCreate":
        _check_unique_ids(self.elements or [])
        return self


class LetterheadUpdate(_Camel):
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[TemplateType] = None
    is_default: Optional[bool] = None
    elements: Optional[List[Element]] = None
    settings: Optional[TemplateSettings] = None


class ElementCreate(_Camel):
    type: ElementType
    position: Optional[Position] = None
    size: Optional[Size] = None
    style: Optional[ElementStyle] = None
    text: Optional[str] = None
    html: Optional[str] = None
    src: Optional[str] = None
    thickness: Optional[float] = None
    color: Optional[str] = None
    field: Optional[FieldKey] = None
    label: Optional[str] = None


class ElementUpdate(_Camel):
    position: Optional[Position] = None
    size: Optional[Size] = None
    style: Optional[ElementStyle] = None
    text: Optional[str] = None
    html: Optional[str] = None
    src: Optional[str] = None
    thickness: Optional[float] = None
    color: Optional[str] = None
    field: Optional[FieldKey] = None
    label: Optional[str] = None
