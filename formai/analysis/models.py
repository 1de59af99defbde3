from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class FieldType(str, Enum):
    """Form field type tags. Unknown tags map to OTHER and render raw."""

    TEXT = "text"
    NAME = "name"
    EMAIL = "email"
    TEXTAREA = "textarea"
    CHECKBOX = "checkbox"
    ADDRESS = "address"
    LIST = "list"
    FILEUPLOAD = "fileupload"
    HIDDEN = "hidden"
    HTML = "html"
    SECTION = "section"
    PAGE = "page"
    CAPTCHA = "captcha"
    HONEYPOT = "honeypot"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value: object) -> "FieldType":
        return cls.OTHER


@dataclass(frozen=True)
class Choice:
    """A selectable option on a checkbox-like field."""

    text: str
    value: str = ""


@dataclass(frozen=True)
class Field:
    """A single field descriptor in a form schema."""

    id: int
    type: FieldType
    label: str = ""
    admin_only: bool = False
    choices: tuple[Choice, ...] = ()


@dataclass(frozen=True)
class Form:
    """Form schema: ordered field descriptors shared by all entries of one kind."""

    id: int
    title: str = ""
    fields: tuple[Field, ...] = ()


@dataclass(frozen=True)
class Entry:
    """One submission of a form.

    ``values`` is keyed by ``"{field_id}"`` or ``"{field_id}.{subindex}"``
    for composite inputs.
    """

    id: int
    form_id: int
    created_at: datetime | None = None
    values: Mapping[str, Any] = field(default_factory=dict)

    def value(self, key: int | str) -> Any:
        """Return the raw value for a field key, or an empty string."""
        raw = self.values.get(str(key))
        return "" if raw is None else raw


@dataclass(frozen=True)
class Identity:
    """Identifying scalars derived from an entry. Unmatched slots are empty."""

    name: str = ""
    email: str = ""
    company: str = ""


@dataclass
class FormContext:
    """Everything the prompt composer and the audit log need about an entry."""

    form_id: int = 0
    entry_id: int = 0
    form_title: str = ""
    form_data: dict[str, Any] = field(default_factory=dict)
    submitter_name: str = ""
    submitter_email: str = ""
    submitter_company: str = ""
    submission_date: str = ""


@dataclass(frozen=True)
class ApiResult:
    """Outcome of one call to the inference API."""

    ok: bool
    text: str = ""
    usage: dict[str, Any] | None = None
    error: str = ""
    status_code: int | None = None

    @classmethod
    def success(cls, text: str, usage: dict[str, Any] | None = None) -> "ApiResult":
        return cls(ok=True, text=text, usage=usage)

    @classmethod
    def failure(cls, error: str, status_code: int | None = None) -> "ApiResult":
        return cls(ok=False, error=error, status_code=status_code)


@dataclass(frozen=True)
class AnalysisOutcome:
    """Outcome of one orchestrated analysis run for an entry."""

    ok: bool
    text: str = ""
    error: str = ""


@dataclass(frozen=True)
class AnalysisRecord:
    """The four annotation slots stored against an entry."""

    analysis_text: str | None = None
    analysis_date: str | None = None
    error_text: str | None = None
    error_date: str | None = None
