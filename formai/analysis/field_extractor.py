"""Derives prompt context from an entry and its form schema."""

import json
from collections.abc import Callable, Iterable
from pathlib import PurePosixPath
from typing import Any

from formai.analysis.models import Entry, Field, FieldType, Form, FormContext, Identity

EXCLUDED_FIELD_TYPES = frozenset(
    {
        FieldType.HTML,
        FieldType.SECTION,
        FieldType.PAGE,
        FieldType.CAPTCHA,
        FieldType.HONEYPOT,
        FieldType.HIDDEN,
    }
)

_COMPANY_LABEL_KEYWORDS = ("company", "organization", "business")
_ADDRESS_SUBFIELDS = range(1, 7)


def get_all_analyzable_field_ids(form: Form) -> list[int]:
    """Return ids of every non-structural, non-admin field in schema order."""
    return [
        f.id
        for f in form.fields
        if f.type not in EXCLUDED_FIELD_TYPES and not f.admin_only
    ]


def collect_form_data(entry: Entry, form: Form, field_ids: Iterable[int]) -> dict[str, Any]:
    """Map label -> rendered value for the selected fields that have a value.

    Fields outside ``field_ids`` are skipped entirely.
    """
    selected = set(field_ids)
    data: dict[str, Any] = {}
    for f in form.fields:
        if f.id not in selected:
            continue
        value = render_field_value(entry, f)
        if value:
            data[f.label or f"Field {f.id}"] = value
    return data


def render_field_value(entry: Entry, field: Field) -> Any:
    renderer = _RENDERERS.get(field.type, _render_raw)
    return renderer(entry, field)


def extract_identity(entry: Entry, form: Form) -> Identity:
    return Identity(
        name=_extract_name(entry, form),
        email=_extract_email(entry, form),
        company=_extract_company(entry, form),
    )


def extract_context(entry: Entry, form: Form, field_ids: Iterable[int]) -> FormContext:
    """Assemble the full FormContext for one analysis run."""
    identity = extract_identity(entry, form)
    return FormContext(
        form_id=form.id,
        entry_id=entry.id,
        form_title=form.title,
        form_data=collect_form_data(entry, form, field_ids),
        submitter_name=identity.name,
        submitter_email=identity.email,
        submitter_company=identity.company,
        submission_date=(
            entry.created_at.strftime("%Y-%m-%d %H:%M:%S") if entry.created_at else ""
        ),
    )


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def _render_raw(entry: Entry, field: Field) -> Any:
    return entry.value(field.id)


def _render_name(entry: Entry, field: Field) -> str:
    first = _as_text(entry.value(f"{field.id}.3"))
    last = _as_text(entry.value(f"{field.id}.6"))
    return f"{first} {last}".strip()


def _render_address(entry: Entry, field: Field) -> str:
    parts = [_as_text(entry.value(f"{field.id}.{i}")) for i in _ADDRESS_SUBFIELDS]
    return ", ".join(p for p in parts if p)


def _render_checkbox(entry: Entry, field: Field) -> str:
    selected = [
        choice.text
        for position, choice in enumerate(field.choices, start=1)
        if entry.value(f"{field.id}.{position}")
    ]
    return ", ".join(selected)


def _render_list(entry: Entry, field: Field) -> Any:
    raw = entry.value(field.id)
    rows = raw
    if isinstance(raw, str) and raw:
        try:
            rows = json.loads(raw)
        except json.JSONDecodeError:
            return raw
    if not isinstance(rows, list):
        return raw
    formatted = [
        " | ".join(_as_text(cell) for cell in row) if isinstance(row, list) else _as_text(row)
        for row in rows
    ]
    return "; ".join(formatted)


def _render_fileupload(entry: Entry, field: Field) -> str:
    raw = _as_text(entry.value(field.id))
    if not raw:
        return ""
    return f"File: {PurePosixPath(raw).name}"


_RENDERERS: dict[FieldType, Callable[[Entry, Field], Any]] = {
    FieldType.NAME: _render_name,
    FieldType.ADDRESS: _render_address,
    FieldType.CHECKBOX: _render_checkbox,
    FieldType.LIST: _render_list,
    FieldType.FILEUPLOAD: _render_fileupload,
}


def _extract_name(entry: Entry, form: Form) -> str:
    for f in form.fields:
        if f.type is FieldType.NAME:
            return _render_name(entry, f)
    # Fall back to a plain text field labelled like a name.
    for f in form.fields:
        if f.type is FieldType.TEXT and "name" in f.label.lower():
            return _as_text(entry.value(f.id))
    return ""


def _extract_email(entry: Entry, form: Form) -> str:
    for f in form.fields:
        if f.type is FieldType.EMAIL:
            return _as_text(entry.value(f.id))
    return ""


def _extract_company(entry: Entry, form: Form) -> str:
    for f in form.fields:
        label = f.label.lower()
        if any(keyword in label for keyword in _COMPANY_LABEL_KEYWORDS):
            return _as_text(entry.value(f.id))
    return ""
