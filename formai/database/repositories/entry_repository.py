from typing import Any

from psycopg.rows import dict_row

from formai.analysis.models import Choice, Entry, Field, FieldType, Form
from formai.database.connection import get_connection


class EntryRepository:
    """Read-only access to stored forms and their entries.

    ``forms.fields`` holds a JSON array of field descriptors and
    ``entries.field_values`` a JSON object keyed by input id.
    """

    def find_entry(self, entry_id: int) -> Entry | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, form_id, field_values, created_at
                    FROM entries
                    WHERE id = %s
                    """,
                    (entry_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None

        return Entry(
            id=row["id"],
            form_id=row["form_id"],
            created_at=row["created_at"],
            values=row["field_values"] or {},
        )

    def find_form(self, form_id: int) -> Form | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    "SELECT id, title, fields FROM forms WHERE id = %s",
                    (form_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None

        return Form(
            id=row["id"],
            title=row["title"] or "",
            fields=tuple(field_from_payload(f) for f in row["fields"] or []),
        )


def field_from_payload(raw: dict[str, Any]) -> Field:
    """Build a Field from its stored JSON descriptor."""
    return Field(
        id=int(raw["id"]),
        type=FieldType(raw.get("type", "")),
        label=raw.get("label") or "",
        admin_only=bool(raw.get("adminOnly", raw.get("admin_only", False))),
        choices=tuple(
            Choice(text=str(c.get("text", "")), value=str(c.get("value", "")))
            for c in raw.get("choices") or []
        ),
    )
