from collections.abc import Sequence

from formai.database.base import AnnotationStore
from formai.database.connection import get_connection


class EntryMetaRepository(AnnotationStore):
    """Per-entry annotations in the entry_meta table."""

    def get_annotation(self, entry_id: int, key: str) -> str | None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT meta_value
                    FROM entry_meta
                    WHERE entry_id = %s AND meta_key = %s
                    """,
                    (entry_id, key),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return row[0]

    def set_annotation(self, entry_id: int, key: str, value: str) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO entry_meta (entry_id, meta_key, meta_value)
                VALUES (%s, %s, %s)
                ON CONFLICT (entry_id, meta_key)
                DO UPDATE SET meta_value = EXCLUDED.meta_value
                """,
                (entry_id, key, value),
            )
            conn.commit()

    def delete_annotation(self, entry_id: int, key: str) -> None:
        with get_connection() as conn:
            conn.execute(
                "DELETE FROM entry_meta WHERE entry_id = %s AND meta_key = %s",
                (entry_id, key),
            )
            conn.commit()

    def delete_annotations(self, entry_id: int, keys: Sequence[str]) -> None:
        with get_connection() as conn:
            conn.execute(
                "DELETE FROM entry_meta WHERE entry_id = %s AND meta_key = ANY(%s)",
                (entry_id, list(keys)),
            )
            conn.commit()

    def delete_key_everywhere(self, key: str) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM entry_meta WHERE meta_key = %s", (key,))
                deleted = cur.rowcount
            conn.commit()
        return deleted
