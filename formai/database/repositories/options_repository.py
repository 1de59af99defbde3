from typing import Any

from psycopg.types.json import Jsonb

from formai.database.base import OptionStore
from formai.database.connection import get_connection


class OptionsRepository(OptionStore):
    """Key-value options in the formai_options table.

    Values are JSONB so that a stored ``false`` is distinguishable from a
    missing row.
    """

    def get(self, key: str, default: Any = None) -> Any:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT value FROM formai_options WHERE name = %s",
                    (key,),
                )
                row = cur.fetchone()

        if row is None:
            return default
        return row[0]

    def set(self, key: str, value: Any) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO formai_options (name, value, updated_at)
                VALUES (%s, %s, NOW())
                ON CONFLICT (name)
                DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()
                """,
                (key, Jsonb(value)),
            )
            conn.commit()

    def delete(self, key: str) -> bool:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM formai_options WHERE name = %s", (key,))
                deleted = cur.rowcount
            conn.commit()
        return deleted > 0

    def delete_all(self) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM formai_options")
                deleted = cur.rowcount
            conn.commit()
        return deleted
