from datetime import datetime
from typing import Any

from psycopg.rows import dict_row

from formai.database.connection import get_connection
from formai.database.exceptions import AuditLogWriteError
from formai.database.models import AuditLogPage, AuditLogRecord

_COLUMNS = "id, form_id, entry_id, status, request, response, error_message, created_at"


class AuditLogRepository:
    """Database operations for the formai_analysis_logs table.

    The table is owned by this repository and created on first use.
    """

    def __init__(self) -> None:
        self._table_ready = False

    def ensure_table(self) -> None:
        if self._table_ready:
            return
        with get_connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS formai_analysis_logs (
                    id BIGSERIAL PRIMARY KEY,
                    form_id BIGINT NOT NULL,
                    entry_id BIGINT NOT NULL,
                    status VARCHAR(20) NOT NULL,
                    request TEXT,
                    response TEXT,
                    error_message TEXT,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS formai_analysis_logs_created_at_idx
                ON formai_analysis_logs (created_at)
                """
            )
            conn.commit()
        self._table_ready = True

    def insert(self, record: AuditLogRecord) -> int:
        """Append one row. Returns the new row id."""
        self.ensure_table()
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO formai_analysis_logs
                    (form_id, entry_id, status, request, response, error_message, created_at)
                    VALUES (%s, %s, %s, %s, %s, %s, COALESCE(%s::timestamptz, NOW()))
                    RETURNING id
                    """,
                    (
                        record.form_id,
                        record.entry_id,
                        record.status,
                        record.request,
                        record.response,
                        record.error_message,
                        record.created_at,
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise AuditLogWriteError(
                f"Audit log insert for entry {record.entry_id} returned no id"
            )
        return int(row[0])

    def count(self) -> int:
        self.ensure_table()
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT COUNT(*) FROM formai_analysis_logs")
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def find_page(self, page: int = 1, per_page: int = 20) -> AuditLogPage:
        """Return one page of rows ordered newest first."""
        self.ensure_table()
        page = max(1, page)
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM formai_analysis_logs
                    ORDER BY created_at DESC, id DESC
                    LIMIT %s OFFSET %s
                    """,
                    (per_page, (page - 1) * per_page),
                )
                rows = cur.fetchall()
        return AuditLogPage(
            records=[_to_record(r) for r in rows],
            total=self.count(),
            page=page,
            per_page=per_page,
        )

    def find_by_id(self, log_id: int) -> AuditLogRecord | None:
        self.ensure_table()
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM formai_analysis_logs WHERE id = %s",
                    (log_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return _to_record(row)

    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete rows created before ``cutoff``. Returns the number deleted."""
        self.ensure_table()
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM formai_analysis_logs WHERE created_at < %s",
                    (cutoff,),
                )
                deleted = cur.rowcount
            conn.commit()
        return deleted

    def truncate(self) -> None:
        self.ensure_table()
        with get_connection() as conn:
            conn.execute("TRUNCATE TABLE formai_analysis_logs RESTART IDENTITY")
            conn.commit()

    def drop_table(self) -> None:
        with get_connection() as conn:
            conn.execute("DROP TABLE IF EXISTS formai_analysis_logs")
            conn.commit()
        self._table_ready = False


def _to_record(row: dict[str, Any]) -> AuditLogRecord:
    return AuditLogRecord(
        id=row["id"],
        form_id=row["form_id"],
        entry_id=row["entry_id"],
        status=row["status"],
        request=row["request"] or "",
        response=row["response"] or "",
        error_message=row["error_message"],
        created_at=row["created_at"],
    )
