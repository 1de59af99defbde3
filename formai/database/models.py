from dataclasses import dataclass
from datetime import datetime


@dataclass
class AuditLogRecord:
    """Represents a row from the formai_analysis_logs table."""

    form_id: int
    entry_id: int
    status: str
    request: str = ""
    response: str = ""
    error_message: str | None = None
    created_at: datetime | None = None
    id: int | None = None


@dataclass
class AuditLogPage:
    """One page of audit log rows, newest first."""

    records: list[AuditLogRecord]
    total: int
    page: int
    per_page: int

    @property
    def total_pages(self) -> int:
        return max(1, -(-self.total // self.per_page))
