"""Removal of all data this package stores."""

from formai.analysis.analyzer import ANNOTATION_KEYS
from formai.config.options import AnalysisOptions
from formai.database.base import AnnotationStore
from formai.database.repositories.audit_log_repository import AuditLogRepository
from formai.logging.logger import Log


def remove_all_data(
    options: AnalysisOptions,
    annotations: AnnotationStore,
    audit_logs: AuditLogRepository,
) -> bool:
    """Drop options, the audit log table and entry annotations.

    Does nothing unless ``delete_on_uninstall`` is enabled.

    Returns:
        True when data was removed.
    """
    if not options.delete_on_uninstall:
        Log.info("Uninstall: delete_on_uninstall is off, keeping data")
        return False

    removed_options = options.store.delete_all()
    audit_logs.drop_table()
    removed_annotations = sum(annotations.delete_key_everywhere(key) for key in ANNOTATION_KEYS)
    Log.info(
        "Uninstall: removed all data",
        options=removed_options,
        annotations=removed_annotations,
    )
    return True
