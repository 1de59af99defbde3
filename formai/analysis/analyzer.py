"""Orchestrates one analysis run per entry."""

from collections.abc import Callable
from datetime import datetime, timezone

from formai.analysis.api_client import AnalysisApiClient
from formai.analysis.field_extractor import extract_context, get_all_analyzable_field_ids
from formai.analysis.hooks import AnalysisHooks
from formai.analysis.models import AnalysisOutcome, AnalysisRecord, Entry, Form
from formai.analysis.prompt_composer import compose
from formai.config.options import AnalysisOptions
from formai.database.base import AnnotationStore
from formai.database.repositories.entry_repository import EntryRepository
from formai.logging.logger import Log

ANALYSIS_TEXT = "analysis_text"
ANALYSIS_DATE = "analysis_date"
ERROR_TEXT = "error_text"
ERROR_DATE = "error_date"
ANNOTATION_KEYS = (ANALYSIS_TEXT, ANALYSIS_DATE, ERROR_TEXT, ERROR_DATE)

GLOBAL_DISABLED_ERROR = "Global AI analysis is disabled"
FORM_DISABLED_ERROR = "AI analysis is disabled for this form"
INVALID_ENTRY_ERROR = "Invalid entry or form"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntryAnalyzer:
    """Resolves effective settings for an entry and runs the analysis pipeline.

    Pipeline: gates -> field selection -> context -> prompt -> API -> persist.
    Each call is stateless given the current options; re-running overwrites
    the success or error slots of the entry, whichever the new run produces.
    """

    def __init__(
        self,
        *,
        options: AnalysisOptions,
        api_client: AnalysisApiClient,
        annotations: AnnotationStore,
        entries: EntryRepository,
        hooks: AnalysisHooks | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._options = options
        self._api_client = api_client
        self._annotations = annotations
        self._hooks = hooks or AnalysisHooks()
        self._entries = entries
        self._clock = clock

    @property
    def hooks(self) -> AnalysisHooks:
        return self._hooks

    def process_entry(self, entry: Entry, form: Form) -> AnalysisOutcome:
        """Run the full analysis for one entry and persist the outcome."""
        if not self._options.enabled:
            Log.info("AI analysis skipped: global setting disabled", entry_id=entry.id)
            return AnalysisOutcome(ok=False, error=GLOBAL_DISABLED_ERROR)

        if not self._options.is_form_enabled(form.id):
            Log.info("AI analysis skipped: disabled for form", entry_id=entry.id, form_id=form.id)
            return AnalysisOutcome(ok=False, error=FORM_DISABLED_ERROR)

        # Auto mode is recomputed every run so schema edits apply immediately.
        field_ids = self._options.form_field_mapping(form.id) or get_all_analyzable_field_ids(form)
        context = extract_context(entry, form, field_ids)

        prompt = self._options.resolve_prompt(form.id)
        prompt = self._hooks.filter_prompt(prompt, context)
        message = compose(prompt, context)
        Log.debug(f"Analysis prompt for entry {entry.id}:\n{message}")

        result = self._api_client.invoke(message, form_id=form.id, entry_id=entry.id)

        if result.ok:
            text = self._hooks.filter_result(result.text, entry.id, form.id)
            self._annotations.set_annotation(entry.id, ANALYSIS_TEXT, text)
            self._annotations.set_annotation(entry.id, ANALYSIS_DATE, self._now())
            self._hooks.notify_success(entry.id, text, form.id)
            Log.info(f"Entry {entry.id} analyzed ({len(text)} chars)", form_id=form.id)
            return AnalysisOutcome(ok=True, text=text)

        # A failure never clears an earlier successful analysis.
        self._annotations.set_annotation(entry.id, ERROR_TEXT, result.error)
        self._annotations.set_annotation(entry.id, ERROR_DATE, self._now())
        self._hooks.notify_failure(entry.id, result.error, form.id)
        Log.warning(f"Entry {entry.id} analysis failed: {result.error}", form_id=form.id)
        return AnalysisOutcome(ok=False, error=result.error)

    def analyze_entry_by_id(self, entry_id: int) -> AnalysisOutcome:
        """Load an entry and its form from storage, then process it."""
        entry = self._entries.find_entry(entry_id)
        form = self._entries.find_form(entry.form_id) if entry is not None else None
        if entry is None or form is None:
            return AnalysisOutcome(ok=False, error=INVALID_ENTRY_ERROR)
        return self.process_entry(entry, form)

    def get_analysis(self, entry_id: int) -> AnalysisRecord:
        return AnalysisRecord(
            analysis_text=self._annotations.get_annotation(entry_id, ANALYSIS_TEXT),
            analysis_date=self._annotations.get_annotation(entry_id, ANALYSIS_DATE),
            error_text=self._annotations.get_annotation(entry_id, ERROR_TEXT),
            error_date=self._annotations.get_annotation(entry_id, ERROR_DATE),
        )

    def delete_analysis(self, entry_id: int) -> None:
        """Remove all analysis annotations from an entry. Safe to repeat."""
        self._annotations.delete_annotations(entry_id, ANNOTATION_KEYS)
        self._hooks.notify_delete(entry_id)
        Log.info(f"Analysis deleted for entry {entry_id}")

    def _now(self) -> str:
        return self._clock().strftime(_DATE_FORMAT)
