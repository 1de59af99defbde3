"""Extension points around an analysis run.

Filters transform a value and must return it; listeners are notified and
their return value is ignored. Callbacks run in registration order.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from formai.analysis.models import FormContext

PromptFilter = Callable[[str, FormContext], str]
ResultFilter = Callable[[str, int, int], str]
AnalysisListener = Callable[[int, str, int], None]
DeleteListener = Callable[[int], None]


@dataclass
class AnalysisHooks:
    """Callback registry owned by an EntryAnalyzer.

    - prompt filter: ``(prompt, context) -> prompt``
    - result filter: ``(text, entry_id, form_id) -> text``
    - after analysis: ``(entry_id, text, form_id)``
    - analysis failed: ``(entry_id, error, form_id)``
    - after delete: ``(entry_id)``
    """

    prompt_filters: list[PromptFilter] = field(default_factory=list)
    result_filters: list[ResultFilter] = field(default_factory=list)
    after_analysis: list[AnalysisListener] = field(default_factory=list)
    analysis_failed: list[AnalysisListener] = field(default_factory=list)
    after_delete: list[DeleteListener] = field(default_factory=list)

    def filter_prompt(self, prompt: str, context: FormContext) -> str:
        for hook in self.prompt_filters:
            prompt = hook(prompt, context)
        return prompt

    def filter_result(self, text: str, entry_id: int, form_id: int) -> str:
        for hook in self.result_filters:
            text = hook(text, entry_id, form_id)
        return text

    def notify_success(self, entry_id: int, text: str, form_id: int) -> None:
        for hook in self.after_analysis:
            hook(entry_id, text, form_id)

    def notify_failure(self, entry_id: int, error: str, form_id: int) -> None:
        for hook in self.analysis_failed:
            hook(entry_id, error, form_id)

    def notify_delete(self, entry_id: int) -> None:
        for hook in self.after_delete:
            hook(entry_id)
