"""Renders the analysis prompt from a template and an entry's FormContext."""

import re
from collections.abc import Mapping
from typing import Any

from formai.analysis.models import FormContext

PLACEHOLDERS = (
    "{form_data}",
    "{form_title}",
    "{submitter_name}",
    "{submitter_email}",
    "{submitter_company}",
    "{submission_date}",
)

# One alternation so every token is replaced in a single left-to-right pass;
# replacement text is never rescanned.
_PLACEHOLDER_PATTERN = re.compile("|".join(re.escape(p) for p in PLACEHOLDERS))

_SEARCH_DIRECTIVE = (
    "\n\nPlease search for publicly available information about {who} "
    "and include relevant findings in your analysis."
)


def format_form_data(form_data: Mapping[str, Any]) -> str:
    """Render collected field data as a bullet list under a header line."""
    if not form_data:
        return ""
    lines = ["Form Submission Data:\n"]
    for label, value in form_data.items():
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(v) for v in value)
        lines.append(f"- {label}: {value}\n")
    return "".join(lines)


def compose(template: str, context: FormContext) -> str:
    """Substitute placeholders in ``template`` and append the search directive."""
    replacements = {
        "{form_data}": format_form_data(context.form_data),
        "{form_title}": context.form_title or "",
        "{submitter_name}": context.submitter_name or "",
        "{submitter_email}": context.submitter_email or "",
        "{submitter_company}": context.submitter_company or "",
        "{submission_date}": context.submission_date or "",
    }
    message = _PLACEHOLDER_PATTERN.sub(lambda m: replacements[m.group(0)], template)
    return message + _search_directive(context.submitter_name, context.submitter_company)


def _search_directive(name: str, company: str) -> str:
    if name and company:
        who = f"{name} from {company}"
    elif name or company:
        who = name or company
    else:
        return ""
    return _SEARCH_DIRECTIVE.format(who=who)
