"""Runtime options stored in the option store, with per-form overrides."""

from collections.abc import Iterable
from typing import Any, ClassVar

from formai.database.base import OptionStore

DEFAULT_PROMPT_TEMPLATE = (
    "Analyze this form submission and provide insights about the submitter. "
    "Search for relevant information about the person or company if available. "
    "Focus on professional background, company details, and potential business needs."
)

_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})


class AnalysisOptions:
    """Typed view over the option store.

    Per-form keys are ``enabled_override_{id}``, ``field_mapping_{id}`` and
    ``prompt_override_{id}``. An absent per-form key always falls back to the
    global value; a stored ``False`` override is never treated as absent.
    """

    DEFAULTS: ClassVar[dict[str, Any]] = {
        "enabled": False,
        "model": "claude-3-5-haiku-20241022",
        "max_tokens": 1000,
        "temperature": 0.7,
        "rate_limit_seconds": 2,
        "logging_enabled": True,
        "log_retention_days": 30,
        "default_prompt_template": DEFAULT_PROMPT_TEMPLATE,
        "delete_on_uninstall": False,
    }

    # Inclusive bounds for numeric options set from text.
    RANGES: ClassVar[dict[str, tuple[float, float]]] = {
        "max_tokens": (100, 4000),
        "temperature": (0.0, 1.0),
        "rate_limit_seconds": (1, 60),
        "log_retention_days": (1, 365),
    }

    def __init__(self, store: OptionStore) -> None:
        self._store = store

    @property
    def store(self) -> OptionStore:
        return self._store

    def install_defaults(self) -> list[str]:
        """Write each default whose key is absent. Returns the keys written."""
        written = []
        for key, value in self.DEFAULTS.items():
            if self._store.get(key) is None:
                self._store.set(key, value)
                written.append(key)
        return written

    def _get(self, key: str) -> Any:
        return self._store.get(key, self.DEFAULTS[key])

    def values(self) -> dict[str, Any]:
        """Return the effective value of every global option."""
        return {key: self._get(key) for key in self.DEFAULTS}

    def set_value(self, key: str, raw: str) -> Any:
        """Parse ``raw`` as the type of the option's default and store it.

        Returns:
            The stored value.

        Raises:
            ValueError: If the key is unknown or the value does not parse or
                falls outside the allowed range.
        """
        if key not in self.DEFAULTS:
            raise ValueError(f"Unknown option: {key}")
        value = _parse(raw, type(self.DEFAULTS[key]))
        if key in self.RANGES:
            low, high = self.RANGES[key]
            if not low <= value <= high:
                raise ValueError(f"{key} must be between {low:g} and {high:g}")
        self._store.set(key, value)
        return value

    @property
    def enabled(self) -> bool:
        return bool(self._get("enabled"))

    @property
    def model(self) -> str:
        return str(self._get("model"))

    @property
    def max_tokens(self) -> int:
        return int(self._get("max_tokens"))

    @property
    def temperature(self) -> float:
        return float(self._get("temperature"))

    @property
    def rate_limit_seconds(self) -> float:
        return float(self._get("rate_limit_seconds"))

    @property
    def logging_enabled(self) -> bool:
        return bool(self._get("logging_enabled"))

    @property
    def log_retention_days(self) -> int:
        return int(self._get("log_retention_days"))

    @property
    def default_prompt_template(self) -> str:
        return str(self._get("default_prompt_template") or "")

    @property
    def delete_on_uninstall(self) -> bool:
        return bool(self._get("delete_on_uninstall"))

    def form_enabled_override(self, form_id: int) -> bool | None:
        """Return the form's explicit enable flag, or None when unset."""
        value = self._store.get(_enabled_key(form_id))
        if value is None:
            return None
        return bool(value)

    def is_form_enabled(self, form_id: int) -> bool:
        override = self.form_enabled_override(form_id)
        return self.enabled if override is None else override

    def form_field_mapping(self, form_id: int) -> list[int]:
        """Return the explicit field ids for a form; empty means automatic."""
        value = self._store.get(_mapping_key(form_id)) or []
        return [int(v) for v in value]

    def form_prompt_override(self, form_id: int) -> str:
        return str(self._store.get(_prompt_key(form_id)) or "")

    def resolve_prompt(self, form_id: int) -> str:
        return self.form_prompt_override(form_id) or self.default_prompt_template

    def save_form_settings(
        self,
        form_id: int,
        *,
        enabled: bool | None,
        field_ids: Iterable[int] = (),
        prompt: str = "",
    ) -> None:
        """Persist a form's overrides; empty values remove the override."""
        if enabled is None:
            self._store.delete(_enabled_key(form_id))
        else:
            self._store.set(_enabled_key(form_id), bool(enabled))

        fields = [int(f) for f in field_ids]
        if fields:
            self._store.set(_mapping_key(form_id), fields)
        else:
            self._store.delete(_mapping_key(form_id))

        prompt = prompt.strip()
        if prompt:
            self._store.set(_prompt_key(form_id), prompt)
        else:
            self._store.delete(_prompt_key(form_id))


def _parse(raw: str, kind: type) -> Any:
    text = raw.strip()
    if kind is bool:
        if text.lower() in _TRUE_WORDS:
            return True
        if text.lower() in _FALSE_WORDS:
            return False
        raise ValueError(f"Expected a boolean, got {raw!r}")
    if kind is int:
        return int(text)
    if kind is float:
        return float(text)
    return raw


def _enabled_key(form_id: int) -> str:
    return f"enabled_override_{form_id}"


def _mapping_key(form_id: int) -> str:
    return f"field_mapping_{form_id}"


def _prompt_key(form_id: int) -> str:
    return f"prompt_override_{form_id}"
