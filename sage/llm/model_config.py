"""
Model Configuration - Provider selection and sampling parameters.

Updates are validated as a whole before anything is applied: every
out-of-range field is reported in a single ValidationError and the
previous configuration stays untouched. Values are rejected, never
clamped.
"""
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Mapping

from sage.core.exceptions import ValidationError

PROVIDERS = ("gemini", "groq")
MEMORY_MODES = ("off", "passive", "active")

# field -> (low, high, integer-only)
NUMERIC_RANGES = {
    "temperature": (0.0, 2.0, False),
    "max_output_tokens": (1, 8192, True),
    "top_p": (0.0, 1.0, False),
    "top_k": (1, 100, True),
}

FIELD_LABELS = {
    "temperature": "Temperature",
    "max_output_tokens": "Max output tokens",
    "top_p": "TopP",
    "top_k": "TopK",
}


@dataclass(frozen=True)
class ModelConfig:
    """
    Per-conversation model settings.

    Attributes:
        provider: Primary provider ('gemini' or 'groq')
        temperature: Sampling temperature, 0-2
        max_output_tokens: Reply size cap, 1-8192
        top_p: Nucleus sampling threshold, 0-1
        top_k: Top-k sampling, 1-100
        memory_mode: 'off', 'passive' or 'active'
    """
    provider: str = "gemini"
    temperature: float = 1.0
    max_output_tokens: int = 8192
    top_p: float = 0.95
    top_k: int = 40
    memory_mode: str = "active"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def apply_update(self, partial: Mapping[str, Any]) -> "ModelConfig":
        """Validate a partial update and return the merged config."""
        return replace(self, **validate_config_update(partial))


def _coerce_number(value: Any, integer: bool):
    # bool is an int subclass but never a valid sampling value
    if isinstance(value, bool):
        raise ValueError(value)
    if integer:
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(value)
        return int(value)
    return float(value)


def validate_config_update(partial: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validate a partial configuration update.

    Args:
        partial: Field name -> new value; fields not present are unchanged

    Returns:
        The update with values coerced to their field types

    Raises:
        ValidationError: listing every violated field
    """
    errors: Dict[str, str] = {}
    cleaned: Dict[str, Any] = {}

    for name, value in partial.items():
        if name in NUMERIC_RANGES:
            low, high, integer = NUMERIC_RANGES[name]
            label = FIELD_LABELS[name]
            try:
                number = _coerce_number(value, integer)
            except (TypeError, ValueError):
                kind = "an integer" if integer else "a number"
                errors[name] = f"{label} must be {kind}"
                continue
            if number != number or not low <= number <= high:  # NaN fails too
                errors[name] = f"{label} must be between {low:g} and {high:g}"
                continue
            cleaned[name] = number

        elif name == "memory_mode":
            if value not in MEMORY_MODES:
                errors[name] = f"Memory mode must be one of: {', '.join(MEMORY_MODES)}"
                continue
            cleaned[name] = value

        elif name == "provider":
            if value not in PROVIDERS:
                errors[name] = f"Provider must be one of: {', '.join(PROVIDERS)}"
                continue
            cleaned[name] = value

        else:
            errors[name] = f"Unknown configuration field: {name}"

    if errors:
        raise ValidationError(
            "Invalid model configuration: " + "; ".join(errors.values()),
            errors=errors
        )

    return cleaned
