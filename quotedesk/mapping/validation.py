"""Required-field checks before a quote is written to HiSAFE."""
import re
from dataclasses import asdict, is_dataclass
from typing import Any, List, Mapping

from quotedesk.core.models import PLACEHOLDER_EMAIL

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class QuoteValidationError(ValueError):
    """Raised with the full list of field-level problems."""

    def __init__(self, errors: List[str]) -> None:
        super().__init__("Validation failed: " + ", ".join(errors))
        self.errors = list(errors)


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value.strip()))


def validate_quote(data: Any) -> List[str]:
    """Return a list of quality issues; empty means the quote can be posted."""

    values: Mapping[str, Any] = asdict(data) if is_dataclass(data) else data
    errors: List[str] = []

    def text(name: str) -> str:
        value = values.get(name)
        return value.strip() if isinstance(value, str) else ""

    if not text("client_name"):
        errors.append("Customer name is required")

    # The placeholder marks an unknown address.
    email = text("client_email")
    if not email or email == PLACEHOLDER_EMAIL:
        errors.append("Customer email is required")
    elif not is_valid_email(email):
        errors.append("Valid email address is required")

    if not text("project_description"):
        errors.append("Item/Part description is required")

    return errors
