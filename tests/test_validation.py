"""Required-field validation before quotes are written upstream."""
from quotedesk.core.models import QuoteRequest
from quotedesk.mapping.validation import QuoteValidationError, is_valid_email, validate_quote

COMPLETE = {
    "client_name": "Acme",
    "client_email": "buyer@acme.test",
    "project_description": "Twelve brackets",
}


def test_complete_quote_has_no_errors():
    assert validate_quote(COMPLETE) == []


def test_missing_email_reports_exactly_one_error():
    data = dict(COMPLETE, client_email="")
    assert validate_quote(data) == ["Customer email is required"]


def test_malformed_email_is_reported_separately():
    data = dict(COMPLETE, client_email="not-an-email")
    assert validate_quote(data) == ["Valid email address is required"]


def test_empty_quote_lists_every_problem():
    assert validate_quote({}) == [
        "Customer name is required",
        "Customer email is required",
        "Item/Part description is required",
    ]


def test_dataclass_input_is_accepted():
    quote = QuoteRequest(id="1", client_name="Acme", client_email="a@b.co", project_description="  ")
    assert validate_quote(quote) == ["Item/Part description is required"]


def test_email_pattern():
    assert is_valid_email("a@b.co")
    assert not is_valid_email("a b@c.d")
    assert not is_valid_email("a@b")


def test_validation_error_carries_all_messages():
    error = QuoteValidationError(["one", "two"])
    assert error.errors == ["one", "two"]
    assert "one, two" in str(error)


def test_quote_without_email_uses_placeholder_and_is_rejected():
    quote = QuoteRequest(id="", client_name="Acme", project_description="Bracket")

    assert validate_quote(quote) == ["Customer email is required"]
