"""Command line dispatch against an in-memory repository."""
import csv
from pathlib import Path

import pytest

from conftest import FakeRepository, make_task
from quotedesk import cli
from quotedesk.auth.pkce import AuthRedirect
from quotedesk.client.gateway import GatewayError
from quotedesk.quotes.service import QuotesService


def _run(args: list[str], service: QuotesService) -> int:
    return cli.run(cli.build_parser().parse_args(args), service)


@pytest.fixture
def service() -> QuotesService:
    return QuotesService(
        FakeRepository(
            [
                make_task(101),
                make_task(102, **{"Customer Name": "Globex", "status": {"name": "Awaiting Approval"}}),
            ]
        )
    )


def test_list_filters_by_status(service, capsys):
    assert _run(["list", "--status", "pending"], service) == 0

    output = capsys.readouterr().out
    assert "Globex" in output
    assert "Acme Fabrication" not in output
    assert "1 quote(s)" in output


def test_search_prints_matches(service, capsys):
    assert _run(["search", "acme"], service) == 0
    assert "Acme Fabrication" in capsys.readouterr().out


def test_stats_prints_counts(service, capsys):
    assert _run(["stats"], service) == 0

    output = capsys.readouterr().out
    assert "total: 2" in output
    assert "pending: 1" in output
    assert "processing: 1" in output


def test_export_writes_csv(service, tmp_path: Path, capsys):
    output = tmp_path / "quotes.csv"

    assert _run(["export", "--sink", "csv", "--output", str(output)], service) == 0

    with output.open(encoding="utf-8") as fh:
        rows = list(csv.DictReader(fh))
    assert {row["Quote_ID"] for row in rows} == {"101", "102"}


def test_export_sheets_uses_resolved_target(service, monkeypatch: pytest.MonkeyPatch, fake_service_account_file: Path):
    captured = {}

    def fake_push(rows, **target):
        captured["rows"] = list(rows)
        captured.update(target)
        return len(captured["rows"])

    monkeypatch.setattr(cli, "push_to_google_sheets", fake_push)

    args = [
        "export",
        "--sink",
        "sheets",
        "--spreadsheet-id",
        "dummy",
        "--worksheet",
        "Quotes",
        "--service-account",
        str(fake_service_account_file),
    ]
    assert _run(args, service) == 0
    assert len(captured["rows"]) == 2
    assert captured["spreadsheet_id"] == "dummy"
    assert captured["service_account_path"] == fake_service_account_file


def test_sign_in_required_prints_url_and_exits_2(capsys):
    repository = FakeRepository()
    repository.fail_list = AuthRedirect("https://hisafe.test/api/9.0.0/oauth2/authorize?state=x")

    assert _run(["list"], QuotesService(repository)) == cli.EXIT_AUTH_REQUIRED
    assert "oauth2/authorize?state=x" in capsys.readouterr().out


def test_gateway_failure_exits_1(capsys):
    repository = FakeRepository()
    repository.fail_list = GatewayError(503, "Maintenance")

    assert _run(["list"], QuotesService(repository)) == cli.EXIT_GATEWAY_ERROR
    assert "Maintenance" in capsys.readouterr().err


def test_check_reports_connection(service, capsys):
    assert _run(["check"], service) == 0
    assert "connection OK" in capsys.readouterr().out

    service.repository.fail_metadata = GatewayError(None, "refused")
    assert _run(["check"], service) == cli.EXIT_GATEWAY_ERROR


def test_login_with_callback_completes_sign_in(capsys):
    calls = {}

    class FakeAuthenticator:
        def ensure_authenticated(self, params=None):
            calls["params"] = params

    service = QuotesService(FakeRepository(), authenticator=FakeAuthenticator())

    assert _run(["login", "--callback-url", "http://localhost:8501/?code=abc&state=xyz"], service) == 0
    assert calls["params"] == {"code": "abc", "state": "xyz"}
    assert "Signed in as Dana Operator" in capsys.readouterr().out


def test_logout_prints_sign_in_url(capsys):
    class FakeAuthenticator:
        def logout(self):
            raise AuthRedirect("https://hisafe.test/api/9.0.0/oauth2/authorize?confirm=true")

    service = QuotesService(FakeRepository(), authenticator=FakeAuthenticator())

    assert _run(["logout"], service) == 0
    assert "confirm=true" in capsys.readouterr().out
