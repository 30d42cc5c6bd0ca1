import json

import pytest

from delivery_audit import cli
from delivery_audit.models.enums import DeliveryStatus
from delivery_audit.models.records import CustomerRecord
from conftest import FakeMessageSource, FakeSalesSource

AUDIT_ENV_VARS = (
    "LOOKBACK_DAYS", "DIAS_HISTORICO", "MESSAGE_FETCH_LIMIT", "LIMITE_MSGS",
    "EVOLUTION_API_URL", "EVOLUTION_API_KEY", "EVOLUTION_INSTANCE_NAME",
    "PHONE_MATCH_STRATEGY", "REPORT_PATH", "PHONE_REPORT_PATH", "LOG_LEVEL", "LOG_FILE",
)


@pytest.fixture()
def cli_env(tmp_path, monkeypatch):
    for name in AUDIT_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)
    return ["--env-file", str(tmp_path / "missing.env")]


def install_sources(monkeypatch, sales_source, message_source=None):
    message_source = message_source or FakeMessageSource()
    monkeypatch.setattr(cli, "build_sources", lambda settings: (sales_source, message_source))
    return message_source


def test_parser_defaults_to_reconcile():
    args = cli.build_parser().parse_args([])
    assert args.command == "reconcile"
    assert args.lookback_days is None
    assert args.env_file == ".env.local"


def test_reconcile_writes_report_and_prints_summary(tmp_path, monkeypatch, capsys, cli_env, make_sale, make_message):
    sales = FakeSalesSource([make_sale(DeliveryStatus.PENDING), make_sale(DeliveryStatus.SENT, "+5511900001111")])
    install_sources(monkeypatch, sales, FakeMessageSource([make_message()]))
    output = tmp_path / "reports" / "audit.json"

    exit_code = cli.main(["reconcile", "--output", str(output), *cli_env])

    assert exit_code == 0
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert list(payload)[:6] == ["schema_version", "generated_at", "config", "provider_instance", "messages", "summary"]
    assert payload["summary"]["wa_sent_but_unconfirmed"] == 1
    assert payload["summary"]["firestore_confirmed_but_unverified"] == 1
    assert payload["wa_sent_but_unconfirmed"][0]["sale"]["delivery_status"] == "pending"

    out = capsys.readouterr().out
    assert "WHATSAPP DELIVERY AUDIT" in out
    assert "Total sales in Firestore : 2" in out
    assert str(output.resolve()) in out


def test_findings_and_degraded_provider_still_exit_zero(tmp_path, monkeypatch, capsys, cli_env, make_sale):
    install_sources(monkeypatch, FakeSalesSource([make_sale()]), FakeMessageSource(ok=False, connected=False))

    exit_code = cli.main(["--output", str(tmp_path / "audit.json"), *cli_env])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "WARNING: could not read messages" in out
    payload = json.loads((tmp_path / "audit.json").read_text(encoding="utf-8"))
    assert payload["messages"]["available"] is False


def test_command_line_overrides_environment(tmp_path, monkeypatch, cli_env, make_sale):
    monkeypatch.setenv("LOOKBACK_DAYS", "90")
    messages = install_sources(monkeypatch, FakeSalesSource([make_sale()]))

    exit_code = cli.main(["--lookback-days", "7", "--limit", "50", "-o", str(tmp_path / "a.json"), *cli_env])

    assert exit_code == 0
    assert messages.requested == [(7, 50)]


def test_report_path_from_environment(tmp_path, monkeypatch, cli_env, make_sale):
    target = tmp_path / "from-env.json"
    monkeypatch.setenv("REPORT_PATH", str(target))
    install_sources(monkeypatch, FakeSalesSource([make_sale()]))

    assert cli.main(cli_env) == 0
    assert target.is_file()


def test_sales_failure_exits_non_zero_without_report(tmp_path, monkeypatch, capsys, cli_env, failing_sales_source):
    install_sources(monkeypatch, failing_sales_source)
    output = tmp_path / "audit.json"

    exit_code = cli.main(["--output", str(output), *cli_env])

    assert exit_code == 1
    assert not output.exists()
    assert "Firestore unreachable" in capsys.readouterr().err


@pytest.mark.parametrize(
    "argv,env",
    [
        ([], {"LOOKBACK_DAYS": "thirty"}),
        (["--lookback-days", "0"], {}),
        ([], {"PHONE_MATCH_STRATEGY": "fuzzy"}),
    ],
)
def test_invalid_configuration_exits_non_zero(monkeypatch, capsys, cli_env, argv, env):
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    install_sources(monkeypatch, FakeSalesSource())

    assert cli.main([*argv, *cli_env]) == 1
    assert "Invalid configuration" in capsys.readouterr().err


def test_phones_command_writes_phone_report(tmp_path, monkeypatch, capsys, cli_env):
    customers = [
        CustomerRecord("c1", "Ana", "+5553994242183"),
        CustomerRecord("c2", "Bia", "53994242183"),
        CustomerRecord("c3", "Caio", None),
    ]
    install_sources(monkeypatch, FakeSalesSource(customers=customers))
    output = tmp_path / "phones.json"

    exit_code = cli.main(["phones", "--output", str(output), *cli_env])

    assert exit_code == 0
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["summary"] == {"total": 3, "valid": 1, "invalid": 1, "missing": 1}
    assert [issue["customer_id"] for issue in payload["issues"]] == ["c2", "c3"]
    out = capsys.readouterr().out
    assert "PHONE FORMAT CHECK" in out
    assert "Reason : Missing" in out


def test_unwritable_output_exits_non_zero(tmp_path, monkeypatch, capsys, cli_env, make_sale):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    install_sources(monkeypatch, FakeSalesSource([make_sale()]))

    assert cli.main(["--output", str(blocker / "audit.json"), *cli_env]) == 1
    assert "Could not write the report" in capsys.readouterr().err
