import asyncio

import pytest

from delivery_audit.exceptions import SalesSourceError
from delivery_audit.models.enums import DeliveryStatus, ReconciliationCategory
from delivery_audit.services.phone_matching import ExactPhoneMatcher
from delivery_audit.services.reconciliation_engine import run_reconciliation
from conftest import NOW, FakeMessageSource, FakeSalesSource


def _run(sales_source, message_source, settings, **kwargs):
    return asyncio.run(run_reconciliation(sales_source, message_source, settings, now=NOW, **kwargs))


def test_pending_sale_with_sent_message_is_unconfirmed(settings, make_sale, make_message):
    sale = make_sale(DeliveryStatus.PENDING, "+5553994242183")
    report = _run(FakeSalesSource([sale]), FakeMessageSource([make_message("5553994242183")]), settings)

    assert report.summary.wa_sent_but_unconfirmed == 1
    record = report.wa_sent_but_unconfirmed[0]
    assert record.sale.sale_id == sale.sale_id
    assert len(record.messages) == 1
    assert record.messages[0].status_label == "REACHED_SERVER"
    assert report.messages_available is True


def test_sent_sale_without_message_is_unverified(settings, make_sale, make_message):
    sale = make_sale(DeliveryStatus.SENT, "+5599988887777")
    report = _run(FakeSalesSource([sale]), FakeMessageSource([make_message("5553994242183")]), settings)

    assert report.summary.firestore_confirmed_but_unverified == 1
    assert report.firestore_confirmed_but_unverified[0].messages == []
    assert "30 days" in report.firestore_confirmed_but_unverified[0].diagnostic


def test_degraded_message_fetch_marks_pending_as_genuine(settings, make_sale):
    sales = [
        make_sale(DeliveryStatus.PENDING, "+5553994242183"),
        make_sale(DeliveryStatus.PENDING, ""),
        make_sale(DeliveryStatus.SENT, "+5553994242183"),
    ]
    messages = FakeMessageSource(ok=False, error="Evolution API responded with status 401", connected=False)
    report = _run(FakeSalesSource(sales), messages, settings)

    assert report.messages_available is False
    assert report.messages.error == "Evolution API responded with status 401"
    assert report.summary.genuinely_pending_or_error == 2
    assert report.summary.firestore_confirmed_but_unverified == 1
    assert report.provider_instance.connected is False


def test_message_source_exception_degrades_instead_of_aborting(settings, make_sale):
    messages = FakeMessageSource(raise_on_fetch=RuntimeError("socket closed"))
    report = _run(FakeSalesSource([make_sale(DeliveryStatus.PENDING)]), messages, settings)

    assert report.messages_available is False
    assert report.messages.error == "socket closed"
    assert report.summary.genuinely_pending_or_error == 1


def test_sales_failure_is_fatal(settings, failing_sales_source):
    with pytest.raises(SalesSourceError, match="Firestore unreachable"):
        _run(failing_sales_source, FakeMessageSource(), settings)


def test_unexpected_sales_exception_becomes_sales_source_error(settings):
    with pytest.raises(SalesSourceError):
        _run(FakeSalesSource(error=ConnectionError("refused")), FakeMessageSource(), settings)


def test_every_sale_lands_in_exactly_one_category(settings, make_sale, make_message):
    sales = [
        make_sale(DeliveryStatus.PENDING, "+5553994242183"),
        make_sale(DeliveryStatus.PENDING, "+5511911112222"),
        make_sale(DeliveryStatus.SENT, "53994242183"),
        make_sale(DeliveryStatus.SENT, "+5511933334444"),
        make_sale(DeliveryStatus.ERROR, "+5511955556666"),
        make_sale(DeliveryStatus.ERROR, "+5553994242183"),
        make_sale(DeliveryStatus.DUPLICATE, ""),
    ]
    report = _run(FakeSalesSource(sales), FakeMessageSource([make_message("5553994242183")]), settings)

    seen = [r.sale.sale_id for c in ReconciliationCategory for r in report.records_for(c)]
    assert sorted(seen) == sorted(s.sale_id for s in sales)
    assert report.summary.classified_total == report.summary.total_sales == len(sales)
    assert report.summary.model_dump() == {
        "total_sales": 7,
        "wa_sent_but_unconfirmed": 1,
        "firestore_confirmed_but_unverified": 1,
        "confirmed_both": 1,
        "genuinely_pending_or_error": 2,
        "anomalous": 2,
    }


def test_rerun_on_unchanged_data_gives_identical_counts(settings, make_sale, make_message):
    sales = FakeSalesSource([make_sale(DeliveryStatus.PENDING), make_sale(DeliveryStatus.SENT, "+5511900001111")])
    messages = FakeMessageSource([make_message()])

    first = _run(sales, messages, settings)
    second = _run(sales, messages, settings)
    assert first.summary == second.summary
    assert first.model_dump(exclude={"generated_at"}) == second.model_dump(exclude={"generated_at"})


def test_fetch_arguments_and_run_config_come_from_settings(settings, make_sale):
    messages = FakeMessageSource()
    report = _run(FakeSalesSource([make_sale()]), messages, settings)

    assert messages.requested == [(30, 500)]
    assert report.config.lookback_days == 30
    assert report.config.message_fetch_limit == 500
    assert report.config.provider_instance == "Test Store"
    assert report.generated_at.startswith("2025-03-10T12:00:00")


def test_exact_matcher_ignores_local_format(settings, make_sale, make_message):
    sale = make_sale(DeliveryStatus.PENDING, "53994242183")
    sales = FakeSalesSource([sale])
    messages = FakeMessageSource([make_message("5553994242183")])

    assert _run(sales, messages, settings).summary.wa_sent_but_unconfirmed == 1
    exact = _run(sales, messages, settings, matcher=ExactPhoneMatcher())
    assert exact.summary.wa_sent_but_unconfirmed == 0
    assert exact.summary.genuinely_pending_or_error == 1


def test_out_of_range_message_timestamp_does_not_abort_run(settings, make_sale, make_message):
    sale = make_sale(DeliveryStatus.PENDING, "+5553994242183")
    messages = FakeMessageSource([make_message("5553994242183", epoch=10**15)])

    report = _run(FakeSalesSource([sale]), messages, settings)

    assert report.summary.wa_sent_but_unconfirmed == 1
    assert report.wa_sent_but_unconfirmed[0].messages[0].sent_at is None
