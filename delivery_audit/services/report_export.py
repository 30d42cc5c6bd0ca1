"""Report sinks: JSON file on disk and the human-readable console summary.

Rendering returns lines instead of printing so the CLI owns stdout.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel

from delivery_audit.config import RECONCILIATION_SETTINGS
from delivery_audit.models.schemas.phones import PhoneAuditReport
from delivery_audit.models.schemas.report import ClassifiedRecord, ReconciliationReport

RULE = "═" * 58
THIN_RULE = "─" * 58


def write_json_report(report: BaseModel, path: str | Path) -> Path:
    """Serialize a report model to pretty JSON at `path`, creating parent dirs."""
    target = Path(path).resolve()
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = report.model_dump(mode="json")
    target.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return target


def _example_lines(records: List[ClassifiedRecord], limit: int, *, with_message: bool) -> List[str]:
    lines = []
    for record in records[:limit]:
        sale = record.sale
        lines.append(f"         • [{sale.sale_id}] {sale.customer_name} ({sale.customer_phone or 'no phone'})")
        if with_message and record.messages:
            latest = record.messages[0]
            lines.append(f"           Sent on WhatsApp at: {latest.sent_at or 'unknown time'} ({latest.status_label})")
    if len(records) > limit:
        lines.append(f"         ... and {len(records) - limit} more in the JSON report")
    return lines


def render_reconciliation_summary(
    report: ReconciliationReport,
    *,
    report_path: Optional[Path] = None,
    examples: Optional[int] = None,
) -> List[str]:
    limit = int(examples if examples is not None else RECONCILIATION_SETTINGS["console_examples"])
    days = report.config.lookback_days
    summary = report.summary
    lines: List[str] = [f"📊 WhatsApp delivery audit (last {days} days)", ""]

    instance = report.provider_instance
    if instance.connected:
        lines.append(f"📱 Instance \"{report.config.provider_instance}\" connected ({instance.state})")
    else:
        lines.append(f"📱 ⚠️  Instance not connected: {instance.error or instance.state or 'unknown'}")
    if report.messages_available:
        lines.append(f"💬 {report.messages.fetched_count} sent message(s) found on WhatsApp")
    else:
        lines.append(f"💬 ❌ Could not fetch sent messages: {report.messages.error}")

    lines += [
        "",
        RULE,
        "               WHATSAPP DELIVERY AUDIT",
        RULE,
        f"  Total sales in Firestore : {summary.total_sales}",
        THIN_RULE,
    ]

    lines.append(f"  🔴 [A] WhatsApp sent, sale still \"pending\"   : {summary.wa_sent_but_unconfirmed}")
    if summary.wa_sent_but_unconfirmed:
        lines.append("      → PROBLEM: the automation will send these messages again!")
        lines.append("      → ACTION: set these sales to \"sent\" manually")
        lines += _example_lines(report.wa_sent_but_unconfirmed, limit, with_message=True)

    lines.append("")
    lines.append(f"  🟡 [B] Sale \"sent\", no WhatsApp message       : {summary.firestore_confirmed_but_unverified}")
    if summary.firestore_confirmed_but_unverified:
        lines.append(f"      → May be older than {days} days, or inconsistent data")
        lines += _example_lines(report.firestore_confirmed_but_unverified, limit, with_message=False)

    lines.append("")
    lines.append(f"  ✅ [C] Confirmed on both sides                : {summary.confirmed_both}")
    lines.append("")
    lines.append(f"  ⏳ [D] Genuinely pending/error (no message)   : {summary.genuinely_pending_or_error}")

    if summary.anomalous:
        lines.append("")
        lines.append(f"  ⚠️  [E] Status/message combination undefined : {summary.anomalous}")
        lines += _example_lines(report.anomalous, limit, with_message=True)

    lines.append(RULE)

    if not report.messages_available:
        lines += [
            "",
            "⚠️  WARNING: could not read messages from the Evolution API.",
            "   Set EVOLUTION_API_URL, EVOLUTION_API_KEY and EVOLUTION_INSTANCE_NAME in .env.local",
            "   Without them, categories [A] and [C] cannot be detected.",
        ]

    if report_path is not None:
        lines += ["", f"📄 Report saved to: {report_path}"]
    return lines


def render_phone_summary(report: PhoneAuditReport, *, report_path: Optional[Path] = None) -> List[str]:
    summary = report.summary
    lines = [
        RULE,
        "               PHONE FORMAT CHECK",
        RULE,
        f"  Total customers  : {summary.total}",
        f"  ✅ Valid (E.164) : {summary.valid}",
        f"  ❌ Invalid       : {summary.invalid}",
        f"  ⚠️  Missing       : {summary.missing}",
        RULE,
    ]
    if report.issues:
        lines += ["", "📋 Customers with an invalid or missing phone:"]
        for issue in report.issues:
            lines.append(f"  • [{issue.customer_id}] {issue.name}")
            lines.append(f"      Current: {issue.current_phone or '(empty)'}")
            lines.append(f"      Reason : {issue.reason}")
    elif summary.total:
        lines += ["", "✅ Every phone is valid E.164!"]
    else:
        lines += ["", "ℹ️  No customers found."]
    if report_path is not None:
        lines += ["", f"📄 Report saved to: {report_path}"]
    return lines


__all__ = ["write_json_report", "render_reconciliation_summary", "render_phone_summary"]
