"""Customer phone-format audit.

Checks that every stored customer phone is valid E.164 (`+` then 8 to 15
digits) and explains what is wrong with the ones that are not. Legacy
national numbers (no `+`) are reported as invalid.
"""
from __future__ import annotations

import re
from typing import Any, Iterable

from delivery_audit.models.enums import PhoneClassification
from delivery_audit.models.records import CustomerRecord
from delivery_audit.models.schemas.phones import PhoneAuditReport, PhoneAuditSummary, PhoneCheck, PhoneIssue
from delivery_audit.services.phone_matching import digits_only
from delivery_audit.utils import log_audit_event

E164_PATTERN = re.compile(r"^\+\d{8,15}$")
MIN_DIGITS = 8
MAX_DIGITS = 15
NO_NAME = "(no name)"


def is_valid_e164(phone: Any) -> bool:
    return isinstance(phone, str) and bool(E164_PATTERN.match(phone))


def classify_phone(phone: Any) -> PhoneCheck:
    if phone is None or not str(phone).strip():
        return PhoneCheck(classification=PhoneClassification.MISSING, reason="Missing")
    if is_valid_e164(phone):
        return PhoneCheck(classification=PhoneClassification.VALID)

    text = str(phone)
    digits = digits_only(text)
    if not text.startswith("+"):
        if not digits:
            reason = "No numeric digits"
        elif len(digits) < MIN_DIGITS:
            reason = f"Not enough digits ({len(digits)} digits without E.164 prefix)"
        else:
            reason = "Outside E.164 format (missing + prefix)"
    elif len(digits) < MIN_DIGITS:
        reason = f"Not enough digits ({len(digits)} digits)"
    elif len(digits) > MAX_DIGITS:
        reason = f"Number too long ({len(digits)} digits, maximum {MAX_DIGITS})"
    else:
        reason = "Invalid format"
    return PhoneCheck(classification=PhoneClassification.INVALID, reason=reason)


def audit_customer_phones(customers: Iterable[CustomerRecord], *, generated_at: str) -> PhoneAuditReport:
    counts = {classification: 0 for classification in PhoneClassification}
    issues: list[PhoneIssue] = []
    for customer in customers:
        check = classify_phone(customer.phone)
        counts[check.classification] += 1
        if check.classification is PhoneClassification.VALID:
            continue
        issues.append(
            PhoneIssue(
                customer_id=customer.customer_id,
                name=customer.name or NO_NAME,
                current_phone=customer.phone,
                reason=check.reason or "",
            )
        )

    summary = PhoneAuditSummary(
        total=sum(counts.values()),
        valid=counts[PhoneClassification.VALID],
        invalid=counts[PhoneClassification.INVALID],
        missing=counts[PhoneClassification.MISSING],
    )
    log_audit_event("phone_audit_completed", summary.model_dump())
    return PhoneAuditReport(generated_at=generated_at, summary=summary, issues=issues)


__all__ = ["classify_phone", "is_valid_e164", "audit_customer_phones"]
