"""
Pydantic schemas for the customer phone-format audit.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from delivery_audit.models.enums import PhoneClassification


class PhoneCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    classification: PhoneClassification
    reason: Optional[str] = Field(None, description="Why the number is not valid E.164; None when valid")


class PhoneIssue(BaseModel):
    customer_id: str
    name: str
    current_phone: Optional[str] = None
    reason: str


class PhoneAuditSummary(BaseModel):
    total: int
    valid: int
    invalid: int
    missing: int


class PhoneAuditReport(BaseModel):
    generated_at: str
    summary: PhoneAuditSummary
    issues: List[PhoneIssue] = Field(default_factory=list, description="Customers with a missing or invalid phone")
