from __future__ import annotations

from decimal import Decimal
from typing import List, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class LoanRequest(BaseModel):
    """One loan-form submission. Transient: relayed once, never stored."""

    model_config = ConfigDict(extra="ignore")

    full_name: str = Field(validation_alias=AliasChoices("fullName", "full_name", "name"))
    department: str = Field(validation_alias=AliasChoices("department", "badge", "departmentBadge"))
    reason: str
    # Decimal keeps the submitted digits so the notification can echo them verbatim.
    amount: Decimal
    term_months: int = Field(validation_alias=AliasChoices("termMonths", "term_months", "term"))

    def labeled_fields(self) -> List[Tuple[str, str]]:
        return [
            ("Full Name", self.full_name),
            ("Department / Badge", self.department),
            ("Reason", self.reason),
            ("Amount", str(self.amount)),
            ("Term (months)", str(self.term_months)),
        ]
