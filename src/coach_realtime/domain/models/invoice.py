"""Invoice domain model."""

from datetime import date
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from coach_realtime.domain.models.shared_entity import SharedEntity, utc_now


class InvoiceStatus(StrEnum):
    """Billing status of an invoice."""

    DRAFT = "Draft"
    PENDING = "Pending"
    PAID = "Paid"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"


class LineItem(BaseModel):
    """A single billed line on an invoice."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    description: str
    quantity: int = Field(default=1, ge=0)
    price: float = Field(ge=0)

    @property
    def total(self) -> float:
        return self.quantity * self.price


class Invoice(SharedEntity):
    """An invoice issued by a coach to a client."""

    coach_id: str
    client_id: str
    invoice_number: str = Field(min_length=1)
    issue_date: date = Field(default_factory=lambda: utc_now().date())
    due_date: date | None = None
    amount: float = Field(ge=0)
    status: InvoiceStatus = InvoiceStatus.DRAFT
    line_items: tuple[LineItem, ...] = ()
    notes: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_amount(cls, data: Any) -> Any:
        """Derive the amount from the line items when it is not given."""
        if not isinstance(data, dict) or "amount" in data:
            return data
        items = data.get("lineItems", data.get("line_items"))
        if not items or not isinstance(items, (list, tuple)):
            return data
        try:
            parsed = [LineItem.model_validate(item) for item in items]
        except ValidationError:
            # Reported by the line_items field itself.
            return data
        return {**data, "amount": round(sum(item.total for item in parsed), 2)}

    @model_validator(mode="after")
    def _check_invoice(self) -> "Invoice":
        if self.coach_id == self.client_id:
            raise ValueError("coach and client must be different users")
        if self.due_date is not None and self.due_date < self.issue_date:
            raise ValueError("due_date cannot be before issue_date")
        return self

    def stakeholder_ids(self) -> tuple[str, str]:
        return self.coach_id, self.client_id
