"""Core domain models for orders and notification jobs.

This module defines the data structures shared across the dispatcher:
- OrderLine / OrderPlaced: the finalized order handed over by the storefront
- NotificationJob: one rendered email to one recipient, as queued
- SendResult: outcome of a single delivery attempt
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, EmailStr, Field, field_validator

from order_dispatch.utils.timestamps import as_utc, utc_now


class OrderLine(BaseModel):
    """A single line item of a placed order."""

    product_id: int = Field(..., ge=1, description="Catalog product id")
    name: str = Field(..., min_length=1, description="Product name at time of purchase")
    quantity: int = Field(..., ge=1, description="Units ordered")
    unit_price: Decimal = Field(..., ge=0, description="Price per unit")
    size: Optional[str] = Field(None, description="Selected size, if any")

    @field_validator("size")
    @classmethod
    def blank_size_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank size strings as no size."""
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class OrderPlaced(BaseModel):
    """A committed order, as received from the storefront's checkout.

    Only the fields needed to write the customer confirmation and the admin
    alert are modelled; the order record itself belongs to the storefront.
    """

    order_id: int = Field(..., ge=1, description="Storefront order number")
    tracking_id: str = Field(..., min_length=1, description="Public tracking code")
    customer_name: str = Field(..., min_length=1)
    customer_email: EmailStr
    address: str = Field(..., min_length=1)
    landmark: Optional[str] = None
    phone: str = Field(..., min_length=1)
    payment_method: str = Field(..., min_length=1)
    total_amount: Decimal = Field(..., ge=0)
    placed_at: datetime = Field(default_factory=utc_now)
    items: List[OrderLine] = Field(default_factory=list)

    @field_validator("customer_name", "tracking_id", "address", "phone", "payment_method")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Strip whitespace from string fields."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be empty or whitespace-only")
        return stripped

    @field_validator("placed_at")
    @classmethod
    def placed_at_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @property
    def correlation_id(self) -> str:
        """Identifier that ties every notification of this order together in logs."""
        return f"order-{self.order_id}"

    model_config = {"json_schema_extra": {"example": {
        "order_id": 1042,
        "tracking_id": "BAZ7K2M9Q4X",
        "customer_name": "Ayesha Khan",
        "customer_email": "ayesha@example.com",
        "address": "12 Canal Road",
        "phone": "+92 300 1234567",
        "payment_method": "Cash on Delivery",
        "total_amount": "4599.00",
        "items": [{"product_id": 7, "name": "Linen Shirt", "quantity": 1, "unit_price": "4599.00"}],
    }}}


_IMMUTABLE_JOB_FIELDS = frozenset({
    "job_id",
    "recipient_address",
    "recipient_display_name",
    "subject",
    "rendered_body",
    "correlation_id",
    "kind",
    "body_subtype",
    "enqueued_at",
})


@dataclass(eq=False)
class NotificationJob:
    """A single notification to be delivered to a single recipient.

    Content is captured when the job is created and cannot be reassigned;
    the attempt counter is the only mutable field and only the dispatch
    worker changes it.

    Attributes:
        recipient_address: Destination email address (validated upstream)
        recipient_display_name: Display name for the To header
        subject: Rendered subject line
        rendered_body: Rendered message body
        correlation_id: Opaque id (order number) used to correlate log lines
        kind: Label such as "customer_confirmation" or "admin_alert"
        body_subtype: MIME subtype of rendered_body ("html" or "plain")
        attempt_count: Number of failed delivery attempts so far
        enqueued_at: UTC creation time, for observability only
        job_id: Random id distinguishing jobs that share a correlation_id
    """

    recipient_address: str
    recipient_display_name: str
    subject: str
    rendered_body: str
    correlation_id: str
    kind: str = "notification"
    body_subtype: str = "html"
    attempt_count: int = 0
    enqueued_at: datetime = field(default_factory=utc_now)
    job_id: str = field(default_factory=lambda: uuid4().hex[:12])

    def __setattr__(self, name, value):
        if name in _IMMUTABLE_JOB_FIELDS and name in self.__dict__:
            raise AttributeError(f"NotificationJob.{name} cannot be changed once the job exists")
        super().__setattr__(name, value)

    def record_failure(self) -> int:
        """Count one failed delivery attempt and return the new count."""
        self.attempt_count += 1
        return self.attempt_count

    def has_attempts_remaining(self, max_attempts: int) -> bool:
        return self.attempt_count < max_attempts

    def log_fields(self) -> dict:
        """Fields identifying this job in structured log records."""
        return {
            "job_id": self.job_id,
            "correlation_id": self.correlation_id,
            "notification_kind": self.kind,
        }


@dataclass(frozen=True)
class SendResult:
    """Outcome of a single delivery attempt.

    Attributes:
        success: Whether the channel accepted the message
        reason: Failure description (None on success)
    """

    success: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "SendResult":
        return cls(success=True)

    @classmethod
    def failed(cls, reason: str) -> "SendResult":
        return cls(success=False, reason=reason or "unknown error")
