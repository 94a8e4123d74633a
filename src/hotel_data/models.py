from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

BookingStatus = Literal["pending", "confirmed", "checked_in", "checked_out", "cancelled"]
PaymentStatus = Literal["pending", "paid", "failed", "refunded"]
InsightCategory = Literal["hotel_data", "user_preference", "report_summary", "operational_strategy"]

BOOKING_STATUSES: tuple[str, ...] = ("pending", "confirmed", "checked_in", "checked_out", "cancelled")
PAYMENT_STATUSES: tuple[str, ...] = ("pending", "paid", "failed", "refunded")
INSIGHT_CATEGORIES: tuple[str, ...] = ("hotel_data", "user_preference", "report_summary", "operational_strategy")


def _new_id() -> str:
    return uuid.uuid4().hex


class Booking(BaseModel):
    id: str = Field(default_factory=_new_id)
    guest_email: str
    guest_first_name: str
    guest_last_name: str
    guest_phone: str = ""
    guest_country: str = ""
    room_name: str
    room_number: Optional[str] = None
    price_per_night: float = 0.0
    number_of_rooms: int = 1
    check_in: datetime
    check_out: datetime
    nights: int = 1
    adults: int = 1
    children: int = 0
    total_amount: float = 0.0
    payment_status: PaymentStatus = "pending"
    payment_method: str = ""
    payment_reference: Optional[str] = None
    booking_status: BookingStatus = "pending"
    booking_source: str = "website"
    special_requests: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def guest_name(self) -> str:
        return f"{self.guest_first_name} {self.guest_last_name}".strip()

    @property
    def total_guests(self) -> int:
        return self.adults + self.children


class Insight(BaseModel):
    """A piece of long-term knowledge saved by the assistant."""

    id: str = Field(default_factory=_new_id)
    category: InsightCategory
    content: str
    tags: list[str] = Field(default_factory=list)
    importance: int = Field(default=5, ge=1, le=10)
    source: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
