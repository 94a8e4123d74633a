"""Live hotel snapshot injected ahead of each user question."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, time, timedelta

from src.hotel_data import BookingFilter, HotelStore

from .config import CURRENCY_SYMBOL
from .models import ContextSnapshot

logger = logging.getLogger(__name__)

CONTEXT_TEMPLATE = """
## Current Hotel Snapshot (Auto-refreshed)
📅 Today: {date}

**Live Status:**
- 🛬 Arrivals Today: {arrivals} guests
- 🛫 Departures Today: {departures} guests
- 🏨 Currently Checked In: {checked_in} guests
- ⏳ Pending Bookings: {pending}

**This Week's Performance:**
- 📊 Bookings: {weekly_bookings}
- 💰 Revenue: {currency}{weekly_revenue}
"""


def format_amount(value: float) -> str:
    """Group thousands; drop the fraction for whole amounts."""
    if float(value).is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}"


def build_context_string(snapshot: ContextSnapshot, currency_symbol: str = CURRENCY_SYMBOL) -> str:
    return CONTEXT_TEMPLATE.format(
        date=snapshot.date,
        arrivals=snapshot.arrivals,
        departures=snapshot.departures,
        checked_in=snapshot.checked_in,
        pending=snapshot.pending,
        weekly_bookings=snapshot.weekly_bookings,
        currency=currency_symbol,
        weekly_revenue=format_amount(snapshot.weekly_revenue),
    )


def augment_user_message(context: str, user_message: str) -> str:
    """Prefix the snapshot to the question; an empty context leaves it unchanged."""
    if not context.strip():
        return user_message
    return f"{context}\n\nUser Question: {user_message}"


class ContextBuilder:
    """Computes today's operational counts from the hotel store."""

    def __init__(self, store: HotelStore, clock: Callable[[], datetime] = datetime.now) -> None:
        self._store = store
        self._clock = clock

    def snapshot(self) -> ContextSnapshot:
        now = self._clock()
        today = datetime.combine(now.date(), time.min)
        tomorrow = today + timedelta(days=1)
        active = ("confirmed", "checked_in")
        store = self._store
        weekly_count, weekly_revenue = store.sum_booking_amounts(
            BookingFilter(created_from=today - timedelta(days=7), payment_statuses=("paid",))
        )
        return ContextSnapshot(
            date=today.date().isoformat(),
            arrivals=store.count_bookings(
                BookingFilter(check_in_from=today, check_in_before=tomorrow, booking_statuses=active)
            ),
            departures=store.count_bookings(
                BookingFilter(check_out_from=today, check_out_before=tomorrow, booking_statuses=active)
            ),
            checked_in=store.count_bookings(BookingFilter(booking_statuses=("checked_in",))),
            pending=store.count_bookings(BookingFilter(booking_statuses=("pending",))),
            weekly_bookings=weekly_count,
            weekly_revenue=weekly_revenue,
        )

    async def build_context(self) -> ContextSnapshot:
        return await asyncio.to_thread(self.snapshot)

    async def build_context_text(self) -> str:
        """Rendered snapshot, or "" if the store cannot be read."""
        try:
            snapshot = await self.build_context()
        except Exception as e:
            logger.warning("Could not build hotel context, continuing without it: %s", e)
            return ""
        return build_context_string(snapshot)
