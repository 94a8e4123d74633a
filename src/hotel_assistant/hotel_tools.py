"""Hotel tool handlers: booking queries, status updates, reports and insight memory."""

from __future__ import annotations

import asyncio
import calendar
import logging
from collections import Counter, defaultdict
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from typing import Any, Protocol

from src.hotel_data import Booking, BookingFilter, HotelStore, Insight
from src.report_jobs.models import REPORT_GENERATE_EVENT

from .errors import ToolExecutionError
from .executor import ToolHandler

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ("confirmed", "checked_in")
STAY_STATUS_MAP = {
    "checked-in": "checked_in",
    "checked_in": "checked_in",
    "checked-out": "checked_out",
    "checked_out": "checked_out",
    "not-checked-in": "confirmed",
}
LOW_OCCUPANCY_THRESHOLD = 5
_MONTH_FORMATS = ("%B %Y", "%b %Y", "%Y-%m", "%Y-%m-%d", "%m/%Y")


class JobSender(Protocol):
    async def send(self, name: str, data: dict[str, Any]) -> str: ...


def _shift_months(moment: datetime, months: int) -> datetime:
    index = moment.month - 1 + months
    year, month = moment.year + index // 12, index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _parse_date(value: str, field: str) -> date:
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ToolExecutionError("", f"{field} must be a date in YYYY-MM-DD format") from None


def _parse_month(value: str) -> date:
    text = str(value).strip()
    for fmt in _MONTH_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().replace(day=1)
        except ValueError:
            continue
    raise ToolExecutionError("getRevenueForecast", f"Could not understand month: {value}")


def _limit(value: Any, default: int = 10, ceiling: int = 100) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return max(1, min(n, ceiling))


def _booking_summary(b: Booking) -> dict[str, Any]:
    return {
        "id": b.id,
        "guest": b.guest_name,
        "email": b.guest_email,
        "phone": b.guest_phone,
        "room": b.room_name,
        "checkIn": b.check_in,
        "checkOut": b.check_out,
        "amount": b.total_amount,
        "bookingStatus": b.booking_status,
        "paymentStatus": b.payment_status,
    }


def _booking_ref(b: Booking) -> dict[str, Any]:
    return {
        "id": b.id,
        "status": b.booking_status,
        "paymentStatus": b.payment_status,
        "reference": b.payment_reference,
    }


class HotelToolbox:
    """Implements every tool in the hotel catalog on top of a HotelStore."""

    def __init__(
        self,
        store: HotelStore,
        jobs: JobSender,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._jobs = jobs
        self._clock = clock

    def handlers(self) -> dict[str, ToolHandler]:
        blocking: dict[str, Callable[[dict[str, Any]], Any]] = {
            "getBookingStats": self.booking_stats,
            "getExpiringBookings": self.expiring_bookings,
            "searchBookings": self.search_bookings,
            "getRevenueReport": self.revenue_report,
            "getRoomTypePerformance": self.room_type_performance,
            "getTodaySnapshot": self.today_snapshot,
            "getPaymentSummary": self.payment_summary,
            "getPendingPayments": self.pending_payments,
            "getGuestProfile": self.guest_profile,
            "getBookingDetails": self.booking_details,
            "getTopGuests": self.top_guests,
            "getOccupancyTrends": self.occupancy_trends,
            "updateBookingStatus": self.update_booking_status,
            "updatePaymentStatus": self.update_payment_status,
            "updateStayStatus": self.update_stay_status,
            "getRevenueForecast": self.revenue_forecast,
            "getOccupancyWarnings": self.occupancy_warnings,
            "saveInsight": self.save_insight,
            "searchKnowledgeBase": self.search_knowledge_base,
        }
        out: dict[str, ToolHandler] = {name: self._in_thread(fn) for name, fn in blocking.items()}
        out["requestRevenueReport"] = self.request_revenue_report
        return out

    @staticmethod
    def _in_thread(fn: Callable[[dict[str, Any]], Any]) -> ToolHandler:
        async def handler(args: dict[str, Any]) -> Any:
            return await asyncio.to_thread(fn, args)

        return handler

    # ------------------------------------------------------------------
    # Time helpers
    # ------------------------------------------------------------------

    def _today(self) -> datetime:
        return datetime.combine(self._clock().date(), time.min)

    def _period_start(self, period: str | None) -> datetime:
        now = self._clock()
        if period == "week":
            return now - timedelta(days=7)
        if period == "month":
            return _shift_months(now, -1)
        if period == "year":
            return _shift_months(now, -12)
        return self._today()

    def _require_booking(self, booking_id: str) -> Booking:
        booking = self._store.get_booking(booking_id) or self._store.find_booking_by_reference(booking_id)
        if booking is None:
            raise ToolExecutionError("", f"Booking not found: {booking_id}")
        return booking

    # ------------------------------------------------------------------
    # Read tools
    # ------------------------------------------------------------------

    def booking_stats(self, args: dict[str, Any]) -> dict[str, Any]:
        period = args.get("period") or "today"
        bookings = self._store.list_bookings(BookingFilter(created_from=self._period_start(period)))
        counts = Counter(b.booking_status for b in bookings)
        return {
            "period": period,
            "totalBookings": len(bookings),
            "confirmed": counts["confirmed"],
            "pending": counts["pending"],
            "cancelled": counts["cancelled"],
            "checkedIn": counts["checked_in"],
            "checkedOut": counts["checked_out"],
            "totalRevenue": sum(b.total_amount for b in bookings),
        }

    def expiring_bookings(self, args: dict[str, Any]) -> dict[str, Any]:
        today = self._today()
        bookings = self._store.list_bookings(
            BookingFilter(
                check_out_from=today,
                check_out_before=today + timedelta(days=1),
                booking_statuses=ACTIVE_STATUSES,
            ),
            limit=_limit(args.get("limit")),
        )
        return {"count": len(bookings), "bookings": [_booking_summary(b) for b in bookings]}

    def search_bookings(self, args: dict[str, Any]) -> dict[str, Any]:
        query = str(args["query"])
        status = args.get("status") or "all"
        bookings = self._store.search_bookings(query, status=status, limit=10)
        return {
            "count": len(bookings),
            "query": query,
            "status": status,
            "bookings": [_booking_summary(b) for b in bookings],
        }

    def revenue_report(self, args: dict[str, Any]) -> dict[str, Any]:
        start = _parse_date(args["startDate"], "startDate")
        end = _parse_date(args["endDate"], "endDate")
        bookings = self._store.list_bookings(
            BookingFilter(
                created_from=start,
                created_before=end + timedelta(days=1),
                payment_statuses=("paid",),
            )
        )
        daily: dict[str, dict[str, Any]] = {}
        for b in bookings:
            day = daily.setdefault(b.created_at.date().isoformat(), {"bookings": 0, "revenue": 0.0})
            day["bookings"] += 1
            day["revenue"] += b.total_amount
        return {
            "period": {"start": start.isoformat(), "end": end.isoformat()},
            "totalRevenue": sum(b.total_amount for b in bookings),
            "totalBookings": len(bookings),
            "dailyBreakdown": [{"date": d, **v} for d, v in sorted(daily.items())],
        }

    def room_type_performance(self, args: dict[str, Any]) -> dict[str, Any]:
        period = args.get("period") or "year"
        start = self._period_start(period if period in ("week", "month") else "year")
        bookings = self._store.list_bookings(
            BookingFilter(created_from=start, payment_statuses=("paid",))
        )
        groups: dict[str, list[Booking]] = defaultdict(list)
        for b in bookings:
            groups[b.room_name].append(b)
        room_types = [
            {
                "name": name,
                "bookings": len(items),
                "revenue": sum(b.total_amount for b in items),
                "avgNights": round(sum(b.nights for b in items) / len(items), 1),
            }
            for name, items in groups.items()
        ]
        room_types.sort(key=lambda r: r["revenue"], reverse=True)
        return {"period": period, "roomTypes": room_types}

    def today_snapshot(self, args: dict[str, Any]) -> dict[str, Any]:
        today = self._today()
        tomorrow = today + timedelta(days=1)
        store = self._store
        _, revenue = store.sum_booking_amounts(
            BookingFilter(created_from=today, created_before=tomorrow, payment_statuses=("paid",))
        )
        return {
            "date": today.date().isoformat(),
            "arrivals": store.count_bookings(
                BookingFilter(check_in_from=today, check_in_before=tomorrow, booking_statuses=ACTIVE_STATUSES)
            ),
            "departures": store.count_bookings(
                BookingFilter(check_out_from=today, check_out_before=tomorrow, booking_statuses=ACTIVE_STATUSES)
            ),
            "newBookingsToday": store.count_bookings(BookingFilter(created_from=today, created_before=tomorrow)),
            "currentlyCheckedIn": store.count_bookings(BookingFilter(booking_statuses=("checked_in",))),
            "pendingPayments": store.count_bookings(BookingFilter(payment_statuses=("pending",))),
            "todayRevenue": revenue,
        }

    def payment_summary(self, args: dict[str, Any]) -> dict[str, Any]:
        period = args.get("period") or "today"
        bookings = self._store.list_bookings(BookingFilter(created_from=self._period_start(period)))
        summary: dict[str, Any] = {
            "period": period,
            **{status: {"count": 0, "total": 0.0} for status in ("paid", "pending", "failed", "refunded")},
        }
        for b in bookings:
            bucket = summary[b.payment_status]
            bucket["count"] += 1
            bucket["total"] += b.total_amount
        summary["totalCollected"] = summary["paid"]["total"]
        summary["totalOutstanding"] = summary["pending"]["total"] + summary["failed"]["total"]
        return summary

    def pending_payments(self, args: dict[str, Any]) -> dict[str, Any]:
        bookings = self._store.list_bookings(
            BookingFilter(payment_statuses=("pending", "failed")),
            limit=_limit(args.get("limit")),
            newest_first=True,
        )
        return {
            "count": len(bookings),
            "totalOutstanding": sum(b.total_amount for b in bookings),
            "bookings": [{**_booking_summary(b), "bookedOn": b.created_at} for b in bookings],
        }

    def guest_profile(self, args: dict[str, Any]) -> dict[str, Any]:
        email = str(args["email"]).strip().lower()
        bookings = self._store.list_bookings(BookingFilter(guest_email=email), newest_first=True)
        if not bookings:
            raise ToolExecutionError("getGuestProfile", f"No guest found with email: {email}")
        first, last = bookings[-1], bookings[0]
        total_spent = sum(b.total_amount for b in bookings if b.payment_status == "paid")
        rooms = Counter(b.room_name for b in bookings)
        return {
            "guest": {
                "name": first.guest_name,
                "email": email,
                "phone": last.guest_phone,
                "country": last.guest_country,
            },
            "stats": {
                "totalBookings": len(bookings),
                "totalSpent": total_spent,
                "totalNights": sum(b.nights for b in bookings),
                "averageSpend": round(total_spent / len(bookings)),
                "favoriteRoom": rooms.most_common(1)[0][0],
                "firstStay": first.created_at,
                "lastStay": last.created_at,
            },
            "recentBookings": [
                {
                    "room": b.room_name,
                    "checkIn": b.check_in,
                    "checkOut": b.check_out,
                    "amount": b.total_amount,
                    "status": b.booking_status,
                    "paymentStatus": b.payment_status,
                }
                for b in bookings[:5]
            ],
        }

    def booking_details(self, args: dict[str, Any]) -> dict[str, Any]:
        b = self._require_booking(str(args["bookingId"]))
        return {
            "id": b.id,
            "guest": {
                "name": b.guest_name,
                "email": b.guest_email,
                "phone": b.guest_phone,
                "country": b.guest_country,
            },
            "room": {
                "name": b.room_name,
                "number": b.room_number,
                "pricePerNight": b.price_per_night,
                "numberOfRooms": b.number_of_rooms,
            },
            "dates": {"checkIn": b.check_in, "checkOut": b.check_out, "nights": b.nights},
            "guests": {"adults": b.adults, "children": b.children, "total": b.total_guests},
            "payment": {
                "total": b.total_amount,
                "status": b.payment_status,
                "method": b.payment_method,
                "reference": b.payment_reference,
            },
            "status": b.booking_status,
            "source": b.booking_source,
            "specialRequests": b.special_requests,
            "createdAt": b.created_at,
        }

    def top_guests(self, args: dict[str, Any]) -> dict[str, Any]:
        sort_by = args.get("sortBy") or "revenue"
        bookings = self._store.list_bookings(BookingFilter(payment_statuses=("paid",)))
        guests: dict[str, dict[str, Any]] = {}
        for b in bookings:
            g = guests.setdefault(
                b.guest_email,
                {
                    "name": b.guest_name,
                    "email": b.guest_email,
                    "phone": b.guest_phone,
                    "bookings": 0,
                    "totalSpent": 0.0,
                    "totalNights": 0,
                    "lastVisit": b.check_out,
                },
            )
            g["bookings"] += 1
            g["totalSpent"] += b.total_amount
            g["totalNights"] += b.nights
            g["lastVisit"] = max(g["lastVisit"], b.check_out)
        key = "bookings" if sort_by == "bookings" else "totalSpent"
        ranked = sorted(guests.values(), key=lambda g: g[key], reverse=True)
        return {"sortedBy": sort_by, "guests": ranked[: _limit(args.get("limit"))]}

    def occupancy_trends(self, args: dict[str, Any]) -> dict[str, Any]:
        start = _parse_date(args["startDate"], "startDate")
        end = _parse_date(args["endDate"], "endDate")
        after_end = end + timedelta(days=1)
        store = self._store
        check_ins = store.list_bookings(
            BookingFilter(check_in_from=start, check_in_before=after_end, exclude_booking_statuses=("cancelled",))
        )
        check_outs = store.list_bookings(
            BookingFilter(check_out_from=start, check_out_before=after_end, exclude_booking_statuses=("cancelled",))
        )
        daily: dict[str, dict[str, int]] = defaultdict(lambda: {"checkIns": 0, "checkOuts": 0})
        for b in check_ins:
            daily[b.check_in.date().isoformat()]["checkIns"] += 1
        for b in check_outs:
            daily[b.check_out.date().isoformat()]["checkOuts"] += 1
        return {
            "period": {"start": start.isoformat(), "end": end.isoformat()},
            "totalCheckIns": len(check_ins),
            "totalCheckOuts": len(check_outs),
            "dailyTrends": [{"date": d, **counts} for d, counts in sorted(daily.items())],
        }

    def revenue_forecast(self, args: dict[str, Any]) -> dict[str, Any]:
        target = args["targetMonth"]
        month_start = _parse_month(target)
        month_end = _shift_months(datetime.combine(month_start, time.min), 1)
        last_year_start = _shift_months(datetime.combine(month_start, time.min), -12)
        not_cancelled = ("cancelled",)
        _, on_the_books = self._store.sum_booking_amounts(
            BookingFilter(check_in_from=month_start, check_in_before=month_end, exclude_booking_statuses=not_cancelled)
        )
        _, last_year = self._store.sum_booking_amounts(
            BookingFilter(
                check_in_from=last_year_start,
                check_in_before=_shift_months(last_year_start, 1),
                exclude_booking_statuses=not_cancelled,
            )
        )
        if last_year > 0:
            # Assume 10% growth over last year unless already booked beyond it.
            forecast = max(on_the_books, last_year * 1.1)
        else:
            forecast = on_the_books * 2
        return {
            "targetMonth": target,
            "currentOnTheBooks": on_the_books,
            "lastYearActual": last_year,
            "forecastedRevenue": round(forecast),
            "confidence": "high" if last_year > 0 else "medium",
            "insight": (
                "You are pacing well ahead of last year."
                if on_the_books > last_year * 0.5
                else "Booking pace is slightly slower; consider a mid-month promotion."
            ),
        }

    def occupancy_warnings(self, args: dict[str, Any]) -> dict[str, Any]:
        weeks = _limit(args.get("weeksAhead"), default=4, ceiling=52)
        today = self._today()
        warnings = []
        for i in range(weeks):
            start = today + timedelta(days=7 * i)
            end = start + timedelta(days=7)
            booked = self._store.count_bookings(
                BookingFilter(check_in_before=end, check_out_after=start, exclude_booking_statuses=("cancelled",))
            )
            if booked < LOW_OCCUPANCY_THRESHOLD:
                warnings.append(
                    {
                        "weekStarting": start.date().isoformat(),
                        "currentBookings": booked,
                        "severity": "high" if booked < 2 else "medium",
                        "recommendation": "Run a limited-time flash sale for this week.",
                    }
                )
        return {"weeksAnalyzed": weeks, "warningsFound": len(warnings), "warnings": warnings}

    def search_knowledge_base(self, args: dict[str, Any]) -> dict[str, Any]:
        query = str(args["query"])
        insights = self._store.search_insights(query, category=args.get("category") or None)
        return {
            "query": query,
            "count": len(insights),
            "results": [
                {"category": i.category, "content": i.content, "tags": i.tags, "learnedAt": i.created_at}
                for i in insights
            ],
        }

    # ------------------------------------------------------------------
    # Write tools
    # ------------------------------------------------------------------

    def update_booking_status(self, args: dict[str, Any]) -> dict[str, Any]:
        status = args["status"]
        note = args.get("note")
        booking = self._require_booking(str(args["bookingId"]))
        updated = self._store.update_booking(
            booking.id,
            {"booking_status": status},
            note=f"[AI Update]: {note}" if note else None,
        )
        if updated is None:
            raise ToolExecutionError("updateBookingStatus", "Booking not found")
        return {
            "message": f"Booking {updated.payment_reference or updated.id} has been marked as {status}.",
            "booking": _booking_ref(updated),
        }

    def update_payment_status(self, args: dict[str, Any]) -> dict[str, Any]:
        status = args["status"]
        amount = args.get("amountPaid")
        booking = self._require_booking(str(args["bookingId"]))
        updated = self._store.update_booking(
            booking.id,
            {"payment_status": status},
            note=f"[AI Payment Update]: Marked as {status} with amount {amount}" if amount is not None else None,
        )
        if updated is None:
            raise ToolExecutionError("updatePaymentStatus", "Booking not found")
        return {
            "message": f"Payment status for booking {updated.payment_reference or updated.id} updated to {status}.",
            "booking": _booking_ref(updated),
        }

    def update_stay_status(self, args: dict[str, Any]) -> dict[str, Any]:
        db_status = STAY_STATUS_MAP.get(args["status"])
        if db_status is None:
            raise ToolExecutionError("updateStayStatus", f"Unsupported stay status: {args['status']}")
        booking = self._require_booking(str(args["bookingId"]))
        updated = self._store.update_booking(booking.id, {"booking_status": db_status})
        if updated is None:
            raise ToolExecutionError("updateStayStatus", "Booking not found")
        return {
            "message": (
                f"Guest status for booking {updated.payment_reference or updated.id} "
                f"updated to {db_status.replace('_', ' ')}."
            ),
            "booking": _booking_ref(updated),
        }

    def save_insight(self, args: dict[str, Any]) -> dict[str, Any]:
        importance = args.get("importance")
        insight = self._store.add_insight(
            Insight(
                category=args["category"],
                content=args["content"],
                tags=[str(t) for t in args.get("tags") or []],
                importance=max(1, min(int(importance), 10)) if importance is not None else 5,
                source="User Chat",
            )
        )
        return {"message": "Insight saved to long-term memory.", "id": insight.id}

    async def request_revenue_report(self, args: dict[str, Any]) -> dict[str, Any]:
        start = _parse_date(args["startDate"], "startDate")
        end = _parse_date(args["endDate"], "endDate")
        if end < start:
            raise ToolExecutionError("requestRevenueReport", "endDate must not be before startDate")
        email = str(args["email"]).strip()
        try:
            run_id = await self._jobs.send(
                REPORT_GENERATE_EVENT,
                {
                    "reportType": args.get("reportType") or "revenue",
                    "startDate": start.isoformat(),
                    "endDate": end.isoformat(),
                    "userEmail": email,
                },
            )
        except Exception as e:
            logger.error("Failed to schedule report for %s: %s", email, e)
            raise ToolExecutionError(
                "requestRevenueReport", "Failed to schedule report. Please try again later."
            ) from e
        return {"message": f"Report scheduled for {email}.", "status": "scheduled", "runId": run_id}
