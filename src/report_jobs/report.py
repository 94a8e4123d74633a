"""The ``report.generate`` workflow: gather, analyze, summarize, render, email."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError

from src.hotel_data import BookingFilter, HotelStore

from .errors import NonRetriableError
from .mailer import Attachment, Mailer
from .models import ReportJob
from .pdf import format_money, render_report_pdf
from .runner import StepContext
from .store import JobStore

logger = logging.getLogger(__name__)

TOP_ROOMS = 5


def compute_analytics(bookings: list[dict[str, Any]]) -> dict[str, Any]:
    """Totals, averages and top rooms by revenue over gathered bookings."""
    count = len(bookings)
    total_revenue = sum(b["totalAmount"] for b in bookings)
    total_nights = sum(b["nights"] for b in bookings)
    rooms: dict[str, dict[str, Any]] = {}
    for b in bookings:
        room = rooms.setdefault(b["roomName"], {"name": b["roomName"], "count": 0, "revenue": 0.0})
        room["count"] += 1
        room["revenue"] += b["totalAmount"]
    top_rooms = sorted(rooms.values(), key=lambda r: r["revenue"], reverse=True)[:TOP_ROOMS]
    analytics = {
        "totalBookings": count,
        "totalRevenue": total_revenue,
        "avgBookingValue": round(total_revenue / count) if count else 0,
        "avgNights": round(total_nights / count, 1) if count else 0,
        "topRooms": top_rooms,
    }
    analytics["insights"] = generate_insights(analytics)
    return analytics


def generate_insights(analytics: dict[str, Any]) -> list[str]:
    insights: list[str] = []
    if analytics["totalBookings"] > 0:
        insights.append(f"You processed {analytics['totalBookings']} bookings during this period.")
    if analytics["avgBookingValue"] > 500:
        insights.append(f"Great average booking value of {format_money(analytics['avgBookingValue'])}!")
    if analytics["topRooms"]:
        top = analytics["topRooms"][0]
        insights.append(f"{top['name']} was your top performer with {format_money(top['revenue'])} revenue.")
    if analytics["avgNights"] > 2:
        insights.append(f"Guests are staying an average of {analytics['avgNights']} nights - good retention!")
    return insights


class ReportWorkflow:
    """Workflow function registered under ``report.generate``.

    Each stage is a memoized step. The email step also checks the delivery
    log, so a run that already mailed its report never mails it again.
    """

    def __init__(
        self,
        hotel_store: HotelStore,
        job_store: JobStore,
        mailer: Mailer,
        hotel_name: str,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.hotel_store = hotel_store
        self.job_store = job_store
        self.mailer = mailer
        self.hotel_name = hotel_name
        self.clock = clock

    async def __call__(self, data: dict[str, Any], step: StepContext) -> dict[str, Any]:
        try:
            job = ReportJob.model_validate(data)
        except ValidationError as e:
            raise NonRetriableError(f"Invalid report request: {e}") from e
        start, end = job.start_date.isoformat(), job.end_date.isoformat()

        await step.run("connect-database", self._connect)
        gathered = await step.run("gather-booking-data", lambda: self._gather(job))
        analytics = await step.run("calculate-analytics", lambda: compute_analytics(gathered["bookings"]))
        report = await step.run(
            "generate-summary",
            lambda: {
                "reportType": job.report_type,
                "period": {"start": start, "end": end},
                "generatedAt": self.clock().isoformat(timespec="seconds"),
                "summary": analytics,
            },
        )
        await step.run("generate-pdf-and-email", lambda: self._deliver(step.run_id, job, analytics))
        return {"success": True, "report": report}

    async def _connect(self) -> dict[str, str]:
        await asyncio.to_thread(self.hotel_store.ping)
        return {"status": "connected"}

    async def _gather(self, job: ReportJob) -> dict[str, Any]:
        bookings = await asyncio.to_thread(
            self.hotel_store.list_bookings,
            BookingFilter(
                created_from=job.start_date,
                created_before=job.end_date + timedelta(days=1),
                payment_statuses=("paid",),
            ),
        )
        return {
            "count": len(bookings),
            "bookings": [
                {
                    "roomName": b.room_name,
                    "totalAmount": b.total_amount,
                    "nights": b.nights,
                    "adults": b.adults,
                    "children": b.children,
                    "createdAt": b.created_at,
                    "bookingStatus": b.booking_status,
                }
                for b in bookings
            ],
        }

    async def _deliver(self, run_id: str, job: ReportJob, analytics: dict[str, Any]) -> dict[str, str]:
        if await asyncio.to_thread(self.job_store.has_delivery, run_id):
            logger.info("Run %s: report already delivered to %s, not sending again", run_id, job.user_email)
            return {"status": "sent"}
        start, end = job.start_date.isoformat(), job.end_date.isoformat()
        pdf = await asyncio.to_thread(
            render_report_pdf,
            self.hotel_name,
            job.report_type,
            start,
            end,
            analytics,
            self.clock(),
        )
        await self.mailer.send(
            job.user_email,
            f"{job.report_type.upper()} Report: {start} to {end}",
            f"Your {job.report_type} report for the requested period is ready. "
            "Please find the PDF attachment below.",
            [Attachment(filename=f"Hotel_Report_{start}_to_{end}.pdf", content=pdf)],
        )
        await asyncio.to_thread(self.job_store.record_delivery, run_id, job.user_email)
        return {"status": "sent"}
