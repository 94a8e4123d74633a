"""Tests for the hotel tool handlers over a real SQLite store."""
from __future__ import annotations

import tempfile
import time
import unittest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from src.hotel_assistant import HOTEL_TOOLS, HotelToolbox, ToolExecutor
from src.hotel_assistant.models import ToolCallRequest
from src.hotel_data import HotelStore
from src.report_jobs import REPORT_GENERATE_EVENT
from tests.fakes import NOW, fixed_clock, make_booking


class SlowWriteStore(HotelStore):
    def update_booking(self, *args, **kwargs):
        time.sleep(0.2)
        return super().update_booking(*args, **kwargs)


class HotelToolsTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.store = HotelStore(Path(self._tmp.name) / "hotel.db")
        today = NOW.replace(hour=14, minute=0)
        self.arriving = self.store.add_booking(
            make_booking(check_in=today, payment_reference="NCH-1001", booking_status="confirmed")
        )
        self.in_house = self.store.add_booking(
            make_booking(
                guest_email="kofi@example.com",
                guest_first_name="Kofi",
                guest_last_name="Boateng",
                room_name="Executive Suite",
                check_in=today - timedelta(days=3),
                nights=3,
                total_amount=3000.0,
                booking_status="checked_in",
            )
        )
        self.unpaid = self.store.add_booking(
            make_booking(
                guest_email="kofi@example.com",
                guest_first_name="Kofi",
                guest_last_name="Boateng",
                check_in=today + timedelta(days=10),
                payment_status="pending",
                booking_status="pending",
                created_at=NOW - timedelta(hours=1),
            )
        )
        self.jobs = MagicMock()
        self.jobs.send = AsyncMock(return_value="run-123")
        self.toolbox = HotelToolbox(self.store, self.jobs, fixed_clock)
        self.executor = ToolExecutor(HOTEL_TOOLS, self.toolbox.handlers())

    def tearDown(self) -> None:
        self.store.close()
        self._tmp.cleanup()

    async def call(self, name: str, **args):
        return await self.executor.run(ToolCallRequest(id="t", name=name, arguments=args))


class TestReadTools(HotelToolsTestCase):
    async def test_every_declared_tool_has_a_handler(self) -> None:
        self.assertEqual(set(self.toolbox.handlers()), {t.name for t in HOTEL_TOOLS})

    async def test_today_snapshot(self) -> None:
        result = await self.call("getTodaySnapshot")
        self.assertTrue(result.success)
        data = result.data
        self.assertEqual(data["date"], "2026-03-10")
        self.assertEqual(data["arrivals"], 1)
        self.assertEqual(data["departures"], 1)
        self.assertEqual(data["currentlyCheckedIn"], 1)
        self.assertEqual(data["pendingPayments"], 1)
        self.assertEqual(data["newBookingsToday"], 1)
        self.assertEqual(data["todayRevenue"], 0.0)

    async def test_booking_stats_for_week(self) -> None:
        result = await self.call("getBookingStats", period="week")
        self.assertEqual(result.data["totalBookings"], 3)
        self.assertEqual(result.data["checkedIn"], 1)
        self.assertEqual(result.data["pending"], 1)

    async def test_search_bookings_by_name(self) -> None:
        result = await self.call("searchBookings", query="kofi")
        self.assertEqual(result.data["count"], 2)
        self.assertEqual(result.data["bookings"][0]["guest"], "Kofi Boateng")

    async def test_search_bookings_with_status(self) -> None:
        result = await self.call("searchBookings", query="kofi", status="checked_in")
        self.assertEqual(result.data["count"], 1)

    async def test_guest_profile(self) -> None:
        result = await self.call("getGuestProfile", email="KOFI@example.com")
        stats = result.data["stats"]
        self.assertEqual(stats["totalBookings"], 2)
        self.assertEqual(stats["totalSpent"], 3000.0)
        self.assertEqual(stats["averageSpend"], 1500)

    async def test_guest_profile_not_found(self) -> None:
        result = await self.call("getGuestProfile", email="nobody@example.com")
        self.assertFalse(result.success)
        self.assertIn("No guest found", result.error)

    async def test_booking_details_by_reference(self) -> None:
        result = await self.call("getBookingDetails", bookingId="NCH-1001")
        self.assertTrue(result.success)
        self.assertEqual(result.data["id"], self.arriving.id)
        self.assertEqual(result.data["guests"]["total"], 1)

    async def test_revenue_report_rejects_bad_dates(self) -> None:
        result = await self.call("getRevenueReport", startDate="last week", endDate="2026-03-10")
        self.assertFalse(result.success)
        self.assertIn("YYYY-MM-DD", result.error)

    async def test_revenue_report_daily_breakdown(self) -> None:
        result = await self.call("getRevenueReport", startDate="2026-03-01", endDate="2026-03-10")
        self.assertEqual(result.data["totalBookings"], 2)
        self.assertEqual(result.data["dailyBreakdown"], [{"date": "2026-03-09", "bookings": 2, "revenue": 3800.0}])

    async def test_room_type_performance_sorted_by_revenue(self) -> None:
        result = await self.call("getRoomTypePerformance", period="month")
        names = [r["name"] for r in result.data["roomTypes"]]
        self.assertEqual(names, ["Executive Suite", "Deluxe Room"])

    async def test_top_guests(self) -> None:
        result = await self.call("getTopGuests", sortBy="revenue", limit=1)
        self.assertEqual(len(result.data["guests"]), 1)
        self.assertEqual(result.data["guests"][0]["email"], "kofi@example.com")

    async def test_occupancy_warnings_flag_empty_weeks(self) -> None:
        result = await self.call("getOccupancyWarnings", weeksAhead=2)
        self.assertEqual(result.data["weeksAnalyzed"], 2)
        self.assertEqual(result.data["warningsFound"], 2)
        self.assertEqual(result.data["warnings"][0]["severity"], "medium")

    async def test_revenue_forecast_without_history(self) -> None:
        result = await self.call("getRevenueForecast", targetMonth="March 2026")
        self.assertEqual(result.data["lastYearActual"], 0)
        self.assertEqual(result.data["confidence"], "medium")
        self.assertEqual(result.data["forecastedRevenue"], round(result.data["currentOnTheBooks"] * 2))

    async def test_revenue_forecast_unparseable_month(self) -> None:
        result = await self.call("getRevenueForecast", targetMonth="sometime")
        self.assertFalse(result.success)


class TestWriteTools(HotelToolsTestCase):
    async def test_update_booking_status_with_note(self) -> None:
        result = await self.call(
            "updateBookingStatus", bookingId=self.unpaid.id, status="confirmed", note="Called guest"
        )
        self.assertTrue(result.success)
        stored = self.store.get_booking(self.unpaid.id)
        self.assertEqual(stored.booking_status, "confirmed")
        self.assertIn("[AI Update]: Called guest", stored.special_requests)

    async def test_update_unknown_booking_fails(self) -> None:
        result = await self.call("updatePaymentStatus", bookingId="missing", status="paid")
        self.assertFalse(result.success)
        self.assertIn("Booking not found", result.error)

    async def test_update_stay_status_maps_to_booking_status(self) -> None:
        result = await self.call("updateStayStatus", bookingId=self.arriving.id, status="checked-in")
        self.assertEqual(result.data["booking"]["status"], "checked_in")
        self.assertEqual(self.store.get_booking(self.arriving.id).booking_status, "checked_in")

    async def test_slow_status_update_reports_the_stored_change(self) -> None:
        store = SlowWriteStore(Path(self._tmp.name) / "slow.db")
        self.addCleanup(store.close)
        booking = store.add_booking(make_booking(booking_status="confirmed"))
        executor = ToolExecutor(HOTEL_TOOLS, HotelToolbox(store, self.jobs, fixed_clock).handlers())

        result = await executor.run(
            ToolCallRequest(id="t", name="updateBookingStatus", arguments={"bookingId": booking.id, "status": "cancelled"}),
            timeout=0.02,
        )

        stored = store.get_booking(booking.id).booking_status
        self.assertEqual(stored, "cancelled")
        self.assertTrue(result.success)
        self.assertEqual(result.data["booking"]["status"], stored)

    async def test_update_with_invalid_enum_is_rejected_before_writing(self) -> None:
        result = await self.call("updateBookingStatus", bookingId=self.arriving.id, status="archived")
        self.assertFalse(result.success)
        self.assertEqual(self.store.get_booking(self.arriving.id).booking_status, "confirmed")

    async def test_save_and_search_insight(self) -> None:
        saved = await self.call(
            "saveInsight",
            category="user_preference",
            content="Manager wants revenue in GHS",
            tags=["revenue", "formatting"],
            importance=12,
        )
        self.assertTrue(saved.success)
        found = await self.call("searchKnowledgeBase", query="revenue")
        self.assertEqual(found.data["count"], 1)
        self.assertEqual(found.data["results"][0]["tags"], ["revenue", "formatting"])

    async def test_request_revenue_report_is_fire_and_forget(self) -> None:
        result = await self.call(
            "requestRevenueReport", startDate="2026-02-01", endDate="2026-02-28", email="boss@example.com"
        )
        self.assertTrue(result.success)
        self.assertEqual(result.data["runId"], "run-123")
        self.assertEqual(result.data["status"], "scheduled")
        self.jobs.send.assert_awaited_once_with(
            REPORT_GENERATE_EVENT,
            {
                "reportType": "revenue",
                "startDate": "2026-02-01",
                "endDate": "2026-02-28",
                "userEmail": "boss@example.com",
            },
        )

    async def test_request_revenue_report_rejects_reversed_range(self) -> None:
        result = await self.call(
            "requestRevenueReport", startDate="2026-02-28", endDate="2026-02-01", email="boss@example.com"
        )
        self.assertFalse(result.success)
        self.jobs.send.assert_not_awaited()

    async def test_request_revenue_report_scheduling_failure(self) -> None:
        self.jobs.send.side_effect = RuntimeError("queue down")
        result = await self.call(
            "requestRevenueReport", startDate="2026-02-01", endDate="2026-02-28", email="boss@example.com"
        )
        self.assertFalse(result.success)
        self.assertIn("Failed to schedule report", result.error)


if __name__ == "__main__":
    unittest.main()
