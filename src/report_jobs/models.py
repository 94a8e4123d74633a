from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

REPORT_GENERATE_EVENT = "report.generate"

RunStatus = Literal["queued", "running", "completed", "failed"]
INCOMPLETE_STATUSES: tuple[str, ...] = ("queued", "running")


class ReportJob(BaseModel):
    """Payload of the ``report.generate`` event."""

    model_config = ConfigDict(populate_by_name=True)

    report_type: Literal["revenue", "occupancy", "comprehensive"] = Field("revenue", alias="reportType")
    start_date: date = Field(..., alias="startDate")
    end_date: date = Field(..., alias="endDate")
    user_email: str = Field(..., alias="userEmail")

    @field_validator("user_email")
    @classmethod
    def _looks_like_email(cls, value: str) -> str:
        value = value.strip()
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValueError("userEmail must be an email address")
        return value

    @model_validator(mode="after")
    def _ordered_dates(self) -> ReportJob:
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class StepRecord(BaseModel):
    step_id: str
    output: Any = None
    completed_at: datetime


class JobRun(BaseModel):
    run_id: str
    name: str
    data: dict[str, Any] = Field(default_factory=dict)
    status: RunStatus = "queued"
    attempts: int = 0
    error: Optional[str] = None
    result: Any = None
    created_at: datetime
    updated_at: datetime
    steps: list[StepRecord] = Field(default_factory=list)

    @property
    def finished(self) -> bool:
        return self.status in ("completed", "failed")
