"""Durable background jobs: step-memoized runner and the report workflow."""

from .client import ReportJobClient
from .errors import JobError, JobStepError, NonRetriableError
from .mailer import Attachment, DisabledMailer, Mailer, SMTPMailer, SMTPSettings
from .models import REPORT_GENERATE_EVENT, JobRun, ReportJob, StepRecord
from .report import ReportWorkflow, compute_analytics, generate_insights
from .runner import JobRunner, RetryPolicy, StepContext
from .store import JobStore

__all__ = [
    "Attachment",
    "DisabledMailer",
    "JobError",
    "JobRun",
    "JobRunner",
    "JobStepError",
    "JobStore",
    "Mailer",
    "NonRetriableError",
    "REPORT_GENERATE_EVENT",
    "ReportJob",
    "ReportJobClient",
    "ReportWorkflow",
    "RetryPolicy",
    "SMTPMailer",
    "SMTPSettings",
    "StepContext",
    "StepRecord",
    "compute_analytics",
    "generate_insights",
]
