"""Reports router: enqueue and inspect background report runs."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from src.report_jobs import REPORT_GENERATE_EVENT, JobRun, ReportJob, ReportJobClient

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("", status_code=202)
async def request_report(job: ReportJob, request: Request):
    """Schedule a ``report.generate`` run; returns immediately with its run id."""
    denied = request.app.state.authenticator.authenticate(request)
    if denied is not None:
        return denied
    client: ReportJobClient = request.app.state.report_jobs
    run_id = await client.send(REPORT_GENERATE_EVENT, job.model_dump(mode="json", by_alias=True))
    return JSONResponse(status_code=202, content={"status": "scheduled", "runId": run_id})


@router.get("/{run_id}", response_model=JobRun)
async def get_report_run(run_id: str, request: Request):
    denied = request.app.state.authenticator.authenticate(request)
    if denied is not None:
        return denied
    client: ReportJobClient = request.app.state.report_jobs
    run = await client.get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Unknown run: {run_id}")
    return run
