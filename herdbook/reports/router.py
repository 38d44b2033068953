"""
Report Router (API Layer)

FastAPI router for the analytics and report endpoints: KPI summary, monthly
time series, profit and loss, cohort report, investor report jobs and job
status. Query parameters are validated once into AnalyticsFilters; any
failure after validation becomes a plain-text 500 with no partial body.

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import FileResponse
from pydantic import ValidationError

from ..auth import get_user_tier, require_premium
from ..config import config
from ..domain import JobStatus, JobType, ReportJob
from ..errors import error_response, internal_error, validation_message
from ..pdf_reports import investor_report_path
from ..repository import FarmRepository
from .handlers import AnalyticsReports, FinancialReports, CohortReports
from .models import AnalyticsFilters, CohortReport, JobAccepted, KpiSummary, PLReport, TimeSeriesPoint
from .service import ReportService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1", tags=["reports"])


# Dependency to get report service
def get_report_service():
    """Get report service instance bound to the application's database adapter"""
    from ..app import app_state
    return ReportService(app_state["db"])


def get_repository():
    from ..app import app_state
    return FarmRepository(app_state["db"])


def _log_request(request: Request):
    logger.info(f'Processed request for url "{request.url}"')


def _parse_filters(species_id, group_id, date_from, date_to) -> AnalyticsFilters:
    return AnalyticsFilters.model_validate({
        "speciesId": species_id,
        "groupId": group_id,
        "from": date_from,
        "to": date_to,
    })


# ============================================================================
# ANALYTICS ENDPOINTS
# ============================================================================

@router.get("/analytics/kpis", response_model=KpiSummary)
async def get_kpis(
    request: Request,
    species_id: Optional[str] = Query(None, alias="speciesId"),
    group_id: Optional[str] = Query(None, alias="groupId"),
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    service: ReportService = Depends(get_report_service)
):
    """Get the KPI summary (revenue, expense, margin, herd and production totals)"""
    _log_request(request)
    try:
        filters = _parse_filters(species_id, group_id, date_from, date_to)
    except ValidationError as e:
        return error_response(status.HTTP_400_BAD_REQUEST, validation_message(e.errors()))

    try:
        handler = AnalyticsReports(service)
        return handler.get_kpis(filters)
    except Exception as e:
        return internal_error("fetching KPI data", e)


@router.get("/analytics/time-series", response_model=List[TimeSeriesPoint])
async def get_time_series(
    request: Request,
    species_id: Optional[str] = Query(None, alias="speciesId"),
    group_id: Optional[str] = Query(None, alias="groupId"),
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    service: ReportService = Depends(get_report_service)
):
    """Get monthly revenue and expense, oldest month first"""
    _log_request(request)
    try:
        filters = _parse_filters(species_id, group_id, date_from, date_to)
    except ValidationError as e:
        return error_response(status.HTTP_400_BAD_REQUEST, validation_message(e.errors()))

    try:
        handler = AnalyticsReports(service)
        return handler.get_time_series(filters)
    except Exception as e:
        return internal_error("fetching time series data", e)


# ============================================================================
# FINANCIAL & COHORT REPORTS
# ============================================================================

@router.get("/reports/p-and-l", response_model=PLReport)
async def get_profit_and_loss(
    request: Request,
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    service: ReportService = Depends(get_report_service)
):
    """Get income and expense by category between two dates"""
    _log_request(request)
    if not date_from or not date_to:
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            "'from' and 'to' date query parameters are required."
        )
    try:
        filters = _parse_filters(None, None, date_from, date_to)
    except ValidationError as e:
        return error_response(status.HTTP_400_BAD_REQUEST, validation_message(e.errors()))

    try:
        handler = FinancialReports(service)
        return handler.get_profit_and_loss(filters.date_from.isoformat(), filters.date_to.isoformat())
    except Exception as e:
        return internal_error("generating P&L report", e)


@router.get("/reports/cohort/{group_id}", response_model=CohortReport)
async def get_cohort_report(
    request: Request,
    group_id: str,
    service: ReportService = Depends(get_report_service)
):
    """Get the cohort summary and timeline for one group"""
    _log_request(request)
    try:
        report = CohortReports(service).get_cohort_report(group_id)
    except Exception as e:
        return internal_error("generating cohort report", e)

    if report is None:
        return error_response(status.HTTP_404_NOT_FOUND, "Group not found")
    return report


# ============================================================================
# INVESTOR REPORT JOBS
# ============================================================================

@router.post("/reports/investor", status_code=status.HTTP_202_ACCEPTED, response_model=JobAccepted)
async def create_investor_report(
    request: Request,
    repository: FarmRepository = Depends(get_repository)
):
    """Queue an investor report (premium tiers only)"""
    _log_request(request)
    require_premium(get_user_tier(), "Investor reports")

    # An empty or unreadable body means "no filters"
    body = await request.body()
    try:
        params = json.loads(body) if body else {}
    except ValueError:
        params = {}
    if not isinstance(params, dict):
        params = {}

    try:
        job = repository.create_job(JobType.INVESTOR_REPORT, params=params)
    except Exception as e:
        return internal_error("creating report job", e)

    return {
        "message": "Report generation job accepted. Poll the job status endpoint for progress.",
        "jobId": job["id"],
    }


@router.get("/jobs/{job_id}", response_model=ReportJob)
async def get_job_status(
    request: Request,
    job_id: str,
    repository: FarmRepository = Depends(get_repository)
):
    """Get the status of a queued job"""
    _log_request(request)
    job = repository.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")

    return job


@router.get("/reports/download/{job_id}")
async def download_report(
    request: Request,
    job_id: str,
    repository: FarmRepository = Depends(get_repository)
):
    """Download the PDF of a completed investor report"""
    _log_request(request)
    job = repository.get_job(job_id)
    if (job is None or job["type"] != JobType.INVESTOR_REPORT.value
            or job["status"] != JobStatus.COMPLETED.value):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")

    path = investor_report_path(config.directories.reports_dir, job_id)
    if not path.exists():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report file not found")

    return FileResponse(path, media_type="application/pdf", filename=f"investor_report_{job_id}.pdf")
