"""
Background Job Worker

Processes queued report_jobs one at a time: production CSV imports and
investor report PDFs. A job moves pending -> running -> completed, or to
failed with the error text recorded; the worker itself never raises.

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

import io
import json
import logging
import threading
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from .database_adapter import DatabaseAdapter, DataIntegrityError
from .domain import JobStatus, JobType, ProductionEvent
from .pdf_reports import InvestorReportTemplate, describe_period, investor_report_path
from .reports.handlers import AnalyticsReports
from .reports.models import AnalyticsFilters
from .reports.service import ReportService
from .repository import FarmRepository

logger = logging.getLogger(__name__)

IMPORT_SOURCE_ORIGIN = 'csv_import'
MAX_QUANTITY = 10000
MAX_NOTES_LENGTH = 1000
MAX_REPORTED_ERRORS = 20

# Columns copied from an import row into a production record
IMPORT_COLUMNS = ['species_id', 'animal_id', 'group_id', 'event_type', 'date', 'quantity', 'unit', 'notes']

EVENT_TYPES = {event.value for event in ProductionEvent}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_import_row(row: Dict[str, Any], today: Optional[date] = None) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """
    Validate one CSV row.

    Returns:
        (record, None) for a valid row, (None, reason) otherwise
    """
    today = today or date.today()

    if _blank(row.get('species_id')):
        return None, "species_id is required"

    event_type = str(row.get('event_type') or '').strip()
    if event_type not in EVENT_TYPES:
        return None, f"invalid event_type '{event_type}'"

    raw_date = str(row.get('date') or '').strip()
    try:
        event_date = date.fromisoformat(raw_date)
    except ValueError:
        return None, f"invalid date '{raw_date}'"
    if event_date < today - timedelta(days=365 * 10) or event_date > today + timedelta(days=365):
        return None, f"date {raw_date} is out of range"

    quantity = None
    if not _blank(row.get('quantity')):
        try:
            quantity = float(row['quantity'])
        except (TypeError, ValueError):
            return None, f"quantity '{row['quantity']}' is not a number"
        if not 0 <= quantity <= MAX_QUANTITY:
            return None, f"quantity {quantity} is out of range"

    notes = None if _blank(row.get('notes')) else str(row['notes'])
    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        return None, "notes exceed 1000 characters"

    record = {column: (None if _blank(row.get(column)) else str(row[column]).strip())
              for column in IMPORT_COLUMNS}
    record.update({
        'event_type': event_type,
        'date': event_date,
        'quantity': quantity,
        'notes': notes,
        'source_imported': True,
        'source_origin': IMPORT_SOURCE_ORIGIN,
    })
    return record, None


class JobWorker:
    """Single-threaded worker over the report_jobs queue"""

    def __init__(self, db: DatabaseAdapter, reports_dir: Path):
        self.db = db
        self.repository = FarmRepository(db)
        self.reports_dir = Path(reports_dir)
        self.logger = logging.getLogger(self.__class__.__name__)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def report_path(self, job_id: str) -> Path:
        return investor_report_path(self.reports_dir, job_id)

    def process_next(self) -> Optional[str]:
        """
        Process the oldest pending job.

        Returns:
            The processed job id, or None when the queue is empty
        """
        job = self.repository.next_pending_job()
        if job is None:
            self.logger.debug("No pending jobs to process")
            return None

        job_id = job['id']
        self.repository.update_job(job_id, status=JobStatus.RUNNING)
        self.logger.info(f"Processing job {job_id} of type {job['type']}")

        try:
            if job['type'] == JobType.PRODUCTION_IMPORT.value:
                changes = self._run_production_import(job)
            elif job['type'] == JobType.INVESTOR_REPORT.value:
                changes = self._run_investor_report(job)
            else:
                raise ValueError(f"Unknown job type: {job['type']}")

            self.repository.update_job(job_id, status=JobStatus.COMPLETED, **changes)
            self.logger.info(f"Job {job_id} completed successfully")
        except Exception as e:
            self.logger.error(f"Error processing job {job_id}: {e}", exc_info=True)
            self.repository.update_job(job_id, status=JobStatus.FAILED, error=str(e))

        return job_id

    def _run_production_import(self, job: Dict[str, Any]) -> Dict[str, Any]:
        csv_text = job.get('payload')
        if not csv_text:
            raise ValueError("File content not found for job")

        frame = pd.read_csv(io.StringIO(csv_text), dtype=str, keep_default_na=False, skip_blank_lines=True)
        imported = 0
        errors: List[str] = []

        # Header is line 1, so data rows start at line 2
        for line_number, row in enumerate(frame.to_dict(orient='records'), start=2):
            record, reason = validate_import_row(row)
            if record is None:
                errors.append(f"Row {line_number}: {reason}")
                continue
            try:
                self.repository.create_production_record(record)
            except DataIntegrityError as e:
                self.logger.warning(f"Skipping import row {line_number}: {e}")
                errors.append(f"Row {line_number}: unknown species_id, animal_id or group_id")
                continue
            imported += 1

        self.logger.info(f"Imported {imported} production records, skipped {len(errors)}")
        summary = {
            'imported': imported,
            'skipped': len(errors),
            'errors': errors[:MAX_REPORTED_ERRORS],
        }
        return {'params_json': json.dumps(summary), 'payload': None}

    def _run_investor_report(self, job: Dict[str, Any]) -> Dict[str, Any]:
        params = json.loads(job['params_json']) if job.get('params_json') else {}
        filters = AnalyticsFilters.model_validate(params or {})

        kpis = AnalyticsReports(ReportService(self.db)).get_kpis(filters)
        period = describe_period(params.get('from'), params.get('to'))
        InvestorReportTemplate(period=period).build(kpis, self.report_path(job['id']))

        return {'uri': f"/api/v1/reports/download/{job['id']}"}

    # ------------------------------------------------------------------
    # Polling thread
    # ------------------------------------------------------------------

    def run_forever(self, poll_interval: float) -> None:
        self.logger.info(f"Job worker started (poll every {poll_interval}s)")
        while not self._stop_event.is_set():
            try:
                # Drain the queue before sleeping again
                while self.process_next() is not None and not self._stop_event.is_set():
                    pass
            except Exception as e:
                self.logger.error(f"Error polling job queue: {e}", exc_info=True)
            self._stop_event.wait(poll_interval)
        self.logger.info(f"Job worker stopped at {datetime.now().isoformat()}")

    def start(self, poll_interval: float) -> threading.Thread:
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_forever, args=(poll_interval,), daemon=True, name="JobWorker"
        )
        self._thread.start()
        return self._thread

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
