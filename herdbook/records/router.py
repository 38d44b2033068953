"""
Record Router (API Layer)

CRUD endpoints for species, groups, animals, production records, financial
transactions and categories, plus CSV export and CSV import. Free-tier record
limits are enforced before inserts; integrity errors from the database map to
400 (bad reference) and 409 (duplicate external id).

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from ..auth import FREE_TIER_LIMITS, check_tier_limit, get_user_tier
from ..database_adapter import ReferenceViolation, UniqueViolation
from ..domain import (
    Animal, AnimalCreate, AnimalUpdate,
    Category, CategoryCreate,
    FinancialTransaction, FinancialTransactionCreate, FinancialTransactionUpdate,
    Group, GroupCreate, GroupUpdate,
    JobType,
    ProductionEvent, ProductionRecord, ProductionRecordCreate, ProductionRecordUpdate,
    Species,
)
from ..errors import error_response, internal_error
from ..exports import export_financials_csv, export_production_csv
from ..reports.models import JobAccepted
from ..reports.router import get_repository
from ..repository import FarmRepository

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1", tags=["records"])

INVALID_REFERENCE = "Invalid species_id or group_id."


def _log_request(request: Request):
    logger.info(f'Processed request for url "{request.url}"')


def _not_found(record: str):
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{record} not found.")


def _enforce_tier_limit(kind: str, current_count: int):
    limit = FREE_TIER_LIMITS[kind]
    if not check_tier_limit(get_user_tier(), current_count, limit):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Free tier limit of {limit} {kind} reached. Please upgrade."
        )


# ============================================================================
# SPECIES
# ============================================================================

@router.get("/species", response_model=List[Species])
async def list_species(request: Request, repository: FarmRepository = Depends(get_repository)):
    """Get all species ordered by name"""
    _log_request(request)
    try:
        return repository.list_species()
    except Exception as e:
        return internal_error("fetching species", e)


# ============================================================================
# GROUPS
# ============================================================================

@router.get("/groups", response_model=List[Group])
async def list_groups(
    request: Request,
    species_id: Optional[str] = Query(None, alias="speciesId"),
    repository: FarmRepository = Depends(get_repository)
):
    """Get groups, optionally for one species"""
    _log_request(request)
    try:
        return repository.list_groups(species_id=species_id)
    except Exception as e:
        return internal_error("fetching groups", e)


@router.post("/groups", status_code=status.HTTP_201_CREATED, response_model=Group)
async def create_group(
    request: Request,
    payload: GroupCreate,
    repository: FarmRepository = Depends(get_repository)
):
    """Create a group (free tier: limited number of groups)"""
    _log_request(request)
    _enforce_tier_limit('groups', repository.count_groups())
    try:
        return repository.create_group(payload.model_dump())
    except ReferenceViolation:
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid species_id.")
    except Exception as e:
        return internal_error("creating group", e)


@router.patch("/groups/{group_id}", response_model=Group)
async def update_group(
    request: Request,
    group_id: str,
    payload: GroupUpdate,
    repository: FarmRepository = Depends(get_repository)
):
    """Update the provided group fields"""
    _log_request(request)
    try:
        group = repository.update_group(group_id, payload.model_dump(exclude_unset=True))
    except Exception as e:
        return internal_error(f"updating group {group_id}", e)
    if group is None:
        _not_found("Group")
    return group


# ============================================================================
# ANIMALS
# ============================================================================

@router.get("/animals", response_model=List[Animal])
async def list_animals(
    request: Request,
    species_id: Optional[str] = Query(None, alias="speciesId"),
    group_id: Optional[str] = Query(None, alias="groupId"),
    repository: FarmRepository = Depends(get_repository)
):
    """Get animals ordered by external id"""
    _log_request(request)
    try:
        return repository.list_animals(species_id=species_id, group_id=group_id)
    except Exception as e:
        return internal_error("fetching animals", e)


@router.post("/animals", status_code=status.HTTP_201_CREATED, response_model=Animal)
async def create_animal(
    request: Request,
    payload: AnimalCreate,
    repository: FarmRepository = Depends(get_repository)
):
    """Register an animal (free tier: limited number of animals)"""
    _log_request(request)
    _enforce_tier_limit('animals', repository.count_animals())
    try:
        return repository.create_animal(payload.model_dump())
    except ReferenceViolation:
        return error_response(status.HTTP_400_BAD_REQUEST, INVALID_REFERENCE)
    except UniqueViolation:
        return error_response(status.HTTP_409_CONFLICT, "Animal with that external_id already exists.")
    except Exception as e:
        return internal_error("creating animal", e)


@router.patch("/animals/{animal_id}", response_model=Animal)
async def update_animal(
    request: Request,
    animal_id: str,
    payload: AnimalUpdate,
    repository: FarmRepository = Depends(get_repository)
):
    """Update the provided animal fields; omitted fields keep their value"""
    _log_request(request)
    try:
        animal = repository.update_animal(animal_id, payload.model_dump(exclude_unset=True))
    except ReferenceViolation:
        return error_response(status.HTTP_400_BAD_REQUEST, INVALID_REFERENCE)
    except UniqueViolation:
        return error_response(status.HTTP_409_CONFLICT, "Animal with that external_id already exists.")
    except Exception as e:
        return internal_error(f"updating animal {animal_id}", e)
    if animal is None:
        _not_found("Animal")
    return animal


# ============================================================================
# PRODUCTION RECORDS
# ============================================================================

@router.get("/production-records", response_model=List[ProductionRecord])
async def list_production_records(
    request: Request,
    species_id: Optional[str] = Query(None, alias="speciesId"),
    group_id: Optional[str] = Query(None, alias="groupId"),
    animal_id: Optional[str] = Query(None, alias="animalId"),
    event_type: Optional[ProductionEvent] = Query(None, alias="eventType"),
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    repository: FarmRepository = Depends(get_repository)
):
    """Get production records, newest first"""
    _log_request(request)
    try:
        return repository.list_production_records(
            species_id=species_id, group_id=group_id, animal_id=animal_id,
            event_type=event_type.value if event_type else None,
            date_from=date_from, date_to=date_to
        )
    except Exception as e:
        return internal_error("fetching production records", e)


@router.post("/production-records", status_code=status.HTTP_201_CREATED, response_model=ProductionRecord)
async def create_production_record(
    request: Request,
    payload: ProductionRecordCreate,
    repository: FarmRepository = Depends(get_repository)
):
    """Record a production event"""
    _log_request(request)
    try:
        return repository.create_production_record(payload.model_dump())
    except ReferenceViolation:
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid species_id, animal_id or group_id.")
    except Exception as e:
        return internal_error("creating production record", e)


@router.patch("/production-records/{record_id}", response_model=ProductionRecord)
async def update_production_record(
    request: Request,
    record_id: str,
    payload: ProductionRecordUpdate,
    repository: FarmRepository = Depends(get_repository)
):
    """Update the provided measurement fields of a production record"""
    _log_request(request)
    try:
        record = repository.update_production_record(record_id, payload.model_dump(exclude_unset=True))
    except Exception as e:
        return internal_error(f"updating production record {record_id}", e)
    if record is None:
        _not_found("Production record")
    return record


# ============================================================================
# FINANCIAL TRANSACTIONS
# ============================================================================

@router.get("/financial-transactions", response_model=List[FinancialTransaction])
async def list_financial_transactions(
    request: Request,
    category_id: Optional[str] = Query(None, alias="categoryId"),
    species_id: Optional[str] = Query(None, alias="speciesId"),
    group_id: Optional[str] = Query(None, alias="groupId"),
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    currency: Optional[str] = Query(None),
    repository: FarmRepository = Depends(get_repository)
):
    """Get financial transactions, newest first"""
    _log_request(request)
    try:
        return repository.list_financial_transactions(
            category_id=category_id, species_id=species_id, group_id=group_id,
            date_from=date_from, date_to=date_to, currency=currency
        )
    except Exception as e:
        return internal_error("fetching financial transactions", e)


@router.post("/financial-transactions", status_code=status.HTTP_201_CREATED, response_model=FinancialTransaction)
async def create_financial_transaction(
    request: Request,
    payload: FinancialTransactionCreate,
    repository: FarmRepository = Depends(get_repository)
):
    """Record income or expense; the base amount is computed from the FX rate"""
    _log_request(request)
    try:
        return repository.create_financial_transaction(payload.model_dump())
    except ReferenceViolation:
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid category_id, species_id or group_id.")
    except Exception as e:
        return internal_error("creating financial transaction", e)


@router.patch("/financial-transactions/{transaction_id}", response_model=FinancialTransaction)
async def update_financial_transaction(
    request: Request,
    transaction_id: str,
    payload: FinancialTransactionUpdate,
    repository: FarmRepository = Depends(get_repository)
):
    """Update the provided transaction fields and refresh the base amount"""
    _log_request(request)
    try:
        transaction = repository.update_financial_transaction(
            transaction_id, payload.model_dump(exclude_unset=True)
        )
    except ReferenceViolation:
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid category_id.")
    except Exception as e:
        return internal_error(f"updating financial transaction {transaction_id}", e)
    if transaction is None:
        _not_found("Financial transaction")
    return transaction


# ============================================================================
# CATEGORIES
# ============================================================================

@router.get("/categories", response_model=List[Category])
async def list_categories(request: Request, repository: FarmRepository = Depends(get_repository)):
    """Get all categories ordered by name"""
    _log_request(request)
    try:
        return repository.list_categories()
    except Exception as e:
        return internal_error("fetching categories", e)


@router.post("/categories", status_code=status.HTTP_201_CREATED, response_model=Category)
async def create_category(
    request: Request,
    payload: CategoryCreate,
    repository: FarmRepository = Depends(get_repository)
):
    """Create an income or expense category"""
    _log_request(request)
    try:
        return repository.create_category(payload.model_dump())
    except ReferenceViolation:
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid parent_id.")
    except Exception as e:
        return internal_error("creating category", e)


# ============================================================================
# EXPORT & IMPORT
# ============================================================================

def _csv_attachment(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.get("/export/production.csv")
async def export_production(request: Request, repository: FarmRepository = Depends(get_repository)):
    """Download all production records as CSV"""
    _log_request(request)
    try:
        return _csv_attachment(export_production_csv(repository), "production_export.csv")
    except Exception as e:
        return internal_error("exporting production CSV", e)


@router.get("/export/financials.csv")
async def export_financials(request: Request, repository: FarmRepository = Depends(get_repository)):
    """Download all financial transactions as CSV"""
    _log_request(request)
    try:
        return _csv_attachment(export_financials_csv(repository), "financials_export.csv")
    except Exception as e:
        return internal_error("exporting financials CSV", e)


@router.post("/imports/production", status_code=status.HTTP_202_ACCEPTED, response_model=JobAccepted)
async def import_production_csv(request: Request, repository: FarmRepository = Depends(get_repository)):
    """Queue a production CSV import; the raw CSV is the request body"""
    _log_request(request)
    csv_text = (await request.body()).decode("utf-8", errors="replace")
    if not csv_text.strip():
        return error_response(status.HTTP_400_BAD_REQUEST, "Request body cannot be empty.")

    try:
        job = repository.create_job(JobType.PRODUCTION_IMPORT, payload=csv_text)
    except Exception as e:
        return internal_error("creating import job", e)

    return {
        "message": "Import job accepted. Poll the job status endpoint for progress.",
        "jobId": job["id"],
    }
