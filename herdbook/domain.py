"""
Domain Models

Pydantic record shapes shared by the repository, the report handlers and the
API layer: species, groups, animals, production records, financial
transactions, categories, FX rates and report jobs, plus the request payloads
used to create and update them.

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

import json
import datetime as dt
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class ProductionEvent(str, Enum):
    """Closed set of production record event types"""
    BIRTH = "birth"
    DEATH = "death"
    WEIGHT = "weight"
    EGG_COUNT = "egg_count"
    MILK_VOLUME = "milk_volume"
    SALE = "sale"
    PURCHASE = "purchase"
    FEED_INTAKE = "feed_intake"
    CULL = "cull"
    TREATMENT = "treatment"
    TRANSFER = "transfer"
    GRAZING_MOVE = "grazing_move"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class AnimalStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"
    DEAD = "dead"
    CULLED = "culled"


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"
    UNKNOWN = "unknown"


class WeightUnit(str, Enum):
    KG = "kg"
    LB = "lb"


class MilkUnit(str, Enum):
    LITRE = "L"
    GALLON = "gal"


class JobType(str, Enum):
    INVESTOR_REPORT = "investor_report"
    PRODUCTION_IMPORT = "production_import"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


def _parse_tags(value: Any) -> List[str]:
    """Tags are stored as JSON text; accept either form"""
    if value is None or value == "":
        return []
    if isinstance(value, str):
        return list(json.loads(value))
    return list(value)


def _reject_null(value: Any) -> Any:
    """Update payloads may omit a required column but never clear it"""
    if value is None:
        raise ValueError("may not be null")
    return value


# ============================================================================
# STORED RECORDS
# ============================================================================

class Species(BaseModel):
    id: str
    name: str
    is_dairy: bool
    is_ruminant: bool
    created_at: dt.datetime


class Group(BaseModel):
    id: str
    name: str
    species_id: str
    location_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    active: bool = True

    @field_validator('tags', mode='before')
    @classmethod
    def normalize_tags(cls, value):
        return _parse_tags(value)


class Animal(BaseModel):
    id: str
    external_id: Optional[str] = None
    species_id: str
    group_id: Optional[str] = None
    sex: Sex
    dob: Optional[dt.date] = None
    status: AnimalStatus
    tags: List[str] = Field(default_factory=list)

    @field_validator('tags', mode='before')
    @classmethod
    def normalize_tags(cls, value):
        return _parse_tags(value)


class ProductionRecord(BaseModel):
    """A timestamped event; only the fields matching event_type are meaningful"""
    id: str
    species_id: str
    animal_id: Optional[str] = None
    group_id: Optional[str] = None
    event_type: ProductionEvent
    event_subtype: Optional[str] = None
    date: dt.date
    quantity: Optional[float] = None
    unit: Optional[str] = None
    weight_value: Optional[float] = None
    weight_unit: Optional[WeightUnit] = None
    egg_count: Optional[int] = None
    milk_volume: Optional[float] = None
    milk_unit: Optional[MilkUnit] = None
    notes: Optional[str] = None
    source_imported: bool = False
    source_origin: Optional[str] = None
    created_by: Optional[str] = None
    created_at: dt.datetime


class FinancialTransaction(BaseModel):
    """base_amount_cached is amount converted to the base currency at write time"""
    id: str
    species_id: Optional[str] = None
    group_id: Optional[str] = None
    category_id: str
    type: TransactionType
    amount: float
    currency: str
    fx_rate_to_base: float = 1.0
    base_amount_cached: float
    date: dt.date
    vendor_or_buyer: Optional[str] = None
    memo: Optional[str] = None
    created_by: Optional[str] = None
    created_at: dt.datetime


class Category(BaseModel):
    id: str
    name: str
    type: TransactionType
    parent_id: Optional[str] = None
    is_active: bool = True


class FxRate(BaseModel):
    id: str
    date: dt.date
    currency: str
    rate_to_base: float


class ReportJob(BaseModel):
    id: str
    type: JobType
    status: JobStatus
    params_json: Optional[str] = None
    uri: Optional[str] = None
    error: Optional[str] = None
    created_at: dt.datetime
    updated_at: Optional[dt.datetime] = None


# ============================================================================
# REQUEST PAYLOADS
# ============================================================================

class GroupCreate(BaseModel):
    name: str = Field(min_length=1)
    species_id: str = Field(min_length=1)
    location_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class GroupUpdate(BaseModel):
    name: Optional[str] = None
    location_id: Optional[str] = None
    tags: Optional[List[str]] = None
    active: Optional[bool] = None

    @field_validator('name', 'tags', 'active')
    @classmethod
    def reject_null(cls, value):
        return _reject_null(value)


class AnimalCreate(BaseModel):
    external_id: Optional[str] = None
    species_id: str = Field(min_length=1)
    group_id: Optional[str] = None
    sex: Sex
    dob: Optional[dt.date] = None
    status: AnimalStatus
    tags: List[str] = Field(default_factory=list)


class AnimalUpdate(BaseModel):
    external_id: Optional[str] = None
    group_id: Optional[str] = None
    sex: Optional[Sex] = None
    dob: Optional[dt.date] = None
    status: Optional[AnimalStatus] = None
    tags: Optional[List[str]] = None

    @field_validator('sex', 'status', 'tags')
    @classmethod
    def reject_null(cls, value):
        return _reject_null(value)


class ProductionRecordCreate(BaseModel):
    species_id: str = Field(min_length=1)
    animal_id: Optional[str] = None
    group_id: Optional[str] = None
    event_type: ProductionEvent
    event_subtype: Optional[str] = None
    date: dt.date
    quantity: Optional[float] = None
    unit: Optional[str] = None
    weight_value: Optional[float] = None
    weight_unit: Optional[WeightUnit] = None
    egg_count: Optional[int] = None
    milk_volume: Optional[float] = None
    milk_unit: Optional[MilkUnit] = None
    notes: Optional[str] = None
    source_imported: bool = False
    source_origin: Optional[str] = None
    created_by: Optional[str] = None


class ProductionRecordUpdate(BaseModel):
    date: Optional[dt.date] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    weight_value: Optional[float] = None
    weight_unit: Optional[WeightUnit] = None
    egg_count: Optional[int] = None
    milk_volume: Optional[float] = None
    milk_unit: Optional[MilkUnit] = None
    notes: Optional[str] = None

    @field_validator('date')
    @classmethod
    def reject_null(cls, value):
        return _reject_null(value)


class FinancialTransactionCreate(BaseModel):
    species_id: Optional[str] = None
    group_id: Optional[str] = None
    category_id: str = Field(min_length=1)
    type: TransactionType
    amount: float = Field(gt=0)
    currency: str = Field(min_length=1)
    fx_rate_to_base: Optional[float] = Field(default=None, gt=0)
    date: dt.date
    vendor_or_buyer: Optional[str] = None
    memo: Optional[str] = None
    created_by: Optional[str] = None


class FinancialTransactionUpdate(BaseModel):
    category_id: Optional[str] = None
    type: Optional[TransactionType] = None
    amount: Optional[float] = Field(default=None, gt=0)
    currency: Optional[str] = None
    fx_rate_to_base: Optional[float] = Field(default=None, gt=0)
    date: Optional[dt.date] = None
    vendor_or_buyer: Optional[str] = None
    memo: Optional[str] = None

    @field_validator('category_id', 'type', 'amount', 'currency', 'date')
    @classmethod
    def reject_null(cls, value):
        return _reject_null(value)


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    type: TransactionType
    parent_id: Optional[str] = None
    is_active: bool = True
