"""
Report Models

Pydantic models for report API request/response validation and documentation.
Response fields use the camelCase names of the public JSON contract as
aliases.

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

from datetime import date
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .filters import ALL_SENTINEL


class AnalyticsFilters(BaseModel):
    """Validated analytics query constraints"""
    model_config = ConfigDict(populate_by_name=True)

    species_id: Optional[str] = Field(None, alias="speciesId", description="Species filter ('all' = none)")
    group_id: Optional[str] = Field(None, alias="groupId", description="Group filter ('all' = none)")
    date_from: Optional[date] = Field(None, alias="from", description="Inclusive start date (YYYY-MM-DD)")
    date_to: Optional[date] = Field(None, alias="to", description="Inclusive end date (YYYY-MM-DD)")

    @field_validator('species_id', 'group_id', mode='before')
    @classmethod
    def drop_all_selector(cls, value):
        if value is None or value == '' or value == ALL_SENTINEL:
            return None
        return value

    @field_validator('date_from', 'date_to', mode='before')
    @classmethod
    def drop_empty_date(cls, value):
        return None if value == '' else value


class KpiSummary(BaseModel):
    """KPI response; adg and mortality are not yet computed and always 0"""
    model_config = ConfigDict(populate_by_name=True)

    total_revenue: float = Field(alias="totalRevenue")
    total_expense: float = Field(alias="totalExpense")
    gross_margin: float = Field(alias="grossMargin")
    total_animals: int = Field(alias="totalAnimals")
    adg: int = 0
    mortality: int = 0
    avg_litter_size: float = Field(alias="avgLitterSize")
    total_eggs: int = Field(alias="totalEggs")
    total_milk: float = Field(alias="totalMilk")


class TimeSeriesPoint(BaseModel):
    """One calendar month of income and expense"""
    name: str = Field(description="Month label (YYYY-MM)")
    revenue: float
    expense: float


class ReportPeriod(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date_from: str = Field(alias="from")
    date_to: str = Field(alias="to")


class PLSection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: float
    by_category: Dict[str, float] = Field(alias="byCategory")


class PLReport(BaseModel):
    """Profit and loss by category over a closed date range"""
    model_config = ConfigDict(populate_by_name=True)

    period: ReportPeriod
    income: PLSection
    expense: PLSection
    net_profit: float = Field(alias="netProfit")


class CohortSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    group_name: str = Field(alias="groupName")
    animal_count: int = Field(alias="animalCount")
    total_cost: float = Field(alias="totalCost")
    total_revenue: float = Field(alias="totalRevenue")
    net_profit: float = Field(alias="netProfit")


class CohortReport(BaseModel):
    """Cohort summary plus the merged production/financial timeline"""
    summary: CohortSummary
    timeline: List[Dict[str, Any]]


class JobAccepted(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    job_id: str = Field(alias="jobId")
