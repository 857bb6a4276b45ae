"""
Pydantic schemas for sales snapshot rows with validation
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from models.base import Nation


class ScrapedRow(BaseModel):
    """
    One data row read off a listing page, before any derived metric exists.

    prev_sales is computed by the extractor as ``sales - diff``; the page
    never shows it directly.
    """

    rank: int = Field(..., ge=1)
    model_name: str = Field(..., min_length=1, max_length=200)
    sales: int = Field(..., ge=0)
    prev_sales: int
    rank_change: int = 0

    class Config:
        protected_namespaces = ()


class SalesRecordCreate(BaseModel):
    """
    Schema for a fully scored snapshot row, ready to be persisted.

    Ensures:
    - The snapshot key is complete
    - sales is non-negative and rank starts at 1
    - mom_abs agrees with sales and prev_sales
    """

    # Snapshot key
    year: int = Field(..., ge=1)
    month: int = Field(..., ge=1, le=12)
    nation: Nation
    model_name: str = Field(..., min_length=1, max_length=200)

    # Scraped
    sales: int = Field(..., ge=0)
    rank: int = Field(..., ge=1)

    # Derived
    prev_sales: int
    mom_abs: int
    mom_pct: float
    rank_change: int = 0
    score: float = 0.0

    # Provenance
    data_url: str = Field(..., min_length=1)

    @field_validator("model_name")
    @classmethod
    def clean_model_name(cls, v):
        """Model names are stored trimmed"""
        v = v.strip()
        if not v:
            raise ValueError("model_name cannot be empty after stripping")
        return v

    @field_validator("mom_abs")
    @classmethod
    def check_mom_abs(cls, v, info):
        sales = info.data.get("sales")
        prev_sales = info.data.get("prev_sales")
        if sales is not None and prev_sales is not None and v != sales - prev_sales:
            raise ValueError(f"mom_abs must equal sales - prev_sales ({sales - prev_sales}), got {v}")
        return v

    def snapshot_key(self):
        """(year, month, nation) this row belongs to"""
        return self.year, self.month, self.nation

    class Config:
        use_enum_values = True
        protected_namespaces = ()


class SalesRecordResponse(BaseModel):
    """Snapshot row as served to the dashboard (camelCase JSON)"""

    id: int
    year: int
    month: int
    nation: Nation
    model_name: str = Field(..., alias="modelName")
    sales: int
    rank: int
    prev_sales: int = Field(..., alias="prevSales")
    mom_abs: int = Field(..., alias="momAbs")
    mom_pct: float = Field(..., alias="momPct")
    rank_change: int = Field(..., alias="rankChange")
    score: float
    data_url: str = Field(..., alias="dataUrl")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        from_attributes = True
        populate_by_name = True
        use_enum_values = True
        protected_namespaces = ()
        json_schema_extra = {
            "example": {
                "id": 1,
                "year": 2024,
                "month": 5,
                "nation": "domestic",
                "modelName": "Grandeur",
                "sales": 8500,
                "rank": 1,
                "prevSales": 7200,
                "momAbs": 1300,
                "momPct": 0.1806,
                "rankChange": 0,
                "score": 1.23,
                "dataUrl": "https://auto.danawa.com/auto/?Month=2024-05-00&Nation=domestic&Tab=Model&Work=record",
                "updatedAt": "2024-06-01T03:00:00"
            }
        }


class PeriodResponse(BaseModel):
    """A (year, month) that has at least one stored snapshot"""
    year: int
    month: int


class StatsQueryParams(BaseModel):
    """Filters accepted by the stats listing; None means no constraint"""

    year: Optional[int] = Field(None, ge=1900, le=9999, description="Snapshot year")
    month: Optional[int] = Field(None, ge=1, le=12, description="Snapshot month (1-12)")
    nation: Optional[Nation] = Field(None, description="domestic or export")
    min_sales: Optional[int] = Field(None, ge=0, description="Inclusive minimum sales")
    include_new: Optional[bool] = Field(
        None,
        description="False drops new entrants (prev_sales = 0); True or absent keeps them"
    )
