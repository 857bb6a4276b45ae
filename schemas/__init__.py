"""
Pydantic schemas for data validation and serialization.

Schemas:
    sales: Scraped rows, scored snapshot rows, stats filters and responses
    etl: ETL trigger/status, health and error responses

Features:
    - Validation of scraped and derived values before persistence
    - camelCase serialization for the dashboard payloads
    - OpenAPI schema generation for FastAPI

Usage:
    from schemas.sales import SalesRecordCreate, SalesRecordResponse
    from schemas.etl import EtlStatusResponse

Example:
    record = SalesRecordCreate(
        year=2024, month=5, nation="domestic", model_name="Grandeur",
        sales=8500, rank=1, prev_sales=7200, mom_abs=1300,
        mom_pct=0.1806, rank_change=0, score=0.0,
        data_url="https://auto.danawa.com/auto/?Month=2024-05-00&Nation=domestic&Tab=Model&Work=record",
    )

    # mom_abs must agree with sales - prev_sales
    assert record.mom_abs == record.sales - record.prev_sales
"""

__all__ = [
    "ScrapedRow",
    "SalesRecordCreate",
    "SalesRecordResponse",
    "PeriodResponse",
    "StatsQueryParams",
    "EtlTriggerResponse",
    "EtlStatusResponse",
    "HealthCheckResponse",
    "ErrorResponse",
]
