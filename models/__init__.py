"""
SQLAlchemy ORM models for database tables.

Models:
    base: Base declarative class and shared enums (Nation, ETLStatus)
    car_sales: Monthly sales rank snapshot rows with momentum metrics

Database Schema:
    Column types are kept portable so the same models run on PostgreSQL
    (asyncpg) in production and SQLite (aiosqlite) in tests.

Usage:
    from models.base import Base, Nation, ETLStatus
    from models.car_sales import CarSales

Example:
    row = CarSales(
        year=2024, month=5, nation=Nation.DOMESTIC.value,
        model_name="Grandeur", sales=8500, rank=1, prev_sales=7200,
        mom_abs=1300, mom_pct=0.18, rank_change=0, score=1.2,
        data_url="https://auto.danawa.com/auto/?Month=2024-05-00&Nation=domestic&Tab=Model&Work=record",
    )
    session.add(row)
    await session.commit()
"""

__all__ = [
    "Base",
    "Nation",
    "ETLStatus",
    "CarSales",
]
