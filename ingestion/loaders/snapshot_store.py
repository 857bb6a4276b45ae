"""
Persist scored snapshots with replace-on-refresh semantics and query them back
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple
import logging

from sqlalchemy import select, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import InvalidBatchError, PersistenceError
from models.base import Nation
from models.car_sales import CarSales
from schemas.sales import SalesRecordCreate

logger = logging.getLogger(__name__)


@dataclass
class StatsFilter:
    """Filters for list_stats; None means no constraint on that field"""
    year: Optional[int] = None
    month: Optional[int] = None
    nation: Optional[Nation] = None
    min_sales: Optional[int] = None
    include_new: Optional[bool] = None


class SnapshotStore:
    """
    Snapshot storage on top of one AsyncSession.

    Ensures:
    - A (year, month, nation) snapshot is always exactly one batch's rows
    - Delete and insert happen in a single transaction
    - A failed replace leaves the previous snapshot untouched
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def upsert_batch(self, records: Sequence[SalesRecordCreate]) -> int:
        """
        Replace the snapshot that the records belong to.

        Args:
            records: Scored rows, all sharing one (year, month, nation)

        Returns:
            Number of records written (0 for an empty batch)

        Raises:
            InvalidBatchError: If the records span several snapshot keys
            PersistenceError: If the transaction fails; it is rolled back
        """
        if not records:
            return 0

        keys = {record.snapshot_key() for record in records}
        if len(keys) > 1:
            raise InvalidBatchError(
                "Batch spans more than one (year, month, nation)",
                context={"keys": sorted(str(k) for k in keys)}
            )
        year, month, nation = keys.pop()
        nation = Nation(nation).value
        updated_at = datetime.utcnow()

        try:
            result = await self.db.execute(
                delete(CarSales).where(
                    and_(
                        CarSales.year == year,
                        CarSales.month == month,
                        CarSales.nation == nation
                    )
                )
            )
            replaced = result.rowcount

            self.db.add_all([
                CarSales(**{**record.model_dump(), "nation": nation}, updated_at=updated_at)
                for record in records
            ])
            await self.db.flush()
            await self.db.commit()

        except Exception as e:
            await self.db.rollback()
            raise PersistenceError(
                "Failed to replace sales snapshot",
                context={
                    "operation": "REPLACE",
                    "table_name": CarSales.__tablename__,
                    "year": year,
                    "month": month,
                    "nation": nation,
                    "records": len(records)
                },
                original_exception=e
            )

        logger.info(
            f"Replaced snapshot {year}-{month:02d} ({nation}): "
            f"{replaced} old rows -> {len(records)} new rows"
        )
        return len(records)

    async def list_stats(self, filters: Optional[StatsFilter] = None) -> List[CarSales]:
        """Rows matching the filters, highest score first"""
        filters = filters or StatsFilter()
        conditions = []

        if filters.year is not None:
            conditions.append(CarSales.year == filters.year)
        if filters.month is not None:
            conditions.append(CarSales.month == filters.month)
        if filters.nation is not None:
            conditions.append(CarSales.nation == Nation(filters.nation).value)
        if filters.min_sales is not None:
            conditions.append(CarSales.sales >= filters.min_sales)
        if filters.include_new is False:
            conditions.append(CarSales.prev_sales > 0)

        query = select(CarSales)
        if conditions:
            query = query.where(and_(*conditions))
        query = query.order_by(CarSales.score.desc(), CarSales.rank.asc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_available_periods(self) -> List[Tuple[int, int]]:
        """Distinct (year, month) pairs, most recent first"""
        result = await self.db.execute(
            select(CarSales.year, CarSales.month)
            .distinct()
            .order_by(CarSales.year.desc(), CarSales.month.desc())
        )
        return [(row.year, row.month) for row in result.all()]

    async def latest_period(self, nation: Nation) -> Optional[Tuple[int, int]]:
        """Most recent (year, month) stored for a nation, None if there is none"""
        result = await self.db.execute(
            select(CarSales.year, CarSales.month)
            .where(CarSales.nation == Nation(nation).value)
            .order_by(CarSales.year.desc(), CarSales.month.desc())
            .limit(1)
        )
        row = result.first()
        return (row.year, row.month) if row else None
