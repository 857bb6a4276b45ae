from sqlalchemy import Column, BigInteger, Integer, String, Float, Text, DateTime, Index
from datetime import datetime
from models.base import Base


class CarSales(Base):
    """
    One model's monthly sales rank and momentum metrics.

    Rows are written in snapshots: every (year, month, nation) is replaced as
    a whole by the ETL run that produced it, never patched in place.

    Field Mapping (listing page -> column):
    - rank cell -> rank
    - title link text -> model_name
    - sales cell -> sales
    - sales - diff cell -> prev_sales
    - rank change cell -> rank_change

    Derived per batch:
    - mom_abs = sales - prev_sales
    - mom_pct = mom_abs / prev_sales, capped at 5.0 (5.0 for new entrants)
    - score = weighted z-scores of mom_abs, mom_pct and rank_change
    """
    __tablename__ = "car_sales"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    # Snapshot key
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    nation = Column(String(16), nullable=False)  # Nation value: "domestic" | "export"
    model_name = Column(String(200), nullable=False)

    # Scraped
    sales = Column(Integer, nullable=False)
    rank = Column(Integer, nullable=False)

    # Derived metrics
    prev_sales = Column(Integer, nullable=False, default=0)
    mom_abs = Column(Integer, nullable=False, default=0)
    mom_pct = Column(Float, nullable=False, default=0.0)
    rank_change = Column(Integer, nullable=False, default=0)
    score = Column(Float, nullable=False, default=0.0, index=True)

    # Provenance
    data_url = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_car_sales_snapshot_model", "year", "month", "nation", "model_name", unique=True),
        Index("idx_car_sales_snapshot", "year", "month", "nation"),
    )

    def __repr__(self) -> str:
        return (
            f"<CarSales {self.year}-{self.month} {self.nation} "
            f"#{self.rank} {self.model_name!r} score={self.score}>"
        )
