"""
Turn scraped rows into scored snapshot records for one period and nation
"""

from typing import List, Sequence
import logging

from ingestion.transformers.score_normalizer import score_batch
from models.base import Nation
from schemas.sales import ScrapedRow, SalesRecordCreate

logger = logging.getLogger(__name__)

# +500%; also the value given to new entrants (prev_sales <= 0)
MOM_PCT_CAP = 5.0


def momentum_pct(mom_abs: int, prev_sales: int) -> float:
    """Relative change capped at MOM_PCT_CAP; never divides by zero"""
    if prev_sales <= 0:
        return MOM_PCT_CAP
    return min(mom_abs / prev_sales, MOM_PCT_CAP)


class MetricEnricher:
    """
    Compute momentum metrics and the composite score for one batch.

    Handles:
    - mom_abs / capped mom_pct per row
    - z-scoring each metric column across the whole batch
    - stamping the batch key and source URL on every record
    """

    def __init__(self, year: int, month: int, nation: Nation, data_url: str):
        self.year = year
        self.month = month
        self.nation = Nation(nation)
        self.data_url = data_url

    def enrich(self, rows: Sequence[ScrapedRow]) -> List[SalesRecordCreate]:
        """
        Score a full batch. Row order is preserved.

        Returns:
            Validated SalesRecordCreate models, empty for empty input
        """
        if not rows:
            return []

        mom_abs = [row.sales - row.prev_sales for row in rows]
        mom_pct = [momentum_pct(a, row.prev_sales) for a, row in zip(mom_abs, rows)]
        rank_change = [row.rank_change for row in rows]

        scores = score_batch(mom_abs, mom_pct, rank_change)

        records = [
            SalesRecordCreate(
                year=self.year,
                month=self.month,
                nation=self.nation,
                model_name=row.model_name,
                sales=row.sales,
                rank=row.rank,
                prev_sales=row.prev_sales,
                mom_abs=abs_change,
                mom_pct=pct_change,
                rank_change=row.rank_change,
                score=score,
                data_url=self.data_url,
            )
            for row, abs_change, pct_change, score in zip(rows, mom_abs, mom_pct, scores)
        ]

        logger.debug(
            f"Scored {len(records)} rows for {self.year}-{self.month:02d} ({self.nation.value})"
        )
        return records
