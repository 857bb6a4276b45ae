"""
Danawa monthly sales record extractor with retry logic and tolerant parsing.

This module provides:
- Listing URL construction per (year, month, nation)
- Browser-like fetching with an explicit timeout
- Exponential backoff retry for timeouts, transport errors, 429 and 5xx
- Row-by-row parsing that skips unusable rows instead of failing the page
"""

import httpx
import asyncio
import re
from dataclasses import dataclass
from typing import List, Optional
import logging

from pydantic import ValidationError as PydanticValidationError

from core.config import settings
from core.exceptions import (
    EmptyResultWarning,
    FetchError,
    NetworkError,
    SourceRejectedError,
)
from ingestion.extractors.markup import MarkupNode, SoupNode
from models.base import Nation
from schemas.sales import ScrapedRow

logger = logging.getLogger(__name__)

INCREASE_GLYPH = "▲"
DECREASE_GLYPH = "▼"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class ListingSelectors:
    """CSS selectors for the record table; the site's markup changes often"""
    row: str = "table.recordTable tbody tr"
    rank: str = ".rank"
    model_name: str = ".title a"
    sales: str = ".sales"
    diff: str = ".diff"
    rank_change: str = ".rankChange"


@dataclass
class ExtractResult:
    """Rows of one listing page plus the exact URL they came from"""
    rows: List[ScrapedRow]
    url: str


def parse_int(text: Optional[str]) -> Optional[int]:
    """
    Leading integer of text with thousands separators removed.

    "12" -> 12, "1,234대" -> 1234, "" -> None, "NEW" -> None
    """
    if not text:
        return None
    match = _LEADING_INT.match(text.replace(",", ""))
    if not match:
        return None
    return int(match.group(1))


def parse_signed_delta(text: Optional[str]) -> int:
    """
    Decode a glyph-signed delta cell.

    "▲120" -> 120, "▼45" -> -45, "-" or "" -> 0, "+7" -> 7,
    anything unparseable -> 0
    """
    text = (text or "").strip().replace(",", "")
    if not text or text == "-":
        return 0

    if INCREASE_GLYPH in text:
        return parse_int(text.replace(INCREASE_GLYPH, "")) or 0
    if DECREASE_GLYPH in text:
        return -(parse_int(text.replace(DECREASE_GLYPH, "")) or 0)

    return parse_int(text) or 0


def parse_rank_change(text: Optional[str]) -> int:
    """
    Decode a rank-movement cell. Only glyph-marked values count.

    "▲3" -> 3, "▼1" -> -1, "3", "-", "NEW" or "" -> 0
    """
    text = text or ""
    if INCREASE_GLYPH not in text and DECREASE_GLYPH not in text:
        return 0
    return parse_signed_delta(text)


def _cell_text(row: MarkupNode, selector: str) -> str:
    cell = row.select_one(selector)
    return cell.text().strip() if cell is not None else ""


def parse_listing(document: MarkupNode, selectors: ListingSelectors = ListingSelectors()) -> List[ScrapedRow]:
    """
    Parse every data row of a record table, in document order.

    Rows without a numeric rank (headers, ads, trim sub-rows) or without a
    model name are skipped. Missing sales default to 0. prev_sales is
    derived as sales - diff.
    """
    results: List[ScrapedRow] = []
    seen_ranks = set()
    seen_models = set()

    for index, row in enumerate(document.select(selectors.row)):
        rank = parse_int(_cell_text(row, selectors.rank))
        if rank is None or rank < 1:
            continue

        model_name = _cell_text(row, selectors.model_name)
        if not model_name:
            continue

        if rank in seen_ranks or model_name in seen_models:
            logger.debug(f"Skipping duplicate row {index}: rank={rank}, model={model_name!r}")
            continue

        # Rows with no sales figure are kept with 0 sales
        sales = parse_int(_cell_text(row, selectors.sales))
        if sales is None or sales < 0:
            sales = 0

        diff = parse_signed_delta(_cell_text(row, selectors.diff))
        rank_change = parse_rank_change(_cell_text(row, selectors.rank_change))

        try:
            scraped = ScrapedRow(
                rank=rank,
                model_name=model_name,
                sales=sales,
                prev_sales=sales - diff,
                rank_change=rank_change,
            )
        except PydanticValidationError as e:
            logger.warning(f"Skipping row {index} ({model_name!r}): {e.errors()[0]['msg']}")
            continue

        seen_ranks.add(rank)
        seen_models.add(model_name)
        results.append(scraped)

    return results


class DanawaExtractor:
    """
    Fetch and parse Danawa's monthly model sales ranking.

    Attributes:
        base_url: Listing page URL without query string
        timeout: Request timeout in seconds
        max_retries: Attempts per page before giving up
        retry_delay: Initial retry delay in seconds, doubled each attempt
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        selectors: Optional[ListingSelectors] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url or settings.SOURCE_BASE_URL
        self.user_agent = user_agent or settings.SOURCE_USER_AGENT
        self.timeout = timeout if timeout is not None else settings.FETCH_TIMEOUT_SECONDS
        self.max_retries = max(1, max_retries if max_retries is not None else settings.MAX_RETRIES)
        self.retry_delay = retry_delay if retry_delay is not None else settings.RETRY_DELAY_SECONDS
        self.selectors = selectors or ListingSelectors()
        self.transport = transport

    def build_url(self, year: int, month: int, nation: Nation) -> str:
        """Listing URL for one period and nation; also stored as data_url"""
        nation = Nation(nation)
        return (
            f"{self.base_url}?Month={year}-{month:02d}-00"
            f"&Nation={nation.value}&Tab=Model&Work=record"
        )

    async def _backoff(self, attempt: int, reason: str, url: str):
        delay = self.retry_delay * (2 ** attempt)
        logger.warning(
            f"{reason} for {url}. Retrying in {delay} seconds "
            f"(attempt {attempt + 1}/{self.max_retries})"
        )
        await asyncio.sleep(delay)

    async def fetch_page(self, url: str) -> str:
        """
        GET the listing page with retry logic and exponential backoff.

        Returns:
            Response body as text

        Raises:
            SourceRejectedError: For 4xx responses other than 429
            NetworkError: For timeouts, transport errors, 429 and 5xx after max retries
        """
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml",
        }

        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers=headers,
            transport=self.transport,
            follow_redirects=True
        ) as client:
            for attempt in range(self.max_retries):
                last_attempt = attempt == self.max_retries - 1
                context = {"url": url, "retry_count": attempt + 1}

                try:
                    logger.debug(f"Request attempt {attempt + 1}/{self.max_retries} to {url}")
                    response = await client.get(url)

                except httpx.TimeoutException as e:
                    if last_attempt:
                        raise NetworkError(
                            f"Request timeout after {self.max_retries} attempts",
                            context={**context, "timeout": self.timeout},
                            original_exception=e
                        )
                    await self._backoff(attempt, "Request timeout", url)
                    continue

                except httpx.TransportError as e:
                    if last_attempt:
                        raise NetworkError(
                            f"Network error after {self.max_retries} attempts",
                            context=context,
                            original_exception=e
                        )
                    await self._backoff(attempt, f"Network error ({type(e).__name__})", url)
                    continue

                status = response.status_code

                if status == 429 or status >= 500:
                    if last_attempt:
                        raise NetworkError(
                            f"HTTP {status} after {self.max_retries} attempts",
                            context={
                                **context,
                                "status_code": status,
                                "response_body": response.text[:500]
                            }
                        )
                    await self._backoff(attempt, f"HTTP {status}", url)
                    continue

                if status >= 400:
                    raise SourceRejectedError(
                        f"Listing page rejected with HTTP {status}",
                        context={**context, "status_code": status}
                    )

                return response.text

        # max_retries is at least 1, so the loop always returns or raises
        raise FetchError("Max retries exceeded", context={"url": url})

    def parse(self, html: str) -> List[ScrapedRow]:
        """Parse a fetched page with the configured selectors"""
        return parse_listing(SoupNode.from_html(html), self.selectors)

    async def extract(self, year: int, month: int, nation: Nation) -> ExtractResult:
        """
        Fetch and parse one period/nation.

        Raises:
            FetchError: If the page cannot be fetched
            EmptyResultWarning: If the page yields no data rows
        """
        nation = Nation(nation)
        url = self.build_url(year, month, nation)

        logger.info(f"Fetching {year}-{month:02d} ({nation.value}) from {url}")
        html = await self.fetch_page(url)
        rows = self.parse(html)

        if not rows:
            raise EmptyResultWarning(
                "No data rows on listing page",
                context={"year": year, "month": month, "nation": nation.value, "url": url}
            )

        logger.info(f"Parsed {len(rows)} rows for {year}-{month:02d} ({nation.value})")
        return ExtractResult(rows=rows, url=url)
