"""
Record Data Source Service

Reads the complete lead and call record sets for a date range and hands them to
the metrics pipeline.

Fetch rules:
- Pages of `fetch_page_size` rows are requested until a page comes back shorter
  than the page size. There is no upper bound on the number of pages.
- Both tables are drained completely before normalization starts; matching
  needs the whole record set.
- A failing page aborts the whole fetch with SourceFetchError. Nothing partial
  is returned and nothing is retried here; retrying is the caller's call.
- Range bounds are whole UTC days, end day included up to 23:59:59.999999.

MetricsRunner wraps fetch + compute for interactive callers. Every run bumps a
generation counter, and a run that finishes after a newer one started is
discarded instead of overwriting fresher results.
"""

import asyncio
import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from asyncpg import Pool

from callcenter_metrics.core.config import Settings, get_settings
from callcenter_metrics.core.database import execute_query
from callcenter_metrics.models.schemas import (
    AggregatedMetrics,
    MetricsPolicy,
    RawCallRecord,
    RawLeadRecord,
)
from callcenter_metrics.services.aggregation import compute_metrics, filter_metrics
from callcenter_metrics.services.operating_hours import OperatingHoursRegistry
from callcenter_metrics.sql.record_queries import get_record_page_query

logger = logging.getLogger(__name__)


class SourceFetchError(Exception):
    """
    Raised when a page read from the record store fails.

    Attributes:
        table: Table being read
        page: 1-based number of the failing page
    """

    def __init__(self, table: str, page: int, detail: str = ""):
        self.table = table
        self.page = page
        message = f"Failed to fetch page {page} of '{table}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# =============================================================================
# SOURCES
# =============================================================================

class RecordSource(Protocol):
    """Anything able to return one page of rows from a record table."""

    async def fetch_page(
        self,
        table: str,
        range_column: str,
        start: datetime,
        end: datetime,
        offset: int,
        limit: int,
    ) -> List[Mapping[str, Any]]:
        ...


class PostgresRecordSource:
    """
    RecordSource backed by asyncpg.

    Args:
        pool: Connection pool to read from. When omitted, the application pool
            from core.database is used.
        key_column: Unique column ordering rows that share a timestamp.
    """

    def __init__(self, pool: Optional[Pool] = None, key_column: str = "id"):
        self._pool = pool
        self._key_column = key_column

    async def fetch_page(
        self,
        table: str,
        range_column: str,
        start: datetime,
        end: datetime,
        offset: int,
        limit: int,
    ) -> List[Mapping[str, Any]]:
        query = get_record_page_query(table, range_column, self._key_column)

        if self._pool is None:
            rows = await execute_query(query, start, end, limit, offset)
        else:
            async with self._pool.acquire() as conn:
                rows = await conn.fetch(query, start, end, limit, offset)

        return [dict(row) for row in rows]


# =============================================================================
# FETCHING
# =============================================================================

def day_bounds(start_date: date, end_date: date) -> Tuple[datetime, datetime]:
    """
    Whole-day UTC bounds for an inclusive date range.

    Raises:
        ValueError: If end_date is before start_date.

    Example:
        >>> day_bounds(date(2024, 3, 1), date(2024, 3, 2))[1].isoformat()
        '2024-03-02T23:59:59.999999+00:00'
    """
    if end_date < start_date:
        raise ValueError(f"end_date {end_date} is before start_date {start_date}")
    return (
        datetime.combine(start_date, time.min, tzinfo=timezone.utc),
        datetime.combine(end_date, time.max, tzinfo=timezone.utc),
    )


async def fetch_all_pages(
    source: RecordSource,
    table: str,
    range_column: str,
    start: datetime,
    end: datetime,
    page_size: int,
) -> List[Dict[str, Any]]:
    """
    Drain every row of a table inside [start, end].

    Args:
        source: Page reader
        table: Table to read
        range_column: Timestamp column the range applies to
        start: Inclusive lower bound
        end: Inclusive upper bound
        page_size: Rows per page; a shorter page ends the loop

    Returns:
        All rows, as dicts

    Raises:
        SourceFetchError: If any page read fails.
        ValueError: If page_size is not positive.
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")

    records: List[Dict[str, Any]] = []
    page = 0

    while True:
        try:
            batch = await source.fetch_page(
                table, range_column, start, end, offset=page * page_size, limit=page_size
            )
        except SourceFetchError:
            raise
        except Exception as e:
            logger.exception(f"Error fetching page {page + 1} of {table}")
            raise SourceFetchError(table, page + 1, str(e)) from e

        page += 1
        records.extend(dict(row) for row in batch)

        if len(batch) < page_size:
            break

    logger.info(f"Fetched {len(records)} rows from {table} in {page} page(s)")
    return records


async def fetch_leads(
    source: RecordSource,
    start: datetime,
    end: datetime,
    settings: Optional[Settings] = None,
) -> List[RawLeadRecord]:
    """Every lead whose range column falls inside [start, end]."""
    settings = settings or get_settings()
    rows = await fetch_all_pages(
        source, settings.leads_table, settings.leads_range_column, start, end,
        settings.fetch_page_size,
    )
    return [RawLeadRecord.model_validate(row) for row in rows]


async def fetch_calls(
    source: RecordSource,
    start: datetime,
    end: datetime,
    settings: Optional[Settings] = None,
) -> List[RawCallRecord]:
    """Every call whose range column falls inside [start, end]."""
    settings = settings or get_settings()
    rows = await fetch_all_pages(
        source, settings.calls_table, settings.calls_range_column, start, end,
        settings.fetch_page_size,
    )
    return [RawCallRecord.model_validate(row) for row in rows]


async def fetch_all_data(
    source: RecordSource,
    start: datetime,
    end: datetime,
    settings: Optional[Settings] = None,
) -> Tuple[List[RawLeadRecord], List[RawCallRecord]]:
    """
    Fetch leads and calls concurrently.

    The first stream to fail cancels the other before its error is raised, so
    no page is requested after a failure and no partial result is returned.

    Raises:
        SourceFetchError: If any page of either stream fails.
    """
    settings = settings or get_settings()
    try:
        async with asyncio.TaskGroup() as group:
            leads_task = group.create_task(fetch_leads(source, start, end, settings))
            calls_task = group.create_task(fetch_calls(source, start, end, settings))
    except ExceptionGroup as errors:
        raise errors.exceptions[0]

    return leads_task.result(), calls_task.result()


# =============================================================================
# RUNNER
# =============================================================================

class MetricsRunner:
    """
    Fetch-and-compute runner that never lets a stale run publish.

    Args:
        source: Record source
        registry: Operating-hours registry
        policy: Metrics policy
        settings: Application settings (table names, page size)

    Attributes:
        latest: Metrics of the most recent run that finished while current
    """

    def __init__(
        self,
        source: RecordSource,
        registry: OperatingHoursRegistry,
        policy: MetricsPolicy,
        settings: Optional[Settings] = None,
    ):
        self.source = source
        self.registry = registry
        self.policy = policy
        self.settings = settings or get_settings()
        self.latest: Optional[AggregatedMetrics] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    async def run(
        self,
        start_date: date,
        end_date: date,
        call_center: Optional[str] = None,
    ) -> Optional[AggregatedMetrics]:
        """
        Fetch the range, compute metrics and publish them to `latest`.

        Returns:
            The metrics, or None when a newer run started in the meantime.

        Raises:
            SourceFetchError: If fetching fails. `latest` is left untouched.
            ValueError: If end_date is before start_date.
        """
        self._generation += 1
        generation = self._generation

        start, end = day_bounds(start_date, end_date)
        leads, calls = await fetch_all_data(self.source, start, end, self.settings)

        metrics = compute_metrics(leads, calls, self.registry, self.policy, (start, end))
        metrics = filter_metrics(metrics, call_center, self.policy, self.registry)

        if generation != self._generation:
            logger.info(
                f"Discarding stale metrics for {start_date}..{end_date} "
                f"(run {generation}, current {self._generation})"
            )
            return None

        self.latest = metrics
        return metrics
