"""
SQL Query Module for the call center metrics backend.

Provides the parameterized page queries used to drain the lead and call
tables for a date range.

Example usage:
    from callcenter_metrics.sql import get_record_page_query

    sql = get_record_page_query('calls', 'call_date')
    rows = await conn.fetch(sql, start, end, 1000, 0)
"""

from callcenter_metrics.sql.record_queries import (
    get_record_page_query,
    quote_identifier,
)

__all__ = [
    'get_record_page_query',
    'quote_identifier',
]
