"""
Parameterized SQL query module for paginated lead and call reads.

Both record tables are read the same way: every row whose range column falls
inside the inclusive [start, end] bounds, newest first, one fixed-size page at
a time. The unique key column breaks ties between rows sharing a timestamp,
so consecutive OFFSET pages never overlap or skip rows.

Range bounds, page size and offset are bound parameters; the table, column
and key names come from settings and are validated as plain identifiers
before they are interpolated.

Parameters:
    $1: range start (timestamptz, inclusive)
    $2: range end (timestamptz, inclusive)
    $3: page size (LIMIT)
    $4: row offset (OFFSET)
"""

import re


_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


def quote_identifier(name: str) -> str:
    """
    Validate and double-quote a table or column name.

    Accepts "table" or "schema.table".

    Raises:
        ValueError: If the name is not a plain SQL identifier.

    Example:
        >>> quote_identifier("public.calls")
        '"public"."calls"'
    """
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return ".".join(f'"{part}"' for part in name.split("."))


def get_record_page_query(table: str, range_column: str, key_column: str = "id") -> str:
    """
    Generate the page query for one record table.

    Args:
        table: Table holding the raw records (e.g. 'irev_leads', 'calls').
        range_column: Timestamp column the range filter and ordering apply to.
        key_column: Unique column used as the ordering tiebreaker.

    Returns:
        str: PostgreSQL query with $1..$4 placeholders (start, end, limit, offset).
    """
    table_sql = quote_identifier(table)
    column_sql = quote_identifier(range_column)
    key_sql = quote_identifier(key_column)

    return f"""
    SELECT *
    FROM {table_sql}
    WHERE {column_sql} >= $1
      AND {column_sql} <= $2
    ORDER BY {column_sql} DESC, {key_sql} DESC
    LIMIT $3
    OFFSET $4
    """
