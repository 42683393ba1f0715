"""
ClickHouse Table Statistics Queries

Queries for per-table storage statistics and column metadata. Both take
positional '?' parameters bound as (database, table).
"""


def get_table_statistics_query(connector):
    """
    Returns the aggregate query over system.parts for one table.

    One row per table with size, row count, last modification time,
    partition date bounds and the engine name; no row when the table has
    no parts.
    """
    return (
        "SELECT "
        "sum(bytes) AS table_size, "
        "sum(rows) AS table_rows, "
        "max(modification_time) AS latest_modification, "
        "min(min_date) AS min_date, "
        "max(max_date) AS max_date, "
        "any(engine) AS engine\n"
        "FROM system.parts\n"
        "WHERE database=? AND table=?\n"
        "GROUP BY table"
    )


def get_table_columns_query(connector):
    """Returns column metadata for one table, in declaration order."""
    return """
    SELECT
        name,
        type,
        position,
        default_kind,
        is_in_primary_key,
        comment
    FROM system.columns
    WHERE database = ? AND table = ?
    ORDER BY position
    """
