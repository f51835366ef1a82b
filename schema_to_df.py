import pandas as pd

from parse_dump import Column, Table
from sort_tables import sort_tables

_FRAME_COLUMNS = [
    "table_name", "column_name", "statement", "is_pk", "is_fk", "role",
]

# print order of column groups inside CREATE TABLE
ROLE_PRIMARY_KEY, ROLE_FOREIGN_KEY, ROLE_OTHER = 0, 1, 2


def _role(column: Column) -> int:
    if column.is_primary_key:
        return ROLE_PRIMARY_KEY
    if column.is_foreign_key:
        return ROLE_FOREIGN_KEY
    return ROLE_OTHER


def table_to_df(table_name: str, table: Table) -> pd.DataFrame:
    """One row per column, primary keys first, then foreign keys, then the
    rest; by name within each group."""
    rows = [{
        "table_name": table_name,
        "column_name": name,
        "statement": column.statement,
        "is_pk": column.is_primary_key,
        "is_fk": column.is_foreign_key,
        "role": _role(column),
    } for name, column in table.columns.items()]
    df = pd.DataFrame(rows, columns=_FRAME_COLUMNS)
    return df.sort_values(["role", "column_name"], kind="mergesort",
                          ignore_index=True)


def ordered_columns(table: Table) -> list[str]:
    return table_to_df("", table)["column_name"].tolist()


def tables_to_df(tables: dict[str, Table]) -> pd.DataFrame:
    """Every table in dependency order; the housekeeping table is left out."""
    frames = [table_to_df(name, tables[name]) for name in sort_tables(tables)]
    frames = [df for df in frames if not df.empty]
    if not frames:
        return pd.DataFrame([], columns=_FRAME_COLUMNS)
    return pd.concat(frames, ignore_index=True)
