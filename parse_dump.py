import logging
import re
from dataclasses import dataclass, field

from statements import (
    CompletenessError,
    DumpError,
    ReferentialError,
    StatementKind,
    classify,
    constraint_parts,
    create_table_parts,
    default_parts,
    is_redundant,
    key_columns,
    on_table,
    owned_by_parts,
    read_lines,
    sequence_name,
    simplify_create_sequence,
    split_qualifier,
    squash_statements,
    strip_qualifier,
)

logger = logging.getLogger(__name__)

# migration bookkeeping table; parsed like any other but never printed
HOUSEKEEPING_TABLE = "gorp_migrations"


# ---------------------------------------------------------------------------
# 1. Entity model
# ---------------------------------------------------------------------------

@dataclass
class Column:
    statement: str
    is_primary_key: bool = False
    is_foreign_key: bool = False


@dataclass(frozen=True)
class Sequence:
    create: str
    relation: str


@dataclass
class Table:
    columns: dict[str, Column] = field(default_factory=dict)
    constraints: dict[str, str] = field(default_factory=dict)
    sequences: list[Sequence] = field(default_factory=list)
    indices: list[str] = field(default_factory=list)


@dataclass
class ParsedSchema:
    tables: dict[str, Table] = field(default_factory=dict)
    sequences: list[str] = field(default_factory=list)
    functions: list[str] = field(default_factory=list)
    triggers: list[str] = field(default_factory=list)


def _lookup_table(tables: dict[str, Table], name: str, stage: str) -> Table:
    table = tables.get(name)
    if table is None:
        raise ReferentialError(f"{stage} - table does not exist: {name}")
    return table


def _add_constraint(table: Table, name: str, body: str, stage: str):
    """Store a constraint and flag its key columns; all or nothing."""
    table.constraints[name] = body
    if "PRIMARY KEY" in body:
        flag = "is_primary_key"
        columns = key_columns(body, "PRIMARY KEY")
    elif "FOREIGN KEY" in body:
        flag = "is_foreign_key"
        columns = key_columns(body, "FOREIGN KEY")
    else:
        return
    missing = [c for c in columns if c not in table.columns]
    if missing:
        del table.constraints[name]
        raise ReferentialError(
            f"{stage} - column does not exist: {', '.join(missing)}")
    for c in columns:
        setattr(table.columns[c], flag, True)


# ---------------------------------------------------------------------------
# 2. Line-level stages (run before squashing)
# ---------------------------------------------------------------------------

def filter_redundant(lines) -> list[str]:
    return [line for line in lines if not is_redundant(line)]


_RE_BODY_END = re.compile(r'^\$\w*\$;$')
_RE_DOLLAR_TAG = re.compile(r'\$\w*\$')


def _body_closed(captured: list[str]) -> bool:
    """True once the opening dollar quote has been closed and followed by `;`."""
    if _RE_BODY_END.match(captured[-1]):
        return True
    text = "\n".join(captured)
    tag = _RE_DOLLAR_TAG.search(text)
    if tag is None:
        return False
    return text.rstrip().endswith(tag.group() + ";") and text.count(tag.group()) >= 2


def extract_functions(lines: list[str]) -> tuple[list[str], list[str]]:
    """Pull CREATE FUNCTION statements out of the physical lines.

    Bodies contain their own semicolons, so a function runs until the line
    that closes its dollar quote with `;`, either alone (`$$;`) or at the
    end of an inline body (`AS $$select 1$$;`). Each function is kept as
    one newline-joined string.
    """
    remaining, functions = [], []
    current: list[str] | None = None
    for line in lines:
        if current is None and classify(line) is StatementKind.CREATE_FUNCTION:
            tokens = line.split(" ")
            _, schema = split_qualifier(tokens[2]) if len(tokens) > 2 else ("", "")
            current = [strip_qualifier(line, schema)]
            if _body_closed(current):
                functions.append(current[0])
                current = None
        elif current is not None:
            current.append(line)
            if _body_closed(current):
                functions.append("\n".join(current))
                current = None
        else:
            remaining.append(line)
    if current is not None:
        raise DumpError(f"extracting functions - unterminated function body: {current[0]}")
    logger.debug("extracted %d functions", len(functions))
    return remaining, functions


# ---------------------------------------------------------------------------
# 3. Mapper stages (run on squashed statements)
# ---------------------------------------------------------------------------

def map_tables(statements: list[str]) -> tuple[dict[str, Table], list[str]]:
    tables: dict[str, Table] = {}
    remaining = []
    for s in statements:
        if classify(s) is not StatementKind.CREATE_TABLE:
            remaining.append(s)
            continue
        name, schema, elements = create_table_parts(s)
        if name in tables:
            raise DumpError(f"mapping tables - duplicate table: {name}")
        table = Table()
        constraints = []
        for element in elements:
            element = strip_qualifier(element, schema)
            if element.startswith("CONSTRAINT "):
                constraints.append(element)
                continue
            column_name, _, statement = element.partition(" ")
            table.columns[column_name] = Column(statement=statement.rstrip(","))
        # printed output carries constraints inside the table body
        for body in constraints:
            _add_constraint(table, body.split(" ")[1], body, "mapping tables")
        tables[name] = table
    logger.debug("mapped %d tables", len(tables))
    return tables, remaining


def map_sequences(statements: list[str], tables: dict[str, Table]) -> list[str]:
    """Attach CREATE SEQUENCE / ALTER SEQUENCE ... OWNED BY pairs to the
    owning table. Unowned sequences stay in the stream."""
    owners: dict[str, str] = {}
    for s in statements:
        if classify(s) is StatementKind.ALTER_SEQUENCE_OWNED_BY:
            seq, _ = owned_by_parts(s)
            owners.setdefault(seq, s)

    remaining, paired = [], set()
    for s in statements:
        kind = classify(s)
        if kind is StatementKind.CREATE_SEQUENCE:
            name, schema = sequence_name(s)
            relation = owners.get(name)
            if relation is None or name in paired:
                remaining.append(s)
                continue
            _, table_name = owned_by_parts(relation)
            table = _lookup_table(tables, table_name, "mapping sequences")
            table.sequences.append(Sequence(
                create=strip_qualifier(simplify_create_sequence(s), schema),
                relation=strip_qualifier(relation, schema),
            ))
            paired.add(name)
        elif kind is StatementKind.ALTER_SEQUENCE_OWNED_BY:
            continue
        else:
            remaining.append(s)

    for seq in sorted(owners.keys() - paired):
        logger.warning("dropping OWNED BY for sequence %s without CREATE SEQUENCE", seq)
    logger.debug("mapped %d owned sequences", len(paired))
    return remaining


def map_default_values(statements: list[str], tables: dict[str, Table]) -> list[str]:
    remaining = []
    for s in statements:
        if classify(s) is not StatementKind.ALTER_COLUMN_DEFAULT:
            remaining.append(s)
            continue
        table_name, _, column_name, clause = default_parts(s)
        table = _lookup_table(tables, table_name, "mapping default values")
        column = table.columns.get(column_name)
        if column is None:
            raise ReferentialError(
                f"mapping default values - column does not exist: {table_name}.{column_name}")
        column.statement += " " + clause
    return remaining


def map_constraints(statements: list[str], tables: dict[str, Table]) -> list[str]:
    remaining = []
    for s in statements:
        if classify(s) is not StatementKind.ADD_CONSTRAINT:
            remaining.append(s)
            continue
        table_name, _, name, body = constraint_parts(s)
        table = _lookup_table(tables, table_name, "mapping constraints")
        _add_constraint(table, name, body, "mapping constraints")
    return remaining


def map_indices(statements: list[str], tables: dict[str, Table]) -> list[str]:
    remaining = []
    for s in statements:
        if classify(s) is not StatementKind.CREATE_INDEX:
            remaining.append(s)
            continue
        table_name, schema = on_table(s)
        table = _lookup_table(tables, table_name, "mapping indices")
        table.indices.append(strip_qualifier(s, schema))
    return remaining


def store_sequences(statements: list[str]) -> tuple[list[str], list[str]]:
    """Sequences no table owns are printed on their own."""
    remaining, sequences = [], []
    for s in statements:
        if classify(s) is StatementKind.CREATE_SEQUENCE:
            _, schema = sequence_name(s)
            sequences.append(strip_qualifier(simplify_create_sequence(s), schema))
        else:
            remaining.append(s)
    logger.debug("stored %d standalone sequences", len(sequences))
    return remaining, sequences


def extract_triggers(statements: list[str]) -> tuple[list[str], list[str]]:
    remaining, triggers = [], []
    for s in statements:
        if classify(s) is StatementKind.CREATE_TRIGGER:
            _, schema = on_table(s)
            triggers.append(strip_qualifier(s, schema))
        else:
            remaining.append(s)
    logger.debug("extracted %d triggers", len(triggers))
    return remaining, triggers


# ---------------------------------------------------------------------------
# 4. Main orchestrator
# ---------------------------------------------------------------------------

def parse_lines(lines) -> ParsedSchema:
    lines = filter_redundant(lines)
    lines, functions = extract_functions(lines)
    statements = squash_statements(lines)

    tables, statements = map_tables(statements)
    statements = map_sequences(statements, tables)
    statements = map_default_values(statements, tables)
    statements = map_constraints(statements, tables)
    statements = map_indices(statements, tables)
    statements, sequences = store_sequences(statements)
    statements, triggers = extract_triggers(statements)

    if statements:
        raise CompletenessError(statements)
    return ParsedSchema(tables=tables, sequences=sequences,
                        functions=functions, triggers=triggers)


def parse_pg_dump(path: str) -> ParsedSchema:
    return parse_lines(list(read_lines(path)))
