import re
from enum import Enum
from typing import Iterator


# ---------------------------------------------------------------------------
# 1. Errors
# ---------------------------------------------------------------------------

class DumpError(Exception):
    """Any condition that makes the dump impossible to canonicalize."""


class ReferentialError(DumpError):
    pass


class MalformedStatementError(DumpError):
    pass


class CompletenessError(DumpError):
    def __init__(self, lines: list[str]):
        self.lines = lines
        super().__init__(f"{len(lines)} unprocessed statement(s) remain, "
                         f"first: {lines[0]!r}")


# ---------------------------------------------------------------------------
# 2. Reading and filtering raw lines
# ---------------------------------------------------------------------------

def read_lines(path: str) -> Iterator[str]:
    with open(path, "r", encoding="utf-8") as f:
        try:
            for line in f:
                yield line.rstrip("\r\n")
        except UnicodeDecodeError as e:
            raise DumpError(f"reading dump - not valid UTF-8: {path}: {e}") from e


def is_redundant(line: str) -> bool:
    """True for comments, session settings, extension/owner statements and
    psql meta-commands, none of which describe the schema itself."""
    if len(line) == 0 or line == "\n":
        return True
    if line.split(" ")[0] in ("--", "SET"):
        return True
    if "EXTENSION" in line or "OWNER" in line:
        return True
    if "SELECT pg_catalog.set_config" in line:
        return True
    # \restrict, \connect and friends
    if line.startswith("\\"):
        return True
    return False


def squash_statements(lines: list[str]) -> list[str]:
    squashed = []
    i = 0
    while i < len(lines):
        buf = lines[i].rstrip()
        i += 1
        while not buf.endswith(";") and i < len(lines):
            buf = buf + " " + lines[i].strip()
            i += 1
        squashed.append(buf)
    return squashed


# ---------------------------------------------------------------------------
# 3. Classification
# ---------------------------------------------------------------------------

class StatementKind(Enum):
    CREATE_TABLE = "create table"
    CREATE_SEQUENCE = "create sequence"
    ALTER_SEQUENCE_OWNED_BY = "alter sequence owned by"
    ALTER_COLUMN_DEFAULT = "alter column default"
    ADD_CONSTRAINT = "add constraint"
    CREATE_INDEX = "create index"
    CREATE_FUNCTION = "create function"
    CREATE_TRIGGER = "create trigger"
    UNRECOGNIZED = "unrecognized"


_RE_TRIGGER = re.compile(r'\bCREATE\s+(?:CONSTRAINT\s+)?TRIGGER\b')
_RE_INDEX = re.compile(r'\bCREATE\s+(?:UNIQUE\s+)?INDEX\b')
_RE_SET_DEFAULT = re.compile(r'\bALTER COLUMN \S+ SET (DEFAULT\b)')


def classify(statement: str) -> StatementKind:
    # order matters: trigger declarations use CONSTRAINT, and a foreign key
    # may read "ON DELETE SET DEFAULT"
    if "CREATE TABLE" in statement:
        return StatementKind.CREATE_TABLE
    if "CREATE FUNCTION" in statement:
        return StatementKind.CREATE_FUNCTION
    if _RE_TRIGGER.search(statement):
        return StatementKind.CREATE_TRIGGER
    if "CREATE SEQUENCE" in statement:
        return StatementKind.CREATE_SEQUENCE
    if "ALTER SEQUENCE" in statement and "OWNED BY" in statement:
        return StatementKind.ALTER_SEQUENCE_OWNED_BY
    if "CONSTRAINT" in statement:
        return StatementKind.ADD_CONSTRAINT
    # identity columns read "ADD GENERATED BY DEFAULT" and are not defaults
    if _RE_SET_DEFAULT.search(statement):
        return StatementKind.ALTER_COLUMN_DEFAULT
    if _RE_INDEX.search(statement) and " ON " in statement:
        return StatementKind.CREATE_INDEX
    return StatementKind.UNRECOGNIZED


# ---------------------------------------------------------------------------
# 4. Qualifiers and low-level text helpers
# ---------------------------------------------------------------------------

def split_qualifier(name: str) -> tuple[str, str]:
    """'public.users' -> ('users', 'public'); 'users' -> ('users', '')."""
    parts = name.split(".")
    if len(parts) > 1:
        return parts[1], parts[0]
    return parts[0], ""


def strip_qualifier(text: str, schema: str) -> str:
    if not schema:
        return text
    return text.replace(schema + ".", "")


def _without_terminator(statement: str) -> str:
    return statement[:-1] if statement.endswith(";") else statement


def _token_after(tokens: list[str], *keywords: str) -> str:
    n = len(keywords)
    for i in range(len(tokens) - n):
        if tuple(tokens[i:i + n]) == keywords:
            return tokens[i + n]
    raise MalformedStatementError(
        f"expected a name after {' '.join(keywords)!r}")


def _matching_paren(s: str, open_at: int) -> int:
    depth = 0
    in_sq = False
    for i in range(open_at, len(s)):
        ch = s[i]
        if ch == "'":
            in_sq = not in_sq
        elif not in_sq:
            if ch == '(':
                depth += 1
            elif ch == ')':
                depth -= 1
                if depth == 0:
                    return i
    return -1


def split_top_level(s: str, delim: str = ',') -> list[str]:
    parts, buf, depth = [], [], 0
    in_sq = False
    for ch in s:
        if ch == "'":
            in_sq = not in_sq
        if not in_sq:
            if ch == '(':
                depth += 1
            elif ch == ')':
                depth -= 1
        if ch == delim and depth == 0 and not in_sq:
            parts.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
    if buf:
        parts.append("".join(buf))
    return parts


# ---------------------------------------------------------------------------
# 5. CREATE SEQUENCE normalization
# ---------------------------------------------------------------------------

# PostgreSQL defaults; a sequence created with or without them is the same
_RE_SEQUENCE_DEFAULTS = re.compile(
    r'\b(?:START WITH 1|INCREMENT BY 1|NO MINVALUE|NO MAXVALUE|CACHE 1)\b')
_RE_MULTI_SPACE = re.compile(r'\s{2,}')
_RE_SPACE_BEFORE_SEMICOLON = re.compile(r'\s+;')


def simplify_create_sequence(statement: str) -> str:
    if not statement or "CREATE SEQUENCE" not in statement:
        return statement
    statement = _RE_SEQUENCE_DEFAULTS.sub('', statement)
    statement = _RE_MULTI_SPACE.sub(' ', statement)
    return _RE_SPACE_BEFORE_SEMICOLON.sub(';', statement)


# ---------------------------------------------------------------------------
# 6. Per-kind tokenizers
#
# Each returns unqualified object names plus the schema qualifier that was
# removed, so callers can strip it from the statement text.
# ---------------------------------------------------------------------------

def create_table_parts(statement: str) -> tuple[str, str, list[str]]:
    """CREATE TABLE <name> ( <element>, ... );

    Elements are split at top-level commas, so `numeric(10, 2)` stays whole.
    """
    tokens = statement.split(" ")
    if len(tokens) < 3:
        raise MalformedStatementError(f"mapping tables - no table name: {statement!r}")
    name, schema = split_qualifier(tokens[2].split("(")[0])
    open_at = statement.find("(")
    close_at = _matching_paren(statement, open_at) if open_at != -1 else -1
    if close_at == -1 or statement[close_at + 1:].strip() not in ("", ";"):
        raise MalformedStatementError(
            f"mapping tables - unsupported table definition: {name}")
    elements = [
        e.strip() for e in split_top_level(statement[open_at + 1:close_at])
        if e.strip()
    ]
    return name, schema, elements


def sequence_name(statement: str) -> tuple[str, str]:
    """CREATE SEQUENCE <name> ..."""
    return split_qualifier(statement.split(" ")[2].rstrip(";"))


def owned_by_parts(statement: str) -> tuple[str, str]:
    """ALTER SEQUENCE <seq> OWNED BY [<schema>.]<table>.<column>;

    Returns (sequence name, owning table name).
    """
    tokens = statement.split(" ")
    if len(tokens) < 6:
        raise MalformedStatementError(f"mapping sequences - no owner: {statement!r}")
    seq, _ = split_qualifier(tokens[2])
    owned_by = tokens[5].rstrip(";")
    if owned_by.count(".") > 1:
        table = owned_by.split(".", 1)[1].split(".")[0]
    else:
        table = owned_by.split(".")[0]
    return seq, table


def default_parts(statement: str) -> tuple[str, str, str, str]:
    """ALTER TABLE [ONLY] <table> ALTER COLUMN <column> SET DEFAULT <expr>;

    Returns (table, schema, column, "DEFAULT <expr>").
    """
    tokens = statement.split(" ")
    if len(tokens) < 4:
        raise MalformedStatementError(f"mapping default values - no table: {statement!r}")
    table_token = tokens[3] if tokens[2] == "ONLY" else tokens[2]
    table, schema = split_qualifier(table_token)
    column = _token_after(tokens, "ALTER", "COLUMN")
    m = _RE_SET_DEFAULT.search(statement)
    if not m:
        raise MalformedStatementError(f"mapping default values - no SET DEFAULT: {statement!r}")
    clause = _without_terminator(statement[m.start(1):])
    return table, schema, column, strip_qualifier(clause, schema)


def constraint_parts(statement: str) -> tuple[str, str, str, str]:
    """ALTER TABLE [ONLY] <table> ADD CONSTRAINT <name> <body>;

    The table is the 4th token and the name the 7th in the ONLY form that
    pg_dump writes. Returns (table, schema, name, "CONSTRAINT <name> <body>").
    """
    tokens = statement.split(" ")
    table_token = _token_after(tokens, "TABLE")
    if table_token == "ONLY":
        table_token = _token_after(tokens, "TABLE", "ONLY")
    table, schema = split_qualifier(table_token)
    name = _token_after(tokens, "CONSTRAINT")
    body = _without_terminator(statement[statement.index("CONSTRAINT"):])
    return table, schema, name, strip_qualifier(body, schema)


def on_table(statement: str) -> tuple[str, str]:
    """Table after ON, as in CREATE INDEX <name> ON [ONLY] <table> or
    CREATE TRIGGER <name> ... ON <table>."""
    tokens = statement.split(" ")
    table_token = _token_after(tokens, "ON")
    if table_token == "ONLY":
        table_token = _token_after(tokens, "ON", "ONLY")
    return split_qualifier(table_token)


def key_columns(text: str, keyword: str) -> list[str]:
    """Column names in the parenthesized list following `keyword`."""
    m = re.search(re.escape(keyword) + r'\s*\(([^)]*)\)', text)
    if not m:
        return []
    return [c.strip() for c in m.group(1).split(",") if c.strip()]


_RE_REFERENCES = re.compile(r'REFERENCES\s+([^\s(]+)\s*\(')


def referenced_table(constraint: str) -> str | None:
    m = _RE_REFERENCES.search(constraint)
    if not m:
        return None
    return split_qualifier(m.group(1))[0]
