import logging

from parse_dump import HOUSEKEEPING_TABLE, Table
from statements import DumpError, ReferentialError, referenced_table

logger = logging.getLogger(__name__)


class CycleError(DumpError):
    def __init__(self, tables: list[str]):
        self.tables = tables
        super().__init__(f"graph is not a dag, cycle among: {', '.join(tables)}")


def referenced_tables(name: str, table: Table) -> set[str]:
    """Tables `name` points at through its foreign keys, itself excluded."""
    refs = set()
    for constraint in table.constraints.values():
        if "FOREIGN KEY" not in constraint:
            continue
        ref = referenced_table(constraint)
        if ref and ref != name:
            refs.add(ref)
    return refs


def sort_tables(tables: dict[str, Table]) -> list[str]:
    """Order tables so every referenced table precedes its referencers.

    Kahn's algorithm over an index-based graph; each round emits all tables
    whose parents are already emitted, by name, so the result does not
    depend on the registry's iteration order.
    """
    names = sorted(n for n in tables if n != HOUSEKEEPING_TABLE)
    index = {n: i for i, n in enumerate(names)}
    parents: list[set[int]] = [set() for _ in names]
    children: list[set[int]] = [set() for _ in names]

    for child, name in enumerate(names):
        for ref in referenced_tables(name, tables[name]):
            if ref == HOUSEKEEPING_TABLE:
                continue
            if ref not in index:
                raise ReferentialError(
                    f"sorting tables - referenced table does not exist: {ref}")
            parents[child].add(index[ref])
            children[index[ref]].add(child)

    ordered = []
    pending = set(range(len(names)))
    while pending:
        # indices follow name order, so sorting them sorts by name
        ready = sorted(i for i in pending if not parents[i])
        if not ready:
            raise CycleError(sorted(names[i] for i in pending))
        for i in ready:
            for c in children[i]:
                parents[c].discard(i)
            pending.discard(i)
            ordered.append(names[i])
    logger.debug("sorted %d tables", len(ordered))
    return ordered
