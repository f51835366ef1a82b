import jinja2

from parse_dump import ParsedSchema, Table
from schema_to_df import ordered_columns
from sort_tables import sort_tables

_TABLE_TEMPLATE = """\
{% for sequence in sequences %}
{{ sequence.create }}
{% endfor %}
CREATE TABLE {{ name }} (
{% for definition in definitions %}
    {{ definition }}{{ "," if not loop.last else "" }}
{% endfor %}
);
{% for sequence in sequences %}
{{ sequence.relation }}
{% endfor %}
{% for index in indices %}
{{ index }}
{% endfor %}
"""

_env = jinja2.Environment(trim_blocks=True, lstrip_blocks=True)
_table_template = _env.from_string(_TABLE_TEMPLATE)


def _definitions(table: Table) -> list[str]:
    """Column lines in role order followed by constraints by name."""
    lines = [
        f"{name} {table.columns[name].statement}".rstrip()
        for name in ordered_columns(table)
    ]
    lines += [table.constraints[name] for name in sorted(table.constraints)]
    return lines


def render_table(name: str, table: Table) -> str:
    return _table_template.render({
        "name": name,
        "definitions": _definitions(table),
        "sequences": table.sequences,
        "indices": table.indices,
    }).rstrip("\n")


def generate_schema_sql(schema: ParsedSchema) -> str:
    """Canonical text: standalone sequences, tables in dependency order,
    functions, then triggers; blocks separated by one blank line."""
    blocks = list(schema.sequences)
    blocks += [render_table(name, schema.tables[name])
               for name in sort_tables(schema.tables)]
    blocks += schema.functions
    if schema.triggers:
        blocks.append("\n".join(schema.triggers))
    if not blocks:
        return ""
    return "\n\n".join(blocks) + "\n"
