import io
import logging
import sys
from argparse import ArgumentParser

from export_to_sql import generate_schema_sql
from parse_dump import parse_pg_dump
from schema_to_df import tables_to_df
from statements import DumpError

logger = logging.getLogger(__name__)


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="pg-dump-sanitiser",
        description="Rewrite a pg_dump schema into a deterministic, "
                    "diff-friendly canonical form on stdout.",
    )
    parser.add_argument(
        "input_path", type=str,
        help="File path of \"pg_dump\" output, which is PostgreSQL database schema."
    )
    parser.add_argument(
        "--columns", action="store_true",
        help="Print one CSV row per table column instead of SQL."
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Log every pipeline stage to stderr."
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    cmd, _ = build_parser().parse_known_args(argv)
    # stdout carries the schema, so logs go to stderr
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if cmd.verbose else logging.WARNING,
        format="[%(levelname)s] %(message)s",
    )

    try:
        schema = parse_pg_dump(cmd.input_path)
        if cmd.columns:
            output = tables_to_df(schema.tables).to_csv(index=False)
        else:
            output = generate_schema_sql(schema)
    except OSError as e:
        logger.error("cannot read %s: %s", cmd.input_path, e)
        return 1
    except DumpError as e:
        logger.error("%s", e)
        return 1

    if isinstance(sys.stdout, io.TextIOWrapper) and sys.stdout.encoding.lower() != "utf-8":
        sys.stdout.reconfigure(encoding="utf-8")
    sys.stdout.write(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
