"""Schema file reading and writing.

A schema file is a JSON array of tables::

    [
      {
        "TableName": "orders",
        "Columns": [
          {"ColumnName": "id", "DataType": "integer", "IsNullable": "NO",
           "DefaultValue": null}
        ],
        "ForeignKeys": [
          {"ConstraintName": "orders_customer_id_fkey", "TableName": "orders",
           "ColumnName": "customer_id", "ReferencedTable": "customers",
           "ReferencedColumn": "id", "UpdateRule": "NO ACTION",
           "DeleteRule": "CASCADE"}
        ]
      }
    ]

``IsNullable`` keeps the literal ``"YES"``/``"NO"`` strings.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from db_migrator.exceptions import SchemaLoadError
from db_migrator.schema.models import Schema

logger = logging.getLogger(__name__)


def load_schema(path: str | Path) -> Schema:
    """Load a target schema from a JSON file.

    Raises:
        SchemaLoadError: If the file can't be read or is not a valid
            schema document.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SchemaLoadError(f"failed to read schema file {path}: {e}") from e

    schema = parse_schema(text, source=str(path))
    logger.debug("Loaded %d table(s) from %s", len(schema), path)
    return schema


def parse_schema(text: str, source: str = "<string>") -> Schema:
    """Parse schema JSON text.

    Raises:
        SchemaLoadError: On invalid JSON or a document that isn't an array
            of table objects.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SchemaLoadError(f"failed to parse schema JSON in {source}: {e}") from e

    if data is None:
        return Schema()

    try:
        return Schema.model_validate(data)
    except ValidationError as e:
        raise SchemaLoadError(f"invalid schema in {source}:\n{e}") from e


def dump_schema(schema: Schema) -> list[dict[str, Any]]:
    """Export form of a schema, readable by ``load_schema``.

    Keys use the schema-file names.  ``DataType`` is the base type; size
    metadata is written only where present.
    """
    tables = []
    for table in schema:
        columns = []
        for column in table.columns:
            entry = column.model_dump(
                by_alias=True,
                include={"column_name", "data_type", "default_value", "is_nullable"},
            )
            entry.update(
                column.model_dump(
                    by_alias=True,
                    include={
                        "character_max_length",
                        "numeric_precision",
                        "numeric_scale",
                        "datetime_precision",
                    },
                    exclude_none=True,
                )
            )
            columns.append(entry)

        tables.append(
            {
                "TableName": table.table_name,
                "Columns": columns,
                "ForeignKeys": [fk.model_dump(by_alias=True) for fk in table.foreign_keys],
            }
        )
    return tables


def snapshot_schema(schema: Schema) -> list[dict[str, Any]]:
    """Simplified form: table and column names with full types only."""
    return [
        {
            "TableName": table.table_name,
            "Columns": [
                {"ColumnName": column.column_name, "DataType": column.full_type()}
                for column in table.columns
            ],
        }
        for table in schema
    ]
