"""Conflict-safe SQL generation for exported table data."""

import json
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from dateutil import parser as date_parser

from ..models.record import Row, TableRecordSet
from ..models.schema import IMPORT_ORDER, map_column_names

logger = logging.getLogger(__name__)

SQL_BATCH_SIZE = 100


def quote_literal(text: str) -> str:
    """Single-quote a string, doubling embedded quotes."""
    return "'" + text.replace("'", "''") + "'"


def is_timestamp(value: str) -> bool:
    """True if ``value`` reads as an ISO-8601 date-time (``YYYY-MM-DDTHH:MM:SS...``)."""
    if len(value) < 19 or value[10] != "T":
        return False
    try:
        date_parser.isoparse(value)
    except (ValueError, OverflowError):
        return False
    return True


def format_value(value: Any) -> str:
    """Render a Python value as a SQL literal."""
    if value is None:
        return "NULL"

    # bool before numbers: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, (datetime, date)):
        return quote_literal(value.isoformat())

    if isinstance(value, str):
        if is_timestamp(value):
            return f"'{value}'"
        return quote_literal(value)

    if isinstance(value, (dict, list, tuple)):
        return quote_literal(json.dumps(value, ensure_ascii=False, default=str))

    return str(value)


class SQLGenerator:
    """
    Renders exported rows as SQL scripts, one per table.

    Supports:
    - Column name remapping with collision dropping
    - Multi-row INSERT batches
    - ON CONFLICT (id) DO UPDATE for re-runnable scripts
    - Trigger bracketing for bulk load
    - Sequence resync for serial id columns
    """

    def __init__(self, batch_size: int = SQL_BATCH_SIZE, clock=None):
        self.batch_size = batch_size
        self._clock = clock or datetime.utcnow

    def generate(self, records: TableRecordSet, order: Optional[List[str]] = None) -> Dict[str, str]:
        """
        Generate one script per table.

        Args:
            records: Exported rows per table
            order: Tables to render (defaults to the import order)

        Returns:
            Dictionary of table -> SQL script
        """
        scripts: Dict[str, str] = {}

        for table in order or IMPORT_ORDER:
            rows = records.get(table) or []
            if not rows:
                logger.info(f"Skipping empty table: {table}")
                scripts[table] = f"-- No data found for table: {table}\n"
                continue

            logger.info(f"Generating SQL for table: {table} ({len(rows)} records)")
            scripts[table] = self.generate_table(table, rows)

        logger.info(f"Generated SQL files for {len(scripts)} tables")
        return scripts

    def column_pairs(self, table: str, rows: List[Row]) -> List[Tuple[str, str]]:
        """Mapped (column, property) pairs taken from the first row."""
        columns = list(rows[0].keys())
        logger.debug(f"Table {table} columns: {', '.join(columns)}")
        return map_column_names(table, columns)

    def generate_table(self, table: str, rows: List[Row]) -> str:
        """Render the full script for one non-empty table."""
        pairs = self.column_pairs(table, rows)
        mapped = [column for column, _ in pairs]
        properties = [prop for _, prop in pairs]

        parts = [
            f"-- Data export for table: {table}\n",
            f"-- Generated on: {self._clock().isoformat()}\n",
            f"-- Total records: {len(rows)}\n\n",
            "-- Disable triggers for faster import\n",
            f"ALTER TABLE {table} DISABLE TRIGGER ALL;\n\n",
            "-- Uncomment the next line to clear existing data first\n",
            f"-- TRUNCATE TABLE {table} RESTART IDENTITY CASCADE;\n\n",
        ]

        conflict = self.conflict_clause(mapped, properties)

        for number, start in enumerate(range(0, len(rows), self.batch_size), 1):
            batch = rows[start:start + self.batch_size]
            parts.append(f"-- Batch {number}\n")
            parts.append(self.insert_statement(table, mapped, properties, batch, conflict))
            parts.append("\n")

        parts.append("-- Re-enable triggers\n")
        parts.append(f"ALTER TABLE {table} ENABLE TRIGGER ALL;\n\n")
        parts.append(self.sequence_resync(table))
        return "".join(parts)

    def insert_statement(
        self,
        table: str,
        mapped: List[str],
        properties: List[str],
        rows: List[Row],
        conflict: str = ""
    ) -> str:
        values = [
            "  (" + ", ".join(format_value(row.get(prop)) for prop in properties) + ")"
            for row in rows
        ]
        sql = f"INSERT INTO {table} ({', '.join(mapped)})\nVALUES\n"
        sql += ",\n".join(values)
        sql += conflict
        return sql + ";\n"

    @staticmethod
    def conflict_clause(mapped: List[str], properties: List[str]) -> str:
        """``ON CONFLICT (id)`` clause, empty when the rows carry no id."""
        if "id" not in properties:
            return ""

        updates = [
            f"  {column} = EXCLUDED.{column}"
            for column, prop in zip(mapped, properties)
            if prop != "id"
        ]
        if not updates:
            return "\nON CONFLICT (id) DO NOTHING"
        return "\nON CONFLICT (id) DO UPDATE SET\n" + ",\n".join(updates)

    @staticmethod
    def sequence_resync(table: str) -> str:
        """Best-effort ``setval`` for tables with a serial id."""
        return (
            "-- Update sequence if exists (for auto-increment columns)\n"
            "DO $$\n"
            "DECLARE\n"
            "    seq_name TEXT;\n"
            "BEGIN\n"
            f"    SELECT pg_get_serial_sequence('{table}', 'id') INTO seq_name;\n"
            "    IF seq_name IS NOT NULL THEN\n"
            "        EXECUTE 'SELECT setval(''' || seq_name || ''', "
            f"COALESCE((SELECT MAX(id) FROM {table}), 1))';\n"
            f"        RAISE NOTICE 'Updated sequence % for table {table}', seq_name;\n"
            "    END IF;\n"
            "END $$;\n\n"
        )
