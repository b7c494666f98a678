"""Service layer for the migration engine."""

from .schema_provider import SchemaProvider, StaticSchemaProvider, CallableSchemaProvider
from .sql_generator import SQLGenerator, format_value
from .storage_migrator import StorageMigrator

__all__ = [
    "SchemaProvider",
    "StaticSchemaProvider",
    "CallableSchemaProvider",
    "SQLGenerator",
    "format_value",
    "StorageMigrator",
]
