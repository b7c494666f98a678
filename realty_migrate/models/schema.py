"""Known tables, their dependency order and column name mappings."""

import logging
from typing import Dict, Iterable, List, Tuple

logger = logging.getLogger(__name__)


# Order used when reading the source project.
EXPORT_TABLES: List[str] = [
    "profiles",
    "categories",
    "amenities",
    "brokers",
    "properties",
    "applications",
    "tenants",
    "conversations",
    "messages",
    "resources",
    "property_type_translations",
    "ai_configs",
    "storage_configs",
]

# Foreign keys: table -> tables it references.
TABLE_DEPENDENCIES: Dict[str, List[str]] = {
    "profiles": [],
    "categories": [],
    "amenities": [],
    "brokers": [],
    "property_type_translations": [],
    "resources": [],
    "properties": ["categories", "profiles"],
    "applications": ["properties", "profiles"],
    "tenants": ["profiles", "properties"],
    "conversations": ["properties"],
    "messages": ["conversations"],
    "ai_configs": [],
    "storage_configs": [],
}

# Write order (respects foreign key constraints).
IMPORT_ORDER: List[str] = [
    "profiles",
    "categories",
    "amenities",
    "brokers",
    "property_type_translations",
    "resources",
    "properties",
    "applications",
    "tenants",
    "conversations",
    "messages",
    "ai_configs",
    "storage_configs",
]

# In-memory property name -> target SQL column, per table.
# camelCase columns stay double quoted; two properties may share a column.
COLUMN_MAPPINGS: Dict[str, Dict[str, str]] = {
    "profiles": {
        "updatedAt": "updated_at",
        "avatarUrl": '"avatarUrl"',
    },
    "properties": {
        "createdAt": '"createdAt"',
        "zipCode": '"zipCode"',
        "rentPrice": '"rentPrice"',
        "salePrice": '"salePrice"',
        "propertyType": '"propertyType"',
        "categoryId": '"categoryId"',
        "areaM2": '"areaM2"',
        "repairQuality": '"repairQuality"',
        "yearBuilt": '"yearBuilt"',
        "priceHistory": '"priceHistory"',
        "availableDate": '"availableDate"',
        "listedByUserId": '"listedByUserId"',
        "isPopular": '"isPopular"',
        "tourUrl": '"tourUrl"',
        "viewCount": '"viewCount"',
        "view_count": '"viewCount"',
    },
    "applications": {
        "propertyId": '"propertyId"',
        "applicantId": '"applicantId"',
        "applicationDate": '"applicationDate"',
        "totalIncome": '"totalIncome"',
        "incomeToRentRatio": '"incomeToRentRatio"',
        "moveInDate": '"moveInDate"',
        "backgroundChecks": '"backgroundChecks"',
        "creditReport": '"creditReport"',
    },
    "tenants": {
        "userId": '"userId"',
        "propertyId": '"propertyId"',
        "leaseEndDate": '"leaseEndDate"',
        "rentAmount": '"rentAmount"',
    },
    "brokers": {
        "avatarUrl": '"avatarUrl"',
    },
    "categories": {
        "iconUrl": '"iconUrl"',
    },
    "resources": {
        "fileUrl": '"fileUrl"',
    },
}


def map_column_name(table: str, column: str) -> str:
    """Target SQL identifier for an in-memory property name."""
    return COLUMN_MAPPINGS.get(table, {}).get(column, f'"{column}"')


def map_column_names(table: str, columns: Iterable[str]) -> List[Tuple[str, str]]:
    """
    Map property names to target columns, dropping collisions.

    When two properties map to the same column the first one encountered is
    kept and the later one is dropped.

    Args:
        table: Table the columns belong to
        columns: Property names in record order

    Returns:
        List of (mapped column, source property) pairs
    """
    seen: Dict[str, str] = {}
    pairs = []

    for column in columns:
        mapped = map_column_name(table, column)
        if mapped in seen:
            logger.warning(
                f"Skipping duplicate column mapping for {table}: {column} -> {mapped} "
                f"(already mapped from {seen[mapped]})"
            )
            continue
        seen[mapped] = column
        pairs.append((mapped, column))

    return pairs
