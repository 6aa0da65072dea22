"""
Schemas Package

JSON schema definition of the store document and validation utilities.
"""

from .validator import (
    validate_store,
    empty_store,
    SchemaError,
    STORE_SCHEMA_VERSION,
)

__all__ = [
    "validate_store",
    "empty_store",
    "SchemaError",
    "STORE_SCHEMA_VERSION",
]
