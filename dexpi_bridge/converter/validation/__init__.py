"""
Structural validation of DEXPI documents.
"""

from .validator import (
    can_export,
    get_export_warnings,
    validate_dexpi_xml,
    validate_document,
    validate_for_import,
)

__all__ = [
    "can_export",
    "get_export_warnings",
    "validate_dexpi_xml",
    "validate_document",
    "validate_for_import",
]
