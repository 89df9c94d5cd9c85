"""
Exception hierarchy for the converter.

Only fatal conditions raise. Degradations (unknown types, missing optional
sections, dangling port references) are reported as warnings instead.
"""

from typing import List, Optional


class DexpiBridgeError(Exception):
    """Base class for all converter errors."""


class FatalParseError(DexpiBridgeError):
    """The document cannot be parsed into a process model."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class UnsupportedFormatError(FatalParseError):
    """The root element matches neither DEXPI 2.0 nor Proteus 1.x."""

    def __init__(self, root_name: str):
        message = (
            f"Unrecognized DEXPI format. Root element: '{root_name}'. "
            f"Expected 'DEXPI-Document' (2.0) or 'PlantModel' (1.x)"
        )
        super().__init__(message)
        self.root_name = root_name
