"""
Type taxonomy mapping between diagram types, DEXPI 2.0 classes and Proteus classes.
"""

from .provider import ConfiguredTaxonomy
from . import taxonomy

__all__ = ["ConfiguredTaxonomy", "taxonomy"]
