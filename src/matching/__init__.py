"""
Entity matching: company-name normalization and registry resolution.
"""

from src.matching.name_normalizer import normalize
from src.matching.entity_resolver import NameIndex, resolve

__all__ = ["normalize", "NameIndex", "resolve"]
