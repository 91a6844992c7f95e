"""
Randomizer flags.

Key features:
- Inline value definitions for better readability
- Support for boolean, enum and integer flags
- Flags can be excluded from file string (cosmetic flags)
- Type validation and parsing from command line / form strings
"""

from .categories import FlagCategory
from .definitions import BooleanFlag, EnumFlag, IntegerFlag, FlagDefinition, FlagOption
from .registry import FlagRegistry
from .flags import Flags

__all__ = [
    'FlagCategory',
    'BooleanFlag',
    'EnumFlag',
    'IntegerFlag',
    'FlagDefinition',
    'FlagOption',
    'FlagRegistry',
    'Flags',
]
