"""Central registry of all flag definitions."""

from typing import Dict, List

from .categories import FlagCategory
from .definitions import BooleanFlag, EnumFlag, IntegerFlag, FlagDefinition, FlagOption


class FlagRegistry:
    """Central registry of all flag definitions."""

    # Item Placement
    PLACEMENT = EnumFlag(
        'placement',
        'Item Placement',
        'Choose how chest contents are shuffled.',
        FlagCategory.ITEM_PLACEMENT,
        options=[
            FlagOption('global', 'Global', 'Shuffle every check across crypts and the overworld, keeping the seed completable'),
            FlagOption('crypt', 'Within Crypts', 'Shuffle items only within each crypt. Overworld chests are not touched.'),
            FlagOption('none', 'None', 'Apply the game patches without moving any items'),
        ],
        default='global'
    )

    MAX_ATTEMPTS = IntegerFlag(
        'max_attempts',
        'Placement Attempts',
        'Number of placement attempts before giving up on a seed.',
        FlagCategory.HIDDEN,
        default=100,
        min_value=1,
        max_value=1000
    )

    # Game Changes
    NO_DOWNGRADE = BooleanFlag(
        'no_downgrade',
        'No Equipment Downgrades',
        'Opening a chest with a sword, armor or shield worse than the one you carry keeps the better one. '
        'Recommended whenever items are shuffled.',
        FlagCategory.GAME_CHANGES,
        default=True
    )

    @classmethod
    def get_all_flags(cls) -> Dict[str, FlagDefinition]:
        """Get all flag definitions as a dictionary."""
        flags = {}
        for attr_name in dir(cls):
            attr = getattr(cls, attr_name)
            if isinstance(attr, FlagDefinition):
                flags[attr.key] = attr
        return flags

    @classmethod
    def get_flags_by_category(cls) -> Dict[FlagCategory, List[FlagDefinition]]:
        """Get flags organized by category."""
        by_category = {}
        for flag in cls.get_all_flags().values():
            if flag.category not in by_category:
                by_category[flag.category] = []
            by_category[flag.category].append(flag)
        return by_category
