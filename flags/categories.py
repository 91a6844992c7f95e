"""Flag categories for organizing flags."""

from enum import IntEnum


class FlagCategory(IntEnum):
    """Categories for organizing flags in help output."""
    ITEM_PLACEMENT = 1
    GAME_CHANGES = 2
    HIDDEN = 3
    COSMETIC = 4  # Flags that don't affect seed generation/file string

    @property
    def display_name(self) -> str:
        """Get user-friendly display name for the category."""
        names = {
            FlagCategory.ITEM_PLACEMENT: "Item Placement",
            FlagCategory.GAME_CHANGES: "Game Changes",
            FlagCategory.HIDDEN: "Hidden",
            FlagCategory.COSMETIC: "Cosmetic (doesn't affect seed generation)",
        }
        return names.get(self, "Unknown")

    @property
    def affects_file_string(self) -> bool:
        """Whether flags in this category affect the file string."""
        return self != FlagCategory.COSMETIC
