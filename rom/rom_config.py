"""ROM memory layout configuration.

This module defines the ROM regions and mapping constants used by the
randomizer. All offsets are physical offsets into the headerless ROM.

Address Convention:
    physical_offset: Byte offset in the ROM without the optional copier header
    cpu_address: HuC6280 address (what code references, $0000-$FFFF)
    Relationship: physical_offset = bank * 0x2000 + (cpu_address & 0x1FFF),
    where the bank is whatever is mapped into the cpu_address's page.

When viewing a headered ROM in a hex editor, add COPIER_HEADER_SIZE.
"""

from dataclasses import dataclass
from typing import Optional


# Neutopia is a 384 KiB HuCard
ROM_SIZE = 0x60000

# Some dumps carry a 0x200 byte copier header in front of the ROM
COPIER_HEADER_SIZE = 0x200

BANK_SIZE = 0x2000
BANK_COUNT = ROM_SIZE // BANK_SIZE

# Page 7 ($E000-$FFFF) always maps bank 0; pages 0 and 1 are I/O and RAM
FIXED_PAGE = 7
FIXED_PAGE_BANK = 0
FIRST_BANKED_PAGE = 2
LAST_BANKED_PAGE = 6

# 3-byte data pointers store the bank offset by 0x20 and point into window 2
POINTER_BANK_BASE = 0x20
POINTER_WINDOW = 2
POINTER_SIZE = 3


@dataclass(frozen=True)
class RomRegion:
    """Definition of a ROM memory region.

    Attributes:
        physical_offset: Offset in the headerless ROM
        size: Size of the region in bytes
        cpu_address: CPU address in the region's window, for documentation
        bank: Bank mapped into the window while the game reads the region
        description: Human-readable description
    """
    physical_offset: int
    size: int
    cpu_address: Optional[int] = None
    bank: Optional[int] = None
    description: str = ""

    def __post_init__(self):
        """Verify physical_offset matches bank and cpu_address if both are provided."""
        if self.cpu_address is not None and self.bank is not None:
            expected = self.bank * BANK_SIZE + (self.cpu_address & (BANK_SIZE - 1))
            if self.physical_offset != expected:
                raise ValueError(
                    f"Address mismatch for '{self.description}': "
                    f"physical_offset 0x{self.physical_offset:X} != bank 0x{self.bank:X} "
                    f"cpu_address 0x{self.cpu_address:X} (expected 0x{expected:X})"
                )


class RomLayout:
    """ROM memory layout constants for Neutopia (U).

    Offsets are physical offsets without the copier header.
    """

    # ==========================================================================
    # Chest Data
    # ==========================================================================

    CHEST_TABLE_POINTERS = RomRegion(
        physical_offset=0x1D8C0, size=0x11 * POINTER_SIZE,
        description="Per-area chest table pointers (17 pointers * 3 bytes)"
    )

    # ==========================================================================
    # Save State / Password Routine
    # ==========================================================================

    # Immediate operands of the save-state loops (bank 6 mapped in window 6)
    CHECKSUM_LAST_OPERAND = RomRegion(
        physical_offset=0xDA54, cpu_address=0xDA54, bank=6, size=1,
        description="Last byte index covered by the checksum loop"
    )
    XOR_LAST_OPERAND = RomRegion(
        physical_offset=0xDA6F, cpu_address=0xDA6F, bank=6, size=1,
        description="Last byte index of the forward xor chain"
    )
    SALT_LAST_OPERAND = RomRegion(
        physical_offset=0xDA89, cpu_address=0xDA89, bank=6, size=1,
        description="Last byte index salted by the salt loop"
    )

    # ==========================================================================
    # Randomizer Free Space (unused tail of bank 0x27)
    # ==========================================================================

    RELOCATED_CHEST_TABLES = RomRegion(
        physical_offset=0x4FE00, size=0x1E0,
        description="Private copies of chest tables shared between areas (15 tables)"
    )
    RANDOMIZER_FOOTER = RomRegion(
        physical_offset=0x4FFE0, size=0x20,
        description="Randomizer integrity record (last 0x20 bytes of bank 0x27)"
    )


# ==========================================================================
# Chest Table Constants
# ==========================================================================

CHEST_TABLE_COUNT = 0x11
CHESTS_PER_AREA = 8
CHEST_RECORD_SIZE = 4
CHEST_TABLE_SIZE = CHESTS_PER_AREA * CHEST_RECORD_SIZE


# ==========================================================================
# Footer Constants
# ==========================================================================

FOOTER_MAGIC = b"NRND"
