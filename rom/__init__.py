"""ROM data access module.

This module provides a bank-aware view over a Neutopia HuCard image and the
chest tables stored in it.

Public API:
    MemoryImage - Byte buffer addressed by CPU address or physical offset
    BankContext - Which physical bank is mapped into a CPU window
    ChestTables, ChestRecord - Per-area chest record access
    TestRomBuilder - Synthetic ROM builder for tests (rom.test_rom_builder)

Example:
    from rom import MemoryImage, ChestTables

    image = MemoryImage(rom_bytes)
    chests = ChestTables(image)
    chests.get_chest(area=0x04, index=2)
"""

from .memory_image import BankContext, MemoryImage, translate, decode_pointer, encode_pointer
from .chest_table import ChestRecord, ChestTables
from .rom_config import RomLayout, RomRegion, ROM_SIZE, COPIER_HEADER_SIZE

__all__ = [
    # Main API
    'MemoryImage',
    'BankContext',
    'ChestTables',
    'ChestRecord',
    # Address helpers
    'translate',
    'decode_pointer',
    'encode_pointer',
    # Configuration (for advanced usage)
    'RomLayout',
    'RomRegion',
    'ROM_SIZE',
    'COPIER_HEADER_SIZE',
]
