"""Chest tables: per-area lists of 4-byte chest records.

Each area owns a table of eight records. The table is found through a 3-byte
pointer in the CHEST_TABLE_POINTERS region. Two areas may point at the same
table; unshare_tables() splits them before anything is written.
"""

from dataclasses import dataclass
from typing import Dict, List
import logging as log

from logic.errors import MalformedInputError, OutOfBoundsError
from logic.randomizer_constants import GetItemName

from .memory_image import MemoryImage, encode_pointer
from .rom_config import (
    CHEST_RECORD_SIZE,
    CHEST_TABLE_COUNT,
    CHEST_TABLE_SIZE,
    CHESTS_PER_AREA,
    POINTER_SIZE,
    RomLayout,
)


@dataclass(frozen=True)
class ChestRecord:
    """Contents of one chest.

    Attributes:
        item_id: Item identifier
        arg: Item argument (bomb count or equipment grade)
        text: Message shown when the chest is opened
        flags: Record flags byte, moved together with the item
    """
    item_id: int
    arg: int
    text: int
    flags: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "ChestRecord":
        if len(data) != CHEST_RECORD_SIZE:
            raise ValueError(f"Chest record must be {CHEST_RECORD_SIZE} bytes, got {len(data)}")
        return cls(data[0], data[1], data[2], data[3])

    def to_bytes(self) -> bytes:
        return bytes([self.item_id, self.arg, self.text, self.flags])

    @property
    def name(self) -> str:
        return GetItemName(self.item_id, self.arg)


class ChestTables:
    """Reads and writes chest records through the area pointer table."""

    def __init__(self, image: MemoryImage) -> None:
        self.image = image
        self._table_offsets: List[int] = []
        for area in range(CHEST_TABLE_COUNT):
            pointer_offset = RomLayout.CHEST_TABLE_POINTERS.physical_offset + area * POINTER_SIZE
            try:
                table_offset = image.resolve_pointer(pointer_offset)
                image.read_physical(table_offset, CHEST_TABLE_SIZE)
            except OutOfBoundsError as e:
                raise MalformedInputError(
                    f"Chest table pointer for area 0x{area:02X} does not resolve inside the ROM"
                ) from e
            self._table_offsets.append(table_offset)

    def get_shared_areas(self) -> Dict[int, int]:
        """Areas whose table overlaps the table of a lower-numbered area.

        Returns:
            {area: owning area}
        """
        owners: List[int] = []
        shared: Dict[int, int] = {}
        for area, offset in enumerate(self._table_offsets):
            for owner in owners:
                if abs(self._table_offsets[owner] - offset) < CHEST_TABLE_SIZE:
                    shared[area] = owner
                    break
            else:
                owners.append(area)
        return shared

    def unshare_tables(self) -> List[int]:
        """Give every area that shares a chest table a private copy of it.

        Copies go into RELOCATED_CHEST_TABLES in area order and the area's
        pointer is rewritten to the copy, so writing one area's chests never
        changes another area's.

        Returns:
            The relocated areas

        Raises:
            MalformedInputError: If the copies do not fit, or a table of this
                ROM already lives in the relocation space
        """
        shared = self.get_shared_areas()
        if not shared:
            return []

        region = RomLayout.RELOCATED_CHEST_TABLES
        capacity = region.size // CHEST_TABLE_SIZE
        if len(shared) > capacity:
            raise MalformedInputError(
                f"{len(shared)} areas share chest tables; at most {capacity} can be relocated"
            )
        for area, offset in enumerate(self._table_offsets):
            if region.physical_offset - CHEST_TABLE_SIZE < offset < region.physical_offset + region.size:
                raise MalformedInputError(
                    f"Chest table for area 0x{area:02X} overlaps the relocation space at "
                    f"0x{region.physical_offset:X}"
                )

        relocated = []
        for slot, (area, owner) in enumerate(sorted(shared.items())):
            new_offset = region.physical_offset + slot * CHEST_TABLE_SIZE
            self.image.write_physical(new_offset, self.get_table_bytes(area))
            pointer_offset = RomLayout.CHEST_TABLE_POINTERS.physical_offset + area * POINTER_SIZE
            self.image.write_physical(pointer_offset, encode_pointer(new_offset))
            self._table_offsets[area] = new_offset
            relocated.append(area)
            log.info(f"Area 0x{area:02X} shared the chest table of area 0x{owner:02X}; "
                     f"copied to 0x{new_offset:X}")
        return relocated

    def get_table_offset(self, area: int) -> int:
        return self._table_offsets[area]

    def get_record_offset(self, area: int, index: int) -> int:
        if not 0 <= index < CHESTS_PER_AREA:
            raise OutOfBoundsError(f"Chest index {index} out of range for area 0x{area:02X}")
        return self._table_offsets[area] + index * CHEST_RECORD_SIZE

    def get_chest(self, area: int, index: int) -> ChestRecord:
        offset = self.get_record_offset(area, index)
        return ChestRecord.from_bytes(self.image.read_physical(offset, CHEST_RECORD_SIZE))

    def set_chest(self, area: int, index: int, record: ChestRecord) -> None:
        self.image.write_physical(self.get_record_offset(area, index), record.to_bytes())

    def get_table(self, area: int) -> List[ChestRecord]:
        return [self.get_chest(area, index) for index in range(CHESTS_PER_AREA)]

    def get_table_bytes(self, area: int) -> bytes:
        return self.image.read_physical(self._table_offsets[area], CHEST_TABLE_SIZE)

    def get_area_digest(self, area: int) -> int:
        """6-bit digest of an area's table, as stored in the integrity footer."""
        return sum(self.get_table_bytes(area)) & 0x3F

    def dump(self) -> Dict[int, List[ChestRecord]]:
        return {area: self.get_table(area) for area in range(CHEST_TABLE_COUNT)}
