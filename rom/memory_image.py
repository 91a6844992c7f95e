"""Bank-aware view over a PC Engine HuCard image.

The HuC6280 sees eight 8 KiB pages. Page 7 is hard-wired to bank 0, pages 0
and 1 hold I/O and RAM, and pages 2-6 are windows that the game remaps at
runtime. Because the active bank of a window cannot be inferred from the
address alone, every access to pages 2-6 must name a BankContext.

Usage:
    image = MemoryImage(rom_bytes)
    ctx = BankContext(bank=6, window=6)
    image.read(0xDA53, 2, ctx)
    image.write(0xDA53, b"\\xA9\\x16", ctx)
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from logic.errors import BankAmbiguousError, OutOfBoundsError

from .rom_config import (
    BANK_COUNT,
    BANK_SIZE,
    COPIER_HEADER_SIZE,
    FIRST_BANKED_PAGE,
    FIXED_PAGE,
    FIXED_PAGE_BANK,
    LAST_BANKED_PAGE,
    POINTER_BANK_BASE,
    POINTER_SIZE,
    POINTER_WINDOW,
)


@dataclass(frozen=True)
class BankContext:
    """Which physical bank is mapped into which CPU page for an access.

    Attributes:
        bank: Physical bank number (physical_offset // 0x2000)
        window: CPU page the bank is mapped into (2-6)
    """
    bank: int
    window: int

    def __post_init__(self):
        if not FIRST_BANKED_PAGE <= self.window <= LAST_BANKED_PAGE:
            raise BankAmbiguousError(
                f"Window {self.window} is not a banked page "
                f"({FIRST_BANKED_PAGE}-{LAST_BANKED_PAGE})")
        if not 0 <= self.bank < BANK_COUNT:
            raise OutOfBoundsError(f"Bank 0x{self.bank:X} does not exist")


def translate(cpu_address: int, bank: Optional[BankContext] = None) -> int:
    """Translate a CPU address to a physical offset.

    This is a pure function of the address and the bank context; it does not
    know the size of any particular image.

    Args:
        cpu_address: Address in the 16-bit CPU space
        bank: Bank context for addresses in pages 2-6

    Returns:
        Physical offset into the headerless ROM

    Raises:
        OutOfBoundsError: If the address is not in ROM space
        BankAmbiguousError: If a banked page has no matching context
    """
    if not 0 <= cpu_address <= 0xFFFF:
        raise OutOfBoundsError(f"CPU address 0x{cpu_address:X} is not 16-bit")

    page = cpu_address // BANK_SIZE
    in_bank = cpu_address % BANK_SIZE

    if page == FIXED_PAGE:
        return FIXED_PAGE_BANK * BANK_SIZE + in_bank
    if page < FIRST_BANKED_PAGE:
        raise OutOfBoundsError(
            f"CPU address 0x{cpu_address:04X} is in I/O or RAM (page {page})")
    if bank is None:
        raise BankAmbiguousError(
            f"CPU address 0x{cpu_address:04X} is in banked page {page} "
            f"but no bank context was given")
    if bank.window != page:
        raise BankAmbiguousError(
            f"CPU address 0x{cpu_address:04X} is in page {page} but the "
            f"context maps bank 0x{bank.bank:X} into page {bank.window}")
    return bank.bank * BANK_SIZE + in_bank


def translate_range(cpu_address: int, length: int,
                    bank: Optional[BankContext] = None) -> int:
    """Translate a run of bytes, requiring it to stay in one page."""
    start = translate(cpu_address, bank)
    if length > 1:
        last = cpu_address + length - 1
        if last // BANK_SIZE != cpu_address // BANK_SIZE:
            raise BankAmbiguousError(
                f"Range 0x{cpu_address:04X}-0x{last:04X} crosses a page boundary")
    return start


def decode_pointer(data: bytes) -> int:
    """Decode a 3-byte (bank, low, high) data pointer to a physical offset."""
    if len(data) < POINTER_SIZE:
        raise OutOfBoundsError(f"Pointer needs {POINTER_SIZE} bytes, got {len(data)}")
    value = (data[0] << 13) | ((data[2] & 0x1F) << 8) | data[1]
    return value - (POINTER_BANK_BASE << 13)


def encode_pointer(physical_offset: int) -> bytes:
    """Encode a physical offset as a 3-byte pointer into window 2."""
    bank = physical_offset // BANK_SIZE
    in_bank = physical_offset % BANK_SIZE
    cpu_address = POINTER_WINDOW * BANK_SIZE + in_bank
    return bytes([bank + POINTER_BANK_BASE, cpu_address & 0xFF, cpu_address >> 8])


class MemoryImage:
    """Mutable cartridge image addressed by CPU address or physical offset.

    The buffer never changes length. A copier header, when present, is kept
    aside and written back in front of the ROM by serialize().
    """

    def __init__(self, data: bytes, has_header: bool = False) -> None:
        if has_header:
            self._header = bytes(data[:COPIER_HEADER_SIZE])
            self._rom = bytearray(data[COPIER_HEADER_SIZE:])
        else:
            self._header = b""
            self._rom = bytearray(data)

    @property
    def header(self) -> bytes:
        return self._header

    @property
    def has_header(self) -> bool:
        return bool(self._header)

    def __len__(self) -> int:
        return len(self._rom)

    def copy(self) -> MemoryImage:
        """Return an independent image with the same contents."""
        image = MemoryImage(b"")
        image._header = self._header
        image._rom = bytearray(self._rom)
        return image

    # =========================================================================
    # Address Translation
    # =========================================================================

    def translate(self, cpu_address: int, bank: Optional[BankContext] = None,
                  length: int = 1) -> int:
        """Translate and bounds-check a CPU address range for this image."""
        physical = translate_range(cpu_address, length, bank)
        self._check_bounds(physical, length)
        return physical

    def _check_bounds(self, physical_offset: int, length: int) -> None:
        if physical_offset < 0 or length < 0 or physical_offset + length > len(self._rom):
            raise OutOfBoundsError(
                f"Physical range 0x{physical_offset:X}+0x{length:X} is outside "
                f"the 0x{len(self._rom):X} byte image")

    # =========================================================================
    # CPU Address Access
    # =========================================================================

    def read(self, cpu_address: int, length: int,
             bank: Optional[BankContext] = None) -> bytes:
        physical = self.translate(cpu_address, bank, length)
        return bytes(self._rom[physical:physical + length])

    def write(self, cpu_address: int, data: bytes,
              bank: Optional[BankContext] = None) -> None:
        physical = self.translate(cpu_address, bank, len(data))
        self._rom[physical:physical + len(data)] = data

    # =========================================================================
    # Physical Offset Access
    # =========================================================================

    def read_physical(self, physical_offset: int, length: int) -> bytes:
        self._check_bounds(physical_offset, length)
        return bytes(self._rom[physical_offset:physical_offset + length])

    def write_physical(self, physical_offset: int, data: bytes) -> None:
        self._check_bounds(physical_offset, len(data))
        self._rom[physical_offset:physical_offset + len(data)] = data

    def resolve_pointer(self, physical_offset: int) -> int:
        """Read the 3-byte pointer stored at physical_offset and decode it.

        Raises:
            OutOfBoundsError: If the pointer or its target is outside the image
        """
        target = decode_pointer(self.read_physical(physical_offset, POINTER_SIZE))
        self._check_bounds(target, 1)
        return target

    def serialize(self) -> bytes:
        """Return header and ROM as one buffer."""
        return self._header + bytes(self._rom)
