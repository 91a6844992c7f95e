"""Tests for bank-aware address translation and the memory image."""
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from logic.errors import BankAmbiguousError, InvariantViolation, OutOfBoundsError
from rom.memory_image import (BankContext, MemoryImage, decode_pointer, encode_pointer,
                              translate, translate_range)
from rom.rom_config import COPIER_HEADER_SIZE, ROM_SIZE


@pytest.fixture
def image():
    data = bytearray(ROM_SIZE)
    for i in range(0, ROM_SIZE, 0x2000):
        data[i] = i // 0x2000
    return MemoryImage(bytes(data))


def test_fixed_page_maps_bank_zero():
    assert translate(0xE000) == 0x0000
    assert translate(0xFFFF) == 0x1FFF


def test_banked_page_uses_context():
    assert translate(0xDA53, BankContext(bank=6, window=6)) == 0xDA53
    assert translate(0xDDF1, BankContext(bank=3, window=6)) == 0x7DF1
    assert translate(0x4000, BankContext(bank=0x0E, window=2)) == 0x1C000


def test_banked_page_without_context_is_ambiguous():
    with pytest.raises(BankAmbiguousError):
        translate(0xC000)


def test_context_for_other_window_is_ambiguous():
    with pytest.raises(BankAmbiguousError):
        translate(0xC000, BankContext(bank=6, window=5))


def test_ram_and_io_are_out_of_bounds():
    with pytest.raises(OutOfBoundsError):
        translate(0x2000)
    with pytest.raises(OutOfBoundsError):
        translate(0x0000)


def test_context_rejects_unbanked_window():
    with pytest.raises(BankAmbiguousError):
        BankContext(bank=0, window=7)
    with pytest.raises(OutOfBoundsError):
        BankContext(bank=0x30, window=2)


def test_range_crossing_page_is_rejected():
    ctx = BankContext(bank=6, window=6)
    assert translate_range(0xDFFE, 2, ctx) == 0xDFFE
    with pytest.raises(BankAmbiguousError):
        translate_range(0xDFFF, 2, ctx)


def test_translation_errors_are_invariant_violations():
    with pytest.raises(InvariantViolation):
        translate(0x1234)


def test_pointer_decode():
    # bank 0x2E, window 2 address $5A00 -> physical 0x1DA00
    assert decode_pointer(bytes([0x2E, 0x00, 0x5A])) == 0x1DA00


@pytest.mark.parametrize("physical", [0x0, 0x1DA00, 0x4FF00, ROM_SIZE - 1])
def test_pointer_encode_decode(physical):
    assert decode_pointer(encode_pointer(physical)) == physical


def test_read_write_through_bank(image):
    ctx = BankContext(bank=6, window=6)
    image.write(0xC000, b"\xA9\x16", ctx)
    assert image.read_physical(0xC000, 2) == b"\xA9\x16"
    assert image.read(0xC000, 2, ctx) == b"\xA9\x16"


def test_fixed_page_read(image):
    assert image.read(0xE000, 1) == b"\x00"


def test_physical_access_is_bounds_checked(image):
    with pytest.raises(OutOfBoundsError):
        image.read_physical(ROM_SIZE - 1, 2)
    with pytest.raises(OutOfBoundsError):
        image.write_physical(ROM_SIZE, b"\x00")


def test_image_never_changes_length(image):
    image.write_physical(0x100, b"\x01\x02\x03")
    assert len(image) == ROM_SIZE
    assert len(image.serialize()) == ROM_SIZE


def test_translate_is_bounds_checked_against_short_image():
    short = MemoryImage(bytes(0x4000))
    with pytest.raises(OutOfBoundsError):
        short.read(0xC000, 1, BankContext(bank=6, window=6))


def test_copier_header_is_preserved():
    header = bytes(range(256)) * 2
    data = header + bytes(ROM_SIZE)
    image = MemoryImage(data, has_header=True)
    assert image.has_header
    assert len(image) == ROM_SIZE
    image.write_physical(0, b"\x42")
    out = image.serialize()
    assert out[:COPIER_HEADER_SIZE] == header
    assert out[COPIER_HEADER_SIZE] == 0x42


def test_copy_is_independent(image):
    clone = image.copy()
    clone.write_physical(0x10, b"\x99")
    assert image.read_physical(0x10, 1) != b"\x99"
