"""Tests for the patch catalog: layout, validation and application."""
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from logic.errors import MalformedInputError, OverlappingPatchError
from logic.patch import Patch
from logic.patch_catalog import (CHEST_HANDLER_BANK, NO_DOWNGRADE_HANDLER, SAVE_STATE_BANK, BuildCatalog,
                                 BuildExpandSaveStatePatch, BuildNoDowngradePatch,
                                 PatchCatalog)
from rom.memory_image import MemoryImage
from rom.test_rom_builder import TestRomBuilder


@pytest.fixture
def image():
    return TestRomBuilder().build_image()


def test_catalog_has_both_patches():
    catalog = BuildCatalog()
    assert catalog.names == ["expand-save-state", "no-downgrade"]
    assert BuildCatalog(no_downgrade=False).names == ["expand-save-state"]


def test_entries_stay_inside_their_window():
    for patch in BuildCatalog():
        patch.CheckOverlaps()
        for start, end, addr in patch.GetPhysicalRanges():
            assert start // 0x2000 == patch.bank.bank
            assert (end - 1) // 0x2000 == patch.bank.bank


def test_patch_banks():
    assert BuildExpandSaveStatePatch().bank == SAVE_STATE_BANK
    assert BuildNoDowngradePatch().bank == CHEST_HANDLER_BANK


def test_overlapping_patches_are_rejected_at_build_time():
    first = Patch("first", SAVE_STATE_BANK)
    first.AddData(0xC100, [0x01, 0x02, 0x03])
    second = Patch("second", SAVE_STATE_BANK)
    second.AddData(0xC102, [0x04])
    with pytest.raises(OverlappingPatchError):
        PatchCatalog([first, second])


def test_same_cpu_address_in_different_banks_does_not_overlap():
    first = Patch("first", SAVE_STATE_BANK)
    first.AddData(0xC100, [0x01])
    second = Patch("second", CHEST_HANDLER_BANK)
    second.AddData(0xC100, [0x02])
    assert len(PatchCatalog([first, second])) == 2


def test_apply_all_writes_patched_operands(image):
    BuildCatalog().apply_all(image)
    assert image.read(0xDA53, 2, SAVE_STATE_BANK) == b"\xA9\x16"
    assert image.read(0xDA6E, 2, SAVE_STATE_BANK) == b"\xA9\x15"
    assert image.read(0xDA88, 2, SAVE_STATE_BANK) == b"\xA9\x16"
    assert image.read(0xDDF1, 6, CHEST_HANDLER_BANK) == b"\x52\xDF" * 3
    assert image.read(0xDF52, 3, CHEST_HANDLER_BANK) == b"\xAE\xD0\x35"


def test_unexpected_original_bytes_are_malformed_input():
    image = TestRomBuilder().without_original_code().build_image()
    before = image.serialize()
    with pytest.raises(MalformedInputError):
        BuildCatalog().apply_all(image)
    assert image.serialize() == before


def test_second_application_is_malformed_input(image):
    catalog = BuildCatalog()
    catalog.apply_all(image)
    before = image.serialize()
    with pytest.raises(MalformedInputError, match="already applied"):
        catalog.apply_all(image)
    assert image.serialize() == before


def _UncheckedEntries():
    return [(patch.name, patch.bank, entry)
            for patch in BuildCatalog() for entry in patch.GetEntries()
            if entry.expected_data is None]


def test_unchecked_entries_are_the_code_rewrites():
    addresses = sorted(entry.address for _, _, entry in _UncheckedEntries())
    assert addresses == [0xD778, 0xD979, 0xD9BB, 0xDA03, 0xDDF1, 0xDF52]


@pytest.mark.parametrize("name, bank, entry", _UncheckedEntries(),
                         ids=[f"{entry.address:X}" for _, _, entry in _UncheckedEntries()])
def test_single_unchecked_entry_already_present_is_malformed_input(image, name, bank, entry):
    image.write(entry.address, entry.data, bank)
    before = image.serialize()
    with pytest.raises(MalformedInputError, match=f"{name}' at 0x{entry.address:04X}.*already applied"):
        BuildCatalog().apply_all(image)
    assert image.serialize() == before


def test_handler_alone_is_detected_as_already_applied(image):
    handler = next(entry for _, _, entry in _UncheckedEntries()
                   if entry.address == NO_DOWNGRADE_HANDLER)
    image.write(NO_DOWNGRADE_HANDLER, handler.data, CHEST_HANDLER_BANK)
    with pytest.raises(MalformedInputError, match="already applied"):
        BuildCatalog().apply_all(image)


def test_later_mismatch_leaves_image_untouched(image):
    # Break the last checked entry of the first patch only
    image.write(0xDA88, b"\x00\x00", SAVE_STATE_BANK)
    before = image.serialize()
    with pytest.raises(MalformedInputError):
        BuildCatalog().apply_all(image)
    assert image.serialize() == before


def test_hash_code_is_six_bit_and_depends_on_catalog():
    full = BuildCatalog().GetHashCode()
    partial = BuildCatalog(no_downgrade=False).GetHashCode()
    assert len(full) == 4
    assert all(b <= 0x3F for b in full)
    assert full != partial
    assert full == BuildCatalog().GetHashCode()


def test_describe_lists_every_entry():
    catalog = BuildCatalog()
    lines = catalog.describe()
    entries = sum(len(patch.GetEntries()) for patch in catalog)
    assert len(lines) == entries + len(catalog)
    assert any("$DA53" in line for line in lines)


def test_patch_outside_image_is_malformed_input():
    patch = Patch("far", SAVE_STATE_BANK)
    patch.AddData(0xC000, [0x00])
    with pytest.raises(MalformedInputError):
        patch.Validate(MemoryImage(bytes(0x100)))


def test_physical_patch_outside_image_is_malformed_input():
    patch = Patch("far")
    patch.AddData(0xFF, [0x00, 0x00])
    with pytest.raises(MalformedInputError, match="outside the ROM"):
        patch.Validate(MemoryImage(bytes(0x100)))


def test_physical_patch_reads_current_bytes():
    image = MemoryImage(bytes(0x100))
    patch = Patch("near")
    patch.AddData(0x10, [0xEA], expected_original_data=[0x00])
    patch.Apply(image)
    assert image.read_physical(0x10, 1) == b"\xEA"
    with pytest.raises(MalformedInputError, match="already applied"):
        patch.Validate(image)
