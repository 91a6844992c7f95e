"""Tests for seed derivation and ROM identification."""
import hashlib
import logging
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from logic.errors import MalformedInputError
from logic.rom_info import KNOWN_ROMS, CheckSupported, IdentifyRom, Region, RomInfo
from rng.random_number_generator import RandomNumberGenerator, SeedFromString, ToBase36
from rom.rom_config import COPIER_HEADER_SIZE, ROM_SIZE


def test_seed_is_first_eight_bytes_of_sha256():
    digest = hashlib.sha256(b"alpha").digest()
    assert SeedFromString("alpha") == int.from_bytes(digest[:8], 'big')


def test_empty_seed_is_valid():
    assert SeedFromString("") == int.from_bytes(hashlib.sha256(b"").digest()[:8], 'big')


def test_unicode_seed():
    assert SeedFromString("ネオ") != SeedFromString("neo")


@pytest.mark.parametrize("value,expected", [(0, "0"), (35, "z"), (36, "10"), (1295, "zz")])
def test_base36(value, expected):
    assert ToBase36(value) == expected


def test_same_seed_same_stream():
    first = RandomNumberGenerator.FromSeedString("alpha")
    second = RandomNumberGenerator.FromSeedString("alpha")
    assert [first.randint(0, 1000) for _ in range(20)] == \
        [second.randint(0, 1000) for _ in range(20)]


def test_reset_restarts_stream():
    rng = RandomNumberGenerator(1234)
    values = [rng.random() for _ in range(5)]
    rng.reset()
    assert [rng.random() for _ in range(5)] == values


def test_salt_is_six_bit():
    rng = RandomNumberGenerator(7)
    assert all(0 <= rng.GetSalt() <= 0x3F for _ in range(200))


def test_seed_name_is_base36():
    rng = RandomNumberGenerator.FromSeedString("alpha")
    assert int(rng.seed_name, 36) == rng.seed


def test_identify_headerless():
    info = IdentifyRom(bytes(ROM_SIZE))
    assert not info.headered
    assert info.md5_hash == hashlib.md5(bytes(ROM_SIZE)).hexdigest()
    assert not info.known
    assert info.region == Region.UNKNOWN


def test_identify_headered_hashes_without_header():
    info = IdentifyRom(b"\x01" * COPIER_HEADER_SIZE + bytes(ROM_SIZE))
    assert info.headered
    assert info.md5_hash == hashlib.md5(bytes(ROM_SIZE)).hexdigest()


@pytest.mark.parametrize("size", [0, 0x1000, ROM_SIZE - 1, ROM_SIZE + 1])
def test_wrong_size_is_malformed_input(size):
    with pytest.raises(MalformedInputError):
        IdentifyRom(bytes(size))


def test_known_roms():
    regions = {region for _, region in KNOWN_ROMS.values()}
    assert regions == {Region.NA, Region.JP}


def test_japanese_rom_is_rejected():
    info = RomInfo(False, "x", True, "Neutopia (J)", Region.JP)
    with pytest.raises(MalformedInputError):
        CheckSupported(info)


def test_unknown_rom_only_warns(caplog):
    info = RomInfo(False, "abc", False, "Unrecognized ROM", Region.UNKNOWN)
    with caplog.at_level(logging.WARNING):
        CheckSupported(info)
    assert "unrecognized" in caplog.text


def test_info_lines():
    info = RomInfo(True, "abc", True, "Neutopia (U)", Region.NA)
    assert any("abc" in line for line in info.Lines())
