"""Tests for flag definitions, validation and the file string."""
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from flags import FlagCategory, FlagRegistry, Flags


def test_defaults():
    flags = Flags()
    assert flags.placement == "global"
    assert flags.no_downgrade is True
    assert flags.max_attempts == 100
    assert flags.is_default()
    assert flags.to_file_string() == "default"


def test_registry_lists_every_flag():
    keys = set(FlagRegistry.get_all_flags())
    assert keys == {"placement", "max_attempts", "no_downgrade"}
    by_category = FlagRegistry.get_flags_by_category()
    assert [flag.key for flag in by_category[FlagCategory.HIDDEN]] == ["max_attempts"]


def test_attribute_access_validates():
    flags = Flags()
    flags.no_downgrade = False
    assert flags.no_downgrade is False
    with pytest.raises(TypeError):
        flags.no_downgrade = "yes"
    with pytest.raises(ValueError):
        flags.placement = "everywhere"
    with pytest.raises(AttributeError):
        flags.nonexistent


def test_integer_range_and_type():
    flags = Flags()
    with pytest.raises(ValueError):
        flags.set("max_attempts", 0)
    with pytest.raises(ValueError):
        flags.set("max_attempts", 1001)
    with pytest.raises(TypeError):
        flags.set("max_attempts", True)


@pytest.mark.parametrize("key,text,value", [
    ("placement", " Crypt ", "crypt"),
    ("no_downgrade", "off", False),
    ("no_downgrade", "Yes", True),
    ("max_attempts", "0x10", 16),
])
def test_set_from_string(key, text, value):
    flags = Flags()
    flags.set_from_string(key, text)
    assert flags.get(key) == value


def test_set_from_bad_string():
    with pytest.raises(ValueError):
        Flags().set_from_string("no_downgrade", "maybe")
    with pytest.raises(KeyError):
        Flags().set_from_string("unknown", "1")


def test_file_string_lists_changed_flags():
    flags = Flags()
    flags.set("placement", "crypt")
    flags.set("no_downgrade", False)
    assert not flags.is_default()
    assert flags.to_file_string() == "nd0_pcry"


def test_dict_round_trip():
    flags = Flags()
    flags.set("placement", "none")
    copy = Flags()
    copy.from_dict(flags.to_dict())
    assert copy == flags


def test_from_dict_skips_bad_values():
    flags = Flags()
    flags.from_dict({"placement": "crypt", "no_downgrade": "sometimes", "bogus": 1})
    assert flags.placement == "crypt"
    assert flags.no_downgrade is True


def test_validate_reports_pointless_combination():
    flags = Flags()
    assert flags.validate() == (True, [])
    flags.set("placement", "none")
    flags.set("max_attempts", 3)
    is_valid, errors = flags.validate()
    assert not is_valid
    assert len(errors) == 1
