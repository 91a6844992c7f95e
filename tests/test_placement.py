"""Tests for the check list, the item pool and the placement solver."""
import json
import os
import sys
from collections import Counter

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from logic.checks import (BindSlots, CrossCheck, DumpChestRecords, ItemDefinition, LoadChecks,
                          LocationId, LocationSlot, ReadItemPool)
from logic.errors import MalformedInputError, UnsolvableError
from logic.placement import PlacementAssignment, PlacementSolver
from logic.randomizer_constants import Gate, Item, Range
from logic.validator import Validator
from rng.random_number_generator import RandomNumberGenerator
from rom.chest_table import ChestRecord, ChestTables
from rom.test_rom_builder import TestRomBuilder


@pytest.fixture
def chests():
  return ChestTables(TestRomBuilder().build_image())


@pytest.fixture
def problem(chests):
  slots, win = LoadChecks()
  slots = BindSlots(slots, chests)
  return slots, ReadItemPool(slots, chests), win


def _Item(item: Item, area: int, index: int, arg: int = 0, area_lock=None) -> ItemDefinition:
  return ItemDefinition(ChestRecord(int(item), arg, 0, 0), LocationId(area, 0, index), area_lock)


def _Slot(name, area, index, gates=(), allowed=None) -> LocationSlot:
  return LocationSlot(name, LocationId(area, 0, index), frozenset(gates),
                      frozenset(allowed) if allowed else None)


def test_check_list_shape():
  slots, win = LoadChecks()
  assert len(slots) == 55
  assert win.gates == frozenset(Gate)
  assert len({slot.location for slot in slots}) == len(slots)
  assert all(slot.area in Range.RANDOMIZED_AREA_NUMBERS for slot in slots)
  assert [slot.location for slot in slots] == sorted(slot.location for slot in slots)


def test_restricted_checks_are_loaded():
  slots, _ = LoadChecks()
  restricted = [slot for slot in slots if slot.allowed_items is not None]
  assert len(restricted) == 2
  for slot in restricted:
    assert slot.allowed_items == frozenset([Item.BOMBS, Item.MEDICINE, Item.WINGS])


def test_item_pool_matches_vanilla_chests(problem, chests):
  slots, items, _ = problem
  assert len(items) == len(slots)
  for slot, item in zip(slots, items):
    assert item.record == chests.get_chest(slot.area, slot.index)
    assert item.source == slot.location


def test_crystal_balls_and_keys_are_area_locked(problem):
  _, items, _ = problem
  locked = [item for item in items if item.area_lock is not None]
  assert len(locked) == 16
  assert all(item.item in (Item.CRYSTAL_BALL, Item.CRYPT_KEY) for item in locked)
  assert all(item.area_lock == item.source.area for item in locked)


def test_equipment_rank_and_grants(problem):
  _, items, _ = problem
  swords = sorted(item.rank for item in items if item.item == Item.SWORD)
  assert swords == [2, 3, 4]
  assert all(item.rank is None for item in items if not item.item.IsEquipment())
  wand = next(item for item in items if item.item == Item.FIRE_WAND)
  assert wand.grants == frozenset([Gate.FIRE_WAND])


def test_medallion_in_check_is_malformed_input():
  chests = ChestTables(TestRomBuilder().with_chest(0, 0, Item.CRYPT_3_MEDALLION).build_image())
  slots, _ = LoadChecks()
  with pytest.raises(MalformedInputError):
    ReadItemPool(slots, chests)


def test_unknown_item_is_malformed_input():
  image = TestRomBuilder().build_image()
  chests = ChestTables(image)
  image.write_physical(chests.get_record_offset(0, 0), b"\x7E")
  slots, _ = LoadChecks()
  with pytest.raises(MalformedInputError):
    ReadItemPool(slots, chests)


@pytest.mark.parametrize("seed", ["alpha", "beta", "gamma", "", "12345"])
def test_solver_produces_completable_assignment(problem, seed):
  slots, items, win = problem
  attempt = PlacementSolver(slots, items, win).Solve(RandomNumberGenerator.FromSeedString(seed))
  if not attempt.ok:
    assert isinstance(attempt.error, UnsolvableError)
    return
  assignment = attempt.assignment
  assert assignment.IsComplete()
  assert assignment.IsCompletable()
  placed = Counter(item.source for _, item in assignment.items())
  assert placed == Counter(item.source for item in items)


def test_constraints_hold_across_many_seeds(problem):
  slots, items, win = problem
  solver = PlacementSolver(slots, items, win)
  successes = 0
  for n in range(40):
    attempt = solver.Solve(RandomNumberGenerator(n))
    if not attempt.ok:
      continue
    successes += 1
    for slot, item in attempt.assignment.items():
      assert slot.Allows(item)
      if item.area_lock is not None:
        assert slot.area == item.area_lock
  assert successes > 0


def test_solver_is_deterministic(problem):
  slots, items, win = problem
  solver = PlacementSolver(slots, items, win)
  first = solver.Solve(RandomNumberGenerator.FromSeedString("alpha"))
  second = solver.Solve(RandomNumberGenerator.FromSeedString("alpha"))
  assert first.ok == second.ok
  if first.ok:
    assert list(first.assignment.items()) == list(second.assignment.items())


def test_last_reachable_slot_gets_a_key_item():
  slots = [_Slot("open", 0, 0), _Slot("wand", 0, 1, [Gate.FIRE_WAND])]
  win = _Slot("win", 16, 0, [Gate.FIRE_WAND])
  items = [_Item(Item.MEDICINE, 0, 0), _Item(Item.FIRE_WAND, 0, 1)]
  for n in range(10):
    attempt = PlacementSolver(slots, items, win).Solve(RandomNumberGenerator(n))
    assert attempt.ok
    assert attempt.assignment.Get(slots[0].location).item == Item.FIRE_WAND


def test_dead_end_is_returned_not_raised():
  slots = [_Slot("open", 0, 0), _Slot("wand", 0, 1, [Gate.FIRE_WAND])]
  win = _Slot("win", 16, 0, [Gate.FIRE_WAND])
  items = [_Item(Item.MEDICINE, 0, 0), _Item(Item.BOMBS, 0, 1, arg=5)]
  attempt = PlacementSolver(slots, items, win).Solve(RandomNumberGenerator(1))
  assert not attempt.ok
  assert isinstance(attempt.error, UnsolvableError)


def test_restricted_slot_only_takes_allowed_items():
  slots = [_Slot("shop", 0, 0, allowed=[Item.BOMBS]), _Slot("open", 0, 1)]
  win = _Slot("win", 16, 0)
  items = [_Item(Item.MAGIC_RING, 0, 0), _Item(Item.BOMBS, 0, 1, arg=10)]
  for n in range(10):
    attempt = PlacementSolver(slots, items, win).Solve(RandomNumberGenerator(n))
    assert attempt.ok
    assert attempt.assignment.Get(slots[0].location).item == Item.BOMBS


def test_area_locked_item_keeps_a_slot_in_its_area():
  slots = [_Slot("a0", 4, 0), _Slot("b0", 5, 0), _Slot("b1", 5, 1)]
  win = _Slot("win", 16, 0)
  items = [_Item(Item.CRYPT_KEY, 4, 0, area_lock=4), _Item(Item.MEDICINE, 5, 0),
           _Item(Item.WINGS, 5, 1)]
  for n in range(10):
    attempt = PlacementSolver(slots, items, win).Solve(RandomNumberGenerator(n))
    assert attempt.ok
    assert attempt.assignment.Get(slots[0].location).item == Item.CRYPT_KEY


def test_solver_rejects_mismatched_pool():
  with pytest.raises(ValueError):
    PlacementSolver([_Slot("a", 0, 0)], [], _Slot("win", 16, 0))


def test_assignment_rejects_double_assignment():
  slot = _Slot("a", 0, 0)
  assignment = PlacementAssignment([slot], _Slot("win", 16, 0))
  assignment.Assign(slot, _Item(Item.MEDICINE, 0, 0))
  with pytest.raises(ValueError):
    assignment.Assign(slot, _Item(Item.WINGS, 0, 1))


def test_written_assignment_passes_validator(problem, chests):
  slots, items, win = problem
  solver = PlacementSolver(slots, items, win)
  rng = RandomNumberGenerator.FromSeedString("validator")
  for _ in range(100):
    attempt = solver.Solve(rng)
    if attempt.ok:
      break
  assert attempt.ok
  attempt.assignment.WriteTo(chests)
  assert Validator(chests, slots, win).IsSeedValid()
  for slot, item in attempt.assignment.items():
    assert chests.get_chest(slot.area, slot.index) == item.record


def test_validator_accepts_vanilla_layout(problem, chests):
  slots, _, win = problem
  assert Validator(chests, slots, win).IsSeedValid()


def test_validator_rejects_locked_fire_wand(problem, chests):
  slots, _, win = problem
  # Swap the fire wand behind its own gate
  wand = chests.get_chest(4, 2)
  burnt_tree = chests.get_chest(0, 2)
  chests.set_chest(4, 2, burnt_tree)
  chests.set_chest(0, 2, wand)
  assert not Validator(chests, slots, win).IsSeedValid()


def test_validator_records_best_equipment(problem, chests):
  slots, _, win = problem
  validator = Validator(chests, slots, win)
  assert validator.IsSeedValid()
  assert validator.best_equipment == {Item.SWORD: 4, Item.ARMOR: 4, Item.SHIELD: 4}


def test_dump_covers_exactly_the_check_list(chests):
  entries = DumpChestRecords(chests)
  assert entries[-1]["name"] == "win"
  dumped = [(entry["area"], entry["index"]) for entry in entries[:-1]]
  slots, _ = LoadChecks()
  assert dumped == [(slot.area, slot.index) for slot in slots]
  assert not any("Medallion" in entry["item"] for entry in entries[:-1])
  assert entries[0]["item"] == "Bombs x10"


def test_dump_is_a_loadable_check_list(chests, tmp_path):
  path = tmp_path / "checks.json"
  path.write_text(json.dumps(DumpChestRecords(chests)), encoding="utf-8")
  slots, win = LoadChecks(str(path))
  assert len(slots) == 55
  assert win.gates == frozenset(Gate)
  assert all(slot.location.room == 0 for slot in slots)


def test_cross_check_of_vanilla_layout_is_clean(chests):
  slots, _ = LoadChecks()
  assert CrossCheck(slots, chests) == ([], [])


def test_cross_check_reports_empty_and_unlisted_chests():
  image = TestRomBuilder().with_chest(0x0F, 2, Item.BOMBS, 5).build_image()
  chests = ChestTables(image)
  image.write_physical(chests.get_record_offset(0x0E, 0), b"\xFF\xFF\xFF\xFF")
  slots, _ = LoadChecks()
  empty, unlisted = CrossCheck(slots, chests)
  assert [slot.name for slot in empty] == ["Sea Sphere Village - Elder"]
  assert unlisted == [(0x0F, 1), (0x0F, 2)]


def test_check_on_empty_record_is_malformed_input():
  image = TestRomBuilder().build_image()
  chests = ChestTables(image)
  image.write_physical(chests.get_record_offset(0x0E, 0), b"\xFF\xFF\xFF\xFF")
  slots, _ = LoadChecks()
  with pytest.raises(MalformedInputError, match="empty record"):
    ReadItemPool(slots, chests)
