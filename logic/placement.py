"""Seeded item placement under progression constraints.

The solver fills slots in reachability order. On every step it draws one of
the unassigned slots whose gates are already granted, then one of the items
that may legally go there, assigns it and adds the item's grants. Because
every item is placed in a slot that was reachable with the grants collected
so far, the finished assignment is completable by construction.

One call to Solve() is one attempt. A dead end is returned as a
PlacementAttempt carrying an UnsolvableError; the caller owns the retry loop
and keeps drawing from the same RNG.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional
import logging as log

from rng.random_number_generator import RandomNumberGenerator
from rom.chest_table import ChestTables
from .checks import ItemDefinition, LocationId, LocationSlot
from .errors import UnsolvableError
from .randomizer_constants import Gate, GetAreaName


class PlacementAssignment:
  """Mapping from slot to item produced by one successful attempt."""

  def __init__(self, slots: List[LocationSlot], win: LocationSlot) -> None:
    self.slots = {slot.location: slot for slot in slots}
    self.win = win
    self._items: Dict[LocationId, ItemDefinition] = {}
    self.order: List[LocationId] = []

  def Assign(self, slot: LocationSlot, item: ItemDefinition) -> None:
    if slot.location in self._items:
      raise ValueError(f"Slot {slot.name} is already assigned")
    self._items[slot.location] = item
    self.order.append(slot.location)

  def Get(self, location: LocationId) -> Optional[ItemDefinition]:
    return self._items.get(location)

  def __len__(self) -> int:
    return len(self._items)

  def IsComplete(self) -> bool:
    return len(self._items) == len(self.slots)

  def items(self):
    for location in sorted(self._items):
      yield self.slots[location], self._items[location]

  def IsCompletable(self) -> bool:
    """Breadth-first reachability from the empty tag set up to the win slot."""
    granted: FrozenSet[Gate] = frozenset()
    visited = set()
    changed = True
    while changed:
      changed = False
      for location, slot in self.slots.items():
        if location in visited or not slot.IsReachable(granted):
          continue
        visited.add(location)
        item = self._items.get(location)
        if item is not None and not item.grants <= granted:
          granted = granted | item.grants
          changed = True
    return self.win.IsReachable(granted) and len(visited) == len(self.slots)

  def WriteTo(self, chests: ChestTables) -> None:
    """Write every assigned item's record into its slot's chest."""
    for slot, item in self.items():
      chests.image.write_physical(chests.get_record_offset(slot.area, slot.index), item.encode())

  def spoiler(self) -> List[str]:
    lines = []
    for slot, item in self.items():
      lines.append(f"{GetAreaName(slot.area):<28} {slot.name:<40} {item.name}")
    return lines


@dataclass
class PlacementAttempt:
  """Outcome of one fill attempt: an assignment or the reason it failed."""
  assignment: Optional[PlacementAssignment] = None
  error: Optional[UnsolvableError] = None

  @property
  def ok(self) -> bool:
    return self.assignment is not None


class PlacementSolver:
  """Fills every slot with one item of the pool.

  Hard constraints on the item drawn for a slot:
    - the slot's allowed_items, when set
    - the item's area lock
    - every area keeps at least as many free slots as it has locked items
    - every restricted group keeps enough allowed items for its free slots
    - the last reachable slot gets an item that opens at least one more slot
  """

  def __init__(self, slots: List[LocationSlot], items: List[ItemDefinition],
               win: LocationSlot) -> None:
    if len(slots) != len(items):
      raise ValueError(f"{len(slots)} slots but {len(items)} items")
    self.slots = list(slots)
    self.items = list(items)
    self.win = win

  def Solve(self, rng: RandomNumberGenerator) -> PlacementAttempt:
    """Run one fill attempt.

    Returns:
        A PlacementAttempt holding either the assignment or the
        UnsolvableError describing the dead end
    """
    assignment = PlacementAssignment(self.slots, self.win)
    unassigned = list(self.slots)
    unplaced = list(self.items)
    granted: FrozenSet[Gate] = frozenset()

    while unassigned:
      reachable = [slot for slot in unassigned if slot.IsReachable(granted)]
      if not reachable:
        return PlacementAttempt(error=UnsolvableError(
            f"No reachable slot with {len(unassigned)} slots left "
            f"(granted: {sorted(gate.value for gate in granted)})"))

      slot = rng.choice(reachable)
      last_reachable = len(reachable) == 1 and len(unassigned) > 1
      eligible = [
          item for item in unplaced
          if self._IsEligible(slot, item, unassigned, unplaced, granted, last_reachable)
      ]
      if not eligible:
        return PlacementAttempt(error=UnsolvableError(f"No eligible item for {slot.name}"))

      item = rng.choice(eligible)
      log.debug(f"Placing {item.name} at {slot.name}")
      assignment.Assign(slot, item)
      unassigned.remove(slot)
      unplaced.remove(item)
      granted = granted | item.grants

    if not self.win.IsReachable(granted):
      missing = sorted(gate.value for gate in self.win.gates - granted)
      return PlacementAttempt(error=UnsolvableError(f"Win condition needs {missing}"))
    return PlacementAttempt(assignment=assignment)

  def _IsEligible(self, slot: LocationSlot, item: ItemDefinition,
                  unassigned: List[LocationSlot], unplaced: List[ItemDefinition],
                  granted: FrozenSet[Gate], last_reachable: bool) -> bool:
    if not slot.Allows(item):
      return False
    if item.area_lock is not None and item.area_lock != slot.area:
      return False

    remaining_slots = [other for other in unassigned if other is not slot]
    remaining_items = [other for other in unplaced if other is not item]

    # Area locked items still need a slot in their area
    free_slots_by_area = Counter(other.area for other in remaining_slots)
    locked_by_area = Counter(other.area_lock for other in remaining_items
                             if other.area_lock is not None)
    for area, count in locked_by_area.items():
      if free_slots_by_area[area] < count:
        return False

    # Restricted slots still need items they accept
    groups = {other.allowed_items for other in remaining_slots if other.allowed_items is not None}
    for allowed in groups:
      needed = sum(1 for other in remaining_slots if other.allowed_items == allowed)
      available = sum(1 for other in remaining_items if other.item in allowed)
      if available < needed:
        return False

    if last_reachable:
      opened = granted | item.grants
      if not any(other.IsReachable(opened) for other in remaining_slots):
        return False
    return True
