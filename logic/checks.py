"""Check (location slot) and item definitions for item placement.

Checks are loaded from data/checks.json. Each check names one chest record by
(area, room, index); room is informational and optional, the record is
found through the area's chest table and the index. The "win" entry is the pseudo-slot whose
gates must all be reachable for the seed to be completable.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple
import json
import logging as log
import os

from rom.chest_table import ChestRecord, ChestTables
from .errors import MalformedInputError
from .randomizer_constants import Gate, GetAreaName, Item, Range

CHECKS_PATH = os.path.join(os.path.dirname(__file__), 'data', 'checks.json')
WIN_CHECK_NAME = "win"
WIN_AREA = 0x10

# Unused chest records are filled with 0xFF
EMPTY_ITEM_ID = 0xFF


@dataclass(frozen=True, order=True)
class LocationId:
  area: int
  room: int
  index: int

  def __str__(self) -> str:
    return f"{self.area:02X}:{self.room:02X}:{self.index}"


@dataclass(frozen=True)
class LocationSlot:
  """One chest that can hold randomized content.

  Attributes:
      name: Display name
      location: Unique (area, room, index) id
      gates: Tags that must all be granted before the chest can be reached
      allowed_items: If set, the only items this chest may hold
      record_offset: Physical offset of the chest record, -1 until bound to a ROM
  """
  name: str
  location: LocationId
  gates: FrozenSet[Gate]
  allowed_items: Optional[FrozenSet[Item]] = None
  record_offset: int = -1

  @property
  def area(self) -> int:
    return self.location.area

  @property
  def index(self) -> int:
    return self.location.index

  def IsReachable(self, granted: FrozenSet[Gate]) -> bool:
    return self.gates <= granted

  def Allows(self, item: "ItemDefinition") -> bool:
    return self.allowed_items is None or item.item in self.allowed_items


@dataclass(frozen=True)
class ItemDefinition:
  """One placeable chest content.

  Attributes:
      record: Chest record bytes written into the slot
      source: Vanilla location of the item; makes duplicates distinct
      area_lock: Area the item must stay in (crystal balls and crypt keys)
  """
  record: ChestRecord
  source: LocationId
  area_lock: Optional[int] = None

  @property
  def item(self) -> Item:
    return Item(self.record.item_id)

  @property
  def grants(self) -> FrozenSet[Gate]:
    grant = self.item.GetGrant()
    return frozenset([grant]) if grant is not None else frozenset()

  @property
  def rank(self) -> Optional[int]:
    """Comparison rank for equipment kept by the no-downgrade handler."""
    return self.record.arg if self.item.IsEquipment() else None

  @property
  def name(self) -> str:
    return self.record.name

  def encode(self) -> bytes:
    return self.record.to_bytes()


def _ParseGate(value: str, check_name: str) -> Gate:
  try:
    return Gate(value)
  except ValueError as e:
    raise ValueError(f"Check '{check_name}' has unknown gate '{value}'") from e


def _ParseItemName(value: str, check_name: str) -> Item:
  try:
    return Item[value.upper().replace('-', '_')]
  except KeyError as e:
    raise ValueError(f"Check '{check_name}' allows unknown item '{value}'") from e


def LoadChecks(path: str = CHECKS_PATH) -> Tuple[List[LocationSlot], LocationSlot]:
  """Parse the check list.

  Returns:
      (slots sorted by location, win pseudo-slot)

  Raises:
      ValueError: On duplicate locations, unknown gates or a missing win entry
  """
  with open(path, 'r', encoding='utf-8') as f:
    raw_checks = json.load(f)

  slots: Dict[LocationId, LocationSlot] = {}
  win = None
  for raw in raw_checks:
    name = raw['name']
    location = LocationId(raw['area'], raw.get('room', 0), raw.get('index', 0))
    gates = frozenset(_ParseGate(gate, name) for gate in raw.get('gates', []))
    allowed = raw.get('allowed_items')
    allowed_items = frozenset(_ParseItemName(item, name) for item in allowed) if allowed else None

    slot = LocationSlot(name, location, gates, allowed_items)
    if name == WIN_CHECK_NAME:
      win = slot
      continue
    if location in slots:
      raise ValueError(f"duplicate location {location} for check {name}")
    if location.area not in Range.RANDOMIZED_AREA_NUMBERS:
      raise ValueError(f"Check '{name}' is in area 0x{location.area:02X}, which is never randomized")
    if location.index not in Range.VALID_CHEST_INDICES:
      raise ValueError(f"Check '{name}' has chest index {location.index}")
    slots[location] = slot

  if win is None:
    raise ValueError(f"{path} has no '{WIN_CHECK_NAME}' entry")
  return [slots[location] for location in sorted(slots)], win


def BindSlots(slots: List[LocationSlot], chests: ChestTables) -> List[LocationSlot]:
  """Attach the physical record offset of each slot in this ROM."""
  return [
      LocationSlot(slot.name, slot.location, slot.gates, slot.allowed_items,
                   chests.get_record_offset(slot.area, slot.index))
      for slot in slots
  ]


def ReadItemPool(slots: List[LocationSlot], chests: ChestTables) -> List[ItemDefinition]:
  """The vanilla contents of the check slots, in slot order.

  Raises:
      MalformedInputError: If a check holds a medallion or an unknown item
  """
  items = []
  for slot in slots:
    record = chests.get_chest(slot.area, slot.index)
    if record.item_id == EMPTY_ITEM_ID:
      raise MalformedInputError(
          f"Check '{slot.name}' points at an empty record "
          f"({GetAreaName(slot.area)} chest {slot.index})")
    try:
      item = Item(record.item_id)
    except ValueError as e:
      raise MalformedInputError(
          f"Check '{slot.name}' holds unknown item id 0x{record.item_id:02X}") from e
    if item.IsMedallion():
      raise MalformedInputError(f"Check '{slot.name}' holds {record.name}; medallions are not checks")

    area_lock = slot.area if item.IsAreaLocked() else None
    items.append(ItemDefinition(record, slot.location, area_lock))
    log.debug(f"Pool: {record.name} from {GetAreaName(slot.area)} ({slot.location})")
  return items


def DumpChestRecords(chests: ChestTables) -> List[Dict]:
  """Every occupied, non-medallion chest of the randomized areas as a
  checks.json skeleton, followed by a win entry that needs every gate.

  Rooms and gates are not stored with the chests; the skeleton leaves them
  out and they are filled in by hand.
  """
  entries = []
  for area in Range.RANDOMIZED_AREA_NUMBERS:
    for index, record in enumerate(chests.get_table(area)):
      if record.item_id == EMPTY_ITEM_ID:
        continue
      if Item.CRYPT_1_MEDALLION <= record.item_id <= Item.CRYPT_8_MEDALLION:
        continue
      entries.append({
          "name": f"{GetAreaName(area)} - Chest {index}",
          "area": area,
          "index": index,
          "item": record.name,
          "gates": [],
      })
  entries.append({
      "name": WIN_CHECK_NAME,
      "area": WIN_AREA,
      "index": 0,
      "gates": [gate.value for gate in Gate],
  })
  return entries


def CrossCheck(slots: List[LocationSlot],
               chests: ChestTables) -> Tuple[List[LocationSlot], List[Tuple[int, int]]]:
  """Compare the check list with the chests present in a ROM.

  Returns:
      (checks whose record is empty, (area, index) of occupied chests no check covers)
  """
  occupied = {(entry['area'], entry['index'])
              for entry in DumpChestRecords(chests) if entry['name'] != WIN_CHECK_NAME}
  listed = {(slot.area, slot.index) for slot in slots}
  empty = [slot for slot in slots
           if chests.get_chest(slot.area, slot.index).item_id == EMPTY_ITEM_ID]
  return empty, sorted(occupied - listed)
