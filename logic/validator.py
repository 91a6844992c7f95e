from typing import Dict, List, Set
import logging as log

from rom.chest_table import ChestTables
from .checks import LocationSlot
from .randomizer_constants import Gate, GetAreaName, Item


class Validator(object):
  """Independent completability check over the chest tables in a ROM.

  The placement solver guarantees completability by construction. This class
  does not trust the solver's bookkeeping: it reads back what was actually
  written to the chest tables and simulates a player collecting every chest
  that can be reached, until nothing new opens up.
  """

  def __init__(self, chests: ChestTables, slots: List[LocationSlot], win: LocationSlot) -> None:
    self.chests = chests
    self.slots = slots
    self.win = win
    self.granted: Set[Gate] = set()
    self.visited: Set[LocationSlot] = set()
    self.best_equipment: Dict[Item, int] = {}

  def _Reset(self) -> None:
    self.granted = set()
    self.visited = set()
    self.best_equipment = {}

  def _Collect(self, slot: LocationSlot) -> bool:
    """Open one chest. Returns True if a new gate was granted."""
    self.visited.add(slot)
    record = self.chests.get_chest(slot.area, slot.index)
    try:
      item = Item(record.item_id)
    except ValueError:
      log.warning(f"{slot.name} holds unknown item id 0x{record.item_id:02X}")
      return False

    if item.IsEquipment():
      self.best_equipment[item] = max(self.best_equipment.get(item, 0), record.arg)

    grant = item.GetGrant()
    if grant is None or grant in self.granted:
      return False
    log.debug(f"{slot.name} ({GetAreaName(slot.area)}) grants {grant.value}")
    self.granted.add(grant)
    return True

  def IsSeedValid(self) -> bool:
    self._Reset()
    iteration = 0
    while True:
      iteration += 1
      opened_new_gate = False
      for slot in self.slots:
        if slot in self.visited or not slot.gates <= self.granted:
          continue
        if self._Collect(slot):
          opened_new_gate = True
      log.debug(f"Iteration {iteration}: {len(self.visited)} chests, "
                f"gates {sorted(gate.value for gate in self.granted)}")
      if not opened_new_gate:
        break

    grades = {item.name.lower(): grade for item, grade in sorted(self.best_equipment.items())}
    log.debug(f"Best equipment collected: {grades}")

    if len(self.visited) != len(self.slots):
      unreached = [slot.name for slot in self.slots if slot not in self.visited]
      log.info(f"{len(unreached)} checks unreachable: {unreached}")
      return False
    if not self.win.gates <= self.granted:
      log.info(f"Win condition unreachable; missing "
               f"{sorted(gate.value for gate in self.win.gates - self.granted)}")
      return False
    return True
