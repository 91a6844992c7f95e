import logging as log
import os
import sys
from enum import Enum
from typing import List, Optional, Tuple

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from version import __version__

from flags import Flags
from rng.random_number_generator import RandomNumberGenerator
from rom.chest_table import ChestTables
from rom.memory_image import MemoryImage
from .checks import ItemDefinition, LocationSlot, BindSlots, CrossCheck, LoadChecks, ReadItemPool
from .checksum import ChecksumRecalculator
from .errors import (GenerationFailedError, InvariantViolation, MalformedInputError,
                     RandomizerError, UnsolvableError)
from .patch_catalog import BuildCatalog, PatchCatalog
from .placement import PlacementAssignment, PlacementSolver
from .randomizer_constants import RandoType, Range
from .rom_info import CheckSupported, IdentifyRom, RomInfo
from .validator import Validator

FILENAME_PREFIX = "neutopia-randomizer"
FILENAME_EXTENSION = ".pce"


class RunStage(Enum):
  LOADED = "Loaded"
  PATCHED = "Patched"
  PLACED = "Placed"
  CHECKSUMMED = "Checksummed"
  SERIALIZED = "Serialized"
  FAILED = "Failed"


class NeutopiaRandomizer():
  """One randomization run: load, patch, place, checksum, serialize.

  The run owns its MemoryImage and its RandomNumberGenerator. Stages must be
  called in order; Run() does exactly that. Nothing is returned to the caller
  until every stage has succeeded.
  """

  def __init__(self, rom_bytes: bytes, seed: str, flags: Optional[Flags] = None) -> None:
    self.seed = seed
    self.flags = flags or Flags()
    self.rng = RandomNumberGenerator.FromSeedString(seed)
    self.mode = RandoType.FromFlag(self.flags.placement)

    self.info: RomInfo = IdentifyRom(rom_bytes)
    CheckSupported(self.info)
    self.image = MemoryImage(rom_bytes, has_header=self.info.headered)
    # Resolving every chest table pointer is the structural check of the input
    self.chests = ChestTables(self.image)

    self.catalog: Optional[PatchCatalog] = None
    self.assignment: Optional[PlacementAssignment] = None
    self.attempts = 0
    self.stage = RunStage.LOADED
    log.info(f"Loaded {self.info.description} ({self.info.md5_hash}), seed '{seed}' "
             f"-> {self.rng.seed_name}, flags {self.flags.to_file_string()}")

  def _Require(self, expected: RunStage, next_stage: RunStage) -> None:
    if self.stage != expected:
      raise InvariantViolation(f"Cannot enter {next_stage.value} from {self.stage.value}")

  # ===========================================================================
  # Stages
  # ===========================================================================

  def ApplyPatches(self) -> None:
    self._Require(RunStage.LOADED, RunStage.PATCHED)
    self.catalog = BuildCatalog(no_downgrade=self.flags.no_downgrade)
    self.catalog.apply_all(self.image)
    self.stage = RunStage.PATCHED

  def PlaceItems(self) -> None:
    self._Require(RunStage.PATCHED, RunStage.PLACED)
    if self.mode != RandoType.NONE:
      # Every slot must own its record before anything is written
      self.chests.unshare_tables()
      slots, items, win = self._BuildProblem()
      self.assignment = self._Solve(PlacementSolver(slots, items, win))
      self.assignment.WriteTo(self.chests)

      if not Validator(self.chests, slots, win).IsSeedValid():
        raise InvariantViolation(
            "Chest tables written from a completable assignment failed validation")
    self.stage = RunStage.PLACED

  def RecomputeChecksum(self) -> None:
    self._Require(RunStage.PLACED, RunStage.CHECKSUMMED)
    ChecksumRecalculator(self.image).recompute(
        self.rng.GetSalt(), self.catalog.GetHashCode(), int(self.mode))
    self.stage = RunStage.CHECKSUMMED

  def Serialize(self) -> bytes:
    self._Require(RunStage.CHECKSUMMED, RunStage.SERIALIZED)
    self.stage = RunStage.SERIALIZED
    return self.image.serialize()

  def Run(self) -> bytes:
    try:
      self.ApplyPatches()
      self.PlaceItems()
      self.RecomputeChecksum()
      return self.Serialize()
    except RandomizerError:
      self.stage = RunStage.FAILED
      raise

  # ===========================================================================
  # Placement
  # ===========================================================================

  def _BuildProblem(self) -> Tuple[List[LocationSlot], List[ItemDefinition], LocationSlot]:
    slots, win = LoadChecks()
    _, unlisted = CrossCheck(slots, self.chests)
    if unlisted:
      log.warning(f"{len(unlisted)} occupied chests are not checks and keep their contents: "
                  f"{[f'{area:02X}:{index}' for area, index in unlisted]}")
    if self.mode == RandoType.CRYPT:
      slots = [slot for slot in slots if slot.area in Range.CRYPT_AREA_NUMBERS]
    slots = BindSlots(slots, self.chests)
    items = ReadItemPool(slots, self.chests)

    if self.mode == RandoType.CRYPT:
      # Every item stays in the crypt it came from
      items = [ItemDefinition(item.record, item.source, item.source.area) for item in items]

    granted = set()
    for item in items:
      granted |= item.grants
    missing = win.gates - granted
    if missing:
      raise MalformedInputError(
          f"No check in this ROM grants {sorted(gate.value for gate in missing)}")
    return slots, items, win

  def _Solve(self, solver: PlacementSolver) -> PlacementAssignment:
    max_attempts = self.flags.max_attempts
    last_error: Optional[UnsolvableError] = None
    for attempt in range(1, max_attempts + 1):
      self.attempts = attempt
      log.info(f"Placement attempt {attempt} for seed {self.rng.seed_name}")
      result = solver.Solve(self.rng)
      if result.ok:
        log.info(f"Placement attempt {attempt} succeeded")
        return result.assignment
      last_error = result.error
      log.info(f"Placement attempt {attempt} failed: {last_error}; trying again")

    raise GenerationFailedError(
        f"Gave up after {max_attempts} placement attempts. "
        f"Please try again with a different seed.", attempts=max_attempts) from last_error

  # ===========================================================================
  # Output
  # ===========================================================================

  def GetFilename(self) -> str:
    name = f"{FILENAME_PREFIX}-{self.rng.seed_name}"
    if not self.flags.is_default():
      name += f"_{self.flags.to_file_string()}"
    return name + FILENAME_EXTENSION

  def GetSpoiler(self) -> List[str]:
    lines = [
        f"Neutopia Randomizer {__version__}",
        f"Seed: {self.seed} ({self.rng.seed_name})",
        f"Flags: {self.flags.to_file_string()}",
        f"Placement attempts: {self.attempts}",
        "",
    ]
    if self.assignment is None:
      lines.append("Items were not shuffled.")
    else:
      lines.extend(self.assignment.spoiler())
    return lines
