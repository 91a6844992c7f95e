"""Identify an input file: size, copier header, md5 and region."""

from dataclasses import dataclass
from enum import Enum
import hashlib
import logging as log

from rom.rom_config import COPIER_HEADER_SIZE, ROM_SIZE
from .errors import MalformedInputError


class Region(Enum):
  NA = "NA"
  JP = "JP"
  UNKNOWN = "Unknown"


KNOWN_ROMS = {
    "eb0789088fc70be42b2f994c1b66be21": ("Neutopia (U)", Region.NA),
    "08ae173878d8a3783fa35e80c99a5dc4": ("Neutopia (J)", Region.JP),
}


@dataclass(frozen=True)
class RomInfo:
  headered: bool
  md5_hash: str
  known: bool
  description: str
  region: Region

  def Lines(self):
    return [
        f"  Headered:    {self.headered}",
        f"  MD5 hash:    {self.md5_hash}",
        f"  Description: {self.description}",
        f"  Region:      {self.region.value}",
    ]


def IdentifyRom(data: bytes) -> RomInfo:
  """Identify a ROM by size and md5 of the headerless image.

  Raises:
      MalformedInputError: If the size is neither the headered nor the
          headerless size of the cartridge
  """
  if len(data) == ROM_SIZE:
    headered = False
    rom = data
  elif len(data) == ROM_SIZE + COPIER_HEADER_SIZE:
    headered = True
    rom = data[COPIER_HEADER_SIZE:]
  else:
    raise MalformedInputError(
        f"Rom size ({len(data)}) is neither the expected size of the headered "
        f"({ROM_SIZE + COPIER_HEADER_SIZE}) nor the un-headered ({ROM_SIZE}) rom")

  md5_hash = hashlib.md5(rom).hexdigest()
  description, region = KNOWN_ROMS.get(md5_hash, ("Unrecognized ROM", Region.UNKNOWN))
  return RomInfo(headered, md5_hash, md5_hash in KNOWN_ROMS, description, region)


def CheckSupported(info: RomInfo) -> None:
  """Reject ROMs known to be unsupported; warn about unknown ones."""
  if info.region == Region.JP:
    raise MalformedInputError(
        f"Region {info.region.value} rom not supported.  Please use NA rom.")
  if not info.known:
    log.warning(f"Rom with MD5 hash {info.md5_hash} is unrecognized; "
                f"continuing with structural checks only")
