"""Host-side copy of the save-state (password) checksum routine.

The game protects its 24-character password with a salt, a forward xor chain
and a 6-bit checksum. The expand-save-state patch widens that routine from
three 8-byte sections to one 24-byte section. The randomizer stores its own
integrity record in the ROM footer, encoded with exactly the arithmetic the
patched routine uses, so the two must change together.

Record layout (24 six-bit values, before encoding):
    0       salt drawn from the run's RNG
    1-4     patch catalog hash code
    5-21    per-area chest table digests (17 areas)
    22      placement mode
    23      checksum
"""

from dataclasses import dataclass
from typing import List, Optional
import logging as log

from rom.chest_table import ChestTables
from rom.memory_image import MemoryImage
from rom.rom_config import CHEST_TABLE_COUNT, FOOTER_MAGIC, RomLayout
from .errors import InvariantViolation
from .patch_catalog import (SALT_LAST_OPERAND, SAVE_STATE_BANK, SUM_LAST_OPERAND,
                            XOR_LAST_OPERAND)

SALT_TABLE = [
    0x1f, 0x3a, 0x06, 0x3f, 0x21, 0x3f, 0x30, 0x37, 0x1a, 0x01, 0x20, 0x3f, 0x35, 0x03, 0x29,
    0x2b, 0x3e, 0x3f, 0x01, 0x00, 0x03, 0x2c, 0x37, 0x07, 0x3d, 0x11, 0x1e, 0x34, 0x3f, 0x19,
    0x30, 0x28, 0x37, 0x37, 0x3c, 0x0d, 0x1e, 0x31, 0x0c, 0x05, 0x35, 0x11, 0x3f, 0x24, 0x3f,
    0x3b, 0x3f, 0x26, 0x3b, 0x33, 0x3c, 0x39, 0x2e, 0x3e, 0x31, 0x08, 0x38, 0x1f, 0x00, 0x37,
    0x19, 0x24, 0x12, 0x00,
]

RECORD_SIZE = 24
PASSWORD_LENGTH = 24
VANILLA_SECTION_SIZE = 8

# Record field positions
SALT_INDEX = 0
HASH_CODE_INDEX = 1
AREA_DIGEST_INDEX = 5
MODE_INDEX = AREA_DIGEST_INDEX + CHEST_TABLE_COUNT


class ChecksumError(ValueError):
  """A decoded section failed its checksum."""


def SaltByte(i: int) -> int:
  return SALT_TABLE[i & 0x3F]


@dataclass(frozen=True)
class SaveStateWindow:
  """Loop bounds of the save-state routine, as read from its operands.

  Attributes:
      sum_last: Last index summed into the checksum
      xor_last: Last index of the forward xor chain
      salt_last: Salting covers indices 1..salt_last + 1
  """
  sum_last: int
  xor_last: int
  salt_last: int

  @property
  def size(self) -> int:
    """Number of values in one section, checksum included."""
    return self.sum_last + 2

  def IsConsistent(self) -> bool:
    return self.xor_last == self.sum_last - 1 and self.salt_last == self.sum_last

  @classmethod
  def Vanilla(cls) -> "SaveStateWindow":
    return cls(VANILLA_SECTION_SIZE - 2, VANILLA_SECTION_SIZE - 3, VANILLA_SECTION_SIZE - 2)

  @classmethod
  def FromImage(cls, image: MemoryImage) -> "SaveStateWindow":
    """Read the loop bounds out of the (patched) routine."""
    return cls(
        sum_last=image.read(SUM_LAST_OPERAND, 1, SAVE_STATE_BANK)[0],
        xor_last=image.read(XOR_LAST_OPERAND, 1, SAVE_STATE_BANK)[0],
        salt_last=image.read(SALT_LAST_OPERAND, 1, SAVE_STATE_BANK)[0],
    )


def CalculateChecksum(data: List[int], window: SaveStateWindow) -> int:
  return sum(value & 0x3F for value in data[:window.sum_last + 1]) & 0x3F


def EncodeSection(data: List[int], window: SaveStateWindow) -> List[int]:
  """Encode one section the way the patched encode path does.

  data holds window.size - 1 payload values; the checksum is appended.
  """
  if len(data) != window.size - 1:
    raise ValueError(f"Section payload must be {window.size - 1} values, got {len(data)}")
  section = [value & 0x3F for value in data] + [0]
  section[window.sum_last + 1] = CalculateChecksum(section, window)

  for i in range(window.xor_last + 1):
    section[i + 1] ^= section[i]

  salt = section[0]
  for i in range(1, window.salt_last + 2):
    section[i] ^= SaltByte(salt)
    salt = (salt + 1) & 0x3F
  return section


def DecodeSection(section: List[int], window: SaveStateWindow) -> List[int]:
  """Inverse of EncodeSection. Raises ChecksumError on a bad checksum."""
  if len(section) != window.size:
    raise ValueError(f"Section must be {window.size} values, got {len(section)}")
  data = list(section)

  salt = data[0]
  for i in range(1, window.salt_last + 2):
    data[i] ^= SaltByte(salt)
    salt = (salt + 1) & 0x3F

  for i in reversed(range(window.xor_last + 1)):
    data[i + 1] ^= data[i]

  checksum = CalculateChecksum(data, window)
  expected = data[window.sum_last + 1] & 0x3F
  if checksum != expected:
    raise ChecksumError(f"checksum {checksum:02x} does not match the expected {expected:02x}")
  return data


# ============================================================================
# Password characters
# ============================================================================

def DecodePasswordChar(c: str) -> int:
  if 'A' <= c <= 'Z':
    return ord(c) - ord('A')
  if '1' <= c <= '9':
    return ord(c) - ord('1') + 26
  if 'a' <= c <= 'z':
    return ord(c) - ord('a') + 35
  if c in '#$%':
    return '#$%'.index(c) + 61
  raise ValueError(f"invalid character {c!r}")


def EncodePasswordChar(value: int) -> str:
  if not 0 <= value <= 0x3F:
    raise ValueError(f"password value {value} is not 6-bit")
  if value < 26:
    return chr(ord('A') + value)
  if value < 35:
    return chr(ord('1') + value - 26)
  if value < 61:
    return chr(ord('a') + value - 35)
  return '#$%'[value - 61]


def DecodePassword(password: str, window: Optional[SaveStateWindow] = None) -> List[int]:
  """Decode a 24-character password into its 24 values.

  With the default (patched) window the password is one section. Passing
  SaveStateWindow.Vanilla() decodes the three 8-byte sections of an
  unpatched game.
  """
  window = window or SaveStateWindow(0x16, 0x15, 0x16)
  if len(password) != PASSWORD_LENGTH:
    raise ValueError(f"Password is not {PASSWORD_LENGTH} characters in length.")
  values = [DecodePasswordChar(c) for c in password]

  decoded = []
  for start in range(0, PASSWORD_LENGTH, window.size):
    decoded.extend(DecodeSection(values[start:start + window.size], window))
  return decoded


def EncodePassword(data: List[int], window: Optional[SaveStateWindow] = None) -> str:
  """Inverse of DecodePassword; data holds the payload of every section."""
  window = window or SaveStateWindow(0x16, 0x15, 0x16)
  payload = window.size - 1
  sections = PASSWORD_LENGTH // window.size
  if len(data) != payload * sections:
    raise ValueError(f"Password payload must be {payload * sections} values, got {len(data)}")
  values = []
  for n in range(sections):
    values.extend(EncodeSection(data[n * payload:(n + 1) * payload], window))
  return "".join(EncodePasswordChar(value) for value in values)


# ============================================================================
# Randomizer integrity record
# ============================================================================

class ChecksumRecalculator:
  """Writes and verifies the integrity record in the ROM footer."""

  def __init__(self, image: MemoryImage) -> None:
    self.image = image

  def GetWindow(self) -> SaveStateWindow:
    """The patched routine's span. Anything else cannot hold the record."""
    window = SaveStateWindow.FromImage(self.image)
    if not window.IsConsistent() or window.size != RECORD_SIZE:
      raise InvariantViolation(
          f"Save-state window {window} does not cover a {RECORD_SIZE}-value record; "
          f"the expand-save-state patch has not been applied")
    return window

  def BuildRecord(self, salt: int, hash_code: bytes, mode: int) -> List[int]:
    """Payload of the record (everything but the checksum)."""
    chests = ChestTables(self.image)
    record = [salt & 0x3F]
    record.extend(b & 0x3F for b in hash_code[:4])
    record.extend(chests.get_area_digest(area) for area in range(CHEST_TABLE_COUNT))
    record.append(mode & 0x3F)
    return record

  def recompute(self, salt: int, hash_code: bytes, mode: int) -> bytes:
    """Encode the record for the current image and store it in the footer."""
    window = self.GetWindow()
    encoded = EncodeSection(self.BuildRecord(salt, hash_code, mode), window)
    footer = FOOTER_MAGIC + bytes(encoded)
    self.image.write_physical(RomLayout.RANDOMIZER_FOOTER.physical_offset, footer)
    log.debug(f"Wrote integrity record {bytes(encoded).hex()} "
              f"at 0x{RomLayout.RANDOMIZER_FOOTER.physical_offset:X}")
    return footer

  def ReadRecord(self) -> Optional[List[int]]:
    """Decode the stored record, or None if there is none or it is corrupt."""
    footer = self.image.read_physical(RomLayout.RANDOMIZER_FOOTER.physical_offset,
                                      len(FOOTER_MAGIC) + RECORD_SIZE)
    if footer[:len(FOOTER_MAGIC)] != FOOTER_MAGIC:
      return None
    try:
      return DecodeSection(list(footer[len(FOOTER_MAGIC):]), self.GetWindow())
    except ChecksumError as e:
      log.warning(f"Integrity record failed its checksum: {e}")
      return None

  def verify(self) -> bool:
    """Re-derive the record from the image and compare it with the footer."""
    record = self.ReadRecord()
    if record is None:
      return False
    expected = self.BuildRecord(record[SALT_INDEX],
                                bytes(record[HASH_CODE_INDEX:AREA_DIGEST_INDEX]),
                                record[MODE_INDEX])
    return record[:RECORD_SIZE - 1] == expected
