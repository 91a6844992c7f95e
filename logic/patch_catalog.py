"""The fixed set of code patches applied to every randomized ROM.

Each patch is a listing of (CPU address, bytes) edits in a single bank
context. The listings are assembled HuC6280 code; the assembly is kept in the
comments next to each entry.
"""

from typing import Dict, List, Optional
import logging as log

from rom.memory_image import BankContext, MemoryImage
from rom.rom_config import RomLayout
from .errors import OverlappingPatchError
from .patch import Patch

# Bank 6 holds the password / save-state routine, bank 3 the chest handlers.
# Both run with their bank mapped into window 6 ($C000-$DFFF).
SAVE_STATE_BANK = BankContext(bank=6, window=6)
CHEST_HANDLER_BANK = BankContext(bank=3, window=6)

# Vanilla operands of the save-state loops (8-byte sections)
VANILLA_SUM_LAST = 0x06
VANILLA_XOR_LAST = 0x05
VANILLA_SALT_LAST = 0x06

# Patched operands (one 24-byte section)
SUM_LAST = 0x16
XOR_LAST = 0x15
SALT_LAST = 0x16

# Operand addresses read back by the checksum recalculator
SUM_LAST_OPERAND = RomLayout.CHECKSUM_LAST_OPERAND.cpu_address
XOR_LAST_OPERAND = RomLayout.XOR_LAST_OPERAND.cpu_address
SALT_LAST_OPERAND = RomLayout.SALT_LAST_OPERAND.cpu_address

NO_DOWNGRADE_HANDLER = 0xDF52


def _Word(value: int) -> List[int]:
  return [value & 0xFF, value >> 8]


def BuildExpandSaveStatePatch() -> Patch:
  """Make the password routine checksum, xor and salt one 24-byte section.

  The vanilla routine splits the 24 password characters into three 8-byte
  sections and runs the salt and checksum code once per section, pulling a
  fresh salt for each. After this patch there is a single section, one salt
  pull, and one call per direction.
  """
  patch = Patch("expand-save-state", SAVE_STATE_BANK)

  # Bypass second and third rng pulls for salt
  patch.AddDataFromHexString(0xD979, "62 EA EA", description="cla; nop; nop (second salt pull)")
  patch.AddDataFromHexString(0xD9BB, "62 EA EA", description="cla; nop; nop (third salt pull)")

  # Checksum and xor chain on encode
  patch.AddData(0xDA53, [0xA9, SUM_LAST], expected_original_data=[0xA9, VANILLA_SUM_LAST],
                description="lda #$16 (checksum loop end)")
  patch.AddData(0xDA6E, [0xA9, XOR_LAST], expected_original_data=[0xA9, VANILLA_XOR_LAST],
                description="lda #$15 (xor chain end)")

  # Checksum verify on decode
  patch.AddData(0xD8A5, [0x09, XOR_LAST, 0xAA, 0xA9, XOR_LAST],
                expected_original_data=[0x09, VANILLA_XOR_LAST, 0xAA, 0xA9, VANILLA_XOR_LAST],
                description="ora #$15; tax; lda #$15 (verify xor chain end)")
  patch.AddData(0xD8BB, [0xA9, SUM_LAST], expected_original_data=[0xA9, VANILLA_SUM_LAST],
                description="lda #$16 (verify checksum loop end)")

  # Salt the whole buffer
  patch.AddData(0xDA88, [0xA9, SALT_LAST], expected_original_data=[0xA9, VANILLA_SALT_LAST],
                description="lda #$16 (salt loop end)")

  # Decode: call the salt and verify functions once
  #   cla / jsr $d8a2 / bcc $d796 / bra $d798
  patch.AddDataFromHexString(0xD778, "62 20 A2 D8 90 18 80 18",
                             description="single decode pass")

  # Encode: call the salt and checksum functions once
  #   cla / jsr $da81 / bra $da1b
  patch.AddDataFromHexString(0xDA03, "62 20 81 DA 80 12", description="single encode pass")
  return patch


def BuildNoDowngradePatch() -> Patch:
  """Keep the better of the carried and the found sword, armor or shield.

  The three equipment entries of the chest handler table point at a new
  handler. It compares the chest argument with the stored grade, keeps the
  greater, and copies the winner back to the chest argument ($35D1) that the
  rest of the chest code uses to pick the message and sprite.
  """
  patch = Patch("no-downgrade", CHEST_HANDLER_BANK)

  # Sword, armor and shield handlers
  patch.AddData(0xDDF1, _Word(NO_DOWNGRADE_HANDLER) * 3,
                description="dw handle_upgradeable_item x3")

  patch.AddData(NO_DOWNGRADE_HANDLER, [
      0xAE, 0xD0, 0x35,  # ldx $35d0      chest item id
      0xAD, 0xD1, 0x35,  # lda $35d1      chest arg
      0xDD, 0x44, 0x2E,  # cmp $2e44,x
      0x90, 0x03,        # bcc skip_write
      0x9D, 0x44, 0x2E,  # sta $2e44,x
      0xBD, 0x44, 0x2E,  # skip_write: lda $2e44,x
      0x8D, 0xD1, 0x35,  # sta $35d1
      0x4C, 0x79, 0xDE,  # jmp $de79
  ], description="handle_upgradeable_item")
  return patch


class PatchCatalog:
  """Ordered, non-overlapping list of patches.

  Overlaps are detected when the catalog is built, never while patching a ROM.
  """

  def __init__(self, patches: List[Patch]) -> None:
    self.patches = list(patches)
    self._CheckOverlaps()

  def _CheckOverlaps(self) -> None:
    owners: Dict[int, str] = {}
    for patch in self.patches:
      patch.CheckOverlaps()
      for start, end, addr in patch.GetPhysicalRanges():
        for physical in range(start, end):
          if physical in owners:
            raise OverlappingPatchError(
                f"Patch '{patch.name}' entry 0x{addr:04X} overlaps '{owners[physical]}' "
                f"at physical 0x{physical:X}")
          owners[physical] = patch.name

  def __iter__(self):
    return iter(self.patches)

  def __len__(self) -> int:
    return len(self.patches)

  @property
  def names(self) -> List[str]:
    return [patch.name for patch in self.patches]

  def Get(self, name: str) -> Optional[Patch]:
    for patch in self.patches:
      if patch.name == name:
        return patch
    return None

  def apply_all(self, image: MemoryImage) -> None:
    """Apply every patch in catalog order.

    All patches are validated before the first byte is written, so a
    MalformedInputError leaves the image untouched.
    """
    for patch in self.patches:
      patch.Validate(image)
    for patch in self.patches:
      log.debug(f"Applying patch '{patch.name}' ({len(patch.GetAddresses())} entries)")
      patch.Apply(image)

  def GetHashCode(self) -> bytes:
    """Four 6-bit values identifying the applied code changes."""
    combined = Patch("catalog")
    for patch in self.patches:
      for start, end, addr in patch.GetPhysicalRanges():
        combined.AddData(start, patch.GetData(addr))
    return combined.GetHashCode()

  def describe(self) -> List[str]:
    lines = []
    for patch in self.patches:
      bank = patch.bank
      where = f"bank 0x{bank.bank:02X} in window {bank.window}" if bank else "physical"
      lines.append(f"{patch.name} ({where})")
      for entry in patch.GetEntries():
        physical = patch.Translate(entry.address)
        lines.append(
            f"  ${entry.address:04X} -> 0x{physical:05X}  {entry.data.hex(' ').upper()}"
            + (f"  ; {entry.description}" if entry.description else ""))
    return lines


def BuildCatalog(no_downgrade: bool = True) -> PatchCatalog:
  """Catalog for a run. The save-state patch is always applied."""
  patches = [BuildExpandSaveStatePatch()]
  if no_downgrade:
    patches.append(BuildNoDowngradePatch())
  return PatchCatalog(patches)

