from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import hashlib
import logging

from rom.memory_image import BankContext, MemoryImage, translate_range
from .errors import MalformedInputError, OutOfBoundsError, OverlappingPatchError


@dataclass(frozen=True)
class PatchEntry:
  """One contiguous edit. Immutable once added to a Patch."""
  address: int
  data: bytes
  expected_data: Optional[bytes] = None
  description: Optional[str] = None


def _FormatBytes(data) -> str:
  return ' '.join(f'{b:02X}' for b in data)


class Patch:
  """A set of byte edits that can be added to as we build it.

  Addresses are CPU addresses resolved through the patch's bank context. A
  patch without a bank context addresses physical ROM offsets directly, which
  is what data writes such as chest tables use.
  """

  def __init__(self, name: str = "", bank: Optional[BankContext] = None) -> None:
    self.name = name
    self.bank = bank
    self._data: Dict[int, bytes] = {}
    self._expected_data: Dict[int, bytes] = {}
    self._descriptions: Dict[int, str] = {}

  def GetAddresses(self) -> List[int]:
    """Returns a List of all addresses in the patch."""
    return list(self._data.keys())

  def GetData(self, addr: int) -> List[int]:
    """Get data in the patch for this address.
        :param addr: Address for the start of the data.
        :type addr: int
        :rtype: list[int]
        """
    return list(self._data[addr])

  def GetExpectedData(self, addr: int) -> List[int] | None:
    """Get expected original data for this address.
       If the address has no expected data, returns None.
        :param addr: Address for the start of the data.
        :type addr: int
        :rtype: list[int]|None
        """
    if addr not in self._expected_data:
      return None
    return list(self._expected_data[addr])

  def GetDescription(self, addr: int) -> str | None:
    return self._descriptions.get(addr, None)

  def GetEntries(self) -> List[PatchEntry]:
    """Entries in the order they were added."""
    return [
        PatchEntry(addr, self._data[addr], self._expected_data.get(addr),
                   self._descriptions.get(addr)) for addr in self._data
    ]

  def AddData(self, addr: int, data: List[int], expected_original_data: List[int] | None = None, description: str | None = None) -> None:
    """Add data to the patch.
        :param addr: Address for the start of the data.
        :type addr: int
        :param data: Patch data as raw bytes.
        :type data: bytearray|bytes|list[int]
        :param expected_original_data: Optional expected data at this address before patching.
        :type expected_original_data: bytearray|bytes|list[int]|None
        :param description: Optional human-readable description of this patch.
        :type description: str|None
        """
    data = bytes(data)
    if expected_original_data is not None and len(expected_original_data) != len(data):
      raise ValueError(
          f"Expected data at 0x{addr:04X} is {len(expected_original_data)} bytes, "
          f"patch data is {len(data)} bytes")
    self._data[addr] = data
    if expected_original_data is not None:
      self._expected_data[addr] = bytes(expected_original_data)
    if description is not None:
      self._descriptions[addr] = description

  def AddDataFromHexString(self, addr: int, hex_string: str, expected_original_data: List[int] | str | None = None, description: str | None = None) -> None:
    """Add data to the patch from a hex string.

    :param addr: Address for the start of the data.
    :type addr: int
    :param hex_string: Hex string (spaces optional), e.g. "62 EA EA" or "62EAEA"
    :type hex_string: str
    :param expected_original_data: Optional expected data at this address before patching.
                                     Can be a hex string or list of bytes.
    :type expected_original_data: str|list[int]|None
    :param description: Optional human-readable description of this patch.
    :type description: str|None
    """
    data = bytes.fromhex(''.join(hex_string.split()))

    expected_bytes = None
    if expected_original_data is not None:
      if isinstance(expected_original_data, str):
        expected_bytes = list(bytes.fromhex(''.join(expected_original_data.split())))
      else:
        expected_bytes = expected_original_data

    self.AddData(addr, data, expected_original_data=expected_bytes, description=description)

  def Translate(self, addr: int) -> int:
    """Physical offset of an entry's first byte.

    Raises BankAmbiguousError if the entry leaves the patch's window.
    """
    length = len(self._data[addr])
    if self.bank is None:
      return addr
    return translate_range(addr, length, self.bank)

  def GetPhysicalRanges(self) -> List[Tuple[int, int, int]]:
    """(start, end, address) for every entry, end exclusive."""
    ranges = []
    for addr in self.GetAddresses():
      start = self.Translate(addr)
      ranges.append((start, start + len(self._data[addr]), addr))
    return ranges

  def CheckOverlaps(self) -> None:
    """Raise OverlappingPatchError if two entries share any physical byte."""
    ranges = sorted(self.GetPhysicalRanges())
    for (start_a, end_a, addr_a), (start_b, _, addr_b) in zip(ranges, ranges[1:]):
      if start_b < end_a:
        raise OverlappingPatchError(
            f"Patch '{self.name}': entry 0x{addr_a:04X} overlaps entry 0x{addr_b:04X} "
            f"at physical 0x{start_b:X}")

  def _ReadCurrent(self, image: MemoryImage, addr: int, length: int) -> List[int]:
    if self.bank:
      return list(image.read(addr, length, self.bank))
    return list(image.read_physical(addr, length))

  def Validate(self, image: MemoryImage, logger=None) -> None:
    """Check that every entry targets the expected original bytes.

    :param image: The image the patch will be applied to
    :type image: MemoryImage
    :param logger: Optional logger for warnings (defaults to logging module)
    :type logger: logging.Logger|None
    :raises MalformedInputError: If an entry is out of range, already applied,
        or the bytes it replaces are not the expected original bytes
    """
    log = logger or logging

    for address in self.GetAddresses():
      patch_data = self.GetData(address)
      expected_data = self.GetExpectedData(address)
      description = self.GetDescription(address)
      desc_str = f" ({description})" if description else ""

      try:
        actual_data = self._ReadCurrent(image, address, len(patch_data))
      except OutOfBoundsError as e:
        raise MalformedInputError(
            f"Patch '{self.name}' target 0x{address:04X}{desc_str} is outside the ROM") from e

      if actual_data == patch_data and expected_data != patch_data:
        raise MalformedInputError(
            f"Patch '{self.name}' at 0x{address:04X}{desc_str} is already applied; "
            f"the ROM appears to be randomized already")

      if expected_data is None or actual_data == expected_data:
        continue

      log.warning(
          f"Expected data mismatch at address 0x{address:04X}{desc_str}:\n"
          f"  Expected: {_FormatBytes(expected_data)}\n"
          f"  Actual:   {_FormatBytes(actual_data)}\n"
          f"  Patching with: {_FormatBytes(patch_data)}"
      )
      raise MalformedInputError(
          f"Patch '{self.name}' at 0x{address:04X}{desc_str} does not match the expected "
          f"original ROM")

  def Apply(self, image: MemoryImage, logger=None) -> None:
    """Apply this patch to a memory image with validation.

    Every entry is validated before any byte is written, so a failing patch
    leaves the image untouched.

    :param image: The image to patch (modified in-place)
    :type image: MemoryImage
    :param logger: Optional logger for warnings (defaults to logging module)
    :type logger: logging.Logger|None
    """
    self.Validate(image, logger)
    for address in self.GetAddresses():
      if self.bank is None:
        image.write_physical(address, self._data[address])
      else:
        image.write(address, self._data[address], self.bank)

  def GetHashCode(self) -> bytes:
    """Four 6-bit values that identify the contents of this patch."""
    hash_string = hashlib.sha224()
    # Sort addresses to ensure deterministic hash generation
    for address in sorted(self._data.keys()):
      hash_string.update(str(address).encode('utf-8'))
      hash_string.update(self._data[address])
    return bytes(b & 0x3F for b in hash_string.digest()[0:4])
