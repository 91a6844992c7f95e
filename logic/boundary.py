"""Single entry point shared by the command line and the web front end.

randomize() never raises for bad input or an unlucky seed. It returns a
RandomizeResult that either carries the finished ROM or names the kind of
failure. A partially randomized ROM is never returned.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging as log

from flags import Flags
from .errors import GenerationFailedError, InvariantViolation, MalformedInputError
from .randomizer import NeutopiaRandomizer


class ErrorKind(Enum):
  MALFORMED_INPUT = "malformed-input"
  GENERATION_FAILED = "generation-failed"
  INTERNAL = "internal"


@dataclass
class RandomizeResult:
  rom: Optional[bytes] = None
  filename: Optional[str] = None
  error_kind: Optional[ErrorKind] = None
  message: str = ""
  spoiler: Optional[list] = None

  @property
  def ok(self) -> bool:
    return self.error_kind is None


def randomize(input_rom: bytes, seed: str, flags: Optional[Flags] = None) -> RandomizeResult:
  """Randomize one ROM image.

  Args:
      input_rom: Headered or headerless cartridge image
      seed: Any string; the same string always produces the same ROM
      flags: Run options, defaults when None

  Returns:
      RandomizeResult with rom and filename set on success, or error_kind and
      message set on failure
  """
  try:
    randomizer = NeutopiaRandomizer(bytes(input_rom), seed, flags)
    rom = randomizer.Run()
  except MalformedInputError as e:
    log.error(f"Malformed input: {e}")
    return RandomizeResult(error_kind=ErrorKind.MALFORMED_INPUT, message=str(e))
  except GenerationFailedError as e:
    log.error(f"Generation failed after {e.attempts} attempts: {e}")
    return RandomizeResult(error_kind=ErrorKind.GENERATION_FAILED, message=str(e))
  except InvariantViolation as e:
    log.exception("Internal error while randomizing")
    return RandomizeResult(error_kind=ErrorKind.INTERNAL,
                           message=f"Internal error: {e}")

  filename = randomizer.GetFilename()
  log.info(f"Randomized ROM ready: {filename}")
  return RandomizeResult(rom=rom, filename=filename, spoiler=randomizer.GetSpoiler(),
                         message="OK")
