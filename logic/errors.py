"""Error taxonomy for the randomizer core.

User-facing conditions (a bad input file, a seed that could not be solved) are
separate from invariant violations, which only happen when the fixed patch
catalog or the address translation code is wrong.
"""


class RandomizerError(Exception):
  """Base class for every error raised by the randomizer core."""


class MalformedInputError(RandomizerError):
  """The supplied image is not the expected original ROM."""


class UnsolvableError(RandomizerError):
  """One placement attempt ran out of reachable slots or eligible items."""


class GenerationFailedError(RandomizerError):
  """Placement could not be solved within the retry budget."""

  def __init__(self, message: str, attempts: int = 0) -> None:
    super().__init__(message)
    self.attempts = attempts


class InvariantViolation(RandomizerError):
  """A programming error in the catalog or translation layer."""


class OutOfBoundsError(InvariantViolation):
  """An address resolved outside of the ROM buffer or outside ROM space."""


class BankAmbiguousError(InvariantViolation):
  """A banked CPU address was used without a matching bank context."""


class OverlappingPatchError(InvariantViolation):
  """Two patch entries write to the same physical bytes."""
