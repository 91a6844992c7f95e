# rng/random_number_generator.py

import hashlib
import random
from typing import TypeVar, Sequence

T = TypeVar('T')

BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def SeedFromString(seed_string: str) -> int:
    """Derive a 64-bit integer seed from an arbitrary seed string.

    The first 8 bytes of the SHA-256 digest of the UTF-8 encoded string are
    read big endian. The empty string is a valid seed.
    """
    digest = hashlib.sha256(seed_string.encode('utf-8')).digest()
    return int.from_bytes(digest[:8], 'big')


def ToBase36(value: int) -> str:
    """Render a non-negative integer in lowercase base 36."""
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


class RandomNumberGenerator:
    """Deterministic RNG for one randomization run.

    This class wraps Python's random.Random so that every step of a run draws
    from the same explicit stream instead of the global random module. It is
    created once per run and never reseeded; placement retries keep drawing
    from the same stream, so the same seed always makes the same decisions.

    Usage:
        rng = RandomNumberGenerator.FromSeedString("alpha")
        value = rng.randint(1, 100)
        slot = rng.choice(reachable)
    """

    def __init__(self, seed: int):
        """Initialize RNG with a seed.

        Args:
            seed: Integer seed for deterministic random generation
        """
        self._seed = seed
        self._rng = random.Random(seed)
        self._initial_state = self._rng.getstate()

    @classmethod
    def FromSeedString(cls, seed_string: str) -> "RandomNumberGenerator":
        """Create an RNG seeded from the hash of a user supplied seed string."""
        return cls(SeedFromString(seed_string))

    @property
    def seed(self) -> int:
        """Get the seed used to initialize this RNG."""
        return self._seed

    @property
    def seed_name(self) -> str:
        """The seed in base 36, as shown in output filenames."""
        return ToBase36(self._seed)

    def reset(self) -> None:
        """Reset RNG to initial seeded state."""
        self._rng.setstate(self._initial_state)

    # ========================================================================
    # Random operation methods (mirror random.Random API)
    # ========================================================================

    def randint(self, a: int, b: int) -> int:
        """Return random integer in range [a, b], including both end points.

        Mirrors random.Random.randint() API.
        """
        return self._rng.randint(a, b)

    def choice(self, seq: Sequence[T]) -> T:
        """Choose a random element from a non-empty sequence.

        Mirrors random.Random.choice() API.
        """
        return self._rng.choice(seq)

    def random(self) -> float:
        """Return random float in the range [0.0, 1.0).

        Mirrors random.Random.random() API.
        """
        return self._rng.random()

    # ========================================================================
    # Randomizer-specific methods
    # ========================================================================

    def GetSalt(self) -> int:
        """Draw the 6-bit salt that starts the integrity record.

        Returns:
            Integer in the range [0x00, 0x3F]
        """
        return self.randint(0x00, 0x3F)
