"""Flags class for managing flag values with validation and serialization."""

import logging
from typing import Any, Dict, List, Tuple

from .definitions import BooleanFlag, EnumFlag, IntegerFlag
from .registry import FlagRegistry


def _Abbreviate(key: str) -> str:
    """First letter of every word of a flag key: no_downgrade -> nd."""
    return "".join(word[0] for word in key.split("_") if word)


class Flags:
    """Container for flag values with validation and serialization."""

    def __init__(self):
        # Initialize all flags with their default values
        self._definitions = FlagRegistry.get_all_flags()
        self._values: Dict[str, Any] = {
            key: defn.get_default()
            for key, defn in self._definitions.items()
        }

    def __getattr__(self, key: str) -> Any:
        """Access flags as attributes: flags.placement"""
        if key.startswith('_'):
            # Allow normal attribute access for private attributes
            return object.__getattribute__(self, key)

        if key in self._values:
            return self._values[key]

        raise AttributeError(f"Flag '{key}' not found")

    def __setattr__(self, key: str, value: Any):
        """Set flags as attributes: flags.no_downgrade = False"""
        if key.startswith('_'):
            object.__setattr__(self, key, value)
            return

        self.set(key, value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Flags):
            return NotImplemented
        return self._values == other._values

    def get(self, key: str, default: Any = None) -> Any:
        """Get flag value with optional default."""
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set flag value with validation."""
        if key not in self._definitions:
            raise KeyError(f"Flag '{key}' not found.")

        definition = self._definitions[key]
        validated_value = definition.validate(value)
        self._values[key] = validated_value

    def set_from_string(self, key: str, text: str) -> None:
        """Set a flag from its string form (command line or form field)."""
        if key not in self._definitions:
            raise KeyError(f"Flag '{key}' not found.")
        self._values[key] = self._definitions[key].parse(text)

    def is_default(self) -> bool:
        """True when every flag that affects the file string has its default value."""
        return all(
            value == self._definitions[key].get_default()
            for key, value in self._values.items()
            if self._definitions[key].affects_file_string
        )

    def validate(self) -> Tuple[bool, List[str]]:
        """Check flag combinations.

        Returns:
            (is_valid, errors)
        """
        errors = []
        if self._values['placement'] == 'none' and self._values['max_attempts'] != \
                self._definitions['max_attempts'].get_default():
            errors.append("'max_attempts' has no effect when placement is 'none'.")
        return (not errors, errors)

    def to_dict(self, include_non_file_string: bool = True) -> Dict[str, Any]:
        """
        Export flags to dictionary.

        Args:
            include_non_file_string: If False, exclude flags that don't affect file string
        """
        result = {}
        for key, value in self._values.items():
            definition = self._definitions[key]

            if not include_non_file_string and not definition.affects_file_string:
                continue

            result[key] = value

        return result

    def from_dict(self, data: Dict[str, Any]) -> None:
        """Import flags from dictionary."""
        for key, value in data.items():
            try:
                self.set(key, value)
            except (KeyError, TypeError, ValueError) as e:
                # Log warning but continue
                logging.warning(f"Failed to set flag '{key}': {e}")

    def to_file_string(self) -> str:
        """
        Generate a compact string representation for filenames.
        Only includes flags that affect the file string.
        """
        parts = []
        for key, value in sorted(self._values.items()):
            definition = self._definitions[key]

            if not definition.affects_file_string:
                continue

            # Skip flags at default value to keep string compact
            if value == definition.get_default():
                continue

            abbreviation = _Abbreviate(key)
            if isinstance(definition, BooleanFlag):
                parts.append(abbreviation if value else f"{abbreviation}0")
            elif isinstance(definition, EnumFlag):
                parts.append(f"{abbreviation}{value[0:3]}")
            elif isinstance(definition, IntegerFlag):
                parts.append(f"{abbreviation}{value}")

        return "_".join(parts) if parts else "default"
