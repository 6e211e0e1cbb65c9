"""Project enums."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class _EnumMixin(StrEnum):
    """Shared conversion helpers for user-facing enums."""

    @classmethod
    def from_str(cls, value: str) -> _EnumMixin:
        """Parse enum from string.

        Args:
            value: Raw string value.

        Raises:
            ValueError: If the value is not supported.

        Returns:
            _EnumMixin: Parsed enum value.
        """
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            supported = ", ".join(member.value for member in cls)
            message = f"Unsupported {cls.__name__} value '{value}'. Expected one of: {supported}"
            raise ValueError(message) from exc

    def to_str(self) -> str:
        """Return string representation.

        Returns:
            str: Enum string value.
        """
        return self.value


class InsertPosition(_EnumMixin):
    """Where blank pages go."""

    BEGINNING = "beginning"
    END = "end"
    AFTER = "after"


class ProbeStrategy(_EnumMixin):
    """How the size partitioner grows a candidate group."""

    LINEAR = "linear"
    BISECT = "bisect"


class SignatureKind(_EnumMixin):
    """Signature payload type."""

    DRAW = "draw"
    TYPE = "type"
    IMAGE = "image"


class StandardFont(_EnumMixin):
    """Base-14 fonts available to typed signatures."""

    HELVETICA = "helvetica"
    TIMES = "times"
    COURIER = "courier"


class Rotation(IntEnum):
    """Quarter-turn rotations accepted by the rotate tool."""

    NONE = 0
    QUARTER = 90
    HALF = 180
    THREE_QUARTERS = 270

    @classmethod
    def from_degrees(cls, value: int) -> Rotation:
        """Parse a rotation angle.

        Args:
            value: Angle in degrees.

        Raises:
            ValueError: If the angle is not one of 0, 90, 180 or 270.

        Returns:
            Rotation: Parsed rotation.
        """
        try:
            return cls(value)
        except ValueError as exc:
            message = f"Invalid rotation angle: {value}. Must be 0, 90, 180, or 270."
            raise ValueError(message) from exc

    def compose(self, other: int) -> Rotation:
        """Return this rotation followed by `other` degrees, modulo 360."""
        return Rotation.from_degrees((int(self) + int(other)) % 360)
