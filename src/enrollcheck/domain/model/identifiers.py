"""Tagged identifiers.

Store rows are keyed by opaque strings, but the same string may mean different things
depending on where it came from. Each id kind gets its own type so that a StudentId can
never be handed to a lookup expecting a PersonalDataId by accident.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self


@dataclass(frozen=True, slots=True)
class _TaggedId:
    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValueError(f"{type(self).__name__} requires a non-blank string")

    @classmethod
    def coerce(cls, raw: object) -> Self:
        """Build an id from a raw store value (ints and UUIDs are stringified)."""
        return cls(str(raw).strip())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class EnrollmentId(_TaggedId):
    """Identifier of a raw enrollment submission (also the usual document-set key)."""


@dataclass(frozen=True, slots=True)
class StudentId(_TaggedId):
    """Identifier of the canonical StudentIdentity; the owner reference of data rows."""


@dataclass(frozen=True, slots=True)
class PersonalDataId(_TaggedId):
    """Identifier of a PersonalData row."""


@dataclass(frozen=True, slots=True)
class RecordId(_TaggedId):
    """Identifier of any owned row (address, schooling, ...) when the kind is implied."""


@dataclass(frozen=True, slots=True)
class SeedId(_TaggedId):
    """Ambiguous entry-point id: a PersonalData id or a StudentIdentity id."""
