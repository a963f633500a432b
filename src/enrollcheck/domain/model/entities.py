"""Domain views over store rows."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, ClassVar, cast

from enrollcheck.domain.model.enums import OWNER_KEY, EntityKind
from enrollcheck.domain.model.identifiers import (
    EnrollmentId,
    PersonalDataId,
    RecordId,
    StudentId,
)

if TYPE_CHECKING:
    from enrollcheck.domain.ports.store import Record

type RawPayload = Mapping[str, object]


def _as_mapping(value: object) -> dict[str, object]:
    if isinstance(value, Mapping):
        return dict(cast(Mapping[str, object], value))
    return {}


def _optional_id[T: (EnrollmentId, StudentId)](cls: type[T], raw: object) -> T | None:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    return cls.coerce(raw)


def _as_datetime(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(normalized)
        except ValueError:
            return None
    return None


@dataclass(slots=True, kw_only=True)
class Enrollment:
    """Raw submission as written by the intake process.

    The three payloads are loosely typed nested maps; nothing outside the field
    remapper should read their contents.
    """

    PAYLOAD_COLUMNS: ClassVar[dict[EntityKind, str]] = {
        EntityKind.PERSONAL_DATA: "confirmed_personal_data",
        EntityKind.ADDRESSES: "confirmed_address_data",
        EntityKind.SCHOOLING_DATA: "confirmed_schooling_data",
    }

    id: EnrollmentId
    personal: RawPayload = field(default_factory=dict[str, object])
    address: RawPayload = field(default_factory=dict[str, object])
    schooling: RawPayload = field(default_factory=dict[str, object])
    student_id: StudentId | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: Record) -> Enrollment:
        columns = cls.PAYLOAD_COLUMNS
        return cls(
            id=EnrollmentId.coerce(record["id"]),
            personal=_as_mapping(record.get(columns[EntityKind.PERSONAL_DATA])),
            address=_as_mapping(record.get(columns[EntityKind.ADDRESSES])),
            schooling=_as_mapping(record.get(columns[EntityKind.SCHOOLING_DATA])),
            student_id=_optional_id(StudentId, record.get(OWNER_KEY)),
            created_at=_as_datetime(record.get("created_at")),
            updated_at=_as_datetime(record.get("updated_at")),
        )

    def payload_for(self, kind: EntityKind) -> RawPayload:
        payloads: dict[EntityKind, RawPayload] = {
            EntityKind.PERSONAL_DATA: self.personal,
            EntityKind.ADDRESSES: self.address,
            EntityKind.SCHOOLING_DATA: self.schooling,
        }
        return payloads[kind]


@dataclass(frozen=True, slots=True)
class StudentIdentity:
    id: StudentId
    enrollment_id: EnrollmentId | None = None

    @classmethod
    def from_record(cls, record: Record) -> StudentIdentity:
        return cls(
            id=StudentId.coerce(record["id"]),
            enrollment_id=_optional_id(EnrollmentId, record.get("enrollment_id")),
        )


DOCUMENT_TYPE_LABELS: dict[str, str] = {
    "rg_frente": "RG - Frente",
    "rg_verso": "RG - Verso",
    "cpf": "CPF",
    "certidao_nascimento_casamento": "Certidão de Nascimento/Casamento",
    "comprovante_residencia": "Comprovante de Residência",
    "historico_medio": "Histórico Escolar - Ensino Médio",
    "historico_medio_verso": "Histórico Escolar - Verso",
    "historico_fundamental": "Histórico Escolar - Ensino Fundamental",
    "declaracao_escolaridade": "Declaração de Escolaridade",
    "foto": "Foto",
    "outros": "Outros Documentos",
}


@dataclass(frozen=True, slots=True, kw_only=True)
class DocumentRecord:
    id: str
    file_name: str
    storage_path: str | None
    document_type: str | None
    status: str | None
    enrollment_id: str
    uploaded_at: datetime | None = None

    @classmethod
    def from_record(cls, record: Record) -> DocumentRecord:
        def text(key: str) -> str | None:
            value = record.get(key)
            return None if value is None else str(value)

        return cls(
            id=str(record["id"]),
            file_name=text("file_name") or "",
            storage_path=text("storage_path"),
            document_type=text("document_type"),
            status=text("status"),
            enrollment_id=str(record.get("enrollment_id", "")),
            uploaded_at=_as_datetime(record.get("uploaded_at")),
        )

    @property
    def label(self) -> str:
        if self.document_type and self.document_type in DOCUMENT_TYPE_LABELS:
            return DOCUMENT_TYPE_LABELS[self.document_type]
        return self.file_name

    @property
    def is_processed(self) -> bool:
        return self.status == "processed"


ADDRESS_KEY = "addresses"
SCHOOLING_KEY = "schooling_data"
NESTED_KEYS: dict[str, EntityKind] = {
    ADDRESS_KEY: EntityKind.ADDRESSES,
    SCHOOLING_KEY: EntityKind.SCHOOLING_DATA,
}


@dataclass(slots=True, kw_only=True)
class Aggregate:
    """One editable student record assembled from the three owned kinds.

    ``core`` is the PersonalData row; ``address`` and ``schooling`` are the related rows
    (empty dicts when the student has none yet). ``owner`` is the StudentIdentity all
    three hang off.
    """

    core: dict[str, Any]
    address: dict[str, Any] = field(default_factory=dict[str, Any])
    schooling: dict[str, Any] = field(default_factory=dict[str, Any])
    owner: StudentId

    @property
    def core_id(self) -> PersonalDataId:
        return PersonalDataId.coerce(self.core["id"])

    def nested(self, kind: EntityKind) -> dict[str, Any]:
        if kind is EntityKind.ADDRESSES:
            return self.address
        if kind is EntityKind.SCHOOLING_DATA:
            return self.schooling
        raise ValueError(f"{kind} is not nested in the aggregate")

    def nested_id(self, kind: EntityKind) -> RecordId | None:
        raw = self.nested(kind).get("id")
        if raw is None or raw == "":
            return None
        return RecordId.coerce(raw)

    def as_record(self) -> dict[str, Any]:
        """Flat editor shape: core fields plus the related rows under their keys."""
        record = dict(self.core)
        record[OWNER_KEY] = self.owner.value
        record[ADDRESS_KEY] = dict(self.address)
        record[SCHOOLING_KEY] = dict(self.schooling)
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any], *, owner: StudentId | None = None) -> Aggregate:
        core = {key: value for key, value in record.items() if key not in NESTED_KEYS}
        resolved_owner = owner
        if resolved_owner is None:
            raw_owner = core.get(OWNER_KEY) or core.get("id")
            if raw_owner is None:
                raise ValueError("Editor record carries neither student_id nor id")
            resolved_owner = StudentId.coerce(raw_owner)
        return cls(
            core=core,
            address=_as_mapping(record.get(ADDRESS_KEY)),
            schooling=_as_mapping(record.get(SCHOOLING_KEY)),
            owner=resolved_owner,
        )
