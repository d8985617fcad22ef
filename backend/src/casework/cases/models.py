"""Pydantic models for the casework domain.

This module defines cases, interventions, tasks, professionals and the
records kept in a case file. Records are exchanged with the persistence
collaborator using camelCase keys; Python code uses the snake_case
attribute names.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# Enumerations
# =============================================================================


class CaseStatus(str, Enum):
    """Stage of a case in the intervention workflow."""

    PENDING_REFERRAL = "Derivación Pendiente"
    WELCOME = "Acogida"
    CO_DIAGNOSIS = "Co-Diagnóstico"
    SHARED_PLANNING = "Planificación Compartida"
    ACCOMPANIMENT = "Acompañamiento"
    FOLLOW_UP = "Seguimiento"
    CLOSED = "Cerrado"


class InterventionType(str, Enum):
    """Kind of scheduled or logged event."""

    # Case-scoped types
    HOME_VISIT = "Visita Domiciliaria"
    PHONE_CALL = "Llamada Telefónica"
    INTERVIEW = "Entrevista"
    WORKSHOP = "Taller"
    ADMINISTRATIVE = "Gestión Administrativa"
    COORDINATION = "Coordinación"
    PSYCHOLOGICAL_SUPPORT = "Apoyo Psicológico"
    GROUP_SESSION = "Sesión Grupal"
    ACCOMPANIMENT = "Acompañamiento Externo"
    OTHER = "Otro"

    # General types
    MEETING = "Reunión"
    ASSESSMENT_INTERVIEW = "Entrevista de Valoración"
    WRITE_REPORT = "Elaborar Memoria"
    WRITE_DOCUMENT = "Elaborar Documento"
    PARTY = "Fiesta"
    HOLIDAYS = "Vacaciones"
    TRIP = "Viaje"
    TRAINING_COURSE = "Curso de Formación"

    @property
    def is_general(self) -> bool:
        """Whether the type belongs to the general (case-less) category."""
        return self in GENERAL_INTERVENTION_TYPES


GENERAL_INTERVENTION_TYPES = frozenset(
    {
        InterventionType.MEETING,
        InterventionType.ASSESSMENT_INTERVIEW,
        InterventionType.WRITE_REPORT,
        InterventionType.WRITE_DOCUMENT,
        InterventionType.PARTY,
        InterventionType.HOLIDAYS,
        InterventionType.TRIP,
        InterventionType.TRAINING_COURSE,
    }
)

DEFAULT_GENERAL_TYPE = InterventionType.MEETING
DEFAULT_CASE_TYPE = InterventionType.INTERVIEW


class InterventionStatus(str, Enum):
    """Status of an intervention. Any transition is allowed."""

    PLANNED = "Planificada"
    COMPLETED = "Completada"
    CANCELLED = "Anulada"


class ProfessionalRole(str, Enum):
    """Role of a professional in the directory."""

    SOCIAL_WORKER = "Trabajador/a Social"
    EDIS_TECHNICIAN = "Técnico/a EDIS"


SystemRole = Literal["admin", "tecnico"]
NoteColor = Literal["yellow", "pink", "blue", "green"]


# =============================================================================
# Base
# =============================================================================


class RecordModel(BaseModel):
    """Base for records exchanged with the persistence collaborator."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_record(self) -> dict[str, Any]:
        """Dump as a camelCase JSON-compatible record."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# Directory and identity
# =============================================================================


class Professional(RecordModel):
    """A professional in the read-only directory."""

    id: str
    name: str
    role: ProfessionalRole
    ceas: str | None = Field(default=None, description="Organizational unit of the professional")
    phone: str | None = None
    email: str | None = None
    is_system_user: bool = False
    system_role: SystemRole | None = None


class CurrentUser(RecordModel):
    """Identity of the logged-in caseworker (a professional id)."""

    id: str
    name: str | None = None
    role: SystemRole = "tecnico"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# =============================================================================
# Case file records
# =============================================================================


class Task(RecordModel):
    """A to-do item, either attached to a case or general."""

    id: str
    text: str
    completed: bool = False
    created_by: str | None = None
    assigned_to: list[str] = Field(default_factory=list)


class Intervention(RecordModel):
    """A scheduled or logged event, optionally tied to a case.

    An intervention without ``id`` has not been created yet; the case
    manager assigns the id on create.
    """

    id: str | None = None
    case_id: str | None = None
    title: str
    intervention_type: InterventionType
    start: datetime
    end: datetime
    is_all_day: bool = False
    notes: str = ""
    status: InterventionStatus = InterventionStatus.PLANNED
    cancellation_time: datetime | None = None
    is_registered: bool = False
    created_by: str | None = None

    @field_validator("start", "end", "cancellation_time")
    @classmethod
    def _normalize_instant(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None

    @field_validator("case_id", mode="before")
    @classmethod
    def _empty_case_is_general(cls, value: Any) -> Any:
        return value or None

    @model_validator(mode="after")
    def _check_invariants(self) -> "Intervention":
        if self.is_registered and self.case_id is None:
            raise ValueError("only interventions tied to a case can be registered in the notebook")
        if self.end < self.start:
            raise ValueError("intervention end cannot be earlier than its start")
        return self

    @property
    def is_general(self) -> bool:
        return self.case_id is None

    @property
    def duration(self):
        return self.end - self.start


class InterventionRecord(RecordModel):
    """Answers captured by a workflow tool for one case."""

    id: str
    tool_id: str
    tool_name: str
    moment: str
    date: datetime
    answers: dict[str, Any] = Field(default_factory=dict)
    created_by: str | None = None


class FamilyMember(RecordModel):
    """A person in the family/relational grid of a case."""

    id: str
    name: str
    relationship: str = ""
    birth_date: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    notes: str = ""
    is_family: bool = True
    is_conflictual: bool = False
    case_id_link: str | None = None


class MyNote(RecordModel):
    """A private sticky note owned by the professional who wrote it."""

    id: str
    content: str
    color: NoteColor = "yellow"
    created_at: datetime = Field(default_factory=utcnow)
    created_by: str | None = None


# =============================================================================
# Case aggregate
# =============================================================================


class Case(RecordModel):
    """A tracked individual/family record.

    The aggregate the event editor mutates: the case file plus its
    interventions, tasks, notes and family grid.
    """

    id: str
    name: str = Field(..., min_length=1)
    nickname: str | None = None
    status: CaseStatus = CaseStatus.WELCOME
    last_update: datetime = Field(default_factory=utcnow)
    dni: str = ""
    phone: str = ""
    email: str = ""
    address: str | None = None
    profile_notes: str = ""
    interventions: list[Intervention] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    intervention_records: list[InterventionRecord] = Field(default_factory=list)
    family_grid: list[FamilyMember] = Field(default_factory=list)
    my_notes: list[MyNote] = Field(default_factory=list)
    professional_ids: list[str] = Field(default_factory=list)
    is_pinned: bool = False
    order_index: int = 0
    created_by: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _interventions_belong_to_case(cls, data: Any) -> Any:
        # Fill the owning case before nested interventions are validated
        if not isinstance(data, dict) or not isinstance(data.get("interventions"), list):
            return data
        case_id = data.get("id")
        interventions = []
        for item in data["interventions"]:
            if isinstance(item, Intervention):
                if item.case_id is None:
                    item = item.model_copy(update={"case_id": case_id})
            elif isinstance(item, dict) and not (item.get("caseId") or item.get("case_id")):
                item = {k: v for k, v in item.items() if k != "case_id"}
                item["caseId"] = case_id
            interventions.append(item)
        return {**data, "interventions": interventions}

    @property
    def display_name(self) -> str:
        """Name with nickname in parentheses, as shown in case lists."""
        if self.nickname:
            return f"{self.name} ({self.nickname})"
        return self.name

    @property
    def is_active(self) -> bool:
        return self.status != CaseStatus.CLOSED

    def notes_for(self, user_id: str) -> list[MyNote]:
        """Private notes owned by ``user_id``."""
        return [note for note in self.my_notes if note.created_by == user_id]
