"""Event editor state machine.

The editor turns caseworker input into a valid Intervention. It keeps
the draft temporally consistent (moving the start moves the end with
it), round-trips instants through local date and time inputs, gates the
removal of notebook registration behind a confirmation, and reports
field-scoped validation errors until the draft can be saved.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any

from ..config import get_settings
from ..logging import log_persistence_error
from .confirmation import ConfirmationGate
from .errors import PersistenceError, ValidationError
from .models import (
    DEFAULT_CASE_TYPE,
    DEFAULT_GENERAL_TYPE,
    Intervention,
    InterventionStatus,
    InterventionType,
    RecordModel,
    as_utc,
    utcnow,
)
from .persistence import CasePersistence
from .workflow import next_cancellation_time

logger = logging.getLogger(__name__)

TITLE_REQUIRED = "El título es obligatorio."
END_BEFORE_START = "La fecha de fin no puede ser anterior a la de inicio."
REGISTRATION_NEEDS_CASE = (
    "Solo se pueden registrar en el cuaderno las intervenciones asociadas a un caso."
)
CASE_NOT_FOUND = "El caso seleccionado no existe."

UNREGISTER_TITLE = "Quitar del Cuaderno de Campo"
UNREGISTER_MESSAGE = (
    "Al desmarcar esta opción, la intervención dejará de aparecer en el "
    '"Cuaderno de Campo", pero seguirá existiendo en el calendario. '
    "¿Quieres continuar?"
)
DELETE_TITLE = "Eliminar Intervención"
DELETE_MESSAGE = (
    "¿Estás seguro de que quieres eliminar esta intervención? "
    "Esta acción es irreversible."
)

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


class InterventionDraft(RecordModel):
    """Mutable editor state. Unlike Intervention, it may be invalid."""

    id: str | None = None
    case_id: str | None = None
    title: str = ""
    intervention_type: InterventionType = DEFAULT_CASE_TYPE
    start: datetime | None = None
    end: datetime | None = None
    is_all_day: bool = False
    notes: str = ""
    status: InterventionStatus = InterventionStatus.PLANNED
    cancellation_time: datetime | None = None
    is_registered: bool = False
    created_by: str | None = None


def _seed_values(seed: Intervention | Mapping[str, Any] | None) -> dict[str, Any]:
    if seed is None:
        return {}
    if isinstance(seed, Intervention):
        return seed.model_dump()
    # Accept both snake_case and camelCase keys
    draft = InterventionDraft.model_validate(dict(seed))
    return draft.model_dump(include=draft.model_fields_set)


def derive_initial_state(
    seed: Intervention | Mapping[str, Any] | None,
    now: datetime | None = None,
    default_duration: timedelta | None = None,
) -> InterventionDraft:
    """Build the starting draft for a new or existing intervention.

    Without a case the type defaults to a general-category type,
    otherwise to a case-scoped one. Start defaults to ``now`` and end to
    start plus the default duration. Any value present in the seed wins.
    """
    now = as_utc(now) if now is not None else utcnow()
    if default_duration is None:
        default_duration = timedelta(minutes=get_settings().default_event_minutes)

    values = _seed_values(seed)
    start = values.get("start") or now
    end = values.get("end") or start + default_duration
    is_general = not values.get("case_id")

    state: dict[str, Any] = {
        "title": "",
        "intervention_type": DEFAULT_GENERAL_TYPE if is_general else DEFAULT_CASE_TYPE,
        "is_all_day": False,
        "notes": "",
        "is_registered": False,
        "case_id": None,
        "status": InterventionStatus.PLANNED,
    }
    state.update({k: v for k, v in values.items() if v is not None})
    state["start"] = as_utc(start)
    state["end"] = as_utc(end)
    if not state["case_id"]:
        state["case_id"] = None
        state["is_registered"] = False
    return InterventionDraft(**state)


class EventEditor:
    """Editor for a single intervention.

    Usage:
        editor = EventEditor(seed, gate)
        editor.set_title("Visita de seguimiento")
        editor.set_start_local(time="10:30")
        intervention = await editor.save(manager)
    """

    def __init__(
        self,
        seed: Intervention | Mapping[str, Any] | None = None,
        gate: ConfirmationGate | None = None,
        *,
        now: datetime | None = None,
        tz: tzinfo | None = None,
        default_duration: timedelta | None = None,
    ):
        settings = get_settings()
        self._tz = tz or settings.tzinfo
        self._default_duration = default_duration or timedelta(
            minutes=settings.default_event_minutes
        )
        self._gate = gate or ConfirmationGate()
        self.draft = derive_initial_state(seed, now, self._default_duration)
        self._original = self._saved_intervention(seed)
        self._unregister_token: str | None = None
        self.errors: dict[str, ValidationError] = {}
        self._check_date_range()

    def _saved_intervention(
        self, seed: Intervention | Mapping[str, Any] | None
    ) -> Intervention | None:
        """The stored intervention being edited, or None for a new one."""
        if isinstance(seed, Intervention):
            return seed if seed.id else None
        if self.draft.id is None:
            return None
        # Values were already checked by the draft model
        return Intervention.model_construct(**self.draft.model_dump())

    @property
    def gate(self) -> ConfirmationGate:
        return self._gate

    @property
    def is_editing(self) -> bool:
        """True when the editor was opened on an existing intervention."""
        return self._original is not None

    @property
    def is_valid(self) -> bool:
        return not self.errors

    # ------------------------------------------------------------------
    # Field setters
    # ------------------------------------------------------------------

    def set_title(self, title: str) -> None:
        self.draft.title = title
        if title.strip():
            self.errors.pop("title", None)

    def set_case(self, case_id: str | None) -> None:
        """Attach the draft to a case, or detach it with an empty value.

        A general intervention cannot stay registered in the notebook.
        """
        self.draft.case_id = case_id or None
        self.errors.pop("caseId", None)
        if self.draft.case_id is None:
            self.draft.is_registered = False

    def set_type(self, intervention_type: InterventionType) -> None:
        self.draft.intervention_type = InterventionType(intervention_type)

    def set_all_day(self, is_all_day: bool) -> None:
        self.draft.is_all_day = is_all_day

    def set_notes(self, notes: str) -> None:
        self.draft.notes = notes

    def set_status(self, status: InterventionStatus, now: datetime | None = None) -> None:
        status = InterventionStatus(status)
        self.draft.cancellation_time = next_cancellation_time(
            self.draft.status, status, self.draft.cancellation_time, now
        )
        self.draft.status = status

    def set_registered(self, checked: bool) -> str | None:
        """Check or uncheck notebook registration.

        Unchecking an intervention that was saved as registered only
        proposes the change.

        Returns:
            Confirmation token when the change awaits confirmation,
            otherwise None

        Raises:
            ValidationError: When registering a draft without a case
        """
        if checked:
            if self.draft.case_id is None:
                raise ValidationError("isRegistered", REGISTRATION_NEEDS_CASE)
            self._discard_unregister()
            self.draft.is_registered = True
            return None

        if self._original is not None and self._original.is_registered:
            self._discard_unregister()
            self._unregister_token = self._gate.propose(
                UNREGISTER_TITLE, UNREGISTER_MESSAGE, self._unregister
            )
            return self._unregister_token

        self.draft.is_registered = False
        return None

    def _unregister(self) -> None:
        self._unregister_token = None
        self.draft.is_registered = False

    def _discard_unregister(self) -> None:
        """Cancel an unregister proposal that is still awaiting an answer."""
        token, self._unregister_token = self._unregister_token, None
        if token is not None and self._gate.get(token) is not None:
            self._gate.cancel(token)

    # ------------------------------------------------------------------
    # Dates
    # ------------------------------------------------------------------

    def set_start(self, start: datetime) -> None:
        """Move the start, shifting the end so the duration is kept."""
        start = as_utc(start)
        previous_start, previous_end = self.draft.start, self.draft.end

        self.draft.start = start
        if previous_end is None or previous_start is None:
            self.draft.end = start + self._default_duration
        else:
            duration = previous_end - previous_start
            if duration < timedelta(0):
                duration = self._default_duration
            self.draft.end = start + duration

        self._check_date_range()

    def set_end(self, end: datetime) -> None:
        self.draft.end = as_utc(end)
        self._check_date_range()

    def local_date(self, field: str) -> str:
        """``YYYY-MM-DD`` of ``start`` or ``end`` in the editor timezone."""
        instant = getattr(self.draft, field)
        if instant is None:
            return ""
        return instant.astimezone(self._tz).strftime(DATE_FORMAT)

    def local_time(self, field: str) -> str:
        """``HH:MM`` of ``start`` or ``end`` in the editor timezone."""
        instant = getattr(self.draft, field)
        if instant is None:
            return ""
        return instant.astimezone(self._tz).strftime(TIME_FORMAT)

    def set_start_local(self, date: str | None = None, time: str | None = None) -> None:
        """Replace the local date and/or time of the start."""
        instant = self._combine_local("start", date, time)
        if instant is not None:
            self.set_start(instant)

    def set_end_local(self, date: str | None = None, time: str | None = None) -> None:
        """Replace the local date and/or time of the end."""
        instant = self._combine_local("end", date, time)
        if instant is not None:
            self.set_end(instant)

    def _combine_local(
        self, field: str, date: str | None, time: str | None
    ) -> datetime | None:
        current = (getattr(self.draft, field) or utcnow()).astimezone(self._tz)
        date_part = current.strftime(DATE_FORMAT) if date is None else date
        time_part = current.strftime(TIME_FORMAT) if time is None else time
        if not date_part or not time_part:
            return None

        try:
            local = datetime.strptime(f"{date_part}T{time_part}", f"{DATE_FORMAT}T{TIME_FORMAT}")
        except ValueError:
            logger.debug(f"Ignoring unparseable {field} input {date_part!r} {time_part!r}")
            return None

        return local.replace(tzinfo=self._tz).astimezone(timezone.utc)

    # ------------------------------------------------------------------
    # Validation and submission
    # ------------------------------------------------------------------

    def _check_date_range(self) -> None:
        start, end = self.draft.start, self.draft.end
        if start is not None and end is not None and end < start:
            self.errors["dateRange"] = ValidationError("dateRange", END_BEFORE_START)
        else:
            self.errors.pop("dateRange", None)

    def validate(self) -> bool:
        """Recompute every field error. Returns True when the draft can be saved."""
        if self.draft.title.strip():
            self.errors.pop("title", None)
        else:
            self.errors["title"] = ValidationError("title", TITLE_REQUIRED)
        self._check_date_range()
        return self.is_valid

    def build(self) -> Intervention:
        """Produce the Intervention to save.

        Raises:
            ValidationError: The first failing field, title before dates
        """
        if not self.validate():
            for field in ("title", "dateRange"):
                if field in self.errors:
                    raise self.errors[field]
            raise next(iter(self.errors.values()))

        return Intervention(**self.draft.model_dump())

    async def save(self, persistence: CasePersistence) -> Intervention:
        """Validate and emit a create (no id) or update (id) to ``persistence``.

        The draft is kept on failure so the caseworker can retry.

        Raises:
            ValidationError: If the draft is invalid or its case is unknown
            PersistenceError: If the collaborator fails
        """
        intervention = self.build()
        try:
            saved = await persistence.save_intervention(intervention)
        except KeyError as e:
            # Selected case no longer exists
            error = ValidationError("caseId", CASE_NOT_FOUND)
            self.errors["caseId"] = error
            raise error from e
        except PersistenceError:
            raise
        except Exception as e:
            log_persistence_error("save_intervention", intervention.id, str(e))
            raise PersistenceError("save_intervention", intervention.id, str(e)) from e
        return saved if isinstance(saved, Intervention) else intervention

    def request_delete(self, persistence: CasePersistence) -> str:
        """Propose deleting the edited intervention.

        Returns:
            Confirmation token; the delete runs on ``gate.confirm(token)``

        Raises:
            ValueError: If the editor holds a new, unsaved intervention
        """
        if self._original is None:
            raise ValueError("Only saved interventions can be deleted")
        original = self._original

        async def _delete() -> None:
            try:
                await persistence.delete_intervention(original)
            except PersistenceError:
                raise
            except Exception as e:
                log_persistence_error("delete_intervention", original.id, str(e))
                raise PersistenceError("delete_intervention", original.id, str(e)) from e

        return self._gate.propose(DELETE_TITLE, DELETE_MESSAGE, _delete)
