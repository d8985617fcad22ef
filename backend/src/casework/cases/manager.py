"""Case and intervention lifecycle management.

The CaseManager is the single writer of the in-memory CaseStore. Every
mutation is sent to the persistence collaborator first and applied to
the store only once the collaborator succeeds, so a failed save leaves
both the store and the caller's draft untouched for a manual retry.

Destructive operations (deletes, removing an intervention from the
field notebook) are proposed through the ConfirmationGate and only run
when the returned token is confirmed.
"""

from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime
from typing import Any, TypeVar
from uuid import uuid4

from ..logging import (
    get_context_logger,
    log_intervention_deleted,
    log_intervention_saved,
    log_persistence_error,
)
from .alerts import DashboardSummary, build_dashboard
from .bridge import task_to_intervention_seed
from .confirmation import ConfirmationGate
from .editor import REGISTRATION_NEEDS_CASE, UNREGISTER_TITLE, EventEditor
from .errors import PersistenceError, ValidationError
from .models import (
    Case,
    CaseStatus,
    CurrentUser,
    Intervention,
    InterventionStatus,
    MyNote,
    NoteColor,
    Task,
    utcnow,
)
from .persistence import CasePersistence
from .store import CaseStore
from .workflow import change_case_status, change_intervention_status

T = TypeVar("T")

QUICK_UNREGISTER_MESSAGE = (
    "Al desmarcar esta opción, la intervención dejará de aparecer en el "
    '"Cuaderno de Campo". ¿Quieres continuar?'
)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex}"


class CaseManager:
    """Applies caseworker actions to the store through the persistence collaborator.

    The manager itself satisfies ``CasePersistence``, so an EventEditor
    can save straight into it.
    """

    def __init__(
        self,
        store: CaseStore,
        persistence: CasePersistence,
        current_user: CurrentUser,
        gate: ConfirmationGate | None = None,
    ):
        """Initialize the CaseManager.

        Args:
            store: Snapshot this manager keeps up to date
            persistence: External collaborator saving cases and interventions
            current_user: Identity used for ``created_by`` and personal views
            gate: Confirmation gate; a private one is created if omitted
        """
        self.store = store
        self.persistence = persistence
        self.current_user = current_user
        self.gate = gate or ConfirmationGate()
        self._log = get_context_logger(__name__, user_id=current_user.id)

    async def _call(
        self,
        operation: str,
        entity_id: str | None,
        action: Callable[[], Awaitable[T]],
    ) -> T:
        """Run a collaborator call, converting failures to PersistenceError."""
        try:
            return await action()
        except Exception as e:
            log_persistence_error(operation, entity_id, str(e))
            raise PersistenceError(operation, entity_id, str(e)) from e

    def _require_case(self, case_id: str) -> Case:
        case = self.store.get_case(case_id)
        if case is None:
            raise KeyError(f"Case {case_id} not found")
        return case

    # =========================================================================
    # Cases
    # =========================================================================

    async def create_case(self, name: str, now: datetime | None = None) -> Case:
        """Open a new case in the Welcome stage, assigned to the current user."""
        now = now or utcnow()
        case = Case(
            id=_new_id("case"),
            name=name,
            status=CaseStatus.WELCOME,
            last_update=now,
            professional_ids=[self.current_user.id],
            order_index=int(now.timestamp() * 1000),
            created_by=self.current_user.id,
        )
        await self.save_case(case, now=now)
        self._log.info(f"Created case {case.id}", extra={"case_id": case.id})
        return case

    async def save_case(self, case: Case, now: datetime | None = None) -> Case:
        """Persist ``case`` and replace it in the store."""
        updated = case.model_copy(update={"last_update": now or utcnow()})
        await self._call("save_case", case.id, lambda: self.persistence.save_case(updated))
        self.store.upsert_case(updated)
        return updated

    async def delete_case(self, case_id: str) -> None:
        """Delete a case immediately. Prefer ``request_delete_case``."""
        await self._call("delete_case", case_id, lambda: self.persistence.delete_case(case_id))
        self.store.remove_case(case_id)
        self._log.info(f"Deleted case {case_id}", extra={"case_id": case_id})

    def request_delete_case(self, case_id: str) -> str:
        """Propose deleting a case. Returns the confirmation token."""
        case = self._require_case(case_id)
        return self.gate.propose(
            "Eliminar Caso",
            f'¿Estás seguro de que quieres eliminar permanentemente el caso de "{case.display_name}"? '
            "Esta acción no se puede deshacer.",
            lambda: self.delete_case(case_id),
        )

    async def change_case_status(self, case_id: str, status: CaseStatus) -> Case:
        """Move a case to any stage; the workflow does not gate transitions."""
        case = self._require_case(case_id)
        return await self.save_case(change_case_status(case, status))

    # =========================================================================
    # Interventions
    # =========================================================================

    async def save_intervention(self, intervention: Intervention) -> Intervention:
        """Create (no id) or update (id) an intervention.

        Creates get a fresh id and ``created_by`` set to the current
        user. The store moves the intervention if its case changed.

        Raises:
            KeyError: If the intervention names an unknown case
            PersistenceError: If the collaborator fails
        """
        created = intervention.id is None
        if created:
            intervention = intervention.model_copy(
                update={
                    "id": _new_id("int"),
                    "created_by": intervention.created_by or self.current_user.id,
                }
            )
        if intervention.case_id is not None:
            self._require_case(intervention.case_id)

        await self._call(
            "save_intervention",
            intervention.id,
            lambda: self.persistence.save_intervention(intervention),
        )
        self.store.apply_intervention(intervention)
        log_intervention_saved(
            intervention.id, intervention.case_id, created, user_id=self.current_user.id
        )
        return intervention

    async def delete_intervention(self, intervention: Intervention) -> None:
        """Delete immediately. Prefer ``request_delete_intervention``."""
        await self._call(
            "delete_intervention",
            intervention.id,
            lambda: self.persistence.delete_intervention(intervention),
        )
        self.store.remove_intervention(intervention)
        log_intervention_deleted(intervention.id, intervention.case_id)

    def request_delete_intervention(self, intervention: Intervention) -> str:
        """Propose deleting an intervention. Returns the confirmation token."""
        return self.gate.propose(
            "Eliminar Intervención",
            "¿Estás seguro de que quieres eliminar esta intervención? "
            "Esta acción es irreversible.",
            lambda: self.delete_intervention(intervention),
        )

    async def change_intervention_status(
        self,
        intervention: Intervention,
        status: InterventionStatus,
        now: datetime | None = None,
    ) -> Intervention:
        """Quick status change from the agenda or expired-actions list."""
        updated = change_intervention_status(intervention, status, now=now)
        return await self.save_intervention(updated)

    async def set_registered(self, intervention: Intervention, checked: bool) -> str | None:
        """Quick notebook toggle.

        Unchecking a registered intervention is proposed and returns a
        token; checking is saved right away.

        Raises:
            ValidationError: When registering a general intervention
        """
        if checked:
            if intervention.case_id is None:
                raise ValidationError("isRegistered", REGISTRATION_NEEDS_CASE)
            await self.save_intervention(intervention.model_copy(update={"is_registered": True}))
            return None

        unregistered = intervention.model_copy(update={"is_registered": False})
        if intervention.is_registered:
            return self.gate.propose(
                UNREGISTER_TITLE,
                QUICK_UNREGISTER_MESSAGE,
                lambda: self.save_intervention(unregistered),
            )
        await self.save_intervention(unregistered)
        return None

    # =========================================================================
    # Editor
    # =========================================================================

    def open_editor(
        self,
        seed: Intervention | Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> EventEditor:
        """Editor sharing this manager's confirmation gate."""
        return EventEditor(seed, self.gate, now=now)

    def open_task_conversion(self, task_id: str, now: datetime | None = None) -> EventEditor:
        """Editor pre-filled to log the work done on a case task.

        Raises:
            KeyError: If the task does not exist
            ValueError: If the task is a general task
        """
        found = self.store.find_task(task_id)
        if found is None:
            raise KeyError(f"Task {task_id} not found")
        case, task = found
        return self.open_editor(task_to_intervention_seed(case, task), now=now)

    async def submit(self, editor: EventEditor) -> Intervention:
        """Validate the editor draft and save it through this manager."""
        return await editor.save(self)

    # =========================================================================
    # Tasks and notes
    # =========================================================================

    async def add_task(
        self, case_id: str, text: str, assigned_to: list[str] | None = None
    ) -> Task:
        """Add a task to a case, assigned to the current user by default."""
        case = self._require_case(case_id)
        task = Task(
            id=_new_id("task"),
            text=text,
            created_by=self.current_user.id,
            assigned_to=assigned_to or [self.current_user.id],
        )
        await self.save_case(case.model_copy(update={"tasks": [*case.tasks, task]}))
        return task

    async def toggle_task(self, case_id: str, task_id: str) -> Task:
        case = self._require_case(case_id)
        tasks = [
            t.model_copy(update={"completed": not t.completed}) if t.id == task_id else t
            for t in case.tasks
        ]
        toggled = next((t for t in tasks if t.id == task_id), None)
        if toggled is None:
            raise KeyError(f"Task {task_id} not found in case {case_id}")
        await self.save_case(case.model_copy(update={"tasks": tasks}))
        return toggled

    def request_delete_task(self, case_id: str, task_id: str) -> str:
        """Propose removing a task from a case. Returns the confirmation token."""
        case = self._require_case(case_id)
        task = next((t for t in case.tasks if t.id == task_id), None)
        if task is None:
            raise KeyError(f"Task {task_id} not found in case {case_id}")

        async def _delete() -> None:
            current = self._require_case(case_id)
            remaining = [t for t in current.tasks if t.id != task_id]
            await self.save_case(current.model_copy(update={"tasks": remaining}))

        return self.gate.propose(
            "Eliminar Tarea",
            f'¿Estás seguro de que quieres eliminar la tarea "{task.text}"? '
            "Esta acción no se puede deshacer.",
            _delete,
        )

    async def add_note(self, case_id: str, content: str, color: NoteColor = "yellow") -> MyNote:
        """Add a private note owned by the current user, newest first."""
        case = self._require_case(case_id)
        note = MyNote(
            id=_new_id("note"),
            content=content,
            color=color,
            created_by=self.current_user.id,
        )
        await self.save_case(case.model_copy(update={"my_notes": [note, *case.my_notes]}))
        return note

    # =========================================================================
    # Dashboard
    # =========================================================================

    def dashboard(self, now: datetime | None = None) -> DashboardSummary:
        """Recompute the current user's dashboard from the store."""
        return build_dashboard(self.store, self.current_user, now=now)
