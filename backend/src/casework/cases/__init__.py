"""Cases module for Casework - the caseworker's operational core.

Models the case file of a social-services intervention and the
caseworker's calendar of interventions around it.

Main components:
- EventEditor: Turns caseworker input into a valid Intervention
- CaseManager: Applies mutations through the persistence collaborator
- ConfirmationGate: Two-phase confirmation for destructive mutations
- Alerts: Today's agenda, expired actions, missing professionals and
  status/CEAS aggregates over a CaseStore snapshot

Usage:
    from casework.cases import CaseManager, CaseStore, CurrentUser

    manager = CaseManager(store, persistence, CurrentUser(id="p-1"))
    editor = manager.open_editor({"caseId": "case-1"})
    editor.set_title("Visita de seguimiento")
    intervention = await manager.submit(editor)

    summary = manager.dashboard()
"""

from .alerts import (
    EXPIRY_THRESHOLD,
    UNASSIGNED_CEAS,
    CaseActivity,
    CeasBucket,
    DashboardSummary,
    MissingProfessionalAlert,
    StatusBucket,
    build_dashboard,
    cases_by_ceas,
    cases_by_status,
    expired_actions,
    missing_professionals,
    notebook,
    recent_activity,
    todays_agenda,
    visible_cases,
)
from .bridge import task_to_intervention_seed
from .confirmation import ConfirmationGate, Proposal, ProposalStatus
from .editor import EventEditor, InterventionDraft, derive_initial_state
from .errors import CaseworkError, PersistenceError, ValidationError
from .manager import CaseManager
from .models import (
    Case,
    CaseStatus,
    CurrentUser,
    FamilyMember,
    Intervention,
    InterventionRecord,
    InterventionStatus,
    InterventionType,
    MyNote,
    Professional,
    ProfessionalRole,
    Task,
)
from .persistence import CasePersistence
from .store import CaseStore
from .workflow import (
    DashboardView,
    change_case_status,
    change_intervention_status,
    default_view_for,
    status_color,
)

__all__ = [
    # Models
    "Case",
    "CaseStatus",
    "CurrentUser",
    "FamilyMember",
    "Intervention",
    "InterventionRecord",
    "InterventionStatus",
    "InterventionType",
    "MyNote",
    "Professional",
    "ProfessionalRole",
    "Task",
    # Store and persistence
    "CasePersistence",
    "CaseStore",
    # Errors
    "CaseworkError",
    "PersistenceError",
    "ValidationError",
    # Editing
    "ConfirmationGate",
    "EventEditor",
    "InterventionDraft",
    "Proposal",
    "ProposalStatus",
    "derive_initial_state",
    "task_to_intervention_seed",
    # Workflow
    "DashboardView",
    "change_case_status",
    "change_intervention_status",
    "default_view_for",
    "status_color",
    # Manager
    "CaseManager",
    # Alerts
    "EXPIRY_THRESHOLD",
    "UNASSIGNED_CEAS",
    "CaseActivity",
    "CeasBucket",
    "DashboardSummary",
    "MissingProfessionalAlert",
    "StatusBucket",
    "build_dashboard",
    "cases_by_ceas",
    "cases_by_status",
    "expired_actions",
    "missing_professionals",
    "notebook",
    "recent_activity",
    "todays_agenda",
    "visible_cases",
]
