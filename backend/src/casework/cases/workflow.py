"""Status workflows for interventions and cases.

Intervention status is a three-state machine with no enforced ordering
and no terminal state. The only side effect of a transition is the
cancellation timestamp, stamped when an intervention first enters
Cancelled.

Case status is advisory: any jump between the seven stages is accepted.
The stage only selects the dashboard view a case opens on and the color
used in lists and charts.
"""

import logging
from datetime import datetime
from enum import Enum

from .models import Case, CaseStatus, Intervention, InterventionStatus, as_utc, utcnow

logger = logging.getLogger(__name__)


class DashboardView(str, Enum):
    """Sections of the case dashboard."""

    PROFILE = "profile"
    REFERRAL = "referral"
    WELCOME = "welcome"
    TASKS = "tasks"
    DIAGNOSIS = "diagnosis"
    PLANNING = "planning"
    ACCOMPANIMENT = "accompaniment"
    REPORTS = "reports"
    NOTEBOOK = "notebook"
    PROFESSIONALS = "professionals"
    MY_NOTES = "myNotes"


STATUS_DEFAULT_VIEW: dict[CaseStatus, DashboardView] = {
    CaseStatus.PENDING_REFERRAL: DashboardView.REFERRAL,
    CaseStatus.WELCOME: DashboardView.WELCOME,
    CaseStatus.CO_DIAGNOSIS: DashboardView.DIAGNOSIS,
    CaseStatus.SHARED_PLANNING: DashboardView.PLANNING,
    CaseStatus.ACCOMPANIMENT: DashboardView.ACCOMPANIMENT,
    CaseStatus.FOLLOW_UP: DashboardView.NOTEBOOK,
    CaseStatus.CLOSED: DashboardView.PROFILE,
}

STATUS_COLORS: dict[CaseStatus, str] = {
    CaseStatus.PENDING_REFERRAL: "#fbbf24",
    CaseStatus.WELCOME: "#34d399",
    CaseStatus.CO_DIAGNOSIS: "#60a5fa",
    CaseStatus.SHARED_PLANNING: "#a78bfa",
    CaseStatus.ACCOMPANIMENT: "#2dd4bf",
    CaseStatus.FOLLOW_UP: "#a3e635",
    CaseStatus.CLOSED: "#a1a1aa",
}

FALLBACK_COLOR = "#94a3b8"

# Order of the stages as presented to caseworkers
STATUS_ORDER: tuple[CaseStatus, ...] = tuple(CaseStatus)


def default_view_for(status: CaseStatus) -> DashboardView:
    """Dashboard section a case in ``status`` opens on."""
    return STATUS_DEFAULT_VIEW.get(status, DashboardView.PROFILE)


def status_color(status: CaseStatus) -> str:
    """Hex color used for ``status`` in lists and charts."""
    return STATUS_COLORS.get(status, FALLBACK_COLOR)


def next_cancellation_time(
    previous: InterventionStatus,
    new: InterventionStatus,
    current: datetime | None,
    now: datetime | None = None,
) -> datetime | None:
    """Cancellation timestamp after moving from ``previous`` to ``new``.

    Only a move into Cancelled from another status stamps a new time.
    Every other transition keeps ``current`` as it is.
    """
    if new == InterventionStatus.CANCELLED and previous != InterventionStatus.CANCELLED:
        return as_utc(now) if now is not None else utcnow()
    return current


def change_intervention_status(
    intervention: Intervention,
    new_status: InterventionStatus,
    now: datetime | None = None,
) -> Intervention:
    """Return a copy of ``intervention`` moved to ``new_status``.

    Args:
        intervention: Intervention to transition
        new_status: Target status, reachable from any status
        now: Instant used for the cancellation stamp (defaults to now)

    Returns:
        Updated copy; the input is not modified
    """
    cancellation_time = next_cancellation_time(
        intervention.status, new_status, intervention.cancellation_time, now
    )
    logger.debug(
        f"Intervention {intervention.id}: {intervention.status.value} -> {new_status.value}"
    )
    return intervention.model_copy(
        update={"status": new_status, "cancellation_time": cancellation_time}
    )


def change_case_status(case: Case, new_status: CaseStatus, now: datetime | None = None) -> Case:
    """Return a copy of ``case`` moved to ``new_status``.

    Transitions are not gated; jumping backwards or straight to Closed is
    allowed.
    """
    if case.status != new_status:
        logger.info(f"Case {case.id} status {case.status.value} -> {new_status.value}")
    return case.model_copy(
        update={
            "status": new_status,
            "last_update": as_utc(now) if now is not None else utcnow(),
        }
    )
