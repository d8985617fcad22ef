"""Aggregation and alerting over a case store snapshot.

Every function here is pure with respect to the store it receives,
total (empty input gives empty output, never an error) and recomputed
on each call. Nothing is cached; the cost is linear in the number of
cases.

Alerts:
- Today's agenda: the caller's own interventions starting today
- Expired actions: planned interventions whose start is older than 25h
- Missing professionals: active cases without a social worker and/or
  an EDIS technician
- Status and CEAS aggregates of active cases
"""

from collections import Counter
from datetime import datetime, timedelta, tzinfo

from pydantic import BaseModel, Field

from ..config import get_settings
from ..logging import log_alert_scan
from .models import (
    Case,
    CaseStatus,
    CurrentUser,
    Intervention,
    InterventionStatus,
    Professional,
    ProfessionalRole,
    as_utc,
    utcnow,
)
from .store import CaseStore
from .workflow import status_color

# Planned actions expire 25 hours after their start
EXPIRY_THRESHOLD = timedelta(hours=25)

UNASSIGNED_CEAS = "Sin CEAS Asignado"


# =============================================================================
# Result models
# =============================================================================


class MissingProfessionalAlert(BaseModel):
    """An active case whose team is incomplete."""

    case_id: str
    case_name: str
    missing_ts: bool = Field(..., description="No social worker assigned")
    missing_edis: bool = Field(..., description="No EDIS technician assigned")


class StatusBucket(BaseModel):
    """Active cases in one workflow stage."""

    status: CaseStatus
    count: int
    percent: float
    color: str


class CeasBucket(BaseModel):
    """Active cases whose social worker belongs to one CEAS."""

    ceas: str
    count: int
    percent: float


class CaseActivity(BaseModel):
    """Interventions of one case over the recent-activity window."""

    case_id: str
    name: str
    total: int
    by_type: dict[str, int] = Field(default_factory=dict)


class DashboardSummary(BaseModel):
    """Everything the caseworker dashboard shows for one user."""

    user_id: str
    generated_at: datetime
    active_cases: int
    pending_tasks: int
    agenda: list[Intervention] = Field(default_factory=list)
    expired_actions: list[Intervention] = Field(default_factory=list)
    missing_professionals: list[MissingProfessionalAlert] = Field(default_factory=list)
    cases_by_status: list[StatusBucket] = Field(default_factory=list)
    cases_by_ceas: list[CeasBucket] = Field(default_factory=list)
    recent_activity: list[CaseActivity] = Field(default_factory=list)


# =============================================================================
# Helpers
# =============================================================================


def _now(now: datetime | None) -> datetime:
    return as_utc(now) if now is not None else utcnow()


def _percent(count: int, total: int) -> float:
    return (count / total) * 100 if total else 0.0


def active_cases(store: CaseStore) -> list[Case]:
    """Cases that are not Closed."""
    return [case for case in store.cases if case.is_active]


def assigned_professionals(case: Case, directory: dict[str, Professional]) -> list[Professional]:
    """Professionals assigned to ``case``, in assignment order.

    Ids missing from the directory are skipped.
    """
    return [directory[pid] for pid in case.professional_ids if pid in directory]


def case_sort_key(case: Case) -> tuple[int, int]:
    """Pinned cases first, then by manual order index."""
    return (0 if case.is_pinned else 1, case.order_index)


# =============================================================================
# Alerts
# =============================================================================


def todays_agenda(
    store: CaseStore,
    user_id: str,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[Intervention]:
    """Interventions created by ``user_id`` that start on the local day of ``now``.

    Case and general interventions are both included. The agenda is
    strictly personal: administrators also only see their own items.
    Sorted by start, earliest first.
    """
    tz = tz or get_settings().tzinfo
    today = _now(now).astimezone(tz).date()

    interventions = store.all_interventions()
    agenda = [
        i
        for i in interventions
        if i.created_by == user_id and i.start.astimezone(tz).date() == today
    ]
    agenda.sort(key=lambda i: i.start)

    log_alert_scan("agenda", len(interventions), len(agenda), user_id=user_id)
    return agenda


def expired_actions(
    store: CaseStore,
    now: datetime | None = None,
    threshold: timedelta = EXPIRY_THRESHOLD,
) -> list[Intervention]:
    """Planned interventions whose start is older than ``now - threshold``."""
    cutoff = _now(now) - threshold

    interventions = store.all_interventions()
    expired = [
        i
        for i in interventions
        if i.status == InterventionStatus.PLANNED and i.start < cutoff
    ]

    log_alert_scan("expired_actions", len(interventions), len(expired))
    return expired


def missing_professionals(store: CaseStore) -> list[MissingProfessionalAlert]:
    """Active cases lacking a social worker, an EDIS technician, or both."""
    directory = store.professional_map()
    cases = active_cases(store)

    alerts = []
    for case in cases:
        roles = {p.role for p in assigned_professionals(case, directory)}
        has_ts = ProfessionalRole.SOCIAL_WORKER in roles
        has_edis = ProfessionalRole.EDIS_TECHNICIAN in roles
        if not has_ts or not has_edis:
            alerts.append(
                MissingProfessionalAlert(
                    case_id=case.id,
                    case_name=case.display_name,
                    missing_ts=not has_ts,
                    missing_edis=not has_edis,
                )
            )

    log_alert_scan("missing_professionals", len(cases), len(alerts))
    return alerts


# =============================================================================
# Aggregates
# =============================================================================


def cases_by_status(store: CaseStore) -> list[StatusBucket]:
    """Active case counts per status, largest first.

    Ties keep the order in which the statuses were first encountered.
    """
    cases = active_cases(store)
    counts = Counter(case.status for case in cases)
    ordered = sorted(counts.items(), key=lambda item: -item[1])
    return [
        StatusBucket(
            status=status,
            count=count,
            percent=_percent(count, len(cases)),
            color=status_color(status),
        )
        for status, count in ordered
    ]


def social_worker_ceas(case: Case, directory: dict[str, Professional]) -> str:
    """CEAS of the first social worker assigned to ``case``."""
    for professional in assigned_professionals(case, directory):
        if professional.role == ProfessionalRole.SOCIAL_WORKER:
            return professional.ceas or UNASSIGNED_CEAS
    return UNASSIGNED_CEAS


def cases_by_ceas(store: CaseStore) -> list[CeasBucket]:
    """Active case counts per CEAS of the assigned social worker, largest first.

    Cases without a social worker, or whose social worker has no CEAS,
    are counted under ``UNASSIGNED_CEAS``.
    """
    directory = store.professional_map()
    cases = active_cases(store)
    counts = Counter(social_worker_ceas(case, directory) for case in cases)
    ordered = sorted(counts.items(), key=lambda item: -item[1])
    return [
        CeasBucket(ceas=ceas, count=count, percent=_percent(count, len(cases)))
        for ceas, count in ordered
    ]


def pending_tasks_count(store: CaseStore) -> int:
    """Open tasks of active cases plus open general tasks."""
    case_tasks = sum(
        1 for case in active_cases(store) for task in case.tasks if not task.completed
    )
    general_tasks = sum(1 for task in store.general_tasks if not task.completed)
    return case_tasks + general_tasks


def recent_activity(
    store: CaseStore,
    now: datetime | None = None,
    days: int | None = None,
    limit: int | None = None,
) -> list[CaseActivity]:
    """Cases with the most interventions over the last ``days`` days."""
    settings = get_settings()
    days = days if days is not None else settings.recent_activity_days
    limit = limit if limit is not None else settings.recent_activity_limit
    since = _now(now) - timedelta(days=days)

    activity = []
    for case in store.cases:
        recent = [i for i in case.interventions if i.start >= since]
        if not recent:
            continue
        by_type = Counter(i.intervention_type.value for i in recent)
        activity.append(
            CaseActivity(
                case_id=case.id,
                name=case.display_name,
                total=len(recent),
                by_type=dict(by_type),
            )
        )

    activity.sort(key=lambda item: -item.total)
    return activity[:limit]


# =============================================================================
# Views
# =============================================================================


def visible_cases(store: CaseStore, user: CurrentUser) -> list[Case]:
    """Cases ``user`` may open, pinned first then by order index.

    Administrators see every case; technicians only the cases they are
    assigned to.
    """
    if user.is_admin:
        cases = list(store.cases)
    else:
        cases = [case for case in store.cases if user.id in case.professional_ids]
    return sorted(cases, key=case_sort_key)


def notebook(case: Case) -> list[Intervention]:
    """Field notebook of ``case``: registered interventions, newest first."""
    entries = [i for i in case.interventions if i.is_registered]
    entries.sort(key=lambda i: i.start, reverse=True)
    return entries


def user_view(store: CaseStore, user: CurrentUser) -> CaseStore:
    """Store restricted to what ``user`` sees on the dashboard.

    Cases are limited to the visible ones and general tasks to those the
    user created. The result shares records with ``store``.
    """
    return CaseStore(
        cases=visible_cases(store, user),
        general_interventions=store.general_interventions,
        general_tasks=[t for t in store.general_tasks if t.created_by == user.id],
        professionals=store.professionals,
    )


def build_dashboard(
    store: CaseStore,
    user: CurrentUser,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> DashboardSummary:
    """Compute every dashboard figure for ``user`` from one snapshot."""
    now = _now(now)
    view = user_view(store, user)

    return DashboardSummary(
        user_id=user.id,
        generated_at=now,
        active_cases=len(active_cases(view)),
        pending_tasks=pending_tasks_count(view),
        agenda=todays_agenda(view, user.id, now=now, tz=tz),
        expired_actions=expired_actions(view, now=now),
        missing_professionals=missing_professionals(view),
        cases_by_status=cases_by_status(view),
        cases_by_ceas=cases_by_ceas(view),
        recent_activity=recent_activity(view, now=now),
    )
