"""Pytest fixtures for casework unit tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from casework.cases.models import (
    Case,
    CaseStatus,
    CurrentUser,
    Intervention,
    InterventionType,
    Professional,
    ProfessionalRole,
    Task,
)
from casework.cases.store import CaseStore

# Monday 11:00 in Madrid (CET, UTC+1)
NOW = datetime(2025, 3, 10, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def madrid() -> ZoneInfo:
    return ZoneInfo("Europe/Madrid")


@pytest.fixture
def professionals() -> list[Professional]:
    """Directory with two social workers, one EDIS technician and one without CEAS."""
    return [
        Professional(
            id="p-ts1",
            name="Lucía Martín",
            role=ProfessionalRole.SOCIAL_WORKER,
            ceas="CEAS Centro",
            system_role="admin",
            is_system_user=True,
        ),
        Professional(
            id="p-ts2",
            name="Carlos Ruiz",
            role=ProfessionalRole.SOCIAL_WORKER,
            ceas="CEAS Norte",
        ),
        Professional(
            id="p-edis",
            name="Marta Gómez",
            role=ProfessionalRole.EDIS_TECHNICIAN,
            ceas="CEAS Centro",
        ),
        Professional(
            id="p-ts3",
            name="Sergio Díaz",
            role=ProfessionalRole.SOCIAL_WORKER,
        ),
    ]


@pytest.fixture
def make_intervention():
    """Factory for interventions starting ``offset`` from NOW."""

    def _make(
        offset: timedelta = timedelta(0),
        duration: timedelta = timedelta(hours=1),
        **overrides,
    ) -> Intervention:
        start = NOW + offset
        values = {
            "title": "Entrevista inicial",
            "intervention_type": InterventionType.INTERVIEW,
            "start": start,
            "end": start + duration,
            "created_by": "p-ts1",
        }
        values.update(overrides)
        if values.get("case_id") is None and "intervention_type" not in overrides:
            values["intervention_type"] = InterventionType.MEETING
        return Intervention(**values)

    return _make


@pytest.fixture
def store(professionals) -> CaseStore:
    """Three active cases with uneven teams and one closed case.

    - case-1: Accompaniment, social worker (CEAS Centro) + EDIS, complete team
    - case-2: Welcome, social worker (CEAS Norte) only
    - case-3: Welcome, EDIS only
    - case-4: Closed, nobody assigned
    """
    return CaseStore(
        cases=[
            Case(
                id="case-1",
                name="Familia García",
                status=CaseStatus.ACCOMPANIMENT,
                professional_ids=["p-ts1", "p-edis"],
                order_index=3,
                tasks=[
                    Task(id="task-1", text="Llamar a familia", created_by="p-ts1"),
                    Task(id="task-2", text="Pedir informe", completed=True),
                ],
            ),
            Case(
                id="case-2",
                name="Juan Pérez",
                nickname="Juanito",
                status=CaseStatus.WELCOME,
                professional_ids=["p-ts2"],
                order_index=1,
            ),
            Case(
                id="case-3",
                name="Ana López",
                status=CaseStatus.WELCOME,
                professional_ids=["p-edis", "p-unknown"],
                order_index=2,
                is_pinned=True,
            ),
            Case(
                id="case-4",
                name="Caso Cerrado",
                status=CaseStatus.CLOSED,
                order_index=0,
                tasks=[Task(id="task-4", text="Archivar expediente")],
            ),
        ],
        general_tasks=[
            Task(id="gtask-1", text="Preparar memoria anual", created_by="p-ts1"),
            Task(id="gtask-2", text="Revisar agenda", completed=True, created_by="p-ts1"),
        ],
        professionals=professionals,
    )


@pytest.fixture
def technician() -> CurrentUser:
    return CurrentUser(id="p-edis", name="Marta Gómez", role="tecnico")


@pytest.fixture
def admin() -> CurrentUser:
    return CurrentUser(id="p-ts1", name="Lucía Martín", role="admin")


@pytest.fixture
def persistence() -> AsyncMock:
    """Persistence collaborator double whose calls all succeed."""
    mock = AsyncMock()
    mock.save_case.return_value = None
    mock.delete_case.return_value = None
    mock.save_intervention.return_value = None
    mock.delete_intervention.return_value = None
    return mock

