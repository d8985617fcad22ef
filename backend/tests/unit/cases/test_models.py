"""Unit tests for casework domain models.

Run with: pytest backend/tests/unit/cases/test_models.py -v
"""

import json
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from casework.cases.models import (
    Case,
    CaseStatus,
    CurrentUser,
    Intervention,
    InterventionStatus,
    InterventionType,
    MyNote,
)
from casework.cases.store import CaseStore


class TestInterventionInvariants:
    """Tests for the invariants every Intervention must hold."""

    def test_registered_requires_case(self, now):
        """A general intervention cannot be registered in the notebook."""
        with pytest.raises(PydanticValidationError):
            Intervention(
                title="Reunión de equipo",
                intervention_type=InterventionType.MEETING,
                start=now,
                end=now + timedelta(hours=1),
                is_registered=True,
            )

    def test_registered_with_case(self, now):
        intervention = Intervention(
            case_id="case-1",
            title="Visita",
            intervention_type=InterventionType.HOME_VISIT,
            start=now,
            end=now + timedelta(hours=1),
            is_registered=True,
        )

        assert intervention.is_registered
        assert not intervention.is_general

    def test_end_before_start_rejected(self, now):
        with pytest.raises(PydanticValidationError):
            Intervention(
                title="Visita",
                intervention_type=InterventionType.HOME_VISIT,
                start=now,
                end=now - timedelta(minutes=1),
            )

    def test_zero_duration_accepted(self, now):
        """End equal to start is a valid, zero-length event."""
        intervention = Intervention(
            title="Llamada",
            intervention_type=InterventionType.PHONE_CALL,
            start=now,
            end=now,
        )

        assert intervention.duration == timedelta(0)

    def test_naive_datetimes_are_utc(self):
        intervention = Intervention(
            title="Llamada",
            intervention_type=InterventionType.PHONE_CALL,
            start=datetime(2025, 3, 10, 9, 0),
            end=datetime(2025, 3, 10, 9, 30),
        )

        assert intervention.start == datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)
        assert intervention.start.tzinfo is not None

    def test_empty_case_id_is_general(self, now):
        intervention = Intervention(
            case_id="",
            title="Reunión",
            intervention_type=InterventionType.MEETING,
            start=now,
            end=now,
        )

        assert intervention.case_id is None
        assert intervention.is_general

    def test_defaults(self, now):
        intervention = Intervention(
            title="Reunión",
            intervention_type=InterventionType.MEETING,
            start=now,
            end=now,
        )

        assert intervention.id is None
        assert intervention.status == InterventionStatus.PLANNED
        assert intervention.cancellation_time is None
        assert intervention.is_registered is False


class TestRecordFormat:
    """Tests for camelCase records exchanged with persistence."""

    def test_load_camel_case_case(self):
        case = Case.model_validate(
            {
                "id": "case-9",
                "name": "Familia Sanz",
                "status": "Co-Diagnóstico",
                "professionalIds": ["p-ts1"],
                "isPinned": True,
                "interventions": [
                    {
                        "id": "int-1",
                        "title": "Entrevista",
                        "interventionType": "Entrevista",
                        "start": "2025-03-10T09:00:00Z",
                        "end": "2025-03-10T10:00:00Z",
                        "isRegistered": True,
                    }
                ],
                "unknownField": "ignored",
            }
        )

        assert case.status == CaseStatus.CO_DIAGNOSIS
        assert case.professional_ids == ["p-ts1"]
        assert case.is_pinned
        # Interventions listed in a case belong to it
        assert case.interventions[0].case_id == "case-9"
        assert case.interventions[0].is_registered

    def test_to_record_uses_camel_case(self, now):
        intervention = Intervention(
            id="int-1",
            case_id="case-1",
            title="Visita",
            intervention_type=InterventionType.HOME_VISIT,
            start=now,
            end=now + timedelta(hours=1),
        )

        record = intervention.to_record()

        assert record["caseId"] == "case-1"
        assert record["interventionType"] == "Visita Domiciliaria"
        assert record["isAllDay"] is False
        assert "cancellationTime" not in record
        assert "case_id" not in record

    def test_snapshot_json_without_case_ids(self):
        """Registered interventions nested in a case need not repeat caseId."""
        snapshot = json.dumps(
            {
                "cases": [
                    {
                        "id": "case-1",
                        "name": "Familia García",
                        "interventions": [
                            {
                                "id": "int-1",
                                "title": "Visita",
                                "interventionType": "Visita Domiciliaria",
                                "start": "2025-03-10T08:00:00Z",
                                "end": "2025-03-10T09:00:00Z",
                                "isRegistered": True,
                            }
                        ],
                    }
                ],
                "generalInterventions": [],
            }
        )

        store = CaseStore.model_validate_json(snapshot)

        intervention = store.get_case("case-1").interventions[0]
        assert intervention.case_id == "case-1"
        assert intervention.is_registered

    def test_snake_case_intervention_without_case(self, now):
        case = Case(
            id="case-2",
            name="Juan Pérez",
            interventions=[
                {
                    "title": "Llamada",
                    "intervention_type": InterventionType.PHONE_CALL,
                    "start": now,
                    "end": now,
                    "case_id": None,
                    "is_registered": True,
                },
                Intervention(
                    title="Taller",
                    intervention_type=InterventionType.WORKSHOP,
                    start=now,
                    end=now,
                ),
            ],
        )

        assert [i.case_id for i in case.interventions] == ["case-2", "case-2"]
        assert case.interventions[0].is_registered


class TestCase:
    """Tests for the Case aggregate."""

    def test_name_required(self):
        with pytest.raises(PydanticValidationError):
            Case(id="case-1", name="")

    def test_display_name_with_nickname(self):
        case = Case(id="case-1", name="Juan Pérez", nickname="Juanito")

        assert case.display_name == "Juan Pérez (Juanito)"

    def test_display_name_without_nickname(self):
        assert Case(id="case-1", name="Juan Pérez").display_name == "Juan Pérez"

    def test_closed_case_is_inactive(self):
        assert Case(id="case-1", name="X").is_active
        assert not Case(id="case-1", name="X", status=CaseStatus.CLOSED).is_active

    def test_notes_are_private(self):
        case = Case(
            id="case-1",
            name="X",
            my_notes=[
                MyNote(id="n-1", content="Mía", created_by="p-ts1"),
                MyNote(id="n-2", content="Ajena", created_by="p-ts2"),
            ],
        )

        assert [n.id for n in case.notes_for("p-ts1")] == ["n-1"]


class TestEnumerations:
    """Tests for enumeration helpers."""

    def test_general_types(self):
        assert InterventionType.MEETING.is_general
        assert InterventionType.TRAINING_COURSE.is_general
        assert not InterventionType.HOME_VISIT.is_general
        assert not InterventionType.ACCOMPANIMENT.is_general

    def test_current_user_admin(self):
        assert CurrentUser(id="p-1", role="admin").is_admin
        assert not CurrentUser(id="p-1").is_admin
