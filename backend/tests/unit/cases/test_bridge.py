"""Unit tests for converting a task into a notebook entry."""

import pytest

from casework.cases.bridge import task_to_intervention_seed
from casework.cases.editor import EventEditor
from casework.cases.models import InterventionStatus, InterventionType, Task


class TestTaskToInterventionSeed:

    def test_case_task(self, store):
        case = store.get_case("case-1")
        task = case.tasks[0]

        seed = task_to_intervention_seed(case, task)

        assert seed["title"] == "Tarea: Llamar a familia"
        assert seed["intervention_type"] == InterventionType.ACCOMPANIMENT
        assert seed["is_registered"] is True
        assert seed["status"] == InterventionStatus.COMPLETED
        assert seed["case_id"] == "case-1"
        assert '"Llamar a familia"' in seed["notes"]

    def test_general_task_rejected(self):
        with pytest.raises(ValueError):
            task_to_intervention_seed(None, Task(id="gtask-1", text="Preparar memoria"))

    def test_task_left_untouched(self, store):
        case = store.get_case("case-1")
        task = case.tasks[0]

        task_to_intervention_seed(case, task)

        assert task.completed is False
        assert len(case.tasks) == 2

    def test_seed_opens_registered_editor(self, store, now):
        case = store.get_case("case-1")

        editor = EventEditor(task_to_intervention_seed(case, case.tasks[0]), now=now)

        assert editor.draft.is_registered is True
        assert editor.draft.start == now
        assert editor.build().title == "Tarea: Llamar a familia"
