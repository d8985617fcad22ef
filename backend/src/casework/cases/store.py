"""In-memory snapshot of everything the caseworker sees.

The store holds the case collection, the case-less ("general")
interventions and tasks, and the professional directory. Aggregation
functions read it by reference; the case manager is the only writer.
"""

from datetime import datetime

from pydantic import Field

from .models import Case, Intervention, Professional, RecordModel, Task, as_utc, utcnow


class CaseStore(RecordModel):
    """Mutable snapshot of cases, general items and the directory.

    Serializes to and from the JSON snapshot format with camelCase keys
    (``cases``, ``generalInterventions``, ``generalTasks``,
    ``professionals``).
    """

    cases: list[Case] = Field(default_factory=list)
    general_interventions: list[Intervention] = Field(default_factory=list)
    general_tasks: list[Task] = Field(default_factory=list)
    professionals: list[Professional] = Field(default_factory=list)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_case(self, case_id: str | None) -> Case | None:
        if case_id is None:
            return None
        for case in self.cases:
            if case.id == case_id:
                return case
        return None

    def all_interventions(self) -> list[Intervention]:
        """Case interventions followed by general interventions."""
        interventions = [i for case in self.cases for i in case.interventions]
        interventions.extend(self.general_interventions)
        return interventions

    def find_intervention(self, intervention_id: str) -> Intervention | None:
        for intervention in self.all_interventions():
            if intervention.id == intervention_id:
                return intervention
        return None

    def find_task(self, task_id: str) -> tuple[Case | None, Task] | None:
        """Locate a task and the case owning it (None for general tasks)."""
        for case in self.cases:
            for task in case.tasks:
                if task.id == task_id:
                    return case, task
        for task in self.general_tasks:
            if task.id == task_id:
                return None, task
        return None

    def professional_map(self) -> dict[str, Professional]:
        return {p.id: p for p in self.professionals}

    # =========================================================================
    # Writes
    # =========================================================================

    def upsert_case(self, case: Case) -> None:
        """Replace the case with the same id, or append it."""
        for index, existing in enumerate(self.cases):
            if existing.id == case.id:
                self.cases[index] = case
                return
        self.cases.append(case)

    def remove_case(self, case_id: str) -> Case | None:
        case = self.get_case(case_id)
        if case is not None:
            self.cases = [c for c in self.cases if c.id != case_id]
        return case

    def _detach_intervention(self, intervention_id: str) -> None:
        for case in self.cases:
            case.interventions = [i for i in case.interventions if i.id != intervention_id]
        self.general_interventions = [
            i for i in self.general_interventions if i.id != intervention_id
        ]

    def apply_intervention(self, intervention: Intervention, now: datetime | None = None) -> None:
        """Place a saved intervention where it now belongs.

        An intervention moved to another case, or between a case and
        the general list, is removed from its previous location.

        Raises:
            KeyError: If the intervention names a case not in the store
        """
        if intervention.id is None:
            raise ValueError("Only saved interventions can be placed in the store")

        target = self.get_case(intervention.case_id)
        if intervention.case_id is not None and target is None:
            raise KeyError(f"Case {intervention.case_id} not found")

        self._detach_intervention(intervention.id)
        if target is None:
            self.general_interventions.append(intervention)
        else:
            target.interventions.append(intervention)
            target.last_update = as_utc(now) if now is not None else utcnow()

    def remove_intervention(self, intervention: Intervention) -> None:
        if intervention.id is not None:
            self._detach_intervention(intervention.id)
