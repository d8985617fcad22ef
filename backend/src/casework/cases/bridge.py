"""Conversion of a worked task into a field-notebook entry."""

from typing import Any

from .models import Case, InterventionStatus, InterventionType, Task

TASK_TITLE_TEMPLATE = "Tarea: {text}"
TASK_NOTES_TEMPLATE = (
    'Se ha trabajado sobre la tarea: "{text}".\n\n'
    "(Añade aquí más detalles sobre la intervención realizada)"
)


def task_to_intervention_seed(case: Case | None, task: Task) -> dict[str, Any]:
    """Build the editor seed for logging work done on ``task``.

    The seed is registered in the notebook and already completed. The
    task itself is left untouched; conversion only proposes a new
    intervention.

    Args:
        case: Case owning the task; general tasks have none
        task: The task that was worked on

    Returns:
        Seed values for ``EventEditor``

    Raises:
        ValueError: If the task is not attached to a case
    """
    if case is None:
        raise ValueError(f"Task {task.id} is a general task and cannot be logged in a notebook")

    return {
        "title": TASK_TITLE_TEMPLATE.format(text=task.text),
        "intervention_type": InterventionType.ACCOMPANIMENT,
        "notes": TASK_NOTES_TEMPLATE.format(text=task.text),
        "is_registered": True,
        "status": InterventionStatus.COMPLETED,
        "case_id": case.id,
    }
