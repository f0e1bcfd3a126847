from typing import Optional, Sequence

from prherald.github.model import ProjectAssociation

MISSING_LABELS_AND_PROJECTS = (
    "Por favor, asegúrate de asignar los labels y proyectos necesarios "
    "para una mejor gestión."
)
MISSING_LABELS = "Por favor, asigna los labels necesarios para una mejor gestión."
MISSING_PROJECTS = "Por favor, asigna los proyectos necesarios para una mejor gestión."

THANKS_MESSAGE = "¡Gracias por tu contribución! :tada:"


def decide(
    labels: Sequence[str], projects: Sequence[ProjectAssociation]
) -> Optional[str]:
    """Reminder text for a pull request missing labels and/or projects.

    Returns ``None`` when both are assigned.
    """
    if len(labels) == 0 and len(projects) == 0:
        return MISSING_LABELS_AND_PROJECTS
    if len(labels) == 0:
        return MISSING_LABELS
    if len(projects) == 0:
        return MISSING_PROJECTS
    return None
