import pytest

from prherald import policy
from prherald.github.model import ProjectAssociation

BOARD = ProjectAssociation(title="Backoffice")


@pytest.mark.parametrize(
    "labels,projects,expected",
    [
        ([], [], policy.MISSING_LABELS_AND_PROJECTS),
        ([], [BOARD], policy.MISSING_LABELS),
        (["bug"], [], policy.MISSING_PROJECTS),
        (["bug"], [BOARD], None),
    ],
)
def test_decide(labels, projects, expected):
    assert policy.decide(labels, projects) == expected


def test_decide_is_deterministic():
    first = policy.decide([], [BOARD])
    assert policy.decide([], [BOARD]) == first
    assert policy.decide(("bug", "docs"), (BOARD,)) is None


def test_messages_are_distinct():
    messages = {
        policy.MISSING_LABELS_AND_PROJECTS,
        policy.MISSING_LABELS,
        policy.MISSING_PROJECTS,
    }
    assert len(messages) == 3
    assert "labels y proyectos" in policy.MISSING_LABELS_AND_PROJECTS
