"""Per-user conversation states.

A session holds at most one of: an admin wizard or a running quiz. Each wizard
is its own dataclass so a handler is chosen by type rather than by a mode string.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from quizbot.db.models import Question


@dataclass
class QuizState:
    """A quiz in progress."""

    test_id: int
    index: int = 0
    correct: int = 0


@dataclass
class BroadcastWizard:
    """Waiting for the message to relay to every user."""


class CreateStep(str, Enum):
    TITLE = "title"
    COUNT = "count"
    QUESTION = "question"
    OPTIONS = "options"
    CORRECT = "correct"
    STATUS = "status"


@dataclass
class CreateTestWizard:
    step: CreateStep = CreateStep.TITLE
    title: str = ""
    total: int = 0
    questions: list[Question] = field(default_factory=list)
    pending_text: str = ""
    pending_options: list[str] = field(default_factory=list)


@dataclass
class EditTitleWizard:
    test_id: int


@dataclass
class AddAdminWizard:
    pass


@dataclass
class RemoveAdminWizard:
    pass


@dataclass
class AddChannelWizard:
    pass


WizardState = Union[
    BroadcastWizard,
    CreateTestWizard,
    EditTitleWizard,
    AddAdminWizard,
    RemoveAdminWizard,
    AddChannelWizard,
]

# wizards that only super-admins may run
SUPER_ADMIN_WIZARDS = (AddAdminWizard, RemoveAdminWizard)


@dataclass
class Session:
    wizard: Optional[WizardState] = None
    quiz: Optional[QuizState] = None

    @property
    def is_empty(self) -> bool:
        return self.wizard is None and self.quiz is None

    def begin_wizard(self, wizard: WizardState) -> None:
        self.quiz = None
        self.wizard = wizard

    def begin_quiz(self, quiz: QuizState) -> None:
        self.wizard = None
        self.quiz = quiz

    def clear(self) -> None:
        self.wizard = None
        self.quiz = None
