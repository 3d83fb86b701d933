"""Question sequencing and scoring for a single user's quiz.

The running quiz lives in the user's session as a ``QuizState``. Every state
change that guards against double taps happens before the first ``await`` of a
step, so two callbacks for the same question can never both be counted.
"""
import logging
from dataclasses import dataclass
from enum import Enum

from quizbot.db.models import Result, Test
from quizbot.db.repository import ResultRepository, TestRepository, UserRepository, today
from quizbot.errors import PersistenceFailure
from quizbot.keyboards import build_answers_keyboard
from quizbot.services.formatting import option_label, percentage
from quizbot.sessions import SessionStore
from quizbot.states import QuizState
from quizbot.transport import Transport


@dataclass(frozen=True)
class Participant:
    """The Telegram user taking a quiz (private chat, so also the chat id)."""

    id: int
    username: str = ""
    full_name: str = ""


class StartOutcome(str, Enum):
    STARTED = "started"
    BUSY = "busy"
    ALREADY_ATTEMPTED = "already_attempted"


class AnswerOutcome(str, Enum):
    IGNORED = "ignored"
    NEXT = "next"
    COMPLETED = "completed"
    ABORTED = "aborted"


def render_question(test: Test, index: int) -> str:
    question = test["questions"][index]
    options = "\n".join(
        f"{option_label(i)}. {option}" for i, option in enumerate(question["options"])
    )
    return "\n".join(
        [
            f"🧩 Test: {test['title']}",
            f"❓ Question {index + 1}/{len(test['questions'])}",
            "",
            question["question"],
            "",
            "Options:",
            options,
        ]
    )


class QuizEngine:
    def __init__(
        self,
        sessions: SessionStore,
        tests: TestRepository,
        results: ResultRepository,
        users: UserRepository,
        transport: Transport,
    ) -> None:
        self.sessions = sessions
        self.tests = tests
        self.results = results
        self.users = users
        self.transport = transport

    async def send_question(self, chat_id: int, test: Test, index: int) -> None:
        question = test["questions"][index]
        keyboard = build_answers_keyboard(test["id"], index, len(question["options"]))
        await self.transport.send_message(chat_id, render_question(test, index), keyboard)

    async def start(self, user: Participant, test: Test) -> StartOutcome:
        """Begin ``test`` unless the user already runs a quiz or took this test."""
        session = self.sessions.get(user.id)
        if session.quiz is not None:
            await self.transport.send_message(
                user.id, "⚠️ You already have an active test. Finish it first."
            )
            return StartOutcome.BUSY

        # reserve before awaiting so a concurrent start sees the quiz as busy
        state = QuizState(test_id=test["id"])
        session.begin_quiz(state)
        try:
            attempted = await self.results.has_attempted(user.id, test["id"])
        except PersistenceFailure:
            self._release(user.id, state)
            raise
        if attempted:
            self._release(user.id, state)
            await self.transport.send_message(user.id, "⚠️ You have already taken this test.")
            return StartOutcome.ALREADY_ATTEMPTED

        if not test["questions"]:
            try:
                await self._finish(user, test, state, previous=(0, 0))
            except PersistenceFailure:
                self._release(user.id, state)
                raise
            return StartOutcome.STARTED

        await self.send_question(user.id, test, 0)
        return StartOutcome.STARTED

    async def answer(
        self, user: Participant, test_id: int, question_index: int, option_index: int
    ) -> AnswerOutcome:
        session = self.sessions.get(user.id)
        state = session.quiz
        if state is None or state.test_id != test_id or state.index != question_index:
            return AnswerOutcome.IGNORED

        previous = (state.index, state.correct)
        state.index += 1
        try:
            test = await self.tests.get(test_id)
        except PersistenceFailure:
            state.index, state.correct = previous
            raise

        if test is None or question_index >= len(test["questions"]):
            logging.warning(f"Test #{test_id} vanished during a quiz of user {user.id}")
            self._release(user.id, state)
            await self.transport.send_message(user.id, "⚠️ This test is no longer available.")
            return AnswerOutcome.ABORTED

        if option_index == test["questions"][question_index]["correct_answer"]:
            state.correct += 1

        if state.index >= len(test["questions"]):
            await self._finish(user, test, state, previous)
            return AnswerOutcome.COMPLETED

        await self.send_question(user.id, test, state.index)
        return AnswerOutcome.NEXT

    async def _finish(
        self, user: Participant, test: Test, state: QuizState, previous: tuple[int, int]
    ) -> None:
        total = len(test["questions"])
        correct = state.correct
        try:
            record = await self.users.ensure(user.id, user.username, user.full_name)
            # a retry after a failed counter update must not record the result twice
            if not await self.results.has_attempted(user.id, test["id"]):
                await self.results.append(
                    Result(
                        user_id=user.id,
                        username=record.get("username", ""),
                        full_name=record.get("full_name", ""),
                        test_id=test["id"],
                        correct=correct,
                        wrong=total - correct,
                        percentage=percentage(correct, total),
                        date=today(),
                    )
                )
            await self.users.increment_tests_worked(user.id)
        except PersistenceFailure:
            # let the user tap the last answer again
            state.index, state.correct = previous
            raise

        self._release(user.id, state)
        logging.info(f"User {user.id} finished test #{test['id']}: {correct}/{total}")
        await self.transport.send_message(user.id, "✅ Test finished. Thank you!")

    def _release(self, user_id: int, state: QuizState) -> None:
        session = self.sessions.get(user_id)
        if session.quiz is state:
            session.quiz = None
