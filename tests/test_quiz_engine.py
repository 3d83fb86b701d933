# =============================================================================
# QuizEngine: start, answer sequencing, scoring, completion
# =============================================================================

import asyncio
from unittest.mock import AsyncMock

import pytest

from quizbot.errors import PersistenceFailure
from quizbot.services.quiz_engine import AnswerOutcome, Participant, StartOutcome, render_question

from conftest import PLAYER, question, sent_texts

PLAYER_ONE = Participant(id=PLAYER, username="alice", full_name="Alice Smith")


async def create_math(tests_repo, status="open"):
    return await tests_repo.create("Math", status, [question("2+2?", ["3", "4"], 1)])


async def create_three(tests_repo):
    return await tests_repo.create(
        "Mix",
        "open",
        [
            question("2+2?", ["3", "4"], 1),
            question("3*3?", ["9", "6", "8"], 0),
            question("10/2?", ["2", "5"], 1),
        ],
    )


class TestStart:
    @pytest.mark.asyncio
    async def test_start_sends_first_question(self, engine, sessions, tests_repo, transport):
        test = await create_math(tests_repo)

        outcome = await engine.start(PLAYER_ONE, test)

        assert outcome == StartOutcome.STARTED
        quiz = sessions.get(PLAYER).quiz
        assert (quiz.test_id, quiz.index, quiz.correct) == (test["id"], 0, 0)
        text = sent_texts(transport)[-1]
        assert "Question 1/1" in text
        assert "A. 3" in text and "B. 4" in text

    @pytest.mark.asyncio
    async def test_start_while_in_progress_is_noop(self, engine, sessions, tests_repo, transport):
        test = await create_three(tests_repo)
        await engine.start(PLAYER_ONE, test)
        await engine.answer(PLAYER_ONE, test["id"], 0, 1)
        sent_before = transport.send_message.await_count

        outcome = await engine.start(PLAYER_ONE, test)

        assert outcome == StartOutcome.BUSY
        quiz = sessions.get(PLAYER).quiz
        assert (quiz.index, quiz.correct) == (1, 1)
        assert transport.send_message.await_count == sent_before + 1
        assert "active test" in sent_texts(transport)[-1]

    @pytest.mark.asyncio
    async def test_start_already_attempted_refused(self, engine, sessions, tests_repo, transport):
        test = await create_math(tests_repo)
        await engine.start(PLAYER_ONE, test)
        await engine.answer(PLAYER_ONE, test["id"], 0, 1)

        outcome = await engine.start(PLAYER_ONE, test)

        assert outcome == StartOutcome.ALREADY_ATTEMPTED
        assert sessions.get(PLAYER).quiz is None

    @pytest.mark.asyncio
    async def test_concurrent_starts_admit_one(self, engine, tests_repo):
        test = await create_math(tests_repo)

        outcomes = await asyncio.gather(
            engine.start(PLAYER_ONE, test), engine.start(PLAYER_ONE, test)
        )

        assert sorted(outcomes) == sorted([StartOutcome.STARTED, StartOutcome.BUSY])


class TestAnswer:
    @pytest.mark.asyncio
    async def test_end_to_end_math(self, engine, sessions, tests_repo, results, users, transport):
        test = await create_math(tests_repo)
        await engine.start(PLAYER_ONE, test)

        outcome = await engine.answer(PLAYER_ONE, test["id"], 0, 1)

        assert outcome == AnswerOutcome.COMPLETED
        assert sessions.get(PLAYER).quiz is None
        [result] = await results.all()
        assert result["user_id"] == PLAYER
        assert result["username"] == "alice"
        assert result["full_name"] == "Alice Smith"
        assert (result["correct"], result["wrong"], result["percentage"]) == (1, 0, 100)
        assert (await users.get(PLAYER))["tests_worked"] == 1
        assert "finished" in sent_texts(transport)[-1]

    @pytest.mark.asyncio
    async def test_wrong_answer_scores_zero(self, engine, tests_repo, results):
        test = await create_math(tests_repo)
        await engine.start(PLAYER_ONE, test)

        await engine.answer(PLAYER_ONE, test["id"], 0, 0)

        [result] = await results.all()
        assert (result["correct"], result["wrong"], result["percentage"]) == (0, 1, 0)

    @pytest.mark.asyncio
    async def test_multi_question_scoring(self, engine, tests_repo, results):
        test = await create_three(tests_repo)
        await engine.start(PLAYER_ONE, test)

        assert await engine.answer(PLAYER_ONE, test["id"], 0, 1) == AnswerOutcome.NEXT
        assert await engine.answer(PLAYER_ONE, test["id"], 1, 0) == AnswerOutcome.NEXT
        assert await engine.answer(PLAYER_ONE, test["id"], 2, 0) == AnswerOutcome.COMPLETED

        [result] = await results.all()
        assert (result["correct"], result["wrong"], result["percentage"]) == (2, 1, 67)
        assert result["correct"] + result["wrong"] == 3

    @pytest.mark.asyncio
    async def test_stale_answer_ignored(self, engine, sessions, tests_repo, transport):
        test = await create_three(tests_repo)
        await engine.start(PLAYER_ONE, test)
        await engine.answer(PLAYER_ONE, test["id"], 0, 1)
        sent_before = transport.send_message.await_count

        outcome = await engine.answer(PLAYER_ONE, test["id"], 0, 1)

        assert outcome == AnswerOutcome.IGNORED
        quiz = sessions.get(PLAYER).quiz
        assert (quiz.index, quiz.correct) == (1, 1)
        assert transport.send_message.await_count == sent_before

    @pytest.mark.asyncio
    async def test_answer_for_other_test_ignored(self, engine, sessions, tests_repo):
        test = await create_three(tests_repo)
        await engine.start(PLAYER_ONE, test)

        outcome = await engine.answer(PLAYER_ONE, test["id"] + 1, 0, 1)

        assert outcome == AnswerOutcome.IGNORED
        assert sessions.get(PLAYER).quiz.index == 0

    @pytest.mark.asyncio
    async def test_answer_without_quiz_ignored(self, engine):
        assert await engine.answer(PLAYER_ONE, 1, 0, 0) == AnswerOutcome.IGNORED

    @pytest.mark.asyncio
    async def test_double_tap_counted_once(self, engine, sessions, tests_repo):
        test = await create_three(tests_repo)
        await engine.start(PLAYER_ONE, test)

        outcomes = await asyncio.gather(
            engine.answer(PLAYER_ONE, test["id"], 0, 1),
            engine.answer(PLAYER_ONE, test["id"], 0, 1),
        )

        assert sorted(outcomes) == sorted([AnswerOutcome.NEXT, AnswerOutcome.IGNORED])
        quiz = sessions.get(PLAYER).quiz
        assert (quiz.index, quiz.correct) == (1, 1)


class TestFailures:
    @pytest.mark.asyncio
    async def test_deleted_test_aborts_quiz(self, engine, sessions, tests_repo, results, transport):
        test = await create_three(tests_repo)
        await engine.start(PLAYER_ONE, test)
        await tests_repo.delete(test["id"])

        outcome = await engine.answer(PLAYER_ONE, test["id"], 0, 1)

        assert outcome == AnswerOutcome.ABORTED
        assert sessions.get(PLAYER).quiz is None
        assert await results.all() == []
        assert "no longer available" in sent_texts(transport)[-1]

    @pytest.mark.asyncio
    async def test_failed_result_write_allows_retry(self, engine, sessions, tests_repo, results, users):
        test = await create_math(tests_repo)
        await engine.start(PLAYER_ONE, test)
        original_append = results.append
        results.append = AsyncMock(side_effect=PersistenceFailure("write results"))

        with pytest.raises(PersistenceFailure):
            await engine.answer(PLAYER_ONE, test["id"], 0, 1)

        quiz = sessions.get(PLAYER).quiz
        assert (quiz.index, quiz.correct) == (0, 0)

        results.append = original_append
        assert await engine.answer(PLAYER_ONE, test["id"], 0, 1) == AnswerOutcome.COMPLETED
        assert len(await results.all()) == 1
        assert (await users.get(PLAYER))["tests_worked"] == 1

    @pytest.mark.asyncio
    async def test_failed_counter_write_keeps_single_result(self, engine, tests_repo, results, users):
        """The result is saved before the counter; a retry only bumps the counter."""
        test = await create_math(tests_repo)
        await engine.start(PLAYER_ONE, test)
        original_increment = users.increment_tests_worked
        users.increment_tests_worked = AsyncMock(side_effect=PersistenceFailure("write users"))

        with pytest.raises(PersistenceFailure):
            await engine.answer(PLAYER_ONE, test["id"], 0, 1)

        users.increment_tests_worked = original_increment
        assert await engine.answer(PLAYER_ONE, test["id"], 0, 1) == AnswerOutcome.COMPLETED
        assert len(await results.all()) == 1
        assert (await users.get(PLAYER))["tests_worked"] == 1

    @pytest.mark.asyncio
    async def test_empty_test_failure_releases_session(self, engine, sessions, tests_repo, results):
        test = await tests_repo.create("Empty", "open", [])
        original_append = results.append
        results.append = AsyncMock(side_effect=PersistenceFailure("write results"))

        with pytest.raises(PersistenceFailure):
            await engine.start(PLAYER_ONE, test)

        assert sessions.get(PLAYER).quiz is None
        results.append = original_append
        assert await engine.start(PLAYER_ONE, test) == StartOutcome.STARTED
        assert len(await results.all()) == 1


class TestRenderQuestion:
    def test_labels_fall_back_to_numbers_after_z(self):
        options = [f"opt{i}" for i in range(28)]
        test = {"id": 1, "title": "Big", "questions": [question("Pick", options, 0)]}

        text = render_question(test, 0)

        assert "A. opt0" in text
        assert "Z. opt25" in text
        assert "27. opt26" in text
        assert "28. opt27" in text
