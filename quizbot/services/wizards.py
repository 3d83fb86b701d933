"""Admin wizards: broadcast, test creation, title edit, admin and channel management.

Each wizard state is a dataclass from ``quizbot.states``; ``ConversationFSM``
picks the step handler by the state's type. A step handler raises
``ValidationError`` to re-prompt without moving on. Privilege is checked again
on every step.
"""
import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Optional, get_args

from quizbot.db.models import Question, Test
from quizbot.db.repository import ChannelRepository, TestRepository, UserRepository
from quizbot.errors import (
    ExternalCallFailure,
    NotFoundError,
    PermissionDenied,
    PersistenceFailure,
    ValidationError,
)
from quizbot.keyboards import build_admin_menu, build_status_keyboard
from quizbot.services.access import AdminRegistry, parse_admin_id
from quizbot.sessions import SessionStore
from quizbot.states import (
    SUPER_ADMIN_WIZARDS,
    AddAdminWizard,
    AddChannelWizard,
    BroadcastWizard,
    CreateStep,
    CreateTestWizard,
    EditTitleWizard,
    RemoveAdminWizard,
    WizardState,
)
from quizbot.transport import Transport

MAX_QUESTIONS = 100
OPTION_DELIMITER = "|"
CHANNEL_HANDLE = re.compile(r"^(@\w+|-?\d+)$")

FAILURE_TEXT = "⚠️ Something went wrong while saving. Please try again."
DENIED_TEXT = "⛔ Access denied."


@dataclass
class InboundMessage:
    """The parts of a Telegram message the wizards look at."""

    chat_id: int
    message_id: int
    text: Optional[str] = None


@dataclass
class BroadcastTally:
    delivered: int = 0
    errors: int = 0


def title_prompt() -> str:
    return "🧩 Create test (1/5)\n\nSend the test title."


def count_prompt() -> str:
    return f"🧩 Create test (2/5)\n\nSend the number of questions (1-{MAX_QUESTIONS})."


def question_prompt(wizard: CreateTestWizard) -> str:
    number = len(wizard.questions) + 1
    return f"🧩 Create test (3/5)\n\nSend the text of question {number}/{wizard.total}."


def options_prompt(wizard: CreateTestWizard) -> str:
    number = len(wizard.questions) + 1
    return (
        f"🧩 Create test (4/5)\n\nSend the options for question {number}/{wizard.total} "
        f"separated by '{OPTION_DELIMITER}' (for example: A|B|C|D)."
    )


def correct_prompt(wizard: CreateTestWizard) -> str:
    number = len(wizard.questions) + 1
    return (
        f"🧩 Create test (5/5)\n\nSend the number of the correct answer for question "
        f"{number}/{wizard.total} (1-{len(wizard.pending_options)})."
    )


STATUS_PROMPT = "🧩 Test status\n\nMake the test open or closed:"
CHANNEL_PROMPT = "📡 Add channel\n\nSend the channel username or ID (for example: @channel or -100123...)."

ENTRY_PROMPTS = {
    BroadcastWizard: "📣 Broadcast\n\nSend the message to deliver.\nCancel: /cancel",
    CreateTestWizard: title_prompt(),
    EditTitleWizard: "✏️ Edit test\n\nSend the new test title.",
    AddAdminWizard: "👑 Add admin\n\nSend the admin ID.",
    RemoveAdminWizard: "👑 Remove admin\n\nSend the admin ID.",
    AddChannelWizard: CHANNEL_PROMPT,
}


def parse_options(text: str) -> list[str]:
    options = [part.strip() for part in text.split(OPTION_DELIMITER)]
    options = [option for option in options if option]
    if len(options) < 2:
        raise ValidationError("⚠️ Send at least 2 options.")
    return options


def parse_count(text: str) -> int:
    try:
        count = int(text)
    except ValueError:
        count = 0
    if not 1 <= count <= MAX_QUESTIONS:
        raise ValidationError(f"⚠️ Please send a number from 1 to {MAX_QUESTIONS}.")
    return count


def parse_correct(text: str, option_count: int) -> int:
    """One-based answer number from the admin, zero-based index back."""
    try:
        number = int(text)
    except ValueError:
        number = 0
    if not 1 <= number <= option_count:
        raise ValidationError(f"⚠️ Please send a number from 1 to {option_count}.")
    return number - 1


class ConversationFSM:
    def __init__(
        self,
        sessions: SessionStore,
        admins: AdminRegistry,
        tests: TestRepository,
        channels: ChannelRepository,
        users: UserRepository,
        transport: Transport,
        broadcast_delay: float = 0.025,
    ) -> None:
        self.sessions = sessions
        self.admins = admins
        self.tests = tests
        self.channels = channels
        self.users = users
        self.transport = transport
        self.broadcast_delay = broadcast_delay

    def is_active(self, user_id: int) -> bool:
        return self.sessions.get(user_id).wizard is not None

    def _require(self, user_id: int, wizard: WizardState) -> None:
        if isinstance(wizard, SUPER_ADMIN_WIZARDS):
            allowed = self.admins.is_super_admin(user_id)
        else:
            allowed = self.admins.is_admin(user_id)
        if not allowed:
            raise PermissionDenied(DENIED_TEXT)

    async def _reply(self, user_id: int, text: str, reply_markup=None) -> None:
        await self.transport.send_message(user_id, text, reply_markup)

    async def _done(self, user_id: int, wizard: WizardState, text: str) -> None:
        self._release(user_id, wizard)
        menu = build_admin_menu(self.admins.is_super_admin(user_id))
        await self._reply(user_id, text, menu)

    def _release(self, user_id: int, wizard: WizardState) -> None:
        session = self.sessions.get(user_id)
        if session.wizard is wizard:
            session.wizard = None

    async def begin(self, user_id: int, wizard: WizardState) -> bool:
        """Enter a wizard and send its first prompt."""
        try:
            self._require(user_id, wizard)
        except PermissionDenied as e:
            await self._reply(user_id, str(e))
            return False
        self.sessions.get(user_id).begin_wizard(wizard)
        await self._reply(user_id, ENTRY_PROMPTS[type(wizard)])
        return True

    async def handle_message(self, user_id: int, message: InboundMessage) -> bool:
        """Feed one message to the user's wizard. False if no wizard is running."""
        wizard = self.sessions.get(user_id).wizard
        if wizard is None:
            return False
        try:
            self._require(user_id, wizard)
        except PermissionDenied as e:
            self._release(user_id, wizard)
            await self._reply(user_id, str(e))
            return True

        if not isinstance(wizard, BroadcastWizard):
            if message.text is None:
                await self._reply(user_id, "⚠️ Please send text.")
                return True
            message.text = message.text.strip()

        step = getattr(self, _STEPS[type(wizard)])
        try:
            await step(user_id, wizard, message)
        except ValidationError as e:
            await self._reply(user_id, str(e))
        except PersistenceFailure:
            await self._reply(user_id, FAILURE_TEXT)
        return True

    async def _broadcast_step(self, user_id: int, wizard: BroadcastWizard, message: InboundMessage) -> None:
        users = await self.users.all()
        # cleared up front so messages sent during delivery are not relayed again
        self._release(user_id, wizard)
        tally = await self.broadcast(users, message)
        logging.info(f"Broadcast by {user_id}: delivered {tally.delivered}, errors {tally.errors}")
        await self._done(
            user_id,
            wizard,
            f"✅ Message sent.\nDelivered: {tally.delivered}\nErrors: {tally.errors}",
        )

    async def broadcast(self, users: list, message: InboundMessage) -> BroadcastTally:
        """Copy the message to every user, one at a time, counting failures."""
        tally = BroadcastTally()
        for user in users:
            try:
                ok = await self.transport.copy_message(user["id"], message.chat_id, message.message_id)
            except ExternalCallFailure as e:
                logging.warning(f"Broadcast to {user['id']} failed: {e}")
                ok = False
            if ok:
                tally.delivered += 1
            else:
                tally.errors += 1
            await asyncio.sleep(self.broadcast_delay)
        return tally

    async def _create_test_step(self, user_id: int, wizard: CreateTestWizard, message: InboundMessage) -> None:
        text = message.text

        if wizard.step == CreateStep.TITLE:
            if not text:
                raise ValidationError(title_prompt())
            wizard.title = text
            wizard.step = CreateStep.COUNT
            await self._reply(user_id, count_prompt())

        elif wizard.step == CreateStep.COUNT:
            wizard.total = parse_count(text)
            wizard.step = CreateStep.QUESTION
            await self._reply(user_id, question_prompt(wizard))

        elif wizard.step == CreateStep.QUESTION:
            if not text:
                raise ValidationError(question_prompt(wizard))
            wizard.pending_text = text
            wizard.step = CreateStep.OPTIONS
            await self._reply(user_id, options_prompt(wizard))

        elif wizard.step == CreateStep.OPTIONS:
            wizard.pending_options = parse_options(text)
            wizard.step = CreateStep.CORRECT
            await self._reply(user_id, correct_prompt(wizard))

        elif wizard.step == CreateStep.CORRECT:
            correct = parse_correct(text, len(wizard.pending_options))
            wizard.questions.append(
                Question(
                    question=wizard.pending_text,
                    options=wizard.pending_options,
                    correct_answer=correct,
                )
            )
            wizard.pending_text = ""
            wizard.pending_options = []
            if len(wizard.questions) >= wizard.total:
                wizard.step = CreateStep.STATUS
                await self._reply(user_id, STATUS_PROMPT, build_status_keyboard())
            else:
                wizard.step = CreateStep.QUESTION
                await self._reply(user_id, question_prompt(wizard))

        elif wizard.step == CreateStep.STATUS:
            await self._reply(user_id, STATUS_PROMPT, build_status_keyboard())

        else:
            raise ValueError(f"Unhandled test creation step: {wizard.step}")

    async def choose_status(self, user_id: int, status: str) -> Optional[Test]:
        """Final button of test creation: persist the test as open or closed."""
        wizard = self.sessions.get(user_id).wizard
        if not isinstance(wizard, CreateTestWizard) or wizard.step != CreateStep.STATUS:
            return None
        try:
            self._require(user_id, wizard)
        except PermissionDenied as e:
            self._release(user_id, wizard)
            await self._reply(user_id, str(e))
            return None
        if status not in ("open", "closed"):
            return None

        test = await self.tests.create(wizard.title, status, wizard.questions)
        logging.info(f"Test #{test['id']} created by {user_id}")
        await self._done(user_id, wizard, f"✅ Test created: #{test['id']} {test['title']}")
        return test

    async def _edit_title_step(self, user_id: int, wizard: EditTitleWizard, message: InboundMessage) -> None:
        if not message.text:
            raise ValidationError(ENTRY_PROMPTS[EditTitleWizard])
        try:
            await self.tests.rename(wizard.test_id, message.text)
        except NotFoundError:
            self._release(user_id, wizard)
            await self._reply(user_id, "⚠️ Test not found.")
            return
        await self._done(user_id, wizard, "✅ Test title updated.")

    async def _add_admin_step(self, user_id: int, wizard: AddAdminWizard, message: InboundMessage) -> None:
        admin_id = parse_admin_id(message.text)
        await self.admins.add(admin_id)
        await self._done(user_id, wizard, f"✅ Admin added: {admin_id}")

    async def _remove_admin_step(self, user_id: int, wizard: RemoveAdminWizard, message: InboundMessage) -> None:
        admin_id = parse_admin_id(message.text)
        if not await self.admins.remove(admin_id):
            await self._reply(user_id, "ℹ️ This user is not an admin.")
            return
        await self._done(user_id, wizard, f"✅ Admin removed: {admin_id}")

    async def _add_channel_step(self, user_id: int, wizard: AddChannelWizard, message: InboundMessage) -> None:
        handle = message.text
        if not CHANNEL_HANDLE.match(handle):
            raise ValidationError(CHANNEL_PROMPT)
        try:
            info = await self.transport.resolve_channel(handle)
        except ExternalCallFailure:
            await self._reply(user_id, "⚠️ Channel not found or the bot has no access to it.")
            return
        if not info.is_channel:
            raise ValidationError("⚠️ This is not a channel. Please send a channel.")

        username = f"@{info.username}" if info.username else ""
        channel = await self.channels.upsert_active(info.id, info.title, username)
        logging.info(f"Channel {channel['id']} activated by {user_id}")
        await self._done(user_id, wizard, f"✅ Channel added: {info.title or info.id}")


_STEPS = {
    BroadcastWizard: "_broadcast_step",
    CreateTestWizard: "_create_test_step",
    EditTitleWizard: "_edit_title_step",
    AddAdminWizard: "_add_admin_step",
    RemoveAdminWizard: "_remove_admin_step",
    AddChannelWizard: "_add_channel_step",
}

if set(_STEPS) != set(get_args(WizardState)):
    raise TypeError("every wizard state needs a step handler")
