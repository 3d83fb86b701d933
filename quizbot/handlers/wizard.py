from aiogram import F, Router
from aiogram.types import CallbackQuery, Message

from quizbot.errors import PersistenceFailure
from quizbot.filters import WizardActive
from quizbot.services.wizards import FAILURE_TEXT, ConversationFSM, InboundMessage

router = Router()


@router.message(WizardActive())
async def wizard_message(msg: Message, wizards: ConversationFSM) -> None:
    """Every non-command message goes to the sender's running wizard."""
    await wizards.handle_message(
        msg.from_user.id,
        InboundMessage(chat_id=msg.chat.id, message_id=msg.message_id, text=msg.text),
    )


@router.callback_query(F.data.startswith("test_status:"))
async def choose_test_status(cb: CallbackQuery, wizards: ConversationFSM) -> None:
    await cb.answer()
    status = cb.data.split(":", 1)[1]
    try:
        await wizards.choose_status(cb.from_user.id, status)
    except PersistenceFailure:
        await cb.message.answer(FAILURE_TEXT)
