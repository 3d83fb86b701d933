from quizbot.db.repository import ChannelRepository
from quizbot.keyboards import build_join_keyboard
from quizbot.services.reports import format_join_prompt
from quizbot.transport import Transport

RESTRICTED_TEXT = "⛔ Access restricted\n\nJoin all the channels to use the bot."


async def check_all_channels(transport: Transport, channels: ChannelRepository, user_id: int) -> bool:
    """True if the user joined every active channel (or there are none)."""
    for channel in await channels.active():
        # check_membership already answers False on any Telegram error
        if not await transport.check_membership(channel["id"], user_id):
            return False
    return True


async def send_join_prompt(transport: Transport, channels: ChannelRepository, user_id: int) -> None:
    active = await channels.active()
    await transport.send_message(user_id, format_join_prompt(active), build_join_keyboard(active))


async def ensure_joined(transport: Transport, channels: ChannelRepository, user_id: int) -> bool:
    """Gate for quiz features; tells the user what to join when the check fails."""
    if await check_all_channels(transport, channels, user_id):
        return True
    active = await channels.active()
    await transport.send_message(user_id, RESTRICTED_TEXT, build_join_keyboard(active))
    return False
