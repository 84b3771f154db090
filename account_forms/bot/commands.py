import logging
from dataclasses import dataclass

from telebot import AsyncTeleBot
from telebot import types as tg
from telebot.types import constants

from account_forms.stores.session import SessionStore
from account_forms.submission.client import BackendClient, BackendError
from account_forms.utils.strings import telegram_html_escape

logger = logging.getLogger(__name__)


@dataclass
class AccountCommandsConfig:
    # should have placeholders for user's name and session start time
    whoami_template: str = "You are logged in as <b>{}</b> since {}."
    not_logged_in_msg: str = "You are not logged in."
    logged_out_msg: str = "You have been logged out."
    users_header: str = "Registered users:"
    no_users_msg: str = "No users registered yet."
    users_unavailable_msg: str = "Could not load the user list, please try again later."

    whoami_cmd: str = "/whoami"
    logout_cmd: str = "/logout"
    users_cmd: str = "/users"
    users_requires_session: bool = True


def setup_account_commands(
    bot: AsyncTeleBot,
    session_store: SessionStore,
    client: BackendClient,
    config: AccountCommandsConfig,
) -> None:
    @bot.message_handler(commands=[config.whoami_cmd.lstrip("/")], chat_types=[constants.ChatType.private])
    async def whoami_handler(message: tg.Message):
        record = await session_store.for_user(message.from_user.id).get_record()
        if record is None:
            await bot.send_message(message.chat.id, text=config.not_logged_in_msg)
            return
        await bot.send_message(
            message.chat.id,
            text=config.whoami_template.format(
                telegram_html_escape(record.identity.name),
                record.started_at.strftime("%Y-%m-%d %H:%M UTC"),
            ),
            parse_mode="HTML",
        )

    @bot.message_handler(commands=[config.logout_cmd.lstrip("/")], chat_types=[constants.ChatType.private])
    async def logout_handler(message: tg.Message):
        session = session_store.for_user(message.from_user.id)
        if not await session.is_session_active():
            await bot.send_message(message.chat.id, text=config.not_logged_in_msg)
            return
        await session.end_session()
        await bot.send_message(message.chat.id, text=config.logged_out_msg)

    @bot.message_handler(commands=[config.users_cmd.lstrip("/")], chat_types=[constants.ChatType.private])
    async def users_handler(message: tg.Message):
        if config.users_requires_session and not await session_store.for_user(message.from_user.id).is_session_active():
            await bot.send_message(message.chat.id, text=config.not_logged_in_msg)
            return
        try:
            users = await client.list_users()
        except BackendError:
            logger.exception("Error listing users")
            await bot.send_message(message.chat.id, text=config.users_unavailable_msg)
            return
        if not users:
            await bot.send_message(message.chat.id, text=config.no_users_msg)
            return
        lines = [telegram_html_escape(config.users_header)]
        lines.extend(f"• {telegram_html_escape(u.name)}" for u in users)
        await bot.send_message(message.chat.id, text="\n".join(lines), parse_mode="HTML")
