import logging

from telebot import AsyncTeleBot
from telebot import types as tg
from telebot.runner import BotRunner
from telebot.types import constants as tg_constants

from account_forms.bot.commands import AccountCommandsConfig, setup_account_commands
from account_forms.bot.handler import (
    AccountFormConfig,
    AccountFormExitContext,
    AccountFormHandler,
)
from account_forms.bot.prompts import LOGIN_PROMPTS, SIGNUP_PROMPTS
from account_forms.redis_utils.interface import RedisInterface
from account_forms.stores.session import SessionStore
from account_forms.submission.client import BackendClient, BackendConfig
from account_forms.submission.definitions import LOGIN_FORM, SIGNUP_FORM


def form_config(starting_template: str, start_cmd: str, checklist_header: str | None) -> AccountFormConfig:
    return AccountFormConfig(
        form_starting_template=starting_template,
        submit_prompt="Please check your answers and press the button below.",
        submit_button_caption="Submit",
        errors_header="Please fix the following:",
        text_expected_msg="Please send a text message.",
        use_submit_button_msg="All fields are filled, use the button to submit the form.",
        already_submitting_msg="Already submitting, please wait...",
        form_expired_msg="This form has expired, please start over.",
        cancelled_msg="Cancelled.",
        unsupported_cmd_error_template="The command is not supported! To cancel the form, use {}.",
        cancelling_because_of_error_template="Something went wrong, the form is cancelled (details: {}).",
        checklist_header=checklist_header,
        start_cmd=start_cmd,
    )


def create_account_bot(redis: RedisInterface, token: str, client: BackendClient) -> BotRunner:
    bot_prefix = "example-account-bot"
    bot = AsyncTeleBot(token)

    logging.basicConfig(level=logging.DEBUG)

    session_store = SessionStore(redis, bot_prefix)

    signup_handler = AccountFormHandler(
        redis=redis,
        bot_prefix=bot_prefix,
        form=SIGNUP_FORM,
        prompts=SIGNUP_PROMPTS,
        config=form_config(
            "Let's create your account! To cancel, use {}.",
            start_cmd="/signup",
            checklist_header="Password requirements:",
        ),
        client=client,
    )
    login_handler = AccountFormHandler(
        redis=redis,
        bot_prefix=bot_prefix,
        form=LOGIN_FORM,
        prompts=LOGIN_PROMPTS,
        config=form_config("Logging in. To cancel, use {}.", start_cmd="/login", checklist_header=None),
        client=client,
        session_store=session_store,
    )

    @bot.message_handler(commands=["start", "help"], chat_types=[tg_constants.ChatType.private])
    async def start_cmd_handler(message: tg.Message):
        await bot.send_message(
            message.chat.id,
            "Hi! Use /signup to create an account, /login to log in, "
            + "/whoami to see who you are logged in as, /users to list users and /logout to log out.",
        )

    async def on_signup_completed(context: AccountFormExitContext):
        await bot.send_message(context.user.id, "Your account has been created! Now you can /login.")

    async def on_login_completed(context: AccountFormExitContext):
        identity = context.outcome.identity if context.outcome is not None else None
        name = identity.name if identity is not None else context.form_state.get("name")
        await bot.send_message(context.user.id, f"Welcome, {name}!")

    signup_handler.setup(bot, on_form_completed=on_signup_completed)
    login_handler.setup(bot, on_form_completed=on_login_completed)
    setup_account_commands(bot, session_store=session_store, client=client, config=AccountCommandsConfig())

    return BotRunner(
        bot_prefix=bot_prefix,
        bot=bot,
    )


if __name__ == "__main__":
    import asyncio
    import os

    from redis.asyncio import Redis  # type: ignore

    from account_forms.redis_utils.emulation import RedisEmulation

    async def main() -> None:
        redis_url = os.environ.get("REDIS_URL")
        redis = Redis.from_url(redis_url) if redis_url is not None else RedisEmulation()
        client = BackendClient(BackendConfig(base_url=os.environ.get("BACKEND_URL", "http://localhost:3000")))
        bot_runner = create_account_bot(redis=redis, token=os.environ["TOKEN"], client=client)
        try:
            await bot_runner.run_polling()
        finally:
            await client.close()

    asyncio.run(main())
