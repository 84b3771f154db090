import json
import logging
from dataclasses import dataclass
from typing import Callable, Coroutine, Optional

from telebot import AsyncTeleBot
from telebot import types as tg
from telebot.callback_data import CallbackData
from telebot.types import constants

from account_forms.bot.prompts import FieldPrompt, InputKind
from account_forms.constants import times
from account_forms.form.types import FormState
from account_forms.redis_utils.interface import RedisInterface
from account_forms.stores.generic import KeyValueStore
from account_forms.stores.session import SessionStore
from account_forms.submission.client import BackendClient
from account_forms.submission.definitions import FormDefinition
from account_forms.submission.orchestrator import (
    SubmissionOrchestrator,
    SubmitOutcome,
    SubmitStatus,
)
from account_forms.utils import join_paragraphs, log_errors
from account_forms.utils.strings import telegram_html_escape

logger = logging.getLogger(__name__)


@dataclass
class AccountFormConfig:
    # should have placeholder for cancel command, e.g. "Let's create your account! To cancel, use {}."
    form_starting_template: str

    # e.g. "Please check your answers and press the button below."
    submit_prompt: str
    submit_button_caption: str

    # e.g. "Please fix the following:"
    errors_header: str

    # e.g. "Please send a text message."
    text_expected_msg: str
    # e.g. "All fields are filled, use the button above to submit the form."
    use_submit_button_msg: str
    # e.g. "Already submitting, please wait."
    already_submitting_msg: str
    # e.g. "This form has expired, please start over."
    form_expired_msg: str
    cancelled_msg: str

    # should have placeholder for available commands, e.g. "Unknown command! Available commands are: {}."
    unsupported_cmd_error_template: str

    # should have placeholder for error, e.g. "Something went wrong, the form is cancelled (details: {})."
    cancelling_because_of_error_template: str

    # if set, every rule of a secret field is listed as passed/failed after the user enters it
    checklist_header: Optional[str] = None
    rule_passed_mark: str = "✅"
    rule_failed_mark: str = "❌"

    start_cmd: Optional[str] = None
    cancel_cmd: str = "/cancel"

    def form_starting_msg(self) -> str:
        return self.form_starting_template.format(self.cancel_cmd)

    def unsupported_cmd_error_msg(self) -> str:
        return self.unsupported_cmd_error_template.format(self.cancel_cmd)


@dataclass
class _AccountFormState:
    """
    User's state when they are filling out a form. Fields listed in pending_fields are yet to be
    asked, in order; when the list is empty, the form waits for the submit button.
    """

    form_state: FormState
    pending_fields: list[str]

    @property
    def current_field(self) -> Optional[str]:
        return self.pending_fields[0] if self.pending_fields else None

    def to_store(self) -> str:
        return json.dumps({"form_state": self.form_state, "pending_fields": self.pending_fields})

    @classmethod
    @log_errors(logger, errmsg="Error loading form state from persistent storage, ignoring it", return_on_error=None)
    def from_store(cls, dump: str) -> Optional["_AccountFormState"]:
        asdict = json.loads(dump)
        return _AccountFormState(form_state=asdict["form_state"], pending_fields=list(asdict["pending_fields"]))


@dataclass
class AccountFormExitContext:
    bot: AsyncTeleBot
    user: tg.User
    form_state: FormState
    outcome: Optional[SubmitOutcome]  # None if the form was cancelled


FormExitCallback = Callable[[AccountFormExitContext], Coroutine[None, None, None]]


class AccountFormHandler:
    """Collects a form's fields from the user one by one, then validates and submits it on the button press"""

    SUBMIT_ACTION = "submit"

    def __init__(
        self,
        redis: RedisInterface,
        bot_prefix: str,
        form: FormDefinition,
        prompts: list[FieldPrompt],
        config: AccountFormConfig,
        client: BackendClient,
        session_store: Optional[SessionStore] = None,
    ):
        self.form = form
        self.config = config
        self.client = client
        self.session_store = session_store
        self.bot_prefix = bot_prefix
        self.logger = logging.getLogger(f"{__name__}[{self.bot_prefix}-{form.name}]")

        prompt_names = [p.field_name for p in prompts]
        if prompt_names != form.schema.field_names:
            raise ValueError(
                f"Prompts must follow the {form.name!r} form fields exactly: {prompt_names} != {form.schema.field_names}"
            )
        self.prompts_by_name = {p.field_name: p for p in prompts}

        self.form_state_store = KeyValueStore[Optional[_AccountFormState]](
            name=f"account-form-state-{form.name}",
            prefix=bot_prefix,
            redis=redis,
            expiration_time=3 * times.HOUR,
            dumper=lambda fs: fs.to_store() if fs is not None else "",
            loader=_AccountFormState.from_store,
        )
        self.submit_callback_data = CallbackData("action", prefix=f"{form.name}-form")
        self._orchestrators: dict[int, SubmissionOrchestrator] = {}

    def orchestrator_for(self, user_id: int) -> SubmissionOrchestrator:
        orchestrator = self._orchestrators.get(user_id)
        if orchestrator is None:
            orchestrator = SubmissionOrchestrator(
                form=self.form,
                client=self.client,
                session=self.session_store.for_user(user_id) if self.session_store is not None else None,
                logger=self.logger,
            )
            self._orchestrators[user_id] = orchestrator
        return orchestrator

    def _forget_orchestrator(self, user_id: int) -> None:
        orchestrator = self._orchestrators.get(user_id)
        if orchestrator is not None and not orchestrator.in_flight:
            self._orchestrators.pop(user_id)

    def submit_markup(self) -> tg.InlineKeyboardMarkup:
        return tg.InlineKeyboardMarkup(
            keyboard=[
                [
                    tg.InlineKeyboardButton(
                        text=self.config.submit_button_caption,
                        callback_data=self.submit_callback_data.new(action=self.SUBMIT_ACTION),
                    )
                ]
            ]
        )

    def summary(self, form_state: FormState) -> str:
        lines: list[str] = []
        for field_name in self.form.schema.field_names:
            prompt = self.prompts_by_name[field_name]
            value = prompt.value_to_str(form_state.get(field_name))
            lines.append(f"<b>{telegram_html_escape(prompt.descr)}</b>: {telegram_html_escape(value)}")
        return "\n".join(lines)

    def checklist_message(self, field_name: str, form_state: FormState) -> Optional[str]:
        if self.config.checklist_header is None:
            return None
        lines = [telegram_html_escape(self.config.checklist_header)]
        for check in self.form.schema.checklist(field_name, form_state):
            mark = self.config.rule_passed_mark if check.passed else self.config.rule_failed_mark
            lines.append(f"{mark} {telegram_html_escape(check.message)}")
        return "\n".join(lines)

    def errors_message(self, outcome: SubmitOutcome) -> str:
        paragraphs: list[str] = []
        if outcome.form_error is not None:
            paragraphs.append(telegram_html_escape(outcome.form_error))
        if outcome.errors:
            lines = [telegram_html_escape(self.config.errors_header)]
            for field_name in self.form.schema.field_names:
                error = outcome.errors.get(field_name)
                if error is not None:
                    descr = self.prompts_by_name[field_name].descr
                    lines.append(f"• <b>{telegram_html_escape(descr)}</b>: {telegram_html_escape(error)}")
            paragraphs.append("\n".join(lines))
        return join_paragraphs(paragraphs)

    async def _ask_next(
        self,
        bot: AsyncTeleBot,
        user: tg.User,
        state: _AccountFormState,
        preceding_paragraphs: list[str],
    ) -> None:
        current_field = state.current_field
        if current_field is not None:
            prompt = self.prompts_by_name[current_field]
            await bot.send_message(
                user.id,
                text=join_paragraphs(preceding_paragraphs + [telegram_html_escape(prompt.query_message)]),
                parse_mode="HTML",
                reply_markup=prompt.reply_markup(),
            )
        else:
            await bot.send_message(
                user.id,
                text=join_paragraphs(
                    preceding_paragraphs
                    + [self.summary(state.form_state), telegram_html_escape(self.config.submit_prompt)]
                ),
                parse_mode="HTML",
                reply_markup=self.submit_markup(),
            )

    async def start(self, bot: AsyncTeleBot, user: tg.User, initial_form_state: Optional[FormState] = None) -> None:
        state = _AccountFormState(
            form_state=initial_form_state or self.form.initial_state(),
            pending_fields=self.form.schema.field_names,
        )
        await self.form_state_store.save(user.id, state)
        self._forget_orchestrator(user.id)
        await self._ask_next(bot, user, state, [telegram_html_escape(self.config.form_starting_msg())])

    async def cancel(self, bot: AsyncTeleBot, user: tg.User, on_form_cancelled: Optional[FormExitCallback]) -> None:
        state = await self.form_state_store.load(user.id)
        await self.form_state_store.drop(user.id)
        self._forget_orchestrator(user.id)
        await bot.send_message(user.id, text=self.config.cancelled_msg, reply_markup=tg.ReplyKeyboardRemove())
        if on_form_cancelled is not None:
            await on_form_cancelled(
                AccountFormExitContext(bot, user, state.form_state if state is not None else {}, outcome=None)
            )

    async def _cancel_because_of_error(self, bot: AsyncTeleBot, user: tg.User, error: Exception) -> None:
        await self.form_state_store.drop(user.id)
        self._forget_orchestrator(user.id)
        await bot.send_message(
            user.id,
            text=self.config.cancelling_because_of_error_template.format(telegram_html_escape(str(error))),
            parse_mode="HTML",
            reply_markup=tg.ReplyKeyboardRemove(),
        )

    async def _process_message(
        self,
        bot: AsyncTeleBot,
        message: tg.Message,
        on_form_cancelled: Optional[FormExitCallback],
    ) -> None:
        user = message.from_user
        state = await self.form_state_store.load(user.id)
        if state is None:
            self.logger.error("Error loading form state from the store, dropping it")
            await self.form_state_store.drop(user.id)
            return

        text = message.text_content if message.content_type == "text" else None
        if text is not None and text.strip().startswith("/"):
            if text.strip() == self.config.cancel_cmd:
                await self.cancel(bot, user, on_form_cancelled)
            else:
                await bot.send_message(user.id, text=self.config.unsupported_cmd_error_msg())
            return

        current_field = state.current_field
        if current_field is None:
            await bot.send_message(user.id, text=self.config.use_submit_button_msg, reply_markup=self.submit_markup())
            return
        prompt = self.prompts_by_name[current_field]
        if not text:
            await bot.send_message(user.id, text=self.config.text_expected_msg, reply_markup=prompt.reply_markup())
            return

        state.form_state[current_field] = prompt.parse(text)
        state.pending_fields.pop(0)
        await self.form_state_store.save(user.id, state)

        paragraphs: list[str] = []
        if prompt.kind is InputKind.SECRET:
            try:
                await bot.delete_message(chat_id=user.id, message_id=message.id)
            except Exception:
                self.logger.debug("Error deleting message with secret value", exc_info=True)
            checklist = self.checklist_message(current_field, state.form_state)
            if checklist is not None:
                paragraphs.append(checklist)
        await self._ask_next(bot, user, state, paragraphs)

    async def _process_submit(
        self,
        bot: AsyncTeleBot,
        call: tg.CallbackQuery,
        on_form_completed: FormExitCallback,
    ) -> None:
        user = call.from_user
        state = await self.form_state_store.load(user.id)
        if state is None or state.current_field is not None:
            await bot.answer_callback_query(call.id, text=self.config.form_expired_msg)
            return

        orchestrator = self.orchestrator_for(user.id)
        if orchestrator.in_flight:
            await bot.answer_callback_query(call.id, text=self.config.already_submitting_msg)
            return
        await bot.answer_callback_query(call.id)
        try:
            # removing the button for the time of submission
            await bot.edit_message_reply_markup(chat_id=user.id, message_id=call.message.id, reply_markup=None)
        except Exception:
            self.logger.debug("Error removing submit button", exc_info=True)

        outcome = await orchestrator.submit(state.form_state)
        # the orchestrator is idle again, a new one is created on the next press
        self._forget_orchestrator(user.id)
        if outcome.status is SubmitStatus.IGNORED:
            return

        if outcome.status is SubmitStatus.SUCCEEDED:
            await self.form_state_store.drop(user.id)
            await on_form_completed(AccountFormExitContext(bot, user, state.form_state, outcome))
            return

        if outcome.errors:
            state.pending_fields = [f for f in self.form.schema.field_names if f in outcome.errors]
        await self.form_state_store.save(user.id, state)
        await self._ask_next(bot, user, state, [self.errors_message(outcome)])

    def setup(
        self,
        bot: AsyncTeleBot,
        on_form_completed: FormExitCallback,
        on_form_cancelled: Optional[FormExitCallback] = None,
    ) -> None:
        async def currently_filling_form(update_content: tg.Message) -> bool:
            return await self.form_state_store.exists(update_content.from_user.id)

        if self.config.start_cmd is not None:

            @bot.message_handler(commands=[self.config.start_cmd.lstrip("/")], chat_types=[constants.ChatType.private])
            async def start_form_handler(message: tg.Message):
                await self.start(bot, message.from_user)

        @bot.message_handler(func=currently_filling_form, chat_types=[constants.ChatType.private], priority=100)
        async def form_message_handler(message: tg.Message):
            try:
                await self._process_message(bot, message, on_form_cancelled)
            except Exception as e:
                self.logger.exception("Unexpected error processing form message")
                await self._cancel_because_of_error(bot, message.from_user, e)

        @bot.callback_query_handler(callback_data=self.submit_callback_data)
        async def form_submit_handler(call: tg.CallbackQuery):
            try:
                await self._process_submit(bot, call, on_form_completed)
            except Exception as e:
                self.logger.exception("Unexpected error submitting form")
                await self._cancel_because_of_error(bot, call.from_user, e)
