import inspect
import logging
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum, auto
from typing import Awaitable, Callable, Mapping, Optional, Union

from account_forms.form.types import ErrorState, FormState, Invalid, SubmissionPayload
from account_forms.stores.session import SessionHandle, SessionIdentity
from account_forms.submission.client import BackendClient, BackendError, BackendResponse
from account_forms.submission.definitions import FormDefinition


class SubmitState(Enum):
    IDLE = auto()
    VALIDATING = auto()
    REJECTED = auto()
    SUBMITTING = auto()
    SUCCEEDED = auto()
    FAILED = auto()


class SubmitStatus(Enum):
    IGNORED = auto()  # another submission was in flight
    REJECTED = auto()
    SUCCEEDED = auto()
    FAILED = auto()


@dataclass(frozen=True)
class SubmitOutcome:
    status: SubmitStatus
    errors: ErrorState = dataclass_field(default_factory=dict)
    form_error: Optional[str] = None
    identity: Optional[SessionIdentity] = None
    payload: Optional[SubmissionPayload] = None
    response: Optional[BackendResponse] = None

    @property
    def succeeded(self) -> bool:
        return self.status is SubmitStatus.SUCCEEDED


StateListener = Callable[[SubmitState], Union[None, Awaitable[None]]]


class SubmissionOrchestrator:
    """
    Drives one form instance through idle -> validating -> (rejected | submitting -> (succeeded | failed)) -> idle.

    Single-flight: while a submission is being validated or sent, further calls to submit are ignored
    (not queued). Exactly one request is sent per accepted call, failures are not retried.
    """

    def __init__(
        self,
        form: FormDefinition,
        client: BackendClient,
        session: Optional[SessionHandle] = None,
        transport_error_msg: str = "Could not reach the server, please try again",
        logger: Optional[logging.Logger] = None,
    ):
        self.form = form
        self.client = client
        self.session = session
        self.transport_error_msg = transport_error_msg
        self.logger = logger or logging.getLogger(f"{__name__}[{form.name}]")
        self.state = SubmitState.IDLE
        self._listeners: list[StateListener] = []

    def on_state_change(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    @property
    def in_flight(self) -> bool:
        return self.state is not SubmitState.IDLE

    async def _transition(self, state: SubmitState) -> None:
        self.state = state
        for listener in self._listeners:
            try:
                res = listener(state)
                if inspect.isawaitable(res):
                    await res
            except Exception:
                self.logger.exception(f"Error in state listener {listener!r} on {state}")

    async def submit(self, form_state: Mapping) -> SubmitOutcome:
        if self.in_flight:
            self.logger.info(f"Submission ignored, another one is in progress ({self.state.name})")
            return SubmitOutcome(SubmitStatus.IGNORED)
        # state is switched before the first await, so a concurrent trigger sees it
        self.state = SubmitState.VALIDATING
        try:
            await self._transition(SubmitState.VALIDATING)
            return await self._validate_and_send(dict(form_state))
        except Exception:
            self.logger.exception(f"Unexpected error submitting {self.form.name} form")
            await self._transition(SubmitState.FAILED)
            return SubmitOutcome(SubmitStatus.FAILED, form_error=self.transport_error_msg)
        finally:
            await self._transition(SubmitState.IDLE)

    async def _validate_and_send(self, form_state: FormState) -> SubmitOutcome:
        result = self.form.schema.validate(form_state)
        if isinstance(result, Invalid):
            self.logger.debug(f"Validation failed for fields: {sorted(result.errors)}")
            await self._transition(SubmitState.REJECTED)
            return SubmitOutcome(SubmitStatus.REJECTED, errors=result.errors)

        await self._transition(SubmitState.SUBMITTING)
        try:
            response = await self.client.post_json(self.form.path, result.payload)
        except BackendError:
            self.logger.exception(f"Error sending {self.form.name} form to the backend")
            await self._transition(SubmitState.FAILED)
            return SubmitOutcome(SubmitStatus.FAILED, form_error=self.transport_error_msg, payload=result.payload)

        verdict = self.form.interpret_response(response)
        if not verdict.succeeded:
            self.logger.info(f"Backend rejected {self.form.name} form with status {response.status}")
            await self._transition(SubmitState.FAILED)
            return SubmitOutcome(
                SubmitStatus.FAILED,
                errors=verdict.errors,
                form_error=verdict.form_error,
                payload=result.payload,
                response=response,
            )

        if verdict.identity is not None and self.session is not None:
            await self.session.start_session(verdict.identity)
        await self._transition(SubmitState.SUCCEEDED)
        return SubmitOutcome(
            SubmitStatus.SUCCEEDED,
            identity=verdict.identity,
            payload=result.payload,
            response=response,
        )
