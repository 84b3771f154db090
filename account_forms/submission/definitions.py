from dataclasses import dataclass
from typing import Callable

from account_forms.form.accounts import (
    LOGIN_SCHEMA,
    SIGNUP_SCHEMA,
    initial_login_state,
    initial_signup_state,
)
from account_forms.form.schema import FormSchema
from account_forms.form.types import FormState
from account_forms.submission.responses import (
    LoginResponseInterpreter,
    ResponseInterpreter,
    SignupResponseInterpreter,
)


@dataclass(frozen=True)
class FormDefinition:
    """Everything needed to validate and submit one kind of form"""

    name: str
    schema: FormSchema
    path: str
    interpret_response: ResponseInterpreter
    initial_state: Callable[[], FormState]


SIGNUP_FORM = FormDefinition(
    name="signup",
    schema=SIGNUP_SCHEMA,
    path="/api/createUser",
    interpret_response=SignupResponseInterpreter(),
    initial_state=initial_signup_state,
)

LOGIN_FORM = FormDefinition(
    name="login",
    schema=LOGIN_SCHEMA,
    path="/api/login",
    interpret_response=LoginResponseInterpreter(),
    initial_state=initial_login_state,
)
