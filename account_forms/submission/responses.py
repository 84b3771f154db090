from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Optional, Protocol

from account_forms.form.types import ErrorState
from account_forms.stores.session import SessionIdentity
from account_forms.submission.client import BackendResponse


@dataclass(frozen=True)
class BackendVerdict:
    succeeded: bool
    identity: Optional[SessionIdentity] = None
    errors: ErrorState = dataclass_field(default_factory=dict)
    form_error: Optional[str] = None


class ResponseInterpreter(Protocol):
    def __call__(self, response: BackendResponse) -> BackendVerdict:
        ...


@dataclass(frozen=True)
class LoginResponseInterpreter:
    # the same message goes to all the credential fields, so that the user can't tell which one was wrong
    invalid_credentials_msg: str = "Invalid credentials"
    login_failed_msg: str = "Login failed"
    credential_fields: tuple[str, ...] = ("name", "password")
    login_failed_field: str = "name"

    def __call__(self, response: BackendResponse) -> BackendVerdict:
        if response.status == 401:
            return BackendVerdict(
                succeeded=False,
                errors={field: self.invalid_credentials_msg for field in self.credential_fields},
            )
        user_id = response.body.get("userId")
        if response.ok and user_id:
            return BackendVerdict(
                succeeded=True,
                identity=SessionIdentity(user_id=str(user_id), name=str(response.body.get("name", ""))),
            )
        return BackendVerdict(succeeded=False, errors={self.login_failed_field: self.login_failed_msg})


@dataclass(frozen=True)
class SignupResponseInterpreter:
    signup_failed_msg: str = "Signup failed, please try again later"

    def __call__(self, response: BackendResponse) -> BackendVerdict:
        if response.ok:
            return BackendVerdict(succeeded=True)
        return BackendVerdict(succeeded=False, form_error=self.signup_failed_msg)
