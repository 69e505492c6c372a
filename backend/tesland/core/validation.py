"""
# `tesland/core/validation.py` — Auth form schemas

## General
Login, signup, forgot-password and reset-password forms are described by Pydantic models
built from a single translation table, so every error message comes out in the active language.

| Form            | Fields                          | Rules |
|-----------------|---------------------------------|-------|
| login           | email, password                 | email rules; password required only |
| signup          | email, password                 | email rules; strong password |
| forgot          | email                           | email rules |
| reset_password  | password, confirmPassword       | strong password; confirmPassword must match |

- **Email:** required, valid syntax, at most 255 characters.
- **Strong password:** required, min 6, one uppercase letter, one digit.

`FormSchema.validate()` never raises: it returns a `FormResult` whose `errors` maps field
names to localized messages (every failing rule is listed, first one is the most basic).
"""
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Annotated, Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from tesland.i18n.translations import Translations, get_translations

EMAIL_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 6
UPPERCASE = re.compile(r"[A-Z]")
DIGIT = re.compile(r"[0-9]")
# Syntax only; the length limit is its own rule
EMAIL_SYNTAX = re.compile(
    r"^(?!\.)(?!.*\.\.)[A-Z0-9_'+\-.]*[A-Z0-9_+-]@(?:[A-Z0-9][A-Z0-9\-]*\.)+[A-Z]{2,}$",
    re.IGNORECASE,
)

Rule = Tuple[Callable[[str], bool], str]


def _is_email(value: str) -> bool:
    return EMAIL_SYNTAX.fullmatch(value) is not None


def _checked(rules: Sequence[Rule]) -> Callable[[str], str]:
    def check(value: str) -> str:
        failures = [message for passes, message in rules if not passes(value)]
        if failures:
            raise PydanticCustomError("form_rule", failures[0], {"messages": failures})
        return value
    return check


@dataclass
class FormResult:
    data: Optional[Dict[str, Any]] = None
    errors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def first_error(self, name: str) -> Optional[str]:
        messages = self.errors.get(name)
        return messages[0] if messages else None


class FormSchema:
    """A form model plus the 'required' message to use when a field is missing or not a string."""

    def __init__(self, model: Type[BaseModel], required_messages: Mapping[str, str]):
        self.model = model
        self.required_messages = dict(required_messages)

    def validate(self, data: Any) -> FormResult:
        payload = dict(data) if isinstance(data, Mapping) else {}
        try:
            parsed = self.model.model_validate(payload)
        except ValidationError as exc:
            return FormResult(errors=self._field_errors(exc))
        return FormResult(data=parsed.model_dump(by_alias=True))

    def _field_errors(self, exc: ValidationError) -> Dict[str, List[str]]:
        errors: Dict[str, List[str]] = {}
        for err in exc.errors():
            name = str(err["loc"][0]) if err["loc"] else "_form"
            if err["type"] == "form_rule":
                messages = list(err["ctx"]["messages"])
            elif name in self.required_messages:
                messages = [self.required_messages[name]]
            else:
                messages = [err["msg"]]
            errors.setdefault(name, []).extend(messages)
        return errors


@dataclass(frozen=True)
class AuthSchemas:
    login: FormSchema
    signup: FormSchema
    forgot: FormSchema
    reset_password: FormSchema


def create_auth_schemas(t: Translations) -> AuthSchemas:
    """Build the four auth form schemas from one translation table. No side effects."""
    EmailField = Annotated[str, AfterValidator(_checked([
        (lambda v: len(v) >= 1, t["emailRequired"]),
        (_is_email, t["invalidEmail"]),
        (lambda v: len(v) <= EMAIL_MAX_LENGTH, t["emailTooLong"]),
    ]))]
    StrongPassword = Annotated[str, AfterValidator(_checked([
        (lambda v: len(v) >= 1, t["passwordRequired"]),
        (lambda v: len(v) >= PASSWORD_MIN_LENGTH, t["passwordTooShort"]),
        (lambda v: UPPERCASE.search(v) is not None, t["passwordNeedsUppercase"]),
        (lambda v: DIGIT.search(v) is not None, t["passwordNeedsNumber"]),
    ]))]
    # Legacy accounts may have weak passwords, so login only checks presence
    LoginPassword = Annotated[str, AfterValidator(_checked([
        (lambda v: len(v) >= 1, t["passwordRequired"]),
    ]))]

    class LoginForm(BaseModel):
        email: EmailField
        password: LoginPassword

    class SignupForm(BaseModel):
        email: EmailField
        password: StrongPassword

    class ForgotForm(BaseModel):
        email: EmailField

    class ResetPasswordForm(BaseModel):
        model_config = ConfigDict(populate_by_name=True)

        password: StrongPassword
        confirm_password: str = Field(alias="confirmPassword")

        @field_validator("confirm_password")
        @classmethod
        def _matches_password(cls, value: str, info: ValidationInfo) -> str:
            if len(value) < 1:
                raise PydanticCustomError("form_rule", t["passwordRequired"], {"messages": [t["passwordRequired"]]})
            # Only compare once the password itself is valid
            if "password" in info.data and value != info.data["password"]:
                raise PydanticCustomError("form_rule", t["passwordsDoNotMatch"], {"messages": [t["passwordsDoNotMatch"]]})
            return value

    required = {
        "email": t["emailRequired"],
        "password": t["passwordRequired"],
        "confirmPassword": t["passwordRequired"],
    }
    return AuthSchemas(
        login=FormSchema(LoginForm, required),
        signup=FormSchema(SignupForm, required),
        forgot=FormSchema(ForgotForm, required),
        reset_password=FormSchema(ResetPasswordForm, required),
    )


@lru_cache
def schemas_for(language: str) -> AuthSchemas:
    return create_auth_schemas(get_translations(language))
