"""
Pydantic models for account payloads.

Request bodies are validated here before they reach AccountService, so a
body with the wrong shape is rejected as a 400 instead of surfacing as a
store error later.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from varadhi.common.errors import ValidationError


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("*", mode="after")
    @classmethod
    def blank_is_absent(cls, value: Any) -> Any:
        # An empty string from a form field means "not supplied".
        if isinstance(value, str) and value == "":
            return None
        return value


class RegisterRequest(_Payload):
    username: Optional[str] = Field(None, examples=["alice"])
    email: Optional[str] = Field(None, examples=["a@x.com"])
    password: Optional[str] = Field(None, examples=["p1"])
    mobile_number: Optional[str] = Field(None, alias="mobileNumber", examples=["9876543210"])

    def missing_required(self) -> bool:
        return not (self.username and self.email and self.password)


class LoginRequest(_Payload):
    username: Optional[str] = Field(None, examples=["alice"])
    password: Optional[str] = Field(None, examples=["p1"])

    def missing_required(self) -> bool:
        return not (self.username and self.password)


class MessageResponse(BaseModel):
    message: str


class LoginResponse(MessageResponse):
    username: str
    user_id: int = Field(serialization_alias="userId")


def parse_payload(model: type, data: Any, required_message: str):
    """
    Validate a decoded JSON body against `model`.

    Args:
        model: RegisterRequest or LoginRequest.
        data: Whatever request.get_json() produced (may be None).
        required_message (str): Message used when required fields are absent.

    Returns:
        The populated model instance.

    Raises:
        ValidationError: If the body is not an object, a field has the wrong
            type, or a required field is absent.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    try:
        payload = model.model_validate(data)
    except PydanticValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ValidationError(f"Invalid field(s): {fields}") from e
    if payload.missing_required():
        raise ValidationError(required_message)
    return payload
