from typing import Annotated, Any, Literal, Optional
from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from app.core.config import settings


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("Field is required")
    return value


# Required string: rejects empty and whitespace-only values
RequiredStr = Annotated[str, AfterValidator(_not_blank)]


class AccountSchema(BaseModel):
    # Fields are snake_case in Python and camelCase on the wire
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class AccountCreate(AccountSchema):
    """Fields a client may supply on create; anything else is ignored"""
    first_name: RequiredStr
    last_name: RequiredStr
    middle_name: RequiredStr
    email: RequiredStr
    photo_file_name: RequiredStr = Field(
        default_factory=lambda: settings.DEFAULT_PHOTO_FILENAME)


class AccountUpdate(AccountSchema):
    """
    Update view of an account.

    Patch operations are applied to this shape and the result must validate
    before anything is written back. The image and password endpoints accept
    the same shape but only honor one field each.
    """
    email: RequiredStr
    first_name: RequiredStr
    last_name: RequiredStr
    middle_name: RequiredStr
    password: RequiredStr
    photo_file_name: RequiredStr
    reset_token: Optional[str] = None


class AccountImageUpdate(AccountSchema):
    # Other update-view fields may be sent but are ignored
    photo_file_name: RequiredStr


class AccountPasswordUpdate(AccountSchema):
    password: RequiredStr


class AccountRead(AccountSchema):
    id: int
    auth_id: int
    email: str
    first_name: str
    last_name: str
    middle_name: str
    photo_file_name: str


class AuthorRead(AccountSchema):
    """Public projection used when showing an article's author"""
    id: int
    first_name: str
    last_name: str
    middle_name: str
    photo_file_name: str


class PatchOperation(BaseModel):
    """A single RFC 6902 operation"""
    model_config = ConfigDict(populate_by_name=True)

    op: Literal["add", "remove", "replace", "move", "copy", "test"]
    path: str
    value: Any = None
    from_: Optional[str] = Field(default=None, alias="from")
