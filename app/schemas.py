import re

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    HttpUrl,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_HTTP_URL = TypeAdapter(HttpUrl)


class CamelModel(BaseModel):
    """Request body base: camelCase on the wire, snake_case accepted too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Profile ---

def _check_url(value: str | None) -> str | None:
    # Validated as an http(s) URL but stored exactly as sent.
    if value is not None:
        try:
            _HTTP_URL.validate_python(value)
        except ValidationError:
            raise ValueError("must be a valid http or https URL") from None
    return value


class ProfileBase(CamelModel):
    bio: str | None = Field(None, min_length=10, max_length=2000)
    avatar: str | None = Field(None, max_length=500)
    website: str | None = Field(None, max_length=500)

    @field_validator("avatar", "website")
    @classmethod
    def check_url(cls, value: str | None) -> str | None:
        return _check_url(value)


class ProfileCreate(ProfileBase):
    pass


class ProfileUpdate(ProfileBase):
    pass


# --- User ---

class UserCreate(CamelModel):
    email: EmailStr
    name: str | None = Field(None, min_length=2, max_length=150)


class UserCreateWithProfile(UserCreate):
    profile: ProfileCreate


class UserUpdate(CamelModel):
    email: EmailStr | None = None
    name: str | None = Field(None, min_length=2, max_length=150)


# --- Post ---

class PostCreate(CamelModel):
    title: str = Field(min_length=1, max_length=300)
    content: str | None = None
    published: bool = False
    author_id: int = Field(gt=0)


class PostCreateWithCategories(PostCreate):
    category_ids: list[int] = []


class PostUpdate(CamelModel):
    title: str | None = Field(None, min_length=1, max_length=300)
    content: str | None = None
    published: bool | None = None


class CategoryIds(CamelModel):
    category_ids: list[int] = Field(min_length=1)


class PostCommentCreate(CamelModel):
    content: str = Field(min_length=1)
    author_id: int = Field(gt=0)


# --- Category ---

def _check_slug(value: str | None) -> str | None:
    if value is not None and not _SLUG_RE.match(value):
        raise ValueError("slug must be lowercase letters, digits and single hyphens")
    return value


class CategoryCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=120)  # derived from name when omitted

    @field_validator("slug")
    @classmethod
    def check_slug(cls, value: str | None) -> str | None:
        return _check_slug(value)


class CategoryUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=120)

    @field_validator("slug")
    @classmethod
    def check_slug(cls, value: str | None) -> str | None:
        return _check_slug(value)


# --- Comment ---

class CommentCreate(CamelModel):
    content: str = Field(min_length=1)
    post_id: int = Field(gt=0)
    author_id: int = Field(gt=0)


class CommentUpdate(CamelModel):
    content: str = Field(min_length=1)
