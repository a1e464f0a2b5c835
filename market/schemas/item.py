"""Item request/response schemas - remote RPC contract and presentation views."""

from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

from market.core.access import AccessDecision
from market.core.identity import Identity
from market.core.money import UINT64_MAX, format_amount, to_minor_units

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MAX_CONTENT_LENGTH = 10_000
MAX_TAGS = 10
MAX_TAG_LENGTH = 30

Uint64 = Annotated[int, Field(ge=0, le=UINT64_MAX)]


class Category(str, Enum):
    MARKETING = "Marketing"
    DEVELOPMENT = "Development"
    WRITING = "Writing"
    BUSINESS = "Business"
    EDUCATION = "Education"
    CREATIVE = "Creative"
    OTHER = "Other"

    @classmethod
    def decode(cls, value: Any) -> "Category":
        """Accept 'Writing' or the tagged wire form {'Writing': null}. Unknown keys fail."""
        if isinstance(value, Category):
            return value
        if isinstance(value, dict):
            if len(value) != 1:
                raise ValueError(f"Category must have exactly one key, got {sorted(value)}")
            (value,) = value.keys()
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        raise ValueError(f"Unknown category: {value!r}")

    def encode(self) -> dict[str, None]:
        return {self.value: None}


CategoryField = Annotated[Category, BeforeValidator(Category.decode)]


def _check_title(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Title cannot be empty")
    if len(value) > MAX_TITLE_LENGTH:
        raise ValueError(f"Title cannot exceed {MAX_TITLE_LENGTH} characters")
    return value


def _check_content(value: str) -> str:
    if not value.strip():
        raise ValueError("Content cannot be empty")
    if len(value) > MAX_CONTENT_LENGTH:
        raise ValueError(f"Content cannot exceed {MAX_CONTENT_LENGTH} characters")
    return value


def _check_tags(value: list[str]) -> list[str]:
    if len(value) > MAX_TAGS:
        raise ValueError(f"Cannot have more than {MAX_TAGS} tags")
    for tag in value:
        if len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"Tag cannot exceed {MAX_TAG_LENGTH} characters")
    # Tags are a set; keep first occurrence order for display
    return list(dict.fromkeys(value))


def _accept_major_price(data: Any) -> Any:
    """Forms enter prices in major units as `price_major`; the wire only carries minor units."""
    if not isinstance(data, dict) or data.get("price_major") is None:
        return data
    if data.get("price") is not None:
        raise ValueError("Give either price or price_major, not both")
    converted = {key: value for key, value in data.items() if key != "price_major"}
    converted["price"] = to_minor_units(data["price_major"])
    return converted


class Item(BaseModel):
    """Item as returned by the remote service. content is None unless granted."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: Uint64
    title: str
    description: str = ""
    content: str | None = None
    author: Identity
    category: CategoryField
    tags: list[str] = []
    price: Uint64 = 0
    is_premium: bool = False
    is_public: bool = False
    created_at: Uint64 = 0
    updated_at: Uint64 = 0
    like_count: Uint64 = Field(0, alias="likes")
    purchase_count: Uint64 = Field(0, alias="purchases")
    rating: float = Field(0.0, ge=0.0, le=5.0)
    rating_count: Uint64 = Field(0, alias="total_ratings")


class ItemCreate(BaseModel):
    title: str
    description: str = Field("", max_length=MAX_DESCRIPTION_LENGTH)
    content: str
    category: CategoryField = Category.OTHER
    tags: list[str] = []
    price: Uint64 = 0
    is_premium: bool = False
    is_public: bool = True

    @model_validator(mode="before")
    @classmethod
    def convert_major_price(cls, data: Any) -> Any:
        return _accept_major_price(data)

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str) -> str:
        return _check_title(value)

    @field_validator("content")
    @classmethod
    def check_content(cls, value: str) -> str:
        return _check_content(value)

    @field_validator("tags")
    @classmethod
    def check_tags(cls, value: list[str]) -> list[str]:
        return _check_tags(value)

    def to_wire(self) -> dict[str, Any]:
        body = self.model_dump()
        body["category"] = self.category.encode()
        return body


class ItemUpdate(BaseModel):
    """Only fields that are set are sent; the remote keeps the rest."""

    title: str | None = None
    description: str | None = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    content: str | None = None
    category: CategoryField | None = None
    tags: list[str] | None = None
    price: Uint64 | None = None
    is_premium: bool | None = None
    is_public: bool | None = None

    @model_validator(mode="before")
    @classmethod
    def convert_major_price(cls, data: Any) -> Any:
        return _accept_major_price(data)

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str | None) -> str | None:
        return None if value is None else _check_title(value)

    @field_validator("content")
    @classmethod
    def check_content(cls, value: str | None) -> str | None:
        return None if value is None else _check_content(value)

    @field_validator("tags")
    @classmethod
    def check_tags(cls, value: list[str] | None) -> list[str] | None:
        return None if value is None else _check_tags(value)

    def to_wire(self, item_id: int) -> dict[str, Any]:
        body = self.model_dump()
        if self.category is not None:
            body["category"] = self.category.encode()
        body["id"] = item_id
        return body


class ItemView(BaseModel):
    """Item plus the access decision for the current identity (presentation)."""

    item: Item
    access: AccessDecision
    price_display: str

    @classmethod
    def build(cls, item: Item, access: AccessDecision) -> "ItemView":
        return cls(item=item, access=access, price_display=format_amount(item.price))
