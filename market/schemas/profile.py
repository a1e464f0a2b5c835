"""Profile schema - owned by the remote service, cached per identity by the client."""

from pydantic import BaseModel, ConfigDict, Field

from market.core.identity import Identity
from market.core.money import UINT64_MAX

MAX_DISPLAY_NAME_LENGTH = 50


class Profile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    identity: Identity = Field(alias="id")
    display_name: str | None = Field(None, alias="username")
    email: str | None = None
    joined_at: int = Field(0, ge=0, le=UINT64_MAX)
    total_earnings: int = Field(0, ge=0, le=UINT64_MAX)
    total_spent: int = Field(0, ge=0, le=UINT64_MAX)
    items_created: int = Field(0, ge=0, le=UINT64_MAX)
    items_purchased: int = Field(0, ge=0, le=UINT64_MAX)

    @property
    def has_display_name(self) -> bool:
        return bool(self.display_name and self.display_name.strip())


def display_name_error(name: str | None) -> str | None:
    """Same bounds the remote service enforces; None when acceptable."""
    if name is None or not name.strip() or len(name) > MAX_DISPLAY_NAME_LENGTH:
        return f"Username must be between 1 and {MAX_DISPLAY_NAME_LENGTH} characters"
    return None
