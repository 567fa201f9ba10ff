from decimal import Decimal
from typing import Annotated, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from homesocial.models.utils import blank_to_none, snake_to_camel

ListingStatus = Literal["draft", "active", "pending", "sold"]


class ListingCreate(BaseModel):
    """Composer form. Numbers may arrive as strings straight from inputs."""

    model_config = ConfigDict(
        alias_generator=snake_to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    title: Annotated[str, Field(min_length=3, max_length=200)]
    price: Annotated[Decimal, Field(ge=1)]
    beds: Annotated[Decimal, Field(ge=0)]
    baths: Annotated[Decimal, Field(ge=0)]
    sqft: Annotated[Decimal, Field(ge=0)] | None = None

    address: Annotated[str, Field(min_length=3, max_length=200)]
    city: Annotated[str, Field(min_length=2, max_length=100)]
    state: Annotated[str, Field(min_length=2, max_length=2)]
    zip: Annotated[str, Field(min_length=5, max_length=10)]
    description: Annotated[str, Field(max_length=5000)] | None = None

    @field_validator("price", "beds", "baths", "sqft", "description", mode="before")
    @classmethod
    def empty_input_is_null(cls, value):
        return blank_to_none(value)

    @field_validator("state")
    @classmethod
    def upper_state(cls, value: str) -> str:
        return value.upper()


class ListingUpdate(BaseModel):
    """
    Editor form: the full mutable field set, written in one update.

    `photo_urls` / `video_urls` list the media to keep, in display order. Leaving
    them out keeps the current media untouched.
    """

    model_config = ConfigDict(
        alias_generator=snake_to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    title: Annotated[str, Field(min_length=1, max_length=200)]
    price: Annotated[Decimal, Field(ge=0)] | None = None
    beds: Annotated[Decimal, Field(ge=0)] | None = None
    baths: Annotated[Decimal, Field(ge=0)] | None = None
    sqft: Annotated[Decimal, Field(ge=0)] | None = None

    address: Annotated[str, Field(max_length=200)] | None = None
    city: Annotated[str, Field(max_length=100)] | None = None
    state: Annotated[str, Field(max_length=2)] | None = None
    zip: Annotated[str, Field(max_length=10)] | None = None
    description: Annotated[str, Field(max_length=5000)] | None = None

    photo_urls: List[Annotated[str, Field(max_length=2048)]] | None = None
    video_urls: List[Annotated[str, Field(max_length=2048)]] | None = None
    thumbnail_url: Annotated[str, Field(max_length=2048)] | None = None

    @field_validator(
        "price", "beds", "baths", "sqft", "address", "city", "state", "zip", "description",
        "thumbnail_url",
        mode="before",
    )
    @classmethod
    def empty_input_is_null(cls, value):
        return blank_to_none(value)

    @field_validator("state")
    @classmethod
    def upper_state(cls, value: str | None) -> str | None:
        return value.upper() if value else value

    def listing_fields(self) -> dict:
        """Columns of the listings row this form writes (owner and status are never included)."""
        return self.model_dump(
            include={
                "title", "price", "beds", "baths", "sqft",
                "address", "city", "state", "zip", "description",
            }
        )
