from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from homesocial.models.utils import blank_to_none, snake_to_camel

Role = Literal["buyer", "seller", "pro", "admin"]


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(
        alias_generator=snake_to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )
    full_name: Annotated[str, Field(max_length=200)] | None = None
    # admin is granted out of band, never self-selected
    role: Literal["buyer", "seller", "pro"] = "buyer"
    bio: Annotated[str, Field(max_length=2000)] | None = None
    service_area: Annotated[str, Field(max_length=200)] | None = None

    @field_validator("full_name", "bio", "service_area", mode="before")
    @classmethod
    def empty_input_is_null(cls, value):
        return blank_to_none(value)
