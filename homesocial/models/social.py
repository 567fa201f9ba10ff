from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class CommentCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    body: Annotated[str, Field(min_length=1, max_length=2000)]


class MessageCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    body: Annotated[str, Field(min_length=1, max_length=4000)]
