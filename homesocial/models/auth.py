from dataclasses import dataclass
from typing import Annotated

from pydantic import BaseModel, EmailStr, Field


class Credentials(BaseModel):
    email: Annotated[EmailStr, Field(max_length=255)]
    # Firebase rejects anything shorter with WEAK_PASSWORD
    password: Annotated[str, Field(min_length=6, max_length=128)]


@dataclass(frozen=True)
class SessionUser:
    """Identity extracted from a verified Firebase ID token."""

    uid: str
    email: str | None = None
