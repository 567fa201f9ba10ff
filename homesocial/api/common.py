"""
Helpers shared by the API routers.
"""

from typing import Type, TypeVar

from pydantic import BaseModel, ValidationError

from homesocial.errors import ListingValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_form_json(model: Type[ModelT], raw: str) -> ModelT:
    """
    Validate the JSON part of a multipart form.

    Multipart endpoints carry the form fields as one JSON string next to the
    files, so FastAPI can't validate them for us; field errors are turned into
    a 422 with `field: message` pairs.
    """
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise ListingValidationError.from_pydantic(e)
