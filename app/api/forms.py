"""
Multipart form helpers.

FastAPI validates JSON bodies against a model automatically; multipart
forms arrive as loose fields, so they are validated here and failures are
re-raised as RequestValidationError to get the same 400 body.
"""

from typing import Any, Dict, Type, TypeVar

from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_form(model: Type[ModelT], data: Dict[str, Any]) -> ModelT:
    # Fields the client did not send are left to the model defaults
    fields = {key: value for key, value in data.items() if value is not None}
    try:
        return model(**fields)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))
