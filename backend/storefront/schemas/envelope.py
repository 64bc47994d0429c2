from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from storefront.errors import ErrorType


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Message(CamelModel):
    success: Literal[True] = True
    message: str


class Failure(CamelModel):
    success: Literal[False] = False
    error: ErrorType
    message: str

    @classmethod
    def not_found(cls, message: str) -> "Failure":
        return cls(error=ErrorType.NOT_FOUND, message=message)

    @classmethod
    def database_error(cls) -> "Failure":
        return cls(error=ErrorType.DATABASE_ERROR, message="Database error")
