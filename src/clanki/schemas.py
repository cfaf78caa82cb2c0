"""Argument models for the clanki tools."""

import re
from typing import Optional, TypeVar

from pydantic import BaseModel, Field, StrictInt, ValidationError, field_validator


CLOZE_PATTERN = re.compile(r"\{\{c\d+::.+?\}\}", re.DOTALL)

CLOZE_MARKER_MESSAGE = "Text must contain at least one cloze deletion using {{c1::text}} syntax"

ModelT = TypeVar("ModelT", bound=BaseModel)


class ArgumentError(ValueError):
    """Tool arguments failed validation."""
    pass


def has_cloze_deletion(text: str) -> bool:
    """Return True if text contains a {{cN::...}} cloze deletion."""
    return CLOZE_PATTERN.search(text) is not None


class ListDecksArguments(BaseModel):
    pass


class ListCardsArguments(BaseModel):
    deckName: str = Field(min_length=1)


class CreateDeckArguments(BaseModel):
    name: str = Field(min_length=1)


class CreateCardArguments(BaseModel):
    deckName: str = Field(min_length=1)
    front: str
    back: str
    tags: Optional[list[str]] = None


class UpdateCardArguments(BaseModel):
    cardId: StrictInt
    front: Optional[str] = None
    back: Optional[str] = None
    tags: Optional[list[str]] = None


class CreateClozeCardArguments(BaseModel):
    deckName: str = Field(min_length=1)
    text: str
    backExtra: Optional[str] = None
    tags: Optional[list[str]] = None

    @field_validator("text")
    @classmethod
    def check_cloze(cls, v: str) -> str:
        if not has_cloze_deletion(v):
            raise ValueError(CLOZE_MARKER_MESSAGE)
        return v


class UpdateClozeCardArguments(BaseModel):
    cardId: StrictInt
    text: Optional[str] = None
    backExtra: Optional[str] = None
    tags: Optional[list[str]] = None

    @field_validator("text")
    @classmethod
    def check_cloze(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not has_cloze_deletion(v):
            raise ValueError(CLOZE_MARKER_MESSAGE)
        return v


def format_validation_error(error: ValidationError) -> str:
    """List every violated field of a validation error on one line."""
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        message = item["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        problems.append(f"{location}: {message}")
    return "Invalid arguments: " + ", ".join(problems)


def parse_arguments(model: type[ModelT], arguments: dict | None) -> ModelT:
    """
    Validate tool arguments against a model.

    Raises:
        ArgumentError: Listing every invalid or missing field
    """
    try:
        return model.model_validate(arguments or {})
    except ValidationError as e:
        raise ArgumentError(format_validation_error(e)) from None
