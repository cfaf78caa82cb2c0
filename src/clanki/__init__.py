"""clanki - Manage Anki decks and cards from MCP clients via AnkiConnect."""

__version__ = "1.0.0"

from .anki_client import (
    AnkiActionError,
    AnkiClient,
    AnkiConnectError,
    AnkiNullResultError,
    AnkiTransportError,
)
from .cards import CardOperationError, NoteNotFoundError, NoteTypeMismatchError
from .notes import Card, NoteType, project_note

__all__ = [
    "AnkiActionError",
    "AnkiClient",
    "AnkiConnectError",
    "AnkiNullResultError",
    "AnkiTransportError",
    "Card",
    "CardOperationError",
    "NoteNotFoundError",
    "NoteType",
    "NoteTypeMismatchError",
    "project_note",
]
