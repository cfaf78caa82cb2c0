"""Projection of AnkiConnect note records onto a uniform card view."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable


CLOZE_BACK_PLACEHOLDER = "[Cloze deletion]"
UNKNOWN_NOTE_PLACEHOLDER = "[Unknown note type]"


class NoteType(Enum):
    """Note types clanki knows how to display."""

    BASIC = "Basic"
    CLOZE = "Cloze"
    UNKNOWN = None

    @classmethod
    def of(cls, model_name: str | None) -> "NoteType":
        """Map a model name to a note type, defaulting to UNKNOWN."""
        for note_type in (cls.BASIC, cls.CLOZE):
            if note_type.value == model_name:
                return note_type
        return cls.UNKNOWN


@dataclass(frozen=True)
class Card:
    """One card as shown to the user."""
    card_id: int | None
    front: str
    back: str
    tags: list[str] = field(default_factory=list)


def _field_value(note: dict, name: str) -> str:
    value = (note.get("fields") or {}).get(name) or {}
    return value.get("value") or ""


def _project_basic(note: dict) -> tuple[str, str]:
    return _field_value(note, "Front"), _field_value(note, "Back")


def _project_cloze(note: dict) -> tuple[str, str]:
    back = _field_value(note, "Back Extra") or CLOZE_BACK_PLACEHOLDER
    return _field_value(note, "Text"), back


def _project_unknown(note: dict) -> tuple[str, str]:
    return UNKNOWN_NOTE_PLACEHOLDER, UNKNOWN_NOTE_PLACEHOLDER


_PROJECTORS: dict[NoteType, Callable[[dict], tuple[str, str]]] = {
    NoteType.BASIC: _project_basic,
    NoteType.CLOZE: _project_cloze,
    NoteType.UNKNOWN: _project_unknown,
}


def project_note(note: dict) -> Card:
    """
    Build the card view of a note returned by notesInfo.

    Never raises: notes of an unrecognized type get placeholder text.

    Args:
        note: Note record with modelName, fields, cards and tags

    Returns:
        Card for the note's first card
    """
    front, back = _PROJECTORS[NoteType.of(note.get("modelName"))](note)
    cards = note.get("cards") or []
    return Card(
        card_id=cards[0] if cards else None,
        front=front,
        back=back,
        tags=list(note.get("tags") or []),
    )


def format_card(card: Card) -> str:
    """Render a card as plain text."""
    return (
        f"Card ID: {card.card_id}\n"
        f"Front: {card.front}\n"
        f"Back: {card.back}\n"
        f"Tags: {', '.join(card.tags)}\n"
        "---"
    )


def format_cards(deck_name: str, cards: list[Card]) -> str:
    """Render the contents of a deck as plain text."""
    if not cards:
        return f"No cards in deck \"{deck_name}\""
    body = "\n".join(format_card(card) for card in cards)
    return f"Cards in deck \"{deck_name}\" ({len(cards)}):\n{body}"
