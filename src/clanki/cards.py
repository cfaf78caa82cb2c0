"""Deck and card operations built on AnkiConnect."""

import logging

from .anki_client import AnkiClient
from .notes import Card, NoteType, project_note


logger = logging.getLogger(__name__)

# notesInfo is called with at most this many note IDs at a time
NOTES_INFO_BATCH_SIZE = 5


class CardOperationError(Exception):
    """A card operation cannot proceed with the current collection state."""
    pass


class NoteNotFoundError(CardOperationError):
    """No note exists for the given card."""

    def __init__(self, card_id: int):
        super().__init__(f"No note found for card {card_id}")
        self.card_id = card_id


class NoteTypeMismatchError(CardOperationError):
    """The card's note is not of the expected note type."""

    def __init__(self, card_id: int, expected: str, actual: str | None):
        super().__init__(
            f"Card {card_id} belongs to a '{actual}' note, not a '{expected}' note"
        )
        self.card_id = card_id
        self.expected = expected
        self.actual = actual


def deck_query(deck_name: str) -> str:
    """Anki search query matching every note in a deck."""
    escaped = deck_name.replace("\\", "\\\\").replace('"', '\\"')
    return f'deck:"{escaped}"'


async def create_deck(anki: AnkiClient, name: str) -> int:
    """Create a deck and return its ID."""
    return await anki.create_deck(name)


async def create_card(
    anki: AnkiClient,
    deck_name: str,
    front: str,
    back: str,
    tags: list[str] | None = None
) -> int:
    """Add a Basic note and return its note ID."""
    fields = {"Front": front, "Back": back}
    return await anki.add_note(deck_name, NoteType.BASIC.value, fields, tags)


async def create_cloze_card(
    anki: AnkiClient,
    deck_name: str,
    text: str,
    back_extra: str | None = None,
    tags: list[str] | None = None
) -> int:
    """Add a Cloze note and return its note ID."""
    fields = {"Text": text, "Back Extra": back_extra or ""}
    return await anki.add_note(deck_name, NoteType.CLOZE.value, fields, tags)


async def _note_for_card(anki: AnkiClient, card_id: int) -> int:
    note_ids = await anki.cards_to_notes([card_id])
    if not note_ids:
        raise NoteNotFoundError(card_id)
    return note_ids[0]


async def _apply_update(
    anki: AnkiClient,
    note_id: int,
    fields: dict[str, str],
    tags: list[str] | None
) -> None:
    # Fields and tags are two separate calls; a failed tag update does not
    # undo the field update.
    if fields:
        await anki.update_note_fields(note_id, fields)
    if tags is not None:
        await anki.replace_tags([note_id], tags)


async def update_card(
    anki: AnkiClient,
    card_id: int,
    front: str | None = None,
    back: str | None = None,
    tags: list[str] | None = None
) -> int:
    """
    Update the note behind a Basic card.

    Args:
        anki: AnkiConnect client
        card_id: Card to update
        front: New Front field, unchanged if None
        back: New Back field, unchanged if None
        tags: New tag list, unchanged if None

    Returns:
        The updated note ID

    Raises:
        NoteNotFoundError: If the card has no note
    """
    note_id = await _note_for_card(anki, card_id)

    fields = {}
    if front is not None:
        fields["Front"] = front
    if back is not None:
        fields["Back"] = back

    logger.info("Updating note %s (card %s)", note_id, card_id)
    await _apply_update(anki, note_id, fields, tags)
    return note_id


async def update_cloze_card(
    anki: AnkiClient,
    card_id: int,
    text: str | None = None,
    back_extra: str | None = None,
    tags: list[str] | None = None
) -> int:
    """
    Update the note behind a cloze card.

    The note type is checked before anything is written, so a Basic note is
    never overwritten with cloze fields.

    Raises:
        NoteNotFoundError: If the card has no note
        NoteTypeMismatchError: If the note is not a Cloze note
    """
    note_id = await _note_for_card(anki, card_id)

    notes = await anki.notes_info([note_id])
    if not notes or not notes[0]:
        raise NoteNotFoundError(card_id)
    model_name = notes[0].get("modelName")
    if NoteType.of(model_name) is not NoteType.CLOZE:
        raise NoteTypeMismatchError(card_id, NoteType.CLOZE.value, model_name)

    fields = {}
    if text is not None:
        fields["Text"] = text
    if back_extra is not None:
        fields["Back Extra"] = back_extra

    logger.info("Updating cloze note %s (card %s)", note_id, card_id)
    await _apply_update(anki, note_id, fields, tags)
    return note_id


async def list_deck_cards(anki: AnkiClient, deck_name: str) -> list[Card]:
    """
    Get every card of a deck, one per note, in the order Anki returns them.

    Note details are fetched NOTES_INFO_BATCH_SIZE notes at a time.
    """
    note_ids = await anki.find_notes(deck_query(deck_name))

    notes = []
    for start in range(0, len(note_ids), NOTES_INFO_BATCH_SIZE):
        batch = note_ids[start:start + NOTES_INFO_BATCH_SIZE]
        notes.extend(await anki.notes_info(batch))

    logger.debug("Deck %r: %d notes", deck_name, len(notes))
    return [project_note(note) for note in notes]
