"""AnkiConnect API client with retrying request pipeline."""

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from .config import DEFAULT_URL, Settings


logger = logging.getLogger(__name__)

ANKI_CONNECT_VERSION = 6

# Actions whose documented success response is {"result": null, "error": null}.
# Revisit if AnkiConnect changes which actions return null on success.
NULL_RESULT_ACTIONS = frozenset({"updateNoteFields", "replaceTags"})


class AnkiConnectError(Exception):
    """Base class for errors talking to AnkiConnect."""
    pass


class AnkiTransportError(AnkiConnectError):
    """The request did not produce a usable response (retried)."""
    pass


class AnkiActionError(AnkiConnectError):
    """AnkiConnect rejected the action (never retried)."""

    def __init__(self, action: str, message: str):
        super().__init__(f"AnkiConnect error: {message}")
        self.action = action
        self.message = message


class AnkiNullResultError(AnkiActionError):
    """AnkiConnect returned a null result for an action that must return one."""

    def __init__(self, action: str):
        super().__init__(action, f"action '{action}' returned a null result")


class AnkiClient:
    """Client for communicating with AnkiConnect."""

    def __init__(
        self,
        url: str = DEFAULT_URL,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize the AnkiConnect client.

        Args:
            url: AnkiConnect server URL (default: http://127.0.0.1:8765)
            max_attempts: Total attempts per request on transport failure
            retry_delay: Delay in seconds before the first retry; doubles per retry
            timeout: HTTP timeout in seconds
            sleep: Coroutine used for backoff delays
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.url = url
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep
        # AnkiConnect is always local; never route it through a proxy
        self.client = httpx.AsyncClient(timeout=timeout, trust_env=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnkiClient":
        """Create a client from loaded settings."""
        return cls(
            url=settings.url,
            max_attempts=settings.max_attempts,
            retry_delay=settings.retry_delay,
            timeout=settings.timeout,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def invoke(self, action: str, **params) -> Any:
        """
        Invoke an AnkiConnect action.

        Transport failures (connection errors, non-200 responses, unparseable
        bodies) are retried with exponential backoff. Errors reported by
        AnkiConnect itself are raised on the first attempt.

        Args:
            action: AnkiConnect action name
            **params: Action parameters

        Returns:
            Response result (None only for NULL_RESULT_ACTIONS)

        Raises:
            AnkiActionError: If AnkiConnect returns an error or an unexpected null result
            AnkiTransportError: If every attempt failed at the transport level
        """
        payload = {
            "action": action,
            "version": ANKI_CONNECT_VERSION,
            "params": params
        }

        attempt = 1
        while True:
            logger.debug("AnkiConnect %s: attempt %d/%d", action, attempt, self.max_attempts)
            try:
                data = await self._post(payload)
            except AnkiTransportError as e:
                logger.warning(
                    "AnkiConnect %s: attempt %d/%d failed: %s",
                    action, attempt, self.max_attempts, e
                )
                if attempt >= self.max_attempts:
                    raise
                delay = self.retry_delay * 2 ** (attempt - 1)
                logger.debug("AnkiConnect %s: retrying in %.3fs", action, delay)
                await self._sleep(delay)
                attempt += 1
                continue

            return self._interpret(action, data)

    async def _post(self, payload: dict) -> dict:
        try:
            response = await self.client.post(self.url, json=payload)
        except httpx.TransportError as e:
            raise AnkiTransportError(
                f"Cannot connect to AnkiConnect at {self.url}: {e!r}"
            ) from e

        if response.status_code != 200:
            raise AnkiTransportError(
                f"AnkiConnect request failed with status {response.status_code}: "
                f"{response.text[:200]}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AnkiTransportError(
                f"Failed to parse AnkiConnect response: {response.text[:200]}"
            ) from e

        if not isinstance(data, dict):
            raise AnkiTransportError(
                f"Unexpected AnkiConnect response: {response.text[:200]}"
            )

        return data

    def _interpret(self, action: str, data: dict) -> Any:
        error = data.get("error")
        if error is not None:
            logger.info("AnkiConnect %s rejected: %s", action, error)
            raise AnkiActionError(action, str(error))

        result = data.get("result")
        if result is None:
            if action in NULL_RESULT_ACTIONS:
                logger.debug("AnkiConnect %s: ok", action)
                return None
            raise AnkiNullResultError(action)

        logger.debug("AnkiConnect %s: ok", action)
        return result

    # Deck operations

    async def deck_names(self) -> list[str]:
        """Get all deck names."""
        return await self.invoke("deckNames")

    async def create_deck(self, deck_name: str) -> int:
        """
        Create a new deck.

        Args:
            deck_name: Name of the deck to create

        Returns:
            Deck ID (existing ID if the deck already exists)
        """
        return await self.invoke("createDeck", deck=deck_name)

    # Note operations

    async def add_note(
        self,
        deck_name: str,
        model_name: str,
        fields: dict[str, str],
        tags: list[str] | None = None
    ) -> int:
        """
        Add a single note to Anki.

        Args:
            deck_name: Target deck name
            model_name: Note type name (e.g., "Basic", "Cloze")
            fields: Dictionary of field names to values
            tags: Optional list of tags

        Returns:
            Note ID
        """
        note = {
            "deckName": deck_name,
            "modelName": model_name,
            "fields": fields,
            "tags": tags or []
        }

        return await self.invoke("addNote", note=note)

    async def find_notes(self, query: str) -> list[int]:
        """
        Search for notes using Anki search syntax.

        Args:
            query: Anki search query (e.g., 'deck:"Spanish"')

        Returns:
            List of note IDs matching the query
        """
        return await self.invoke("findNotes", query=query)

    async def notes_info(self, note_ids: list[int]) -> list[dict]:
        """
        Get detailed information about specific notes.

        Each entry carries noteId, modelName, tags, cards and fields, where
        fields maps a field name to {"value": ..., "order": ...}.
        """
        return await self.invoke("notesInfo", notes=note_ids)

    async def cards_to_notes(self, card_ids: list[int]) -> list[int]:
        """Resolve card IDs to the IDs of the notes they belong to."""
        return await self.invoke("cardsToNotes", cards=card_ids)

    async def update_note_fields(self, note_id: int, fields: dict[str, str]) -> None:
        """
        Update fields of an existing note.

        Args:
            note_id: The note ID
            fields: Dictionary of field names to new values
        """
        await self.invoke("updateNoteFields", note={"id": note_id, "fields": fields})

    async def replace_tags(self, note_ids: list[int], tags: list[str]) -> None:
        """
        Replace the tags of existing notes.

        Args:
            note_ids: List of note IDs
            tags: New tags, sent as a space-separated string
        """
        await self.invoke("replaceTags", notes=note_ids, tags=" ".join(tags))
