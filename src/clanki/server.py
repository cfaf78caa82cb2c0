"""MCP server for Anki integration."""

import asyncio
import logging
import sys
from urllib.parse import quote, unquote

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Resource, TextContent, Tool
from pydantic import AnyUrl

from . import __version__, cards
from .anki_client import AnkiActionError, AnkiClient, AnkiTransportError
from .config import load_settings
from .notes import format_cards
from .schemas import (
    ArgumentError,
    CreateCardArguments,
    CreateClozeCardArguments,
    CreateDeckArguments,
    ListCardsArguments,
    ListDecksArguments,
    UpdateCardArguments,
    UpdateClozeCardArguments,
    parse_arguments,
)


logger = logging.getLogger(__name__)

DECK_URI_PREFIX = "anki://decks/"

# Initialize the MCP server
app = Server("clanki", version=__version__)

settings = load_settings()

# Global AnkiClient instance
anki = AnkiClient.from_settings(settings)


def deck_uri(deck_name: str) -> str:
    """Resource URI of a deck."""
    return DECK_URI_PREFIX + quote(deck_name, safe="")


def deck_name_from_uri(uri: str) -> str:
    """
    Decode the deck name from a deck resource URI.

    Raises:
        ValueError: If the URI is not a deck URI
    """
    if not uri.startswith(DECK_URI_PREFIX) or len(uri) == len(DECK_URI_PREFIX):
        raise ValueError(f"Unknown resource: {uri}")
    return unquote(uri[len(DECK_URI_PREFIX):])


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="create-deck",
            description="Create a new Anki deck",
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {
                        "type": "string",
                        "description": "Name for the new deck"
                    }
                },
                "required": ["name"]
            }
        ),
        Tool(
            name="list-decks",
            description="List all available Anki decks",
            inputSchema={
                "type": "object",
                "properties": {},
                "required": []
            }
        ),
        Tool(
            name="list-cards",
            description="List all cards in a specified deck",
            inputSchema={
                "type": "object",
                "properties": {
                    "deckName": {
                        "type": "string",
                        "description": "Name of the deck to list cards from"
                    }
                },
                "required": ["deckName"]
            }
        ),
        Tool(
            name="create-card",
            description="Create a new flashcard in a specified deck",
            inputSchema={
                "type": "object",
                "properties": {
                    "deckName": {
                        "type": "string",
                        "description": "Name of the deck to add the card to"
                    },
                    "front": {
                        "type": "string",
                        "description": "Front side content of the card"
                    },
                    "back": {
                        "type": "string",
                        "description": "Back side content of the card"
                    },
                    "tags": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Optional tags for the card"
                    }
                },
                "required": ["deckName", "front", "back"]
            }
        ),
        Tool(
            name="update-card",
            description="Update an existing flashcard",
            inputSchema={
                "type": "object",
                "properties": {
                    "cardId": {
                        "type": "integer",
                        "description": "ID of the card to update"
                    },
                    "front": {
                        "type": "string",
                        "description": "New front side content"
                    },
                    "back": {
                        "type": "string",
                        "description": "New back side content"
                    },
                    "tags": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "New tags for the card (replaces existing tags)"
                    }
                },
                "required": ["cardId"]
            }
        ),
        Tool(
            name="create-cloze-card",
            description="Create a new cloze deletion card in a specified deck. Use {{c1::text}} syntax for cloze deletions.",
            inputSchema={
                "type": "object",
                "properties": {
                    "deckName": {
                        "type": "string",
                        "description": "Name of the deck to add the card to"
                    },
                    "text": {
                        "type": "string",
                        "description": "Text containing cloze deletions using {{c1::text}} syntax"
                    },
                    "backExtra": {
                        "type": "string",
                        "description": "Optional extra information to show on the back of the card"
                    },
                    "tags": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Optional tags for the card"
                    }
                },
                "required": ["deckName", "text"]
            }
        ),
        Tool(
            name="update-cloze-card",
            description="Update an existing cloze deletion card. Fails if the card is not a cloze card.",
            inputSchema={
                "type": "object",
                "properties": {
                    "cardId": {
                        "type": "integer",
                        "description": "ID of the cloze card to update"
                    },
                    "text": {
                        "type": "string",
                        "description": "New text containing cloze deletions using {{c1::text}} syntax"
                    },
                    "backExtra": {
                        "type": "string",
                        "description": "New extra information shown on the back of the card"
                    },
                    "tags": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "New tags for the card (replaces existing tags)"
                    }
                },
                "required": ["cardId"]
            }
        ),
    ]


# Arguments are validated by the pydantic models in schemas, which report
# every invalid field at once.
@app.call_tool(validate_input=False)
async def call_tool(name: str, arguments: dict | None) -> list[TextContent]:
    """Handle tool calls."""
    logger.info("Tool call: %s", name)
    try:
        if name == "create-deck":
            args = parse_arguments(CreateDeckArguments, arguments)
            await cards.create_deck(anki, args.name)
            return _text(f"Successfully created new deck \"{args.name}\"")

        elif name == "list-decks":
            parse_arguments(ListDecksArguments, arguments)
            decks = await anki.deck_names()
            deck_list = "\n".join(decks)
            return _text(f"Available decks:\n{deck_list}")

        elif name == "list-cards":
            args = parse_arguments(ListCardsArguments, arguments)
            deck_cards = await cards.list_deck_cards(anki, args.deckName)
            return _text(format_cards(args.deckName, deck_cards))

        elif name == "create-card":
            args = parse_arguments(CreateCardArguments, arguments)
            note_id = await cards.create_card(
                anki, args.deckName, args.front, args.back, args.tags
            )
            return _text(
                f"Successfully created new card in deck \"{args.deckName}\"\nNote ID: {note_id}"
            )

        elif name == "update-card":
            args = parse_arguments(UpdateCardArguments, arguments)
            await cards.update_card(
                anki, args.cardId, args.front, args.back, args.tags
            )
            return _text(f"Successfully updated card {args.cardId}")

        elif name == "create-cloze-card":
            args = parse_arguments(CreateClozeCardArguments, arguments)
            note_id = await cards.create_cloze_card(
                anki, args.deckName, args.text, args.backExtra, args.tags
            )
            return _text(
                f"Successfully created new cloze card in deck \"{args.deckName}\"\nNote ID: {note_id}"
            )

        elif name == "update-cloze-card":
            args = parse_arguments(UpdateClozeCardArguments, arguments)
            await cards.update_cloze_card(
                anki, args.cardId, args.text, args.backExtra, args.tags
            )
            return _text(f"Successfully updated cloze card {args.cardId}")

        else:
            return _text(f"Unknown tool: {name}")

    except ArgumentError as e:
        return _text(str(e))
    except AnkiTransportError as e:
        logger.error("Tool %s: AnkiConnect unreachable: %s", name, e)
        return _text(
            f"{e}\n\nMake sure Anki is running and the AnkiConnect add-on is installed."
        )
    except AnkiActionError as e:
        return _text(str(e))
    except cards.CardOperationError as e:
        return _text(f"Error: {e}")


@app.list_resources()
async def list_resources() -> list[Resource]:
    """List one resource per deck."""
    decks = await anki.deck_names()
    return [
        Resource(
            uri=deck_uri(deck),
            name=deck,
            description=f"Cards in the Anki deck \"{deck}\"",
            mimeType="text/plain",
        )
        for deck in decks
    ]


@app.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read the cards of the deck a resource URI points to."""
    deck_name = deck_name_from_uri(str(uri))
    deck_cards = await cards.list_deck_cards(anki, deck_name)
    return format_cards(deck_name, deck_cards)


async def async_main():
    """Run the MCP server (async)."""
    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options()
            )
    finally:
        await anki.close()


def main():
    """Entry point for console script."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    logger.info("clanki %s using AnkiConnect at %s", __version__, settings.url)
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
