"""Tests for the MCP tool and resource handlers."""

import pytest
from mcp.types import CallToolRequest, CallToolRequestParams
from pydantic import AnyUrl

from clanki import server


pytestmark = pytest.mark.asyncio


@pytest.fixture
def anki(anki_client, monkeypatch):
    """Point the server's global client at the mock server."""
    monkeypatch.setattr(server, "anki", anki_client)
    return anki_client


async def call(name, arguments=None):
    [content] = await server.call_tool(name, arguments)
    assert content.type == "text"
    return content.text


class TestListTools:
    async def test_tool_names(self):
        tools = await server.list_tools()
        assert [t.name for t in tools] == [
            "create-deck",
            "list-decks",
            "list-cards",
            "create-card",
            "update-card",
            "create-cloze-card",
            "update-cloze-card",
        ]

    async def test_required_inputs(self):
        required = {t.name: t.inputSchema["required"] for t in await server.list_tools()}
        assert required["create-deck"] == ["name"]
        assert required["create-card"] == ["deckName", "front", "back"]
        assert required["update-card"] == ["cardId"]
        assert required["create-cloze-card"] == ["deckName", "text"]
        assert required["update-cloze-card"] == ["cardId"]


class TestCallTool:
    async def test_create_deck(self, anki, mock_state):
        text = await call("create-deck", {"name": "Spanish"})

        assert text == 'Successfully created new deck "Spanish"'
        assert "Spanish" in mock_state.decks

    async def test_create_deck_empty_name(self, anki, mock_anki_server):
        text = await call("create-deck", {"name": ""})

        assert text.startswith("Invalid arguments: name")
        assert mock_anki_server.requests == []

    async def test_list_decks(self, anki, mock_anki_server):
        mock_anki_server.add_note("Spanish", "Basic", {"Front": "Q", "Back": "A"})

        text = await call("list-decks", {})

        assert text == "Available decks:\nDefault\nSpanish"

    async def test_create_card(self, anki, mock_anki_server):
        text = await call("create-card", {"deckName": "Default", "front": "Q", "back": "A", "tags": ["t"]})

        assert text.startswith('Successfully created new card in deck "Default"')
        [note] = mock_anki_server.state.notes.values()
        assert note.tags == ["t"]

    async def test_create_card_reports_every_missing_field(self, anki, mock_anki_server):
        text = await call("create-card", {})

        assert "deckName" in text and "front" in text and "back" in text
        assert mock_anki_server.requests == []

    async def test_create_cloze_card(self, anki, mock_anki_server):
        text = await call("create-cloze-card", {
            "deckName": "Default",
            "text": "Capital of France: {{c1::Paris}}",
        })

        assert text.startswith('Successfully created new cloze card in deck "Default"')
        assert mock_anki_server.actions() == ["addNote"]

    async def test_create_cloze_card_without_marker(self, anki, mock_anki_server):
        text = await call("create-cloze-card", {
            "deckName": "Default",
            "text": "Capital of France: Paris",
        })

        assert "cloze deletion" in text
        assert mock_anki_server.requests == []

    async def test_update_card(self, anki, mock_anki_server):
        note_id = mock_anki_server.add_note("Default", "Basic", {"Front": "Q", "Back": "A"})
        card_id = mock_anki_server.card_of(note_id)

        text = await call("update-card", {"cardId": card_id, "back": "A2"})

        assert text == f"Successfully updated card {card_id}"
        assert mock_anki_server.state.notes[note_id].fields["Back"] == "A2"

    async def test_update_card_not_found(self, anki):
        text = await call("update-card", {"cardId": 5, "front": "Q"})
        assert text == "Error: No note found for card 5"

    async def test_update_cloze_card_on_basic_note(self, anki, mock_anki_server):
        note_id = mock_anki_server.add_note("Default", "Basic", {"Front": "Q", "Back": "A"})
        card_id = mock_anki_server.card_of(note_id)

        text = await call("update-cloze-card", {"cardId": card_id, "text": "{{c1::x}}"})

        assert text.startswith("Error: ")
        assert "Cloze" in text
        assert mock_anki_server.requests_for("updateNoteFields") == []
        assert mock_anki_server.requests_for("replaceTags") == []

    async def test_update_cloze_card(self, anki, mock_anki_server):
        note_id = mock_anki_server.add_note("Default", "Cloze", {"Text": "{{c1::a}}", "Back Extra": ""})
        card_id = mock_anki_server.card_of(note_id)

        text = await call("update-cloze-card", {"cardId": card_id, "backExtra": "hint"})

        assert text == f"Successfully updated cloze card {card_id}"
        assert mock_anki_server.state.notes[note_id].fields["Back Extra"] == "hint"

    async def test_list_cards(self, anki, mock_anki_server):
        mock_anki_server.add_note("Geo", "Cloze", {"Text": "{{c1::Paris}}"}, ["fr"])

        text = await call("list-cards", {"deckName": "Geo"})

        assert 'Cards in deck "Geo" (1):' in text
        assert "Front: {{c1::Paris}}\nBack: [Cloze deletion]\nTags: fr" in text

    async def test_backend_error(self, anki):
        text = await call("create-card", {"deckName": "Missing", "front": "Q", "back": "A"})
        assert text == "AnkiConnect error: deck was not found: Missing"

    async def test_transport_error(self, anki, mock_anki_server):
        mock_anki_server.fail_next(3)

        text = await call("list-decks")

        assert "status 503" in text
        assert "Make sure Anki is running" in text
        assert len(mock_anki_server.requests) == 3

    async def test_unknown_tool(self, anki):
        assert await call("delete-everything", {}) == "Unknown tool: delete-everything"


async def dispatch(name, arguments):
    """Call a tool through the registered MCP request handler."""
    handler = server.app.request_handlers[CallToolRequest]
    request = CallToolRequest(
        method="tools/call",
        params=CallToolRequestParams(name=name, arguments=arguments),
    )
    result = await handler(request)
    [content] = result.root.content
    return content.text


class TestRequestHandler:
    async def test_missing_fields_reported_together(self, anki, mock_anki_server):
        text = await dispatch("create-card", {})

        assert text.startswith("Invalid arguments:")
        assert "deckName" in text and "front" in text and "back" in text
        assert mock_anki_server.requests == []

    async def test_wrong_types_reported_together(self, anki, mock_anki_server):
        text = await dispatch("update-card", {"cardId": "abc", "front": 3})

        assert text.startswith("Invalid arguments:")
        assert "cardId" in text and "front" in text
        assert mock_anki_server.requests == []

    async def test_cloze_marker_checked(self, anki, mock_anki_server):
        text = await dispatch("create-cloze-card", {"deckName": "Default", "text": "plain"})

        assert text.startswith("Invalid arguments:")
        assert "cloze deletion" in text
        assert mock_anki_server.requests == []

    async def test_success(self, anki, mock_state):
        text = await dispatch("create-deck", {"name": "Spanish"})

        assert text == 'Successfully created new deck "Spanish"'
        assert "Spanish" in mock_state.decks


class TestResources:
    async def test_deck_uri_round_trip(self):
        uri = server.deck_uri("Spanish::Verbs & Nouns")
        assert uri == "anki://decks/Spanish%3A%3AVerbs%20%26%20Nouns"
        assert server.deck_name_from_uri(uri) == "Spanish::Verbs & Nouns"

    @pytest.mark.parametrize("uri", ["anki://decks/", "anki://notes/1", "file:///etc/passwd"])
    async def test_bad_uri(self, uri):
        with pytest.raises(ValueError, match="Unknown resource"):
            server.deck_name_from_uri(uri)

    async def test_list_resources(self, anki, mock_anki_server):
        mock_anki_server.add_note("Spanish", "Basic", {"Front": "Q", "Back": "A"})

        resources = await server.list_resources()

        assert [r.name for r in resources] == ["Default", "Spanish"]
        assert [str(r.uri) for r in resources] == ["anki://decks/Default", "anki://decks/Spanish"]
        assert all(r.mimeType == "text/plain" for r in resources)

    async def test_read_resource(self, anki, mock_anki_server):
        for i in range(7):
            mock_anki_server.add_note("My Deck", "Basic", {"Front": f"Q{i}", "Back": f"A{i}"})

        text = await server.read_resource(AnyUrl(server.deck_uri("My Deck")))

        assert text.startswith('Cards in deck "My Deck" (7):')
        assert text.count("---") == 7
        assert len(mock_anki_server.requests_for("notesInfo")) == 2
