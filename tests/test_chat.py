"""Text transport: continuation token protocol and error mapping."""

import asyncio

import httpx
import pytest

from conftest import ChatBackend, chat_reply, make_text_transport
from courtney_ai.errors import ProtocolError, TransportError
from courtney_ai.models.form import UserContext

ANA = UserContext(name="Ana", email="ana@x.com", issue="billing")


class TestContinuation:

    @pytest.mark.asyncio
    async def test_first_turn_sends_context_then_token(self):
        backend = ChatBackend(chat_reply("c1", "Hello Ana"), chat_reply("c2", "Sure"))
        transport = make_text_transport(backend)

        turns = await transport.send_message("Hi", ANA)
        assert [t.content for t in turns] == ["Hello Ana"]
        assert transport.current_continuation() == "c1"
        assert backend.requests[0] == {
            "input": "Hi",
            "assistantOverrides": {
                "variableValues": {"userName": "Ana", "userEmail": "ana@x.com", "userIssue": "billing"},
            },
        }

        await transport.send_message("Refund please", ANA)
        assert backend.requests[1] == {"input": "Refund please", "previousChatId": "c1"}
        assert transport.current_continuation() == "c2"

    @pytest.mark.asyncio
    async def test_no_context_no_overrides(self):
        backend = ChatBackend(chat_reply("c1", "Hi"))
        transport = make_text_transport(backend)
        await transport.send_message("Hi")
        assert backend.requests[0] == {"input": "Hi"}

    @pytest.mark.asyncio
    async def test_reset_starts_new_conversation(self):
        backend = ChatBackend(chat_reply("c1", "Hi"))
        transport = make_text_transport(backend)
        await transport.send_message("Hi", ANA)
        transport.reset()
        assert transport.current_continuation() is None
        await transport.send_message("Hi again", ANA)
        assert "previousChatId" not in backend.requests[1]
        assert "assistantOverrides" in backend.requests[1]

    @pytest.mark.asyncio
    async def test_reset_during_request_discards_returned_token(self):
        reached = asyncio.Event()
        release = asyncio.Event()

        async def slow(request):
            reached.set()
            await release.wait()
            return chat_reply("c1", "late")

        transport = make_text_transport(slow)
        sending = asyncio.create_task(transport.send_message("Hi", ANA))
        await reached.wait()
        transport.reset()
        release.set()
        turns = await sending
        assert [t.content for t in turns] == ["late"]
        assert transport.current_continuation() is None

    @pytest.mark.asyncio
    async def test_only_assistant_turns_with_content(self):
        backend = ChatBackend(httpx.Response(200, json={"id": "c1", "output": [
            {"role": "assistant", "content": "one"},
            {"role": "tool", "content": "lookup"},
            {"role": "assistant", "content": ""},
            {"role": "assistant"},
            {"role": "assistant", "content": "two"},
        ]}))
        transport = make_text_transport(backend)
        turns = await transport.send_message("Hi")
        assert [t.content for t in turns] == ["one", "two"]


class TestErrors:

    @pytest.mark.asyncio
    async def test_non_success_status_raises_transport_error(self):
        transport = make_text_transport(ChatBackend(httpx.Response(502, text="upstream down")))
        with pytest.raises(TransportError) as exc:
            await transport.send_message("Hi", ANA)
        assert exc.value.status == 502
        assert exc.value.body == "upstream down"
        assert transport.current_continuation() is None

    @pytest.mark.asyncio
    async def test_malformed_body_raises_protocol_error(self):
        transport = make_text_transport(ChatBackend(httpx.Response(200, json={"output": []})))
        with pytest.raises(ProtocolError):
            await transport.send_message("Hi")
        assert transport.current_continuation() is None

    @pytest.mark.asyncio
    async def test_network_failure_has_no_status(self):
        def boom(request):
            raise httpx.ConnectError("refused", request=request)
        transport = make_text_transport(boom)
        with pytest.raises(TransportError) as exc:
            await transport.send_message("Hi")
        assert exc.value.status is None
