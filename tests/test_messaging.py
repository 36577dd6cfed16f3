"""
Tests for the message channels.
"""
import json

import httpx
import pytest

from empire_core import HttpChannel, LocalChannel, MessagingError, NoReceiverError


def message(context, message_type="PING", **data):
    return {"type": message_type, "data": {**data, "source": "test", "context": context}}


class TestLocalChannel:

    @pytest.mark.asyncio
    async def test_sender_does_not_receive_its_own_message(self):
        channel = LocalChannel()
        seen = []

        def receiver_for(name):
            async def receive(msg):
                seen.append(name)
                return name
            return receive

        channel.bind("background", receiver_for("background"))
        channel.bind("content", receiver_for("content"))

        assert await channel.send(message("content")) == "background"
        assert seen == ["background"]

    @pytest.mark.asyncio
    async def test_first_non_none_response_wins(self):
        channel = LocalChannel()

        async def silent(msg):
            return None

        async def answers(msg):
            return {"ok": True}

        channel.bind("background", silent)
        channel.bind("popup", answers)

        assert await channel.send(message("content")) == {"ok": True}

    @pytest.mark.asyncio
    async def test_no_receiver(self):
        channel = LocalChannel()

        async def receive(msg):
            return "self"

        channel.bind("content", receive)
        with pytest.raises(NoReceiverError):
            await channel.send(message("content"))

    @pytest.mark.asyncio
    async def test_unbind(self):
        channel = LocalChannel()

        async def receive(msg):
            return "bg"

        channel.bind("background", receive)
        channel.unbind("background")
        channel.unbind("background")
        with pytest.raises(NoReceiverError):
            await channel.send(message("content"))


class TestHttpChannel:

    @pytest.mark.asyncio
    async def test_posts_message_and_returns_response(self):
        requests = []

        def handler(request: httpx.Request):
            requests.append(request)
            return httpx.Response(200, json={"response": {"price": 1.5}})

        channel = HttpChannel("http://background.local/", transport=httpx.MockTransport(handler))
        try:
            result = await channel.send(message("content", "FETCH_PRICE", item="charm"))
        finally:
            await channel.close()

        assert result == {"price": 1.5}
        assert str(requests[0].url) == "http://background.local/api/v1/messages"
        assert json.loads(requests[0].content) == message("content", "FETCH_PRICE", item="charm")

    @pytest.mark.asyncio
    async def test_missing_endpoint_is_no_receiver(self):
        channel = HttpChannel(
            "http://background.local",
            transport=httpx.MockTransport(lambda request: httpx.Response(404)),
        )
        with pytest.raises(NoReceiverError):
            await channel.send(message("content"))
        await channel.close()

    @pytest.mark.asyncio
    async def test_server_error_is_messaging_error(self):
        channel = HttpChannel(
            "http://background.local",
            transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")),
        )
        with pytest.raises(MessagingError):
            await channel.send(message("content"))
        await channel.close()

    @pytest.mark.asyncio
    async def test_connection_error_is_messaging_error(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        channel = HttpChannel("http://background.local", transport=httpx.MockTransport(refuse))
        with pytest.raises(MessagingError):
            await channel.send(message("content"))
        await channel.close()
