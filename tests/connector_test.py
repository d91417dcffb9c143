import asyncio
import logging
import os
import sys

import pytest

try:
    import slpclient
except ImportError:
    sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    import slpclient

from slpclient import (
    ConnectFailed,
    ConnectionConfig,
    ConnectionStates,
    ConnectionUnusable,
    InvalidResponseJson,
    PacketTooLarge,
    SimpleDescription,
    UnexpectedEof,
    UnexpectedPacketId,
    connect,
)
from slpclient.errors import ProtocolError
from slpclient.packet import Packet, encode_varint, read_packet

STATUS_JSON = (
    '{"version":{"name":"1.16.5","protocol":754},'
    '"players":{"max":20,"online":3},"description":"A server"}'
)


def response_packet(body: str, packet_id: int = 0x00) -> bytes:
    data = encode_varint(packet_id) + Packet().encode_string(body)
    return encode_varint(len(data)) + data


class MockServer:
    """Answers the second packet it receives with ``reply`` and records everything it got"""

    def __init__(self, reply: bytes = None):
        self.reply = reply
        self.received = []
        self.done = asyncio.Event()
        self.server = None

    async def handle(self, reader, writer):
        try:
            while True:
                try:
                    self.received.append(await read_packet(reader))
                except ProtocolError:
                    break
                if len(self.received) == 2 and self.reply is not None:
                    writer.write(self.reply)
                    await writer.drain()
        finally:
            writer.close()
            self.done.set()

    async def start(self) -> int:
        self.server = await asyncio.start_server(self.handle, "127.0.0.1", 0)
        return self.server.sockets[0].getsockname()[1]

    async def stop(self):
        await asyncio.wait_for(self.done.wait(), timeout=5)
        self.server.close()
        await self.server.wait_closed()


def test_status_raw_end_to_end():
    """The exact JSON comes back and the server saw a handshake then a request"""

    async def main():
        mock = MockServer(response_packet(STATUS_JSON))
        port = await mock.start()

        conn = await ConnectionConfig("127.0.0.1", port).connect()
        raw = await conn.status_raw()
        state = conn.state
        await conn.close()
        await mock.stop()
        return raw, state, mock.received, port

    raw, state, received, port = asyncio.run(main())

    assert raw == STATUS_JSON
    assert state == ConnectionStates.RESPONSE_RECEIVED

    assert len(received) == 2, f"Expected 2 packets, got {len(received)}"
    assert received[0] == (
        b"\x00\xc2\x04"
        + Packet().encode_string("127.0.0.1")
        + Packet.encode_ushort(port)
        + b"\x01"
    )
    assert received[1] == b"\x00"


def test_status_decodes_description():
    async def main():
        mock = MockServer(response_packet(STATUS_JSON))
        port = await mock.start()

        async with await connect(f"127.0.0.1:{port}") as conn:
            status = await conn.status()
        await mock.stop()
        return status

    status = asyncio.run(main())

    assert isinstance(status.description, SimpleDescription)
    assert status.description.get_text() == "A server"
    assert status.version.name == "1.16.5"
    assert status.version.protocol == 754
    assert status.players.online == 3
    assert status.players.max == 20
    assert status.players.sample is None


def test_protocol_version_is_sent():
    async def main():
        mock = MockServer(response_packet(STATUS_JSON))
        port = await mock.start()

        config = ConnectionConfig("127.0.0.1").with_port(port).with_protocol_version(47)
        async with await config.connect() as conn:
            await conn.status_raw()
        await mock.stop()
        return mock.received

    received = asyncio.run(main())
    assert received[0][:2] == b"\x00\x2f"


def test_second_call_does_not_resend():
    """Once the response arrived the stored body is returned again"""

    async def main():
        mock = MockServer(response_packet(STATUS_JSON))
        port = await mock.start()

        async with await ConnectionConfig("127.0.0.1", port).connect() as conn:
            first = await conn.status_raw()
            second = await conn.status_raw()
        await mock.stop()
        return first, second, mock.received

    first, second, received = asyncio.run(main())

    assert first == second == STATUS_JSON
    assert len(received) == 2, "Packets were sent twice"


def test_unexpected_packet_id():
    """A response with the wrong id fails and leaves the connection unusable"""

    async def main():
        mock = MockServer(response_packet(STATUS_JSON, packet_id=0x01))
        port = await mock.start()

        conn = await ConnectionConfig("127.0.0.1", port).connect()
        with pytest.raises(UnexpectedPacketId):
            await conn.status_raw()

        assert conn.state == ConnectionStates.FAILED
        assert conn.response is None

        with pytest.raises(ConnectionUnusable):
            await conn.status_raw()

        await conn.close()
        await mock.stop()

    asyncio.run(main())


def test_closed_before_response():
    """The server hanging up mid exchange is an UnexpectedEof"""

    async def handle(reader, writer):
        await read_packet(reader)
        await read_packet(reader)
        writer.write(encode_varint(50) + b"\x00\x30{")
        await writer.drain()
        writer.close()

    async def main():
        server = await asyncio.start_server(handle, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]

        conn = await ConnectionConfig("127.0.0.1", port).connect()
        with pytest.raises(UnexpectedEof):
            await conn.status_raw()
        assert conn.state == ConnectionStates.FAILED

        await conn.close()
        server.close()
        await server.wait_closed()

    asyncio.run(main())


def test_oversized_response():
    async def main():
        mock = MockServer(encode_varint(100_000_000))
        port = await mock.start()

        conn = await ConnectionConfig("127.0.0.1", port).connect()
        with pytest.raises(PacketTooLarge):
            await conn.status_raw()

        await conn.close()
        await mock.stop()

    asyncio.run(main())


def test_invalid_json():
    """Bad JSON is reported separately from protocol errors"""

    async def main():
        mock = MockServer(response_packet("this is not json"))
        port = await mock.start()

        async with await ConnectionConfig("127.0.0.1", port).connect() as conn:
            assert await conn.status_raw() == "this is not json"
            with pytest.raises(InvalidResponseJson):
                await conn.status()
        await mock.stop()

    asyncio.run(main())


def test_timeout_leaves_connection_failed():
    """A caller side deadline cancels the exchange and the connection can't be reused"""

    async def main():
        mock = MockServer(reply=None)
        port = await mock.start()

        conn = await ConnectionConfig("127.0.0.1", port).connect()
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(conn.status_raw(), timeout=0.2)

        assert conn.state == ConnectionStates.FAILED
        with pytest.raises(ConnectionUnusable):
            await conn.status_raw()

        await conn.close()
        await mock.stop()

    asyncio.run(main())


def test_concurrent_call_rejected():
    async def main():
        mock = MockServer(reply=None)
        port = await mock.start()

        conn = await ConnectionConfig("127.0.0.1", port).connect()
        first = asyncio.ensure_future(conn.status_raw())
        await asyncio.sleep(0.05)

        with pytest.raises(ConnectionUnusable):
            await conn.status_raw()

        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        await conn.close()
        await mock.stop()

    asyncio.run(main())


def test_connect_failed():
    async def main():
        # grab a free port, then stop listening on it
        server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        server.close()
        await server.wait_closed()

        with pytest.raises(ConnectFailed):
            await ConnectionConfig("127.0.0.1", port).connect()

    asyncio.run(main())


def test_connect_bad_port():
    with pytest.raises(ValueError):
        asyncio.run(ConnectionConfig("127.0.0.1", 70000).connect())


# Config
# ---------------------------------------------


def test_config_defaults():
    config = ConnectionConfig("example.com")
    assert config.port == 25565
    assert config.protocol_version == 578
    assert config.timeout is None


def test_config_is_immutable():
    config = ConnectionConfig("example.com")
    other = config.with_port(1234).with_protocol_version(754)

    assert config.port == 25565
    assert config.protocol_version == 578
    assert other == ("example.com", 1234, 754, None)

    with pytest.raises(AttributeError):
        config.port = 1


@pytest.mark.parametrize(
    "address,host,port",
    [
        ("example.com", "example.com", 25565),
        ("example.com:25566", "example.com", 25566),
        ("127.0.0.1:1", "127.0.0.1", 1),
        ("[::1]:25570", "::1", 25570),
        ("::1", "::1", 25565),
        ("[::1]", "::1", 25565),
    ],
)
def test_config_parse(address, host, port):
    config = ConnectionConfig.parse(address)
    assert config.host == host
    assert config.port == port


def test_config_parse_bad_port():
    with pytest.raises(ValueError):
        ConnectionConfig.parse("example.com:abc")


def test_packet_debug_logs_name_the_state(caplog):
    async def main():
        mock = MockServer(response_packet(STATUS_JSON))
        port = await mock.start()

        conn = await ConnectionConfig("127.0.0.1", port).connect()
        await conn.status_raw()
        await conn.close()
        await mock.stop()

    with caplog.at_level(logging.DEBUG, logger="slpclient.connector"):
        asyncio.run(main())

    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("Sent packet: Handshake (0x00)") and "(state 0)" in m for m in messages)
    assert any(m.startswith("Received packet: Status Response") and "(state 1," in m for m in messages)
