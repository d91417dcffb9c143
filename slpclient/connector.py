import asyncio
import inspect
import logging
import time
from typing import NamedTuple, Optional, Union

from . import Handshake, Status
from .errors import ConnectFailed, ConnectionUnusable
from .packet import MAX_PACKET_LENGTH, C2SPacket, read_packet
from .status import StatusResponse

LATEST_PROTOCOL_VERSION = 578
DEFAULT_PORT = 25565
# next_state value in the handshake that asks for the status phase
NEXT_STATE_STATUS = 1


class AsyncObj:
    def __init__(self, *args, **kwargs):
        """
        Standard constructor used for arguments pass
        Do not override. Use __ainit__ instead
        """
        self.__storedargs = args, kwargs
        self.async_initialized = False

    async def __ainit__(self, *args, **kwargs):
        """Async constructor, you should implement this"""

    async def __initobj(self):
        """Crutch used for __await__ after spawning"""
        assert not self.async_initialized
        self.async_initialized = True
        await self.__ainit__(
            *self.__storedargs[0], **self.__storedargs[1]
        )  # pass the parameters to __ainit__ that passed to __init__
        return self

    def __await__(self):
        return self.__initobj().__await__()

    def __init_subclass__(cls, **kwargs):
        assert inspect.iscoroutinefunction(cls.__ainit__)  # __ainit__ must be async

    @property
    def async_state(self):
        if not self.async_initialized:
            return "[initialization pending]"
        return "[initialization done and successful]"


class ConnectionStates:
    CONNECTED = "connected"
    HANDSHAKE_SENT = "handshake_sent"
    REQUEST_SENT = "request_sent"
    RESPONSE_RECEIVED = "response_received"
    FAILED = "failed"


class ConnectionConfig(NamedTuple):
    """Where and how to connect for a status query.

    Example:

    ```python
    config = ConnectionConfig("localhost").with_port(25566)
    async with await config.connect() as conn:
        status = await conn.status()
    ```
    """

    host: str
    port: int = DEFAULT_PORT
    protocol_version: int = LATEST_PROTOCOL_VERSION
    # only applies to opening the connection, not to the status exchange
    timeout: Optional[float] = None

    @classmethod
    def parse(cls, address: str, **kwargs) -> "ConnectionConfig":
        """Build a config from ``host`` or ``host:port``.

        Raises:
            ValueError: If the port is not a number
        """
        host, sep, port = address.rpartition(":")
        # bare host, or an ipv6 address without brackets
        if not sep or (":" in host and not host.endswith("]")):
            return cls(address.strip("[]"), **kwargs)

        kwargs["port"] = int(port)
        return cls(host.strip("[]"), **kwargs)

    def with_port(self, port: int) -> "ConnectionConfig":
        return self._replace(port=port)

    def with_protocol_version(self, protocol_version: int) -> "ConnectionConfig":
        return self._replace(protocol_version=protocol_version)

    async def connect(self, logger: logging.Logger = None) -> "StatusConnection":
        """Open the connection.

        Raises:
            ConnectFailed: If the server can't be reached
        """
        return await StatusConnection(self, logger=logger)


async def connect(
    address: Union[str, ConnectionConfig], logger: logging.Logger = None
) -> "StatusConnection":
    """Connect to ``host[:port]`` with the latest protocol version, or to a prepared config."""
    if isinstance(address, str):
        address = ConnectionConfig.parse(address)
    return await address.connect(logger=logger)


class StatusConnection(AsyncObj):
    """
    A connection to a server, good for one status query.

    **NB:** This class is an async class, you should await the initialization of the object.

    The exchange runs handshake -> request -> response once; calling
    ``status_raw`` again only returns the stored response. After any failure the
    connection is unusable and a new one has to be opened.

    Example:

    ```python
    from slpclient.connector import ConnectionConfig, StatusConnection
    import asyncio

    async def main():
        conn = await StatusConnection(ConnectionConfig("localhost"))
        print(await conn.status_raw())
        await conn.close()

    asyncio.run(main())
    ```
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.state = None
        self.response = None
        self.busy = False

    async def __ainit__(
        self,
        config: ConnectionConfig,
        logger: logging.Logger = None,
        max_packet_length: int = MAX_PACKET_LENGTH,
    ):
        """
        Connect to a server.
        """
        self.config = config
        self.logger = logger or logging.getLogger("slpclient.connector")
        self.max_packet_length = max_packet_length

        if not 0 <= config.port <= 2**16 - 1:
            raise ValueError(f"Port {config.port} is out of range")

        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(config.host, config.port),
                timeout=config.timeout,
            )
        except (OSError, asyncio.TimeoutError) as err:
            raise ConnectFailed(
                f"Failed to connect to {config.host}:{config.port}: {err!r}"
            ) from err

        self.state = ConnectionStates.CONNECTED
        self.logger.debug(f"Connected to {config.host}:{config.port}")

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as err:
            # the server may have reset the connection already
            self.logger.debug(f"Error while closing the connection: {err!r}")

    async def send_packet(self, p: C2SPacket):
        tStart = time.perf_counter()

        await p.send(self.writer)

        tEnd = time.perf_counter()
        self.logger.debug(
            f"Sent packet: {p} (state {p.state}) in {tEnd - tStart:.2f} seconds"
        )

    async def recv_packet(self) -> Status.S2C_0x00:
        tStart = time.perf_counter()

        body = await read_packet(self.reader, self.max_packet_length)
        p = Status.S2C_0x00.fromBytes(body)

        tEnd = time.perf_counter()
        self.logger.debug(
            f"Received packet: {p.name} (state {p.state}, {len(body)} bytes)"
            f" in {tEnd - tStart:.2f} seconds"
        )
        return p

    async def status_raw(self) -> str:
        """
        Run the status exchange and return the JSON text the server sent

        Returns:
            str: The response body, exactly as received

        Raises:
            ConnectionUnusable: If a previous exchange failed or one is still running
            ProtocolError: If reading or writing the packets failed
        """
        if self.busy:
            raise ConnectionUnusable("A status exchange is already running on this connection")
        if self.state == ConnectionStates.RESPONSE_RECEIVED:
            return self.response.json_response
        if self.state != ConnectionStates.CONNECTED:
            raise ConnectionUnusable(
                f"Connection is {self.state}, open a new one to query again"
            )

        self.busy = True
        try:
            await self.send_packet(
                Handshake.C2S_0x00(
                    protocol_version=self.config.protocol_version,
                    server_address=self.config.host,
                    server_port=self.config.port,
                    next_state=NEXT_STATE_STATUS,
                )
            )
            self.state = ConnectionStates.HANDSHAKE_SENT

            await self.send_packet(Status.C2S_0x00())
            self.state = ConnectionStates.REQUEST_SENT

            self.response = await self.recv_packet()
            self.state = ConnectionStates.RESPONSE_RECEIVED
        except BaseException:
            self.state = ConnectionStates.FAILED
            raise
        finally:
            self.busy = False

        return self.response.json_response

    async def status(self) -> StatusResponse:
        """
        Run the status exchange and decode the response

        Raises:
            InvalidResponseJson: If the body isn't a valid status document
        """
        return StatusResponse.from_json(await self.status_raw())
