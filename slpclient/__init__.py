"""asyncio client for the Minecraft ServerListPing status query."""

from .connector import (
    DEFAULT_PORT,
    LATEST_PROTOCOL_VERSION,
    ConnectionConfig,
    ConnectionStates,
    StatusConnection,
    connect,
)
from .errors import (
    ConnectFailed,
    ConnectionUnusable,
    InvalidResponseJson,
    IoError,
    MalformedString,
    MalformedVarInt,
    PacketTooLarge,
    ProtocolError,
    ServerError,
    UnexpectedEof,
    UnexpectedPacketId,
)
from .status import (
    BigDescription,
    ExtraDescriptionPart,
    ForgeChannel,
    ForgeData,
    ForgeModEntry,
    ForgeModInfo,
    ForgeMods,
    ModInfo,
    ServerDescription,
    ServerPlayer,
    ServerPlayers,
    ServerVersion,
    SimpleDescription,
    StatusResponse,
    UnknownModInfo,
)

__version__ = "0.1.0"
