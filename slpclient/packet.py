import asyncio
import struct
from ctypes import c_uint32 as unsigned_int32

from .errors import (
    IoError,
    MalformedString,
    MalformedVarInt,
    PacketTooLarge,
    UnexpectedEof,
    UnexpectedPacketId,
)

MAX_VARINT_BYTES = 5
# the largest length a 3 byte VarInt can hold, vanilla servers never send more
MAX_PACKET_LENGTH = 2**21 - 1
MAX_STRING_LENGTH = 32767


class States:
    HANDSHAKE = 0
    STATUS = 1


class DataTypes:
    VARINT = "VarInt"
    STRING = "String"
    USHORT = "Unsigned Short"


# https://wiki.vg/Protocol#Packet_format
class Packet:
    """A byte buffer with the protocol's field encoders and decoders.

    Reading consumes the buffer from the front.
    """

    def __init__(self, data: bytes = b""):
        self._data = bytes(data)
        self._pos = 0

    def __len__(self):
        return len(self._data) - self._pos

    def tell(self) -> int:
        return self._pos

    def read(self, length: int) -> bytes:
        if length > len(self):
            raise UnexpectedEof(
                f"Wanted {length} bytes but only {len(self)} are left in the packet"
            )
        result = self._data[self._pos : self._pos + length]
        self._pos += length
        return result

    @staticmethod
    def encode_varint(value: int) -> bytes:
        """Encode ``value`` as a VarInt.

        :param value: The Maximum is ``2 ** 32-1``, the minimum is ``-(2 ** 31)``.
            Negative values are sent as their unsigned 32 bit equivalent.
        :raises ValueError: If value is out of range.
        """
        if value > 2**32 - 1 or value < -(2**31):
            raise ValueError(f'The value "{value}" is too big to send in a varint')

        remaining = unsigned_int32(value).value
        out = b""
        while remaining & -0x80:  # remaining & ~0x7F != 0
            out += struct.pack("!B", remaining & 0x7F | 0x80)
            remaining >>= 7
        return out + struct.pack("!B", remaining)

    def encode_string(self, string: str, max_length: int = MAX_STRING_LENGTH) -> bytes:
        """Encode ``string`` as its UTF-8 byte length followed by the bytes.

        :param string: The string to write.
        :param max_length: The longest string, in characters, the field accepts.
        :raises ValueError: If the string is too long.
        """
        if len(string) > max_length:
            raise ValueError(
                f"String of {len(string)} characters exceeds the limit of {max_length}"
            )
        encoded = string.encode("utf-8")
        return self.encode_varint(len(encoded)) + encoded

    @staticmethod
    def encode_ushort(value: int) -> bytes:
        """Encode an unsigned short, big endian.

        :param value: The Maximum is ``2 ** 16-1``, the minimum is 0.
        :raises ValueError: If value is out of range.
        """
        if value < 0 or value > 2**16 - 1:
            raise ValueError(f"The value {value} is out of range for an unsigned short")
        return struct.pack("!H", value)

    def read_varint(self) -> int:
        result = 0
        for i in range(MAX_VARINT_BYTES):
            part = self.read(1)[0]
            result |= (part & 0x7F) << 7 * i
            if not part & 0x80:
                return unsigned_int32(result).value
        raise MalformedVarInt(f"VarInt is longer than {MAX_VARINT_BYTES} bytes")

    def read_string(self) -> str:
        length = self.read_varint()
        data = self.read(length)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as err:
            raise MalformedString(f"String is not valid UTF-8: {err}") from err

    def read_ushort(self) -> int:
        return struct.unpack("!H", self.read(2))[0]


def encode_varint(value: int) -> bytes:
    return Packet.encode_varint(value)


def decode_varint(data: bytes) -> tuple[int, int]:
    """Decode the VarInt at the start of ``data``.

    Returns:
        tuple[int, int]: the value and the number of bytes it took up
    """
    p = Packet(data)
    value = p.read_varint()
    return value, p.tell()


class C2SPacket(Packet):
    """Base for packets sent by the client.

    Subclasses describe themselves through ``_info`` and list their fields, in
    wire order, through ``_dataTypes``. The field values are passed as keyword
    arguments.
    """

    def __init__(self, **kwargs):
        super().__init__(b"")
        self.fields = kwargs
        self.name = self._info()["name"]
        self.id = self._info()["id"]
        self.state = self._info()["state"]

    def _info(self):
        return {
            "name": "Example Packet",
            "id": 0xFF,
            "state": States.HANDSHAKE,
        }

    def _dataTypes(self):
        return {}

    def _maxLengths(self):
        """Per field limits, in characters, for string fields shorter than the default."""
        return {}

    def __str__(self):
        return f"{self.name}({', '.join([f'{k}={v!r}' for k, v in self.fields.items()])})"

    def toBytes(self) -> bytes:
        """Serialize the packet body: the id, then every field in order."""
        b = self.encode_varint(self.id)

        for k, v in self._dataTypes().items():
            if k not in self.fields:
                raise ValueError(f"Missing field {k!r} for {self.name}")

            match v:
                case DataTypes.VARINT:
                    b += self.encode_varint(self.fields[k])
                case DataTypes.STRING:
                    b += self.encode_string(
                        self.fields[k], self._maxLengths().get(k, MAX_STRING_LENGTH)
                    )
                case DataTypes.USHORT:
                    b += self.encode_ushort(self.fields[k])
                case _:
                    raise ValueError(f"Unknown data type: {v}")

        return b

    async def send(self, writer: asyncio.StreamWriter):
        await write_packet(writer, self.toBytes())


class S2CPacket(Packet):
    """Base for packets sent by the server, built from a received body."""

    def __init__(self, data: bytes = b""):
        super().__init__(data)
        self.fields = {}
        self.name = self._info()["name"]
        self.id = self._info()["id"]
        self.state = self._info()["state"]

    def _info(self):
        return {
            "name": "Example Packet",
            "id": 0xFF,
            "state": States.STATUS,
        }

    def _dataTypes(self):
        return {}

    @classmethod
    def fromBytes(cls, body: bytes):
        """Parse a packet body. Bytes after the last known field are ignored.

        Raises:
            UnexpectedPacketId: If the body belongs to a different packet
            UnexpectedEof: If a field is cut short
        """
        p = cls(body)

        packet_id = p.read_varint()
        if packet_id != p.id:
            raise UnexpectedPacketId(p.id, packet_id)

        for k, v in p._dataTypes().items():
            match v:
                case DataTypes.VARINT:
                    p.fields[k] = p.read_varint()
                case DataTypes.STRING:
                    p.fields[k] = p.read_string()
                case DataTypes.USHORT:
                    p.fields[k] = p.read_ushort()
                case _:
                    raise ValueError(f"Unknown data type: {v}")

        return p


# Framing


async def recv_exact(reader: asyncio.StreamReader, length: int) -> bytes:
    try:
        return await reader.readexactly(length)
    except asyncio.IncompleteReadError as err:
        raise UnexpectedEof(
            f"Connection closed with {length - len(err.partial)} bytes remaining"
        ) from err
    except OSError as err:
        raise IoError(f"Failed to read from the connection: {err}") from err


async def read_varint(reader: asyncio.StreamReader) -> int:
    result = 0
    for i in range(MAX_VARINT_BYTES):
        part = (await recv_exact(reader, 1))[0]
        result |= (part & 0x7F) << 7 * i
        if not part & 0x80:
            return unsigned_int32(result).value
    raise MalformedVarInt(f"VarInt is longer than {MAX_VARINT_BYTES} bytes")


async def read_packet(
    reader: asyncio.StreamReader, max_length: int = MAX_PACKET_LENGTH
) -> bytes:
    """Read one length prefixed packet and return its body.

    Raises:
        PacketTooLarge: If the length prefix is above ``max_length``
        UnexpectedEof: If the connection closes before the whole body arrived
    """
    length = await read_varint(reader)
    if length > max_length:
        raise PacketTooLarge(length, max_length)
    if length == 0:
        return b""
    return await recv_exact(reader, length)


async def write_packet(writer: asyncio.StreamWriter, body: bytes):
    """Write ``body`` behind its VarInt length and wait until it is flushed."""
    try:
        writer.write(encode_varint(len(body)) + body)
        await writer.drain()
    except OSError as err:
        raise IoError(f"Failed to write to the connection: {err}") from err
