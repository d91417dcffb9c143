"""Errors raised while talking to a server."""


class ServerError(Exception):
    """Base class for everything a status query can fail with."""


class ConnectFailed(ServerError):
    """The TCP connection could not be established."""


class ConnectionUnusable(ServerError):
    """The connection already failed or is busy with another exchange."""


class InvalidResponseJson(ServerError):
    """The response body was not JSON or did not look like a status response."""


class ProtocolError(ServerError):
    """Error reading or writing data on the wire."""


class MalformedVarInt(ProtocolError):
    pass


class MalformedString(ProtocolError):
    pass


class UnexpectedEof(ProtocolError):
    pass


class PacketTooLarge(ProtocolError):
    def __init__(self, length: int, max_length: int):
        super().__init__(f"Packet length {length} exceeds the limit of {max_length}")
        self.length = length
        self.max_length = max_length


class UnexpectedPacketId(ProtocolError):
    def __init__(self, expected: int, actual: int):
        super().__init__(f"Expected packet {hex(expected)}, got {hex(actual)}")
        self.expected = expected
        self.actual = actual


class IoError(ProtocolError):
    pass
