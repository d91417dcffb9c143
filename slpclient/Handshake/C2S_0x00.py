from ..packet import C2SPacket, States, DataTypes


class C2S_0x00(C2SPacket):
    """
    Handshake packet (0x00) sent by the client to the server.

    Data:
        - Protocol Version | VarInt | See protocol version numbers (578 for Minecraft 1.15.2).
        - Server Address | String (255) | Hostname or IP, e.g., localhost or 127.0.0.1, that was used to connect.
        - Server Port | Unsigned Short | Default is 25565.
        - Next State | VarInt Enum | 1 for Status, 2 for Login.
    """

    def _info(self):
        return {
            "name": "Handshake (0x00)",
            "id": 0x00,
            "state": States.HANDSHAKE,
        }

    def _dataTypes(self):
        return {
            "protocol_version": DataTypes.VARINT,
            "server_address": DataTypes.STRING,
            "server_port": DataTypes.USHORT,
            "next_state": DataTypes.VARINT,
        }

    def _maxLengths(self):
        return {"server_address": 255}
