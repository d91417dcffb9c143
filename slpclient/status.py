"""Decoding of the JSON document a server sends in its status response.

See https://wiki.vg/Server_List_Ping#Status_Response for the format.
"""
import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional

from .errors import InvalidResponseJson
from .text import Text

# chat components nest through "extra", vanilla clients give up long before this
MAX_DESCRIPTION_DEPTH = 64


def _get(data: dict, key: str, kind, default: Any = ...):
    """Returns ``data[key]`` after checking its type.

    Raises:
        InvalidResponseJson: If the key is missing (and has no default) or has the wrong type
    """
    if not isinstance(data, dict):
        raise InvalidResponseJson(f"Expected an object, got {type(data).__name__}")

    if key not in data or data[key] is None:
        if default is ...:
            raise InvalidResponseJson(f"Missing field {key!r}")
        return default

    value = data[key]
    # bool is a subclass of int, but true is not a player count
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise InvalidResponseJson(
            f"Field {key!r} has the wrong type: {type(value).__name__}"
        )
    return value


@dataclass
class ServerVersion:
    """The server's version name (i.e. "1.15.2") and protocol number."""

    name: str
    protocol: int

    @classmethod
    def from_dict(cls, data: dict) -> "ServerVersion":
        return cls(
            name=_get(data, "name", str),
            protocol=_get(data, "protocol", int),
        )


@dataclass
class ServerPlayer:
    name: str
    id: str

    @classmethod
    def from_dict(cls, data: dict) -> "ServerPlayer":
        return cls(name=_get(data, "name", str), id=_get(data, "id", str))


@dataclass
class ServerPlayers:
    """Player counts and the optional sample of who is online."""

    max: int
    online: int
    sample: Optional[list[ServerPlayer]] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ServerPlayers":
        sample = _get(data, "sample", list, None)
        return cls(
            max=_get(data, "max", int),
            online=_get(data, "online", int),
            sample=[ServerPlayer.from_dict(p) for p in sample]
            if sample is not None
            else None,
        )


@dataclass
class ExtraDescriptionPart:
    """One styled segment of a structured description."""

    text: str = ""
    color: str = ""
    bold: bool = False
    italic: bool = False
    extra: list["ExtraDescriptionPart"] = field(default_factory=list)

    @classmethod
    def from_json(cls, node, depth: int = 0) -> "ExtraDescriptionPart":
        if depth > MAX_DESCRIPTION_DEPTH:
            raise InvalidResponseJson(
                f"Description is nested deeper than {MAX_DESCRIPTION_DEPTH} parts"
            )
        if isinstance(node, str):
            return cls(text=node)

        return cls(
            text=_get(node, "text", str, ""),
            color=_get(node, "color", str, ""),
            bold=_get(node, "bold", bool, False),
            italic=_get(node, "italic", bool, False),
            extra=[cls.from_json(e, depth + 1) for e in _get(node, "extra", list, [])],
        )

    def get_plain(self) -> str:
        return self.text + "".join(e.get_plain() for e in self.extra)

    def get_legacy(self) -> str:
        prefix = Text.color_mine(self.color)
        if self.bold:
            prefix += "§l"
        if self.italic:
            prefix += "§o"

        out = prefix + self.text + "".join(e.get_legacy() for e in self.extra)
        if prefix:
            out += "§r"
        return out


class ServerDescription:
    """The server's MOTD.

    Servers send either a plain string or a chat component object; the first
    decodes to a ``SimpleDescription``, the second to a ``BigDescription``.
    """

    def get_text(self) -> str:
        """The top level text, no matter which variant this is."""
        raise NotImplementedError

    def get_plain(self) -> str:
        """All text, nested parts included, without formatting codes."""
        raise NotImplementedError

    def get_legacy(self) -> str:
        """All text with the styling rendered as § formatting codes."""
        raise NotImplementedError

    @staticmethod
    def from_json(node) -> "ServerDescription":
        if isinstance(node, str):
            return SimpleDescription(node)
        if isinstance(node, dict):
            return BigDescription.from_dict(node)
        raise InvalidResponseJson(
            f"Description must be a string or an object, got {type(node).__name__}"
        )


@dataclass
class SimpleDescription(ServerDescription):
    text: str

    def get_text(self) -> str:
        return self.text

    def get_plain(self) -> str:
        return Text.c_filter(self.text, trim=False)

    def get_legacy(self) -> str:
        return self.text


@dataclass
class BigDescription(ServerDescription):
    text: str = ""
    extra: list[ExtraDescriptionPart] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "BigDescription":
        return cls(
            text=_get(data, "text", str, ""),
            extra=[ExtraDescriptionPart.from_json(e) for e in _get(data, "extra", list, [])],
        )

    def get_text(self) -> str:
        return self.text

    def get_plain(self) -> str:
        return Text.c_filter(
            self.text + "".join(e.get_plain() for e in self.extra), trim=False
        )

    def get_legacy(self) -> str:
        return self.text + "".join(e.get_legacy() for e in self.extra)


class ModInfo:
    """Mod list sent by modded servers, tagged by its ``type`` field."""

    type: ClassVar[str] = ""

    @staticmethod
    def from_dict(data: dict) -> "ModInfo":
        mod_type = _get(data, "type", str)
        mod_class = MOD_INFO_TYPES.get(mod_type)
        if mod_class is None:
            return UnknownModInfo(type=mod_type, raw=data)
        return mod_class.from_dict(data)


@dataclass
class ForgeModEntry:
    modid: str
    version: str

    @classmethod
    def from_dict(cls, data: dict) -> "ForgeModEntry":
        return cls(modid=_get(data, "modid", str), version=_get(data, "version", str))


@dataclass
class ForgeModInfo(ModInfo):
    type: ClassVar[str] = "FML"

    mod_list: list[ForgeModEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ForgeModInfo":
        return cls(
            mod_list=[ForgeModEntry.from_dict(m) for m in _get(data, "modList", list, [])]
        )


@dataclass
class UnknownModInfo(ModInfo):
    type: str
    raw: dict = field(default_factory=dict)


MOD_INFO_TYPES = {
    ForgeModInfo.type: ForgeModInfo,
}


@dataclass
class ForgeChannel:
    res: str
    version: str
    required: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "ForgeChannel":
        return cls(
            res=_get(data, "res", str),
            version=_get(data, "version", str, ""),
            required=_get(data, "required", bool, False),
        )


@dataclass
class ForgeMods:
    mod_id: str
    mod_marker: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "ForgeMods":
        return cls(
            mod_id=_get(data, "modId", str),
            mod_marker=_get(data, "modmarker", str, ""),
        )


@dataclass
class ForgeData:
    """The ``forgeData`` object sent by Forge 1.13 and newer."""

    channels: list[ForgeChannel] = field(default_factory=list)
    mods: list[ForgeMods] = field(default_factory=list)
    fml_network_version: int = 0
    truncated: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "ForgeData":
        return cls(
            channels=[ForgeChannel.from_dict(c) for c in _get(data, "channels", list, [])],
            mods=[ForgeMods.from_dict(m) for m in _get(data, "mods", list, [])],
            fml_network_version=_get(data, "fmlNetworkVersion", int, 0),
            truncated=_get(data, "truncated", bool, False),
        )


@dataclass
class StatusResponse:
    """The decoded JSON response from a status query."""

    version: ServerVersion
    players: ServerPlayers
    description: ServerDescription
    favicon: Optional[str] = None
    modinfo: Optional[ModInfo] = None
    forge_data: Optional[ForgeData] = None
    enforces_secure_chat: Optional[bool] = None
    previews_chat: Optional[bool] = None
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_json(cls, text: str) -> "StatusResponse":
        """Decode a raw status body.

        Raises:
            InvalidResponseJson: If the text isn't JSON or misses required fields
        """
        try:
            data = json.loads(text)
        # ValueError also covers integers past the int conversion digit limit
        except (ValueError, RecursionError) as err:
            raise InvalidResponseJson(f"Response is not valid JSON: {err}") from err
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "StatusResponse":
        if not isinstance(data, dict):
            raise InvalidResponseJson(
                f"Response must be a JSON object, got {type(data).__name__}"
            )
        if "description" not in data:
            raise InvalidResponseJson("Missing field 'description'")

        modinfo = _get(data, "modinfo", dict, None)
        forge_data = _get(data, "forgeData", dict, None)
        return cls(
            version=ServerVersion.from_dict(_get(data, "version", dict)),
            players=ServerPlayers.from_dict(_get(data, "players", dict)),
            description=ServerDescription.from_json(data["description"]),
            favicon=_get(data, "favicon", str, None),
            modinfo=ModInfo.from_dict(modinfo) if modinfo is not None else None,
            forge_data=ForgeData.from_dict(forge_data) if forge_data is not None else None,
            enforces_secure_chat=_get(data, "enforcesSecureChat", bool, None),
            previews_chat=_get(data, "previewsChat", bool, None),
            raw=data,
        )

    def favicon_bytes(self) -> Optional[bytes]:
        """Returns the decoded favicon image, or None if the server has none

        Raises:
            InvalidResponseJson: If the favicon isn't valid base64
        """
        if self.favicon is None:
            return None

        data = self.favicon
        if data.startswith("data:"):
            data = data.split(",", 1)[-1]
        # older servers wrap the base64 in newlines
        data = "".join(data.split())

        try:
            return base64.b64decode(data, validate=True)
        # non-ascii characters raise a plain ValueError
        except (binascii.Error, ValueError) as err:
            raise InvalidResponseJson(f"Favicon is not valid base64: {err}") from err
