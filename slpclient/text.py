import re

import unicodedata

COLOR_CODES = {
    "black": "§0",
    "dark_blue": "§1",
    "dark_green": "§2",
    "dark_aqua": "§3",
    "dark_red": "§4",
    "dark_purple": "§5",
    "gold": "§6",
    "gray": "§7",
    "dark_gray": "§8",
    "blue": "§9",
    "green": "§a",
    "aqua": "§b",
    "red": "§c",
    "light_purple": "§d",
    "yellow": "§e",
    "white": "§f",
}


class Text:
    """Helpers for the formatting codes found in server descriptions."""

    @staticmethod
    def c_filter(text: str, trim: bool = True) -> str:
        """Removes all color bits from a string

        Args:
            text [str]: The string to remove color bits from
            trim [bool]: Whether to trim the string or not

        Returns:
            [str]: The string without color bits
        """
        text = re.sub(r"§[0-9a-fk-or]?", "", text, flags=re.IGNORECASE)
        if trim:
            text = text.strip()

        # escape control chars so they can't mess with the terminal
        text = "".join(
            char.encode("unicode_escape").decode("utf-8")
            if unicodedata.category(char) in ("Cc", "Cf", "Cn", "Co", "Cs")
            and char != "\n"
            else char
            for char in text
        )

        return text

    @staticmethod
    def color_ansi(text: str) -> str:
        """Changes color tags to those that work with ansi terminals

        Args:
            text (str): text to change

        Returns:
            str: text with ansi color tags, reset at the end
        """
        # 30: Gray   <- §7
        # 31: Red    <- §c
        # 32: Green  <- §a
        # 33: Yellow <- §e
        # 34: Blue   <- §9
        # 35: Pink   <- §d
        # 36: Cyan   <- §b
        # 37: White  <- §f
        color_char = "\u001b"
        ansi = {
            "§0": color_char + "[30m",
            "§1": color_char + "[34m",
            "§2": color_char + "[32m",
            "§3": color_char + "[36m",
            "§4": color_char + "[31m",
            "§5": color_char + "[35m",
            "§6": color_char + "[33m",
            "§7": color_char + "[37m",
            "§8": color_char + "[90m",
            "§9": color_char + "[94m",
            "§a": color_char + "[92m",
            "§b": color_char + "[96m",
            "§c": color_char + "[91m",
            "§d": color_char + "[95m",
            "§e": color_char + "[93m",
            "§f": color_char + "[97m",
            "§l": color_char + "[1m",  # text styles
            "§o": color_char + "[3m",
            "§n": color_char + "[4m",
            "§m": color_char + "[9m",
            "§k": "",
            "§r": color_char + "[0m",
        }

        had_codes = "§" in text
        for code, escape in ansi.items():
            text = text.replace(code, escape).replace(code.upper(), escape)

        # remove remaining color codes
        text = re.sub(r"§[0-9a-fk-or]?", "", text, flags=re.IGNORECASE)

        if had_codes:
            text += color_char + "[0m"

        return text

    @staticmethod
    def color_mine(color: str) -> str:
        """Given a color like 'yellow' return the color code like '§e'"""
        if not color:
            return ""
        return COLOR_CODES.get(color.lower(), "")
