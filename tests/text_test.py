import os
import sys

try:
    import slpclient
except ImportError:
    sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    import slpclient

from slpclient.text import Text


def test_c_filter():
    assert Text.c_filter("  §aHello §lWorld§r  ") == "Hello World"
    assert Text.c_filter("  §aHello  ", trim=False) == "  Hello  "


def test_c_filter_escapes_control_chars():
    assert Text.c_filter("a\x07b") == "a\\x07b"
    assert Text.c_filter("line one\nline two") == "line one\nline two"


def test_color_mine():
    assert Text.color_mine("yellow") == "§e"
    assert Text.color_mine("GOLD") == "§6"
    assert Text.color_mine("dark_purple") == "§5"
    assert Text.color_mine("#ff00ff") == ""
    assert Text.color_mine("") == ""


def test_color_ansi():
    assert Text.color_ansi("§cRed§r plain") == "\x1b[91mRed\x1b[0m plain\x1b[0m"
    assert Text.color_ansi("§ABright") == "\x1b[92mBright\x1b[0m"


def test_color_ansi_without_codes():
    assert Text.color_ansi("plain") == "plain"
