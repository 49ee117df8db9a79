import pytest

from mcp_env_provisioner.logging import ColorCodes
from mcp_env_provisioner.terminal import normalize_output

WHITE, CYAN, RESET = ColorCodes.WHITE, ColorCodes.CYAN, ColorCodes.RESET


def test_carriage_return_overwrites_line():
    assert normalize_output("abc\rdef\n") == "def\n"


def test_crlf_is_newline():
    assert normalize_output("line1\r\nline2") == "line1\nline2"


def test_progress_bar_keeps_last_frame():
    raw = "Downloading\n 10%\r 50%\r100%\ndone\n"
    assert normalize_output(raw) == "Downloading\n100%\ndone\n"


def test_overwrite_only_affects_current_line():
    assert normalize_output("keep\nold\rnew") == "keep\nnew"


def test_cursor_navigation_after_carriage_return_is_dropped():
    assert normalize_output("abc\r\x1b[Kdef\n") == "abcdef\n"
    assert normalize_output("abc\r\x1b[2A\x1b[Kdef") == "abcdef"


def test_repeated_character_redraw_is_dropped():
    assert normalize_output("ab\rbc") == "abc"


def test_redraw_marker_becomes_newline():
    assert normalize_output("x\x1b[Aprogress 50%\x1b[Kedone") == "x\ndone"


def test_command_lines_are_white():
    assert normalize_output("$> ls -la\nfile\n") == f"{WHITE}$> ls -la{RESET}\nfile\n"


def test_exit_status_lines_are_cyan():
    out = normalize_output("oops\nExit status: 3\n")
    assert out == f"oops\n{CYAN}Exit status: 3{RESET}\n"
    assert normalize_output("exit status: 1") == f"{CYAN}exit status: 1{RESET}"


def test_bytes_chunks_decode_across_boundaries():
    assert normalize_output([b"caf\xc3", b"\xa9\n"]) == "café\n"


def test_invalid_bytes_are_replaced():
    assert normalize_output(b"ok\xff\n") == "ok\ufffd\n"


def test_mixed_chunks():
    assert normalize_output([b"$> echo hi\n", "hi\r\n"]) == f"{WHITE}$> echo hi{RESET}\nhi\n"


@pytest.mark.parametrize(
    "raw",
    [
        "abc\rdef\n",
        "line1\r\nline2",
        "$> pyenv install 3.11\n 1%\r 99%\r100%\r\nExit status: 0\n",
        "ab\rbc\r\x1b[Kd",
        "x\x1b[Aspin\x1b[Ke$> next\n",
        "\r\r\n\r",
        "",
    ],
)
def test_normalize_is_idempotent(raw):
    once = normalize_output(raw)
    assert "\r" not in once
    assert normalize_output(once) == once
