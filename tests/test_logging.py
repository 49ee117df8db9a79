import json
import logging

import pytest
import structlog

from mcp_env_provisioner.logging import (
    ColorCodes,
    CompactJSONRenderer,
    add_timestamp,
    configure_logging,
    get_logger,
    make_level_filter,
)


def test_compact_json_renderer():
    output = CompactJSONRenderer()(None, "info", {
        "timestamp": "2024-01-01T00:00:00",
        "level": "info",
        "event": "catalog_refreshed",
        "line": 10,
        "ecosystem": "python",
    })
    data = json.loads(output)
    assert data == {
        "ts": "2024-01-01T00:00:00",
        "lvl": "info",
        "msg": "catalog_refreshed",
        "line": 10,
        "data": {"ecosystem": "python"},
    }


def test_add_timestamp_keeps_existing():
    assert add_timestamp(None, "info", {"timestamp": "x"}) == {"timestamp": "x"}
    assert "timestamp" in add_timestamp(None, "info", {})


@pytest.mark.parametrize(
    "method,dropped",
    [
        ("debug", True),
        ("info", True),
        ("warning", False),
        ("warn", False),
        ("error", False),
        ("exception", False),
    ],
)
def test_level_filter(method, dropped):
    level_filter = make_level_filter("WARNING")
    logger = logging.getLogger("mcp_env_provisioner.locks")
    if dropped:
        with pytest.raises(structlog.DropEvent):
            level_filter(logger, method, {"event": "x"})
    else:
        assert level_filter(logger, method, {"event": "x"}) == {"event": "x"}


def test_level_filter_drops_ignored_loggers():
    level_filter = make_level_filter("DEBUG")
    with pytest.raises(structlog.DropEvent):
        level_filter(logging.getLogger("aiohttp.client"), "error", {"event": "x"})


def test_configure_logging_and_get_logger():
    try:
        configure_logging("DEBUG")
        assert structlog.get_config()["wrapper_class"] is structlog.stdlib.BoundLogger
        get_logger("test").info("test_event", key="value")
    finally:
        structlog.reset_defaults()


def test_color_codes():
    assert ColorCodes.WHITE == "\033[37m"
    assert ColorCodes.CYAN == "\033[36m"
    assert ColorCodes.RESET == "\033[0m"
