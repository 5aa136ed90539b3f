from __future__ import annotations

import logging

from sponge_monument.telemetry import KeyValueFormatter, LoggerTelemetry


def test_formatter_appends_structured_extras() -> None:
    record = logging.LogRecord("sponge_monument.test", logging.INFO, __file__, 1, "sponge_room", (), None)
    record.chunk_x = 4
    record.room_index = 7

    assert KeyValueFormatter("%(message)s").format(record) == "sponge_room chunk_x=4 room_index=7"


def test_formatter_leaves_plain_messages_alone() -> None:
    record = logging.LogRecord("sponge_monument.test", logging.INFO, __file__, 1, "merge_complete", (), None)

    assert KeyValueFormatter("%(message)s").format(record) == "merge_complete"


def test_logger_telemetry_forwards_payload(caplog) -> None:
    caplog.set_level(logging.INFO, logger="sponge_monument")

    LoggerTelemetry().emit("sponge_room", {"chunk_x": 1, "wet_sponges": 30})

    record = caplog.records[-1]
    assert record.getMessage() == "sponge_room"
    assert record.wet_sponges == 30
