"""Tests for request-id propagation into log records."""

import logging

from appointment_scheduler.logging_context import (
    RequestIdFilter,
    get_request_id,
    get_request_logger,
    request_scope,
    set_request_id,
)
from appointment_scheduler.tools.booking import create_appointment


class TestRequestScope:
    def test_default_outside_scope(self):
        assert get_request_id() == "NO_REQUEST_ID"

    def test_explicit_id_restored_after_block(self):
        with request_scope("REQ-abc123") as rid:
            assert rid == "REQ-abc123"
            assert get_request_id() == "REQ-abc123"
        assert get_request_id() == "NO_REQUEST_ID"

    def test_generated_id(self):
        with request_scope() as rid:
            assert rid.startswith("REQ-")
            assert len(rid) == 12

    def test_nested_scopes(self):
        with request_scope("REQ-outer"):
            with request_scope("REQ-inner"):
                assert get_request_id() == "REQ-inner"
            assert get_request_id() == "REQ-outer"

    def test_set_request_id(self):
        with request_scope("REQ-temp"):
            set_request_id("REQ-override")
            assert get_request_id() == "REQ-override"
        assert get_request_id() == "NO_REQUEST_ID"


class TestRequestLogger:
    def test_filter_attached_once(self):
        logger = get_request_logger("appointment_scheduler.test_once")
        get_request_logger("appointment_scheduler.test_once")
        assert sum(isinstance(f, RequestIdFilter) for f in logger.filters) == 1

    def test_records_carry_request_id(self, engine, caplog):
        with caplog.at_level(logging.INFO, logger="appointment_scheduler.scheduling.coordinator"):
            create_appointment(
                {
                    "startTime": "2024-12-15T10:00:00Z",
                    "endTime": "2024-12-15T11:00:00Z",
                    "ownerEmail": "john@example.com",
                    "ownerName": "John Doe",
                },
                engine=engine,
                request_id="REQ-trace01",
            )
        records = [r for r in caplog.records if "confirmed" in r.getMessage()]
        assert records
        assert records[0].request_id == "REQ-trace01"
