"""Tests for component loggers."""

import logging

import pytest

from club_sphere.managers.logging_manager import ROOT_LOGGER_NAME, get_logger
from club_sphere.models.identifiers import ClubId
from conftest import add_club


class RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def records():
    handler = RecordingHandler()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    previous_level = root.level
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)
    yield handler.records
    root.removeHandler(handler)
    root.setLevel(previous_level)


def test_prefix_is_prepended(records):
    get_logger(prefix="[TEST]").info("hello")
    get_logger().info("bare")

    assert [r.getMessage() for r in records] == ["[TEST] hello", "bare"]


@pytest.mark.asyncio
async def test_service_messages_are_rendered_with_prefix(records, views, fake_db):
    club_id = ClubId.of(await add_club(fake_db, "gone@example.com"))

    await views.club_detail(club_id)

    [record] = [r for r in records if "no matching organizer" in r.getMessage()]
    assert record.levelno == logging.WARNING
    assert record.msg == f"[VIEW_COMPOSER] Club {club_id} has no matching organizer for 'gone@example.com'"
    assert not record.args
