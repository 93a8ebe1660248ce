"""Tests for the context-tagging logger."""

import logging

from gazette.utils.logger import get_structured_logger

LOGGER_NAME = "tests.structured"


def test_plain_message_without_context(caplog):
    caplog.set_level(logging.INFO, logger=LOGGER_NAME)

    get_structured_logger(LOGGER_NAME).info("Generated 2/2 changelogs")

    assert caplog.messages == ["Generated 2/2 changelogs"]


def test_context_is_appended_and_stacks(caplog):
    caplog.set_level(logging.INFO, logger=LOGGER_NAME)
    base = get_structured_logger(LOGGER_NAME)

    repo_log = base.with_context(repo="acme/backend")
    repo_log.with_context(attempt=2).warning("Retrying")
    repo_log.info("Saved")
    base.info("Done")

    assert caplog.messages == ["Retrying [repo=acme/backend attempt=2]", "Saved [repo=acme/backend]", "Done"]
    assert caplog.records[0].levelno == logging.WARNING


def test_exception_keeps_traceback(caplog):
    caplog.set_level(logging.ERROR, logger=LOGGER_NAME)

    try:
        raise ValueError("boom")
    except ValueError:
        get_structured_logger(LOGGER_NAME).with_context(repo="acme/web").exception("Unexpected error")

    record = caplog.records[0]
    assert record.getMessage() == "Unexpected error [repo=acme/web]"
    assert record.exc_info[0] is ValueError
