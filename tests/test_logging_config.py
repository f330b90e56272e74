"""Tests for logging setup and sensitive data masking."""

import logging

from common.logging_config import NOISY_LOGGERS, SensitiveDataFilter, setup_logging


def make_record(msg, args=None):
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


def test_bot_token_in_file_url_is_masked():
    record = make_record("GET https://api.telegram.org/file/bot123456:ABC-def/documents/file_1.pdf")

    SensitiveDataFilter().filter(record)

    assert "123456:ABC-def" not in record.getMessage()
    assert "documents/file_1.pdf" in record.getMessage()


def test_bot_token_in_api_url_is_masked():
    record = make_record("POST https://api.telegram.org/bot123456:ABC-def/getUpdates")

    SensitiveDataFilter().filter(record)

    assert "ABC-def" not in record.getMessage()


def test_mongo_password_is_masked():
    record = make_record("Connecting to mongodb://custodian:s3cret@db:27017/bot")

    SensitiveDataFilter().filter(record)

    message = record.getMessage()
    assert "s3cret" not in message
    assert "custodian:" in message
    assert "@db:27017" in message


def test_arguments_are_masked():
    record = make_record("config: %s", ("token=abc123",))

    SensitiveDataFilter().filter(record)

    assert "abc123" not in record.getMessage()


def test_dict_arguments_are_masked():
    record = make_record("config: %(value)s", ({"value": "password: hunter2"},))

    SensitiveDataFilter().filter(record)

    assert "hunter2" not in record.getMessage()


def test_plain_messages_are_unchanged():
    record = make_record("File saved: a.txt [file_id=1]")

    SensitiveDataFilter().filter(record)

    assert record.getMessage() == "File saved: a.txt [file_id=1]"


def test_setup_logging_installs_one_filtered_handler():
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        setup_logging("custodian", "DEBUG")
        setup_logging("custodian", "DEBUG")

        ours = [h for h in root.handlers if getattr(h, "_custodian_handler", False)]
        assert len(ours) == 1
        assert any(isinstance(f, SensitiveDataFilter) for f in ours[0].filters)
        assert all(logging.getLogger(name).level == logging.WARNING for name in NOISY_LOGGERS)
    finally:
        for handler in list(root.handlers):
            if handler not in before:
                root.removeHandler(handler)
        root.setLevel(level)
