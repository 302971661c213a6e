from __future__ import annotations

import logging

from app import _RedactingFormatter


def test_redacting_formatter_masks_secrets() -> None:
    formatter = _RedactingFormatter(["token-123", ""], fmt="%(message)s")
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "auth with token-123 ok", None, None)
    assert formatter.format(record) == "auth with *** ok"
