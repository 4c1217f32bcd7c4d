# -*- coding: utf-8 -*-
"""
Log output for the newsletter parser.

Every record carries the id of the document being processed, so lines
from one clean/parse call can be grouped after the fact.
"""
import logging
import sys

from pythonjsonlogger.json import JsonFormatter as jsonlogger

from .config import settings
from .context import get_document_id

# Placeholder for records emitted outside a document scope
NO_DOCUMENT = "-"


class DocumentContextFilter(logging.Filter):
    """Stamp records with the document id bound by ``document_scope``."""

    def filter(self, record):
        record.document_id = get_document_id() or NO_DOCUMENT
        return True


class NewsletterJsonFormatter(jsonlogger):
    """One JSON object per record: level, logger name and document id."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["document_id"] = getattr(record, "document_id", NO_DOCUMENT)


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return NewsletterJsonFormatter(
            fmt="%(timestamp)s %(level)s %(name)s %(document_id)s %(message)s",
            rename_fields={"timestamp": "@timestamp", "levelname": "level"},
        )
    return logging.Formatter("%(asctime)s [%(levelname)s] %(name)s [%(document_id)s] %(message)s")


def setup_logging(level: str | None = None, stream=None):
    """
    Route root logging to a single handler.

    Args:
        level: Level name, case-insensitive (defaults to LOG_LEVEL)
        stream: Output stream (defaults to stdout; the CLI passes stderr)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper()))

    # A second call replaces the handler instead of duplicating output
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(_build_formatter(settings.LOG_FORMAT))
    handler.addFilter(DocumentContextFilter())
    root_logger.addHandler(handler)

    return root_logger
