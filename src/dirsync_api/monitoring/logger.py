import json
import logging
import sys
import traceback

import loguru
from fastapi import Response
from loguru import logger


# Loggers configuration runs at the start of the application -- src/dirsync_api/__init__.py
def configure_logger(level: str = "INFO", serialize_extra: bool = True):
    """
    Configure the loguru logger with a single stdout sink.

    Args:
        level: Minimum level written to stdout
        serialize_extra: Render the "extra" context as JSON (one line per event)
    """
    # Suppress verbose Azure SDK logging
    logging.getLogger("azure").setLevel(logging.WARNING)
    logging.getLogger("azure.core").setLevel(logging.ERROR)
    logging.getLogger("azure.core.pipeline.policies").setLevel(logging.ERROR)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger.remove()  # remove the default logger

    extra_field = "{serialized_extra}" if serialize_extra else "{extra}"
    logger.add(
        sink=sys.stdout,
        level=level,
        diagnose=False,
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <bold><white>{message}</white></bold> | <dim>" + extra_field + "</dim> {stacktrace}",
        filter=process_log_record if serialize_extra else add_stacktrace,
    )


def process_log_record(record: "loguru.Record") -> "loguru.Record":
    r"""
    Inject transformed metadata into each log record before they are passed to the formatter.

    1. Serialize the "extra" field to JSON so that it renders on one line in the log stream.
    2. For error logs, add a traceback with \r instead of \n so that log collectors do not
       split the traceback into multiple log events.
    """
    extra = record["extra"]

    # serialized copy: the record is shared with other sinks, so "extra" itself stays a dict
    record["serialized_extra"] = json.dumps(extra, default=str) if extra else ""

    return add_stacktrace(record)


def add_stacktrace(record: "loguru.Record") -> "loguru.Record":
    """Attach the flattened stacktrace of the record's exception (empty when there is none)."""
    record["stacktrace"] = ""
    if record["exception"]:
        err = record["exception"]
        stacktrace = get_formatted_stacktrace(err, replace_newline_character_with_carriage_return=True)
        record["stacktrace"] = stacktrace

    return record


def get_formatted_stacktrace(loguru_record_exception, replace_newline_character_with_carriage_return: bool) -> str:
    """Get the formatted stacktrace for the current exception."""
    exc_type, exc_value, exc_traceback = loguru_record_exception
    stacktrace_: list[str] = traceback.format_exception(exc_type, exc_value, exc_traceback)
    stacktrace: str = "".join(stacktrace_)
    if replace_newline_character_with_carriage_return:
        stacktrace = stacktrace.replace("\n", "\r")
    return stacktrace


def log_response_info(response: Response):
    """Log the response info."""
    response_info = {
        "status_code": response.status_code,
        "headers": dict(response.headers.items()),
    }
    logger.debug("Response sent", http_response=response_info)
