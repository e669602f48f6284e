from __future__ import annotations
import logging
import sys
import uuid
from pythonjsonlogger.json import JsonFormatter
from fastapi import Request
from ..config import Settings


def setup_logging(settings: Settings) -> None:
    root = logging.getLogger()
    if root.handlers:
        for h in list(root.handlers):
            root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    formatter = JsonFormatter(
        "%(levelname)s %(name)s %(message)s %(asctime)s %(request_id)s %(extra)s"
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(settings.LOG_LEVEL)

    # quiet noisy loggers if desired
    logging.getLogger("uvicorn.access").setLevel("WARNING")


def get_request_id(req: Request, header: str) -> str:
    rid = req.headers.get(header)
    return rid if rid else uuid.uuid4().hex


def bind_record(record: logging.LogRecord, **extra):
    # attach arbitrary fields to a log record (safe for missing attrs)
    for k, v in extra.items():
        setattr(record, k, v or "")
    return record
