"""Change notification and queue message models."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import quote_plus, unquote_plus

import structlog
from pydantic import BaseModel, ConfigDict, Field

log = structlog.get_logger()


def parent_prefix(key: str) -> str:
    """Return the "directory" part of an object key, with trailing slash."""
    head, sep, _ = key.rpartition("/")
    return f"{head}{sep}"


class ChangeEvent(BaseModel):
    """One object-created notification."""

    model_config = ConfigDict(frozen=True)

    key: str
    prefix: str
    timestamp: datetime
    bucket: str = ""
    size: int = 0
    etag: str = ""

    @classmethod
    def for_key(cls, key: str, *, bucket: str = "", size: int = 0, etag: str = "",
                timestamp: datetime | None = None) -> "ChangeEvent":
        return cls(
            key=key,
            prefix=parent_prefix(key),
            timestamp=timestamp or datetime.now(timezone.utc),
            bucket=bucket,
            size=size,
            etag=etag,
        )


class QueueMessage(BaseModel):
    """A received queue entry. Acknowledged by receipt handle."""

    message_id: str
    receipt_handle: str
    events: list[ChangeEvent] = Field(default_factory=list)


def build_s3_notification(bucket: str, key: str, size: int = 0, etag: str = "",
                          event_time: datetime | None = None) -> str:
    """Render an S3 ``ObjectCreated:Put`` notification body."""
    when = event_time or datetime.now(timezone.utc)
    record = {
        "eventVersion": "2.1",
        "eventSource": "aws:s3",
        "eventTime": when.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
        "eventName": "ObjectCreated:Put",
        "s3": {
            "bucket": {"name": bucket},
            "object": {"key": quote_plus(key, safe="/"), "size": size, "eTag": etag},
        },
    }
    return json.dumps({"Records": [record]})


def _event_time(value: Any) -> datetime:
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            log.warning("notification_bad_event_time", event_time=value)
    return datetime.now(timezone.utc)


def _parse_record(record: Any) -> Optional[ChangeEvent]:
    if not isinstance(record, dict):
        return None
    if not str(record.get("eventName", "")).startswith("ObjectCreated"):
        return None
    s3 = record.get("s3")
    obj = s3.get("object") if isinstance(s3, dict) else None
    if not isinstance(obj, dict) or not isinstance(obj.get("key"), str) or not obj["key"]:
        return None
    bucket = s3.get("bucket")
    try:
        size = int(obj.get("size") or 0)
    except (TypeError, ValueError):
        size = 0
    key = unquote_plus(obj["key"])
    return ChangeEvent(
        key=key,
        prefix=parent_prefix(key),
        timestamp=_event_time(record.get("eventTime")),
        bucket=str(bucket.get("name", "")) if isinstance(bucket, dict) else "",
        size=size,
        etag=str(obj.get("eTag") or ""),
    )


def parse_notification(body: str) -> list[ChangeEvent]:
    """Parse an S3 notification body into change events.

    Test events, non-create records and malformed records yield nothing.
    """
    try:
        payload: Any = json.loads(body)
    except json.JSONDecodeError:
        log.warning("notification_not_json")
        return []
    if not isinstance(payload, dict) or payload.get("Event") == "s3:TestEvent":
        return []
    records = payload.get("Records")
    if not isinstance(records, list):
        return []

    events: list[ChangeEvent] = []
    for record in records:
        event = _parse_record(record)
        if event is None:
            log.debug("notification_record_skipped")
            continue
        events.append(event)
    return events
