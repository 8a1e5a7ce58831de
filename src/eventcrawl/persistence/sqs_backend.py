"""SQS change notification queue implementing IEventQueue."""

from __future__ import annotations

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from eventcrawl.core.exceptions import QueueError
from eventcrawl.models.events import QueueMessage, parse_notification

_BATCH_LIMIT = 10  # SQS per-call maximum


class SQSEventQueue:
    """Production IEventQueue backed by SQS. Delivery is at-least-once."""

    def __init__(self, queue_url: str, region: str = "us-east-1",
                 endpoint_url: str | None = None, visibility_timeout: int | None = None) -> None:
        self._queue_url = queue_url
        self._region = region
        self._endpoint_url = endpoint_url
        self._visibility_timeout = visibility_timeout
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("sqs", **kwargs)

    @property
    def queue_url(self) -> str:
        return self._queue_url

    def send(self, body: str) -> str:
        try:
            resp = self._client.send_message(QueueUrl=self._queue_url, MessageBody=body)
            return resp["MessageId"]
        except (BotoCoreError, ClientError) as exc:
            raise QueueError(f"SQS send failed for {self._queue_url!r}: {exc}") from exc

    def receive(self, max_messages: int = 10, wait_time_seconds: int = 0) -> list[QueueMessage]:
        kwargs: dict = {
            "QueueUrl": self._queue_url,
            "MaxNumberOfMessages": max(1, min(max_messages, _BATCH_LIMIT)),
            "WaitTimeSeconds": wait_time_seconds,
        }
        if self._visibility_timeout is not None:
            kwargs["VisibilityTimeout"] = self._visibility_timeout
        try:
            resp = self._client.receive_message(**kwargs)
        except (BotoCoreError, ClientError) as exc:
            raise QueueError(f"SQS receive failed for {self._queue_url!r}: {exc}") from exc
        return [
            QueueMessage(
                message_id=msg["MessageId"],
                receipt_handle=msg["ReceiptHandle"],
                events=parse_notification(msg.get("Body", "")),
            )
            for msg in resp.get("Messages", [])
        ]

    def acknowledge(self, receipt_handles: list[str]) -> None:
        for start in range(0, len(receipt_handles), _BATCH_LIMIT):
            chunk = receipt_handles[start:start + _BATCH_LIMIT]
            try:
                resp = self._client.delete_message_batch(
                    QueueUrl=self._queue_url,
                    Entries=[{"Id": str(i), "ReceiptHandle": h} for i, h in enumerate(chunk)],
                )
            except (BotoCoreError, ClientError) as exc:
                raise QueueError(f"SQS delete failed for {self._queue_url!r}: {exc}") from exc
            failed = resp.get("Failed", [])
            if failed:
                raise QueueError(f"SQS delete failed for {len(failed)} message(s): {failed}")
