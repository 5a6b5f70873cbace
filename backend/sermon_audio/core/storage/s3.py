"""S3-backed transcript storage."""

from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from sermon_audio.core.exceptions import (
    TranscriptAccessDeniedError,
    TranscriptNotFoundError,
    TransientStorageError,
)
from sermon_audio.core.logging import get_logger
from sermon_audio.core.storage.base import ResultStorage, TranscriptFetcher, content_key

logger = get_logger(__name__)

NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}
ACCESS_DENIED_CODES = {"AccessDenied", "403", "Forbidden"}


class S3TranscriptStorage(TranscriptFetcher, ResultStorage):
    """Reads raw transcripts from and writes rendered HTML to one bucket."""

    def __init__(
        self,
        bucket: str,
        region: str | None = None,
        key_prefix: str = "",
        result_prefix: str = "",
        client: Any = None,
    ) -> None:
        self.bucket = bucket
        self.key_prefix = key_prefix
        self.result_prefix = result_prefix
        self.client = client or boto3.client("s3", region_name=region or None)

    def fetch(self, key: str) -> bytes:
        full_key = f"{self.key_prefix}{key}"
        try:
            obj = self.client.get_object(Bucket=self.bucket, Key=full_key)
            return obj["Body"].read()
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in NOT_FOUND_CODES:
                raise TranscriptNotFoundError(f"s3://{self.bucket}/{full_key} not found") from e
            if code in ACCESS_DENIED_CODES:
                raise TranscriptAccessDeniedError(f"Access to s3://{self.bucket}/{full_key} denied") from e
            raise TransientStorageError(f"S3 error {code} reading s3://{self.bucket}/{full_key}") from e
        except BotoCoreError as e:
            raise TransientStorageError(f"Could not read s3://{self.bucket}/{full_key}: {e}") from e

    def store(self, content: str) -> str:
        data = content.encode("utf-8")
        key = content_key(self.result_prefix, data)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType="text/html; charset=utf-8",
            )
        except (ClientError, BotoCoreError) as e:
            raise TransientStorageError(f"Could not write s3://{self.bucket}/{key}: {e}") from e

        logger.debug("result_stored", bucket=self.bucket, key=key, size=len(data))
        return key
