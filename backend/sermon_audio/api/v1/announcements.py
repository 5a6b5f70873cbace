"""Job completion announcement endpoints.

Processing services call these when a job finishes so the affected records
are refreshed right away instead of on the next sweep.
"""

import base64
import binascii
import hmac
import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel

from sermon_audio.config import Settings, get_settings
from sermon_audio.core.events.bus import get_event_bus
from sermon_audio.core.events.types import EventType
from sermon_audio.core.jobs.kinds import JobKind
from sermon_audio.core.logging import get_logger
from sermon_audio.refresh.tasks import process_announced_job

logger = get_logger(__name__)

router = APIRouter()

MAX_AUTHORIZATION_LENGTH = 1024
SUPPORTED_CHARSETS = {"utf-8", "us-ascii"}


class AnnouncementResponse(BaseModel):
    """Acknowledgement of an accepted announcement."""

    status: str = "accepted"
    kind: str
    job_id: str


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_announcement_token(
    settings: Annotated[Settings, Depends(get_settings)],
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """
    Check the bearer token sent by the processing service.

    The token is base64-encoded in the header. Raises 401 if it is missing
    or wrong, 400 if the header is malformed.
    """
    if authorization is None:
        raise _unauthorized()
    if authorization == "" or len(authorization) >= MAX_AUTHORIZATION_LENGTH:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Authorization header is malformed")

    authorization = authorization.strip()
    if not authorization.startswith("Bearer "):
        raise _unauthorized()

    try:
        token = base64.b64decode(authorization[7:], validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Authorization header is malformed")

    expected = settings.announcement_token.encode("utf-8")
    if not expected or not hmac.compare_digest(token, expected):
        raise _unauthorized()


def check_content_type(content_type: str | None) -> None:
    """Require a JSON body in UTF-8 or ASCII."""
    if not content_type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing Content-Type header")

    parts = content_type.split(";")
    if len(parts) > 2:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Content-Type header is malformed")
    if parts[0].strip().lower() != "application/json":
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Content-Type header does not indicate a JSON request",
        )

    if len(parts) == 2 and parts[1].strip():
        charset = parts[1].strip().split("=")
        if len(charset) != 2 or charset[0].strip().lower() != "charset":
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Content-Type header is malformed")
        if charset[1].strip().strip('"').lower() not in SUPPORTED_CHARSETS:
            raise HTTPException(
                status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                detail="Content-Type header indicates an unsupported character set",
            )


def parse_job_id(body: bytes) -> str:
    """Extract the job id from a {"id": ...} body."""
    if not body:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body is empty")

    try:
        data: Any = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body is not valid JSON")

    if not isinstance(data, dict) or data.get("id") is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Request body does not contain a valid "id" property',
        )

    job_id = data["id"]
    if isinstance(job_id, bool) or not isinstance(job_id, (str, int, float)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='"id" is of the wrong type')

    job_id = str(job_id).strip()
    if not job_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='"id" is empty')
    return job_id


async def _accept(kind: JobKind, request: Request) -> AnnouncementResponse:
    check_content_type(request.headers.get("content-type"))
    job_id = parse_job_id(await request.body())

    process_announced_job.delay(kind.value, job_id)
    get_event_bus().publish(
        EventType.JOB_ANNOUNCED,
        source="api:announcements",
        payload={"kind": kind.value, "job_id": job_id},
    )
    logger.info("job_announced", kind=kind.value, job_id=job_id)

    return AnnouncementResponse(kind=kind.value, job_id=job_id)


@router.post(
    "/cleaning",
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(verify_announcement_token)],
)
async def announce_cleaning(request: Request) -> AnnouncementResponse:
    """Announce that a cleaning job finished."""
    return await _accept(JobKind.CLEANING, request)


@router.post(
    "/transcription",
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(verify_announcement_token)],
)
async def announce_transcription(request: Request) -> AnnouncementResponse:
    """Announce that a transcription job finished."""
    return await _accept(JobKind.TRANSCRIPTION, request)
