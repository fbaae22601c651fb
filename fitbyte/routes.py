"""
HTTP routes for the FitByte API.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from fitbyte.activities import calculate_calories_burned, parse_activity_type
from fitbyte.config import Settings, get_settings
from fitbyte.db import DEFAULT_ACTIVITY_LIMIT, ActivityFilter, DbClient, UserRecord
from fitbyte.dependencies import (
    get_current_user,
    get_db_client,
    get_email_cache,
    get_storage_client,
    get_token_service,
)
from fitbyte.email_cache import EmailCache
from fitbyte.errors import DuplicateEmailError
from fitbyte.images import allowed_image_type, detect_image_format
from fitbyte.schemas import (
    ActivityCreateRequest,
    ActivityResponse,
    ActivityUpdateRequest,
    AuthRequest,
    AuthResponse,
    FileUploadResponse,
    MessageResponse,
    ProfileResponse,
    ProfileUpdateRequest,
)
from fitbyte.security import TokenService, hash_password, verify_password
from fitbyte.storage import StorageClient

logger = logging.getLogger(__name__)

router = APIRouter()


# Upper bound of the INT columns; larger values overflow the database driver.
MAX_QUERY_INT = 2**31 - 1


def _parse_int(
    value: Optional[str],
    default: Optional[int],
    *,
    minimum: int = 0,
    maximum: int = MAX_QUERY_INT,
):
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if minimum <= parsed <= maximum else default


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_activity_id(activity_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(activity_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="Activity not found")


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(
    payload: AuthRequest,
    db: DbClient = Depends(get_db_client),
    cache: EmailCache = Depends(get_email_cache),
    tokens: TokenService = Depends(get_token_service),
):
    if cache.contains(payload.email):
        raise HTTPException(status_code=409, detail="Email already exists")
    try:
        user = db.create_user(payload.email, hash_password(payload.password))
    except DuplicateEmailError:
        cache.add(payload.email)
        raise HTTPException(status_code=409, detail="Email already exists")
    cache.add(user.email)
    logger.info("Registered user %s", user.user_id)
    return AuthResponse(email=user.email, token=tokens.issue(user.email))


@router.post("/login", response_model=AuthResponse)
def login(
    payload: AuthRequest,
    db: DbClient = Depends(get_db_client),
    tokens: TokenService = Depends(get_token_service),
):
    user = db.get_user_by_email(payload.email)
    if not user:
        raise HTTPException(status_code=404, detail="Email not found")
    if not verify_password(payload.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid password")
    return AuthResponse(email=user.email, token=tokens.issue(user.email))


@router.get("/user", response_model=ProfileResponse)
def get_profile(user: UserRecord = Depends(get_current_user)):
    return ProfileResponse.from_record(user)


@router.patch("/user", response_model=ProfileResponse)
def update_profile(
    payload: ProfileUpdateRequest,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    updated = db.update_user(user.user_id, payload.changes())
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    return ProfileResponse.from_record(updated)


@router.post("/file", response_model=FileUploadResponse)
async def upload_file(
    file: UploadFile = File(...),
    user: UserRecord = Depends(get_current_user),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    max_bytes = settings.max_upload_bytes
    content = await file.read(max_bytes + 1)
    if not content:
        raise HTTPException(status_code=400, detail="File part is missing")
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File size exceeds {max_bytes // 1024}KiB limit",
        )
    logger.info("File size: %d", len(content))

    image_format = detect_image_format(content)
    if image_format is None:
        raise HTTPException(status_code=400, detail="Unable to detect file type")
    image_type = allowed_image_type(image_format)
    if image_type is None:
        raise HTTPException(
            status_code=400, detail="Only JPEG, JPG, and PNG files are allowed"
        )
    logger.info("Detected file type: %s", image_type.mime_type)

    key = f"{uuid.uuid4()}.{image_type.extension}"
    try:
        uri = storage.upload_bytes(key, content, image_type.mime_type)
    except (BotoCoreError, ClientError):
        logger.exception("Failed to upload %s to S3", key)
        raise HTTPException(status_code=500, detail="Failed to upload to S3")
    logger.info("Uploaded file for user %s: %s", user.user_id, uri)
    return FileUploadResponse(uri=uri)


@router.post("/activity", response_model=ActivityResponse, status_code=201)
def create_activity(
    payload: ActivityCreateRequest,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    activity = db.create_activity(
        user.user_id,
        activity_type=payload.activity_type.value,
        done_at=payload.done_at,
        duration_in_minutes=payload.duration_in_minutes,
        calories_burned=calculate_calories_burned(
            payload.activity_type, payload.duration_in_minutes
        ),
    )
    return ActivityResponse.from_record(activity)


@router.get("/activity", response_model=list[ActivityResponse])
def list_activities(
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    activity_type: Optional[str] = Query(None, alias="activityType"),
    done_at_from: Optional[str] = Query(None, alias="doneAtFrom"),
    done_at_to: Optional[str] = Query(None, alias="doneAtTo"),
    calories_burned_min: Optional[str] = Query(None, alias="caloriesBurnedMin"),
    calories_burned_max: Optional[str] = Query(None, alias="caloriesBurnedMax"),
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    """
    List the caller's activities, newest first. Malformed filters are ignored
    rather than rejected.
    """
    known_type = parse_activity_type(activity_type)
    filters = ActivityFilter(
        limit=_parse_int(limit, DEFAULT_ACTIVITY_LIMIT, minimum=1),
        offset=_parse_int(offset, 0),
        activity_type=known_type.value if known_type else None,
        done_at_from=_parse_datetime(done_at_from),
        done_at_to=_parse_datetime(done_at_to),
        calories_burned_min=_parse_int(calories_burned_min, None),
        calories_burned_max=_parse_int(calories_burned_max, None),
    )
    activities = db.list_activities(user.user_id, filters)
    return [ActivityResponse.from_record(activity) for activity in activities]


@router.patch("/activity/{activity_id}", response_model=ActivityResponse)
def update_activity(
    activity_id: str,
    payload: ActivityUpdateRequest,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    parsed_id = _parse_activity_id(activity_id)
    existing = db.get_activity(user.user_id, parsed_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Activity not found")

    changes: dict = {}
    if payload.activity_type is not None:
        changes["activity_type"] = payload.activity_type.value
    if payload.done_at is not None:
        changes["done_at"] = payload.done_at
    if payload.duration_in_minutes is not None:
        changes["duration_in_minutes"] = payload.duration_in_minutes
    changes["calories_burned"] = calculate_calories_burned(
        changes.get("activity_type", existing.activity_type),
        changes.get("duration_in_minutes", existing.duration_in_minutes),
    )

    updated = db.update_activity(user.user_id, parsed_id, changes)
    if not updated:
        raise HTTPException(status_code=404, detail="Activity not found")
    return ActivityResponse.from_record(updated)


@router.delete("/activity/{activity_id}", response_model=MessageResponse)
def delete_activity(
    activity_id: str,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    parsed_id = _parse_activity_id(activity_id)
    if not db.delete_activity(user.user_id, parsed_id):
        raise HTTPException(status_code=404, detail="Activity not found")
    return MessageResponse(message="Activity deleted successfully")
