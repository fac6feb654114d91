import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from auth import require_jwt
from backend import redis_backend
from exceptions import TokenServiceError
from schemas.schedule import ChannelResponse, InterviewResponse, ScheduleRequest
from token_service import token_service
from logging_config import get_logger

logger = get_logger(__name__)

schedule_router = APIRouter(tags=["schedule"])


@schedule_router.post("/schedule", response_model=InterviewResponse)
async def schedule_interview(schedule_request: ScheduleRequest, claims: dict = Depends(require_jwt)):
    # Body: { "dateAndTime": "2024-05-01T10:00:00Z" }
    # The caller becomes peerFirst; a fresh channel gets its own RTM token.
    user_id = claims.get("id")
    logger.info(f"Schedule request from user {user_id} for {schedule_request.date_and_time}")

    channel_name = str(uuid.uuid4())
    try:
        rtm_token = await token_service.fetch_rtm_token(channel_name)
    except TokenServiceError as e:
        logger.error(f"Scheduling failed for user {user_id}: {e}")
        raise HTTPException(status_code=502, detail="Could not obtain a channel token")

    interview = await redis_backend.create_interview({
        "date_and_time": schedule_request.date_and_time,
        "peer_first": user_id,
        "token": rtm_token,
        "channel_name": channel_name,
    })
    return InterviewResponse(**interview)


@schedule_router.get("/schedule", response_model=List[InterviewResponse])
async def list_interviews(claims: dict = Depends(require_jwt)):
    interviews = await redis_backend.list_available_interviews()
    logger.debug(f"{len(interviews)} interviews available")
    return [InterviewResponse(**interview) for interview in interviews]


@schedule_router.patch("/schedule/{interview_id}")
async def take_interview(interview_id: str, claims: dict = Depends(require_jwt)):
    user_id = claims.get("id")
    interview = await redis_backend.get_interview(interview_id)
    if not interview:
        logger.warning(f"Interview {interview_id} not found")
        raise HTTPException(status_code=404, detail="Interview not found")

    if not await redis_backend.claim_interview(interview_id, user_id):
        logger.warning(f"Interview {interview_id} already taken, user {user_id} rejected")
        raise HTTPException(status_code=409, detail="Interview already scheduled")

    return {"message": "Interview scheduled"}


@schedule_router.get("/token", response_model=ChannelResponse)
async def get_channel_token(claims: dict = Depends(require_jwt)):
    """Pair callers up on RTM channels.

    The first caller gets a new channel, which is also pooled; the next caller
    pops it from the pool and lands on the same channel.
    """
    channel = await redis_backend.pop_channel()
    if channel:
        logger.info(f"Handing out pooled channel {channel['channel_name']} to user {claims.get('id')}")
        return ChannelResponse(**channel)

    channel_name = str(uuid.uuid4())
    try:
        rtm_token = await token_service.fetch_rtm_token(channel_name)
    except TokenServiceError as e:
        logger.error(f"Channel token request failed: {e}")
        raise HTTPException(status_code=502, detail="Could not obtain a channel token")

    channel = {"token": rtm_token, "channel_name": channel_name}
    await redis_backend.push_channel(channel)
    logger.info(f"Created channel {channel_name} for user {claims.get('id')}")
    return ChannelResponse(**channel)
