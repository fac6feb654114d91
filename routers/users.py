from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from auth import create_jwt, hash_password, require_jwt, verify_password
from backend import redis_backend
from schemas.users import AuthResponse, LoginRequest, RegisterRequest, UserData, UserUpdateRequest
from logging_config import get_logger

logger = get_logger(__name__)

users_router = APIRouter(tags=["users"])


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def public_user_data(user: dict) -> UserData:
    """Strip everything but the fields clients are allowed to see (no password hash)."""
    return UserData(
        id=user["id"],
        first_name=user.get("first_name", ""),
        last_name=user.get("last_name", ""),
        email=user.get("email", ""),
        bio=user.get("bio"),
        image=user.get("image"),
        sessions_attended=user.get("sessions_attended") or 0,
    )


def _auth_response(user: dict) -> AuthResponse:
    user_data = public_user_data(user)
    return AuthResponse(jwt=create_jwt(user_data.model_dump(by_alias=True)), user_data=user_data)


@users_router.post("/register", response_model=AuthResponse)
async def register(register_request: RegisterRequest, request: Request):
    logger.info(f"Registration request from {_client_host(request)} for {register_request.email}")

    user = await redis_backend.create_user({
        "first_name": register_request.first_name,
        "last_name": register_request.last_name,
        "email": register_request.email,
        "password": hash_password(register_request.password),
    })
    if user is None:
        logger.warning(f"Registration failed: {register_request.email} already exists")
        raise HTTPException(status_code=409, detail="User already exists")

    logger.info(f"User {user['id']} registered")
    return _auth_response(user)


@users_router.post("/login", response_model=AuthResponse)
async def login(login_request: LoginRequest, request: Request):
    logger.info(f"Login request from {_client_host(request)} for {login_request.email}")

    user = await redis_backend.get_user_by_email(login_request.email)
    if not user or not verify_password(login_request.password, user.get("password", "")):
        logger.warning(f"Login failed for {login_request.email}")
        raise HTTPException(status_code=401, detail="Password/Email is incorrect")

    logger.info(f"User {user['id']} logged in")
    return _auth_response(user)


@users_router.get("/verify")
async def verify(claims: dict = Depends(require_jwt)):
    """Echo the decoded token back so clients can check who they are signed in as."""
    return claims


@users_router.get("/users", response_model=List[UserData])
async def list_users(claims: dict = Depends(require_jwt)):
    users = await redis_backend.list_users()
    return [public_user_data(user) for user in users]


@users_router.get("/users/{user_id}", response_model=UserData)
async def get_user(user_id: str, claims: dict = Depends(require_jwt)):
    user = await redis_backend.get_user(user_id)
    if not user:
        logger.warning(f"User {user_id} not found")
        raise HTTPException(status_code=404, detail="User not found")
    return public_user_data(user)


@users_router.patch("/users", response_model=UserData)
async def update_user(update_request: UserUpdateRequest, claims: dict = Depends(require_jwt)):
    user_id = claims.get("id")
    changes = update_request.model_dump(exclude_unset=True, exclude_none=True)
    user = await redis_backend.update_user(user_id, changes) if user_id else None
    if not user:
        logger.warning(f"Profile update failed: user {user_id} not found")
        raise HTTPException(status_code=404, detail="User not found")
    return public_user_data(user)
