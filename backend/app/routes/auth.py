"""
This module defines the API routes for registration and session login.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from app.dependencies import SESSION_USER_KEY, get_user_store, require_user
from app.exceptions import MalformedInput, UserAlreadyExists
from app.models.user import LoginRequest, UserCreate, UserPublic
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", summary="Register a new user")
async def register(
    payload: UserCreate,
    store: UserStore = Depends(get_user_store),
):
    """
    Registers a user in the file-backed store.

    Raises:
        HTTPException: 400 if a field is missing or the password is too short.
        HTTPException: 409 if the email is already registered.
        HTTPException: 500 if the users file cannot be written.
    """
    try:
        user = await run_in_threadpool(store.register, payload.name, payload.email, payload.password)
    except MalformedInput as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except UserAlreadyExists:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists",
        )
    except Exception as e:
        logger.error("Registration error: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )

    return {"message": "User registered successfully", "user": user}


@router.post("/login", response_model=UserPublic, summary="Log in with email and password")
async def login(
    payload: LoginRequest,
    request: Request,
    store: UserStore = Depends(get_user_store),
):
    """
    Checks credentials (demo account first, then registered users) and stores
    the user in the signed session cookie.
    """
    try:
        user = await run_in_threadpool(store.authenticate, payload.email, payload.password)
    except Exception as e:
        logger.error("Auth error: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )

    if user is None:
        logger.info("Failed login attempt for %s", payload.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    request.session[SESSION_USER_KEY] = user.model_dump()
    logger.info("User %s logged in", user.email)
    return user


@router.post("/logout", summary="Clear the current session")
async def logout(request: Request):
    request.session.clear()
    return {"message": "Logged out"}


@router.get("/session", response_model=UserPublic, summary="Return the logged-in user")
async def current_session(user: UserPublic = Depends(require_user)):
    return user
