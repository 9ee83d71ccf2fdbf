"""FastAPI application exposing the exchange operations."""
from __future__ import annotations

import logging
import os
from typing import Dict, List

from fastapi import FastAPI, Path, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .clock import SystemClock
from .database import Database, resolve_database_path
from .errors import (
    AllocationFailed,
    AlreadyExists,
    ExchangeError,
    NotFound,
    RecordTooLarge,
    StorageFailed,
    Unauthorized,
    UserNotFound,
)
from .handlers import Clock, ExchangeService
from .models import (
    Feedback,
    FeedbackPayload,
    Listing,
    ListingPayload,
    SwapRequest,
    SwapRequestPayload,
    User,
    UserPayload,
)
from .storage import ID_MAX, Stores

logger = logging.getLogger("kes_exchange.api")

_ERROR_STATUS: Dict[type, int] = {
    AlreadyExists: status.HTTP_409_CONFLICT,
    UserNotFound: status.HTTP_404_NOT_FOUND,
    NotFound: status.HTTP_404_NOT_FOUND,
    Unauthorized: status.HTTP_403_FORBIDDEN,
    RecordTooLarge: status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    AllocationFailed: status.HTTP_500_INTERNAL_SERVER_ERROR,
    StorageFailed: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class UserRequest(BaseModel):
    name: str
    phone_number: str
    email: str


class ListingRequest(BaseModel):
    user_id: int = Field(..., ge=0, le=ID_MAX)
    title: str
    author: str
    description: str


class SwapRequestCreate(BaseModel):
    listing_id: int = Field(..., ge=0, le=ID_MAX)
    requested_by_id: int = Field(..., ge=0, le=ID_MAX)


class FeedbackRequest(BaseModel):
    user_id: int = Field(..., ge=0, le=ID_MAX)
    swap_request_id: int = Field(..., ge=0, le=ID_MAX)
    rating: int = Field(..., ge=0, le=255)
    comment: str = ""


class UserResponse(BaseModel):
    id: int
    name: str
    phone_number: str
    email: str
    created_at: int


class UserListResponse(BaseModel):
    users: List[UserResponse]


class ListingResponse(BaseModel):
    id: int
    user_id: int
    title: str
    author: str
    description: str
    created_at: int


class SwapRequestResponse(BaseModel):
    id: int
    listing_id: int
    requested_by_id: int
    status: str
    created_at: int


class FeedbackResponse(BaseModel):
    id: int
    user_id: int
    swap_request_id: int
    rating: int
    comment: str
    created_at: int


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        phone_number=user.phone_number,
        email=user.email,
        created_at=user.created_at,
    )


def _listing_to_response(listing: Listing) -> ListingResponse:
    return ListingResponse(
        id=listing.id,
        user_id=listing.user_id,
        title=listing.title,
        author=listing.author,
        description=listing.description,
        created_at=listing.created_at,
    )


def _swap_request_to_response(swap_request: SwapRequest) -> SwapRequestResponse:
    return SwapRequestResponse(
        id=swap_request.id,
        listing_id=swap_request.listing_id,
        requested_by_id=swap_request.requested_by_id,
        status=swap_request.status.value,
        created_at=swap_request.created_at,
    )


def _feedback_to_response(feedback: Feedback) -> FeedbackResponse:
    return FeedbackResponse(
        id=feedback.id,
        user_id=feedback.user_id,
        swap_request_id=feedback.swap_request_id,
        rating=feedback.rating,
        comment=feedback.comment,
        created_at=feedback.created_at,
    )


def _status_for(exc: ExchangeError) -> int:
    for error_type, code in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def register_api_routes(app: FastAPI, service: ExchangeService) -> None:
    """Expose the JSON API endpoints on the provided FastAPI application."""

    @app.exception_handler(ExchangeError)
    async def exchange_error_handler(request: Request, exc: ExchangeError) -> JSONResponse:
        code = _status_for(exc)
        if code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.kind)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc.kind)
        return JSONResponse(status_code=code, content={"error": exc.to_dict()})

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/v1/users", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
    async def create_user_profile(request: UserRequest) -> UserResponse:
        user = service.create_user_profile(
            UserPayload(name=request.name, phone_number=request.phone_number, email=request.email)
        )
        return _user_to_response(user)

    # Registered before /v1/users/{user_id} so "search" is not taken as an id.
    @app.get("/v1/users/search", response_model=UserListResponse)
    async def search_user(query: str = Query(...)) -> UserListResponse:
        users = service.search_user(query)
        return UserListResponse(users=[_user_to_response(user) for user in users])

    @app.get("/v1/users/{user_id}", response_model=UserResponse)
    async def get_user_profile(user_id: int = Path(..., ge=0, le=ID_MAX)) -> UserResponse:
        return _user_to_response(service.get_user_profile(user_id))

    @app.put("/v1/users/{user_id}", response_model=UserResponse)
    async def update_user_profile(
        request: UserRequest,
        user_id: int = Path(..., ge=0, le=ID_MAX),
    ) -> UserResponse:
        user = service.update_user_profile(
            user_id,
            UserPayload(name=request.name, phone_number=request.phone_number, email=request.email),
        )
        return _user_to_response(user)

    @app.post("/v1/listings", status_code=status.HTTP_201_CREATED, response_model=ListingResponse)
    async def create_listing(request: ListingRequest) -> ListingResponse:
        listing = service.create_listing(
            ListingPayload(
                user_id=request.user_id,
                title=request.title,
                author=request.author,
                description=request.description,
            )
        )
        return _listing_to_response(listing)

    @app.get("/v1/listings/{listing_id}", response_model=ListingResponse)
    async def get_listing(listing_id: int = Path(..., ge=0, le=ID_MAX)) -> ListingResponse:
        return _listing_to_response(service.get_listing(listing_id))

    @app.post(
        "/v1/swap-requests",
        status_code=status.HTTP_201_CREATED,
        response_model=SwapRequestResponse,
    )
    async def create_swap_request(request: SwapRequestCreate) -> SwapRequestResponse:
        swap_request = service.create_swap_request(
            SwapRequestPayload(
                listing_id=request.listing_id,
                requested_by_id=request.requested_by_id,
            )
        )
        return _swap_request_to_response(swap_request)

    @app.get("/v1/swap-requests/{swap_request_id}", response_model=SwapRequestResponse)
    async def get_swap_request(swap_request_id: int = Path(..., ge=0, le=ID_MAX)) -> SwapRequestResponse:
        return _swap_request_to_response(service.get_swap_request(swap_request_id))

    @app.post("/v1/feedback", status_code=status.HTTP_201_CREATED, response_model=FeedbackResponse)
    async def create_feedback(request: FeedbackRequest) -> FeedbackResponse:
        feedback = service.create_feedback(
            FeedbackPayload(
                user_id=request.user_id,
                swap_request_id=request.swap_request_id,
                rating=request.rating,
                comment=request.comment,
            )
        )
        return _feedback_to_response(feedback)

    @app.get("/v1/feedback/{feedback_id}", response_model=FeedbackResponse)
    async def get_feedback(feedback_id: int = Path(..., ge=0, le=ID_MAX)) -> FeedbackResponse:
        return _feedback_to_response(service.get_feedback(feedback_id))


def create_app(
    *,
    database: Database | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the exchange."""

    db = database or Database(resolve_database_path(os.getenv("KES_EXCHANGE_DB_PATH")))
    db.initialize()

    service = ExchangeService(Stores.open(db), clock or SystemClock())

    app = FastAPI(
        title="KES Exchange API",
        version="0.1.0",
        description="Record service for user profiles, listings, swap requests and feedback.",
    )
    app.state.database = db
    app.state.service = service

    register_api_routes(app, service)

    return app


__all__ = ["create_app", "register_api_routes"]
