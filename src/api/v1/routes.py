"""
API v1 routes.

Defines REST endpoints for the account registration API.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from src.api.dependencies import get_registration_coordinator, get_source_address
from src.api.models import ErrorResponse, RegisterRequest, RegisterResponse
from src.domain.registration import RegistrationCoordinator, RegistrationRequest
from src.domain.results import map_outcome

router = APIRouter(tags=["v1"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid registration data or weak password"},
        409: {"model": ErrorResponse, "description": "Email or username already in use"},
        429: {"model": ErrorResponse, "description": "Address registration limit reached"},
        500: {"model": ErrorResponse, "description": "Registration failed"},
        503: {"model": ErrorResponse, "description": "Email availability could not be verified"},
    },
    summary="Register a new account",
    description="Create an identity and its account document. "
    "Email and username must be unused and the client address must be under its registration limit.",
)
async def register(
    request_data: RegisterRequest,
    source_address: str | None = Depends(get_source_address),
    coordinator: RegistrationCoordinator = Depends(get_registration_coordinator),
) -> JSONResponse:
    """
    Register a new account.

    - **username**: 3+ characters from letters, digits, `_` and `.`
    - **email**: Email address, must not be registered
    - **password**: Password (minimum 6 characters)
    """
    result = await coordinator.register(
        RegistrationRequest(
            username=request_data.username,
            email=request_data.email,
            password=request_data.password,
            source_address=source_address,
        )
    )
    response = map_outcome(result.outcome)
    return JSONResponse(status_code=response.status_code, content=response.body())
