"""Authentication API routes."""

from fastapi import APIRouter, status

from vault.schemas.auth import (
    RegisterRequest,
    RegisterResponse,
    LoginRequest,
    LoginResponse
)
from vault.schemas.common import ERROR_RESPONSES
from vault.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Authentication"], responses=ERROR_RESPONSES)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest):
    """
    Register a new user account.

    Parameters:
        - email: Unique email address (case-insensitive)
        - password: User password (will be hashed before storage)
        - first_name, last_name: Display name used in share emails

    New accounts get the service default quota.

    Returns:
        - api_key: Generated API Key with 'vlt_' prefix
        - user_id: UUID of created user

    Raises:
        - 400: Email already registered
    """
    auth_service = AuthService()
    api_key, user_id = auth_service.register_user(
        request.email,
        request.password,
        request.first_name,
        request.last_name,
    )

    return RegisterResponse(api_key=api_key, user_id=user_id)


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest):
    """
    Authenticate user and generate new API Key.

    Returns:
        - api_key: New API Key (replaces previous key)

    Raises:
        - 401: Invalid credentials
    """
    auth_service = AuthService()
    api_key = auth_service.login_user(request.email, request.password)

    return LoginResponse(api_key=api_key)
