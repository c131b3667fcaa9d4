"""
Authentication API Routes
"""

from fastapi import APIRouter, HTTPException, status
from loguru import logger

from agentdesk.api.deps import CurrentUserDep, RegistryDep
from agentdesk.schemas.auth import LoginRequest, LoginResponse
from agentdesk.services.tenant_service import AuthenticationError, authenticate_user


router = APIRouter()


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login",
    description="Authenticate with email and password and receive an access token"
)
async def login(request: LoginRequest, registry: RegistryDep):
    try:
        user, token = await authenticate_user(registry, request.email, request.password)
    except AuthenticationError as e:
        logger.warning(f"Login failed for {request.email}: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    return LoginResponse(access_token=token, user=user)


@router.get("/me", summary="Current user")
async def get_me(current_user: CurrentUserDep):
    return current_user.user
