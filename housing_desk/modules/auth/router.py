"""
Auth Module - API Router
"""
from fastapi import APIRouter, status

from housing_desk.modules.auth.dependencies import AuthServiceDep, CurrentUser, StaffUser
from housing_desk.modules.auth.schemas import LoginRequest, TokenResponse, UserCreate, UserResponse

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, service: AuthServiceDep) -> TokenResponse:
    """Exchange login/password for a bearer token."""
    user, token = await service.authenticate(data.login, data.password)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser) -> UserResponse:
    """Get the current user."""
    return UserResponse.model_validate(current_user)


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    staff: StaffUser,
    service: AuthServiceDep,
) -> UserResponse:
    """Create a resident or staff account."""
    user = await service.create_user(data)
    return UserResponse.model_validate(user)
