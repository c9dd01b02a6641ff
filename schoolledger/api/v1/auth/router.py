from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.dependencies import get_current_user
from schoolledger.auth.schemas import CurrentUser, LoginRequest, LoginResponse, RegisterRequest, RegisterResponse
from schoolledger.auth.services import login_user, register_tenant
from schoolledger.core.exceptions import ServiceError
from schoolledger.db.session import get_db

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _to_http(e: ServiceError) -> HTTPException:
    # Internal failures are logged by the service; the client only sees a generic message
    if e.status_code >= http_status.HTTP_500_INTERNAL_SERVER_ERROR:
        return HTTPException(status_code=e.status_code, detail="Internal server error")
    return HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=http_status.HTTP_201_CREATED,
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> RegisterResponse:
    """Create a school, its owner account, default classes and the default fee head."""
    try:
        return await register_tenant(db, payload)
    except ServiceError as e:
        raise _to_http(e)


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    try:
        return await login_user(db, payload)
    except ServiceError as e:
        raise _to_http(e)


@router.post("/login-oauth")
async def login_oauth(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    """Form-encoded login for the interactive docs; username is the email."""
    try:
        result = await login_user(db, LoginRequest(email=form_data.username.strip(), password=form_data.password))
    except ServiceError as e:
        raise _to_http(e)
    return {"access_token": result.access_token, "token_type": "bearer"}


@router.get("/me", response_model=CurrentUser)
async def me(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    return current_user
