from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from ....core.container import Container
from ....schemas.common import success
from ....schemas.user import LoginRequest, Token, UserCreate
from ...deps import get_container, get_current_user
from ...serializers import user_out

router = APIRouter(tags=["auth"])

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, container: Container = Depends(get_container)):
    """Register a new user and return an access token for them."""
    user = await container.users.create(user_data)
    token = container.tokens.create_access_token(user["id"])
    return success(
        {"user": user_out(user), "token": Token(access_token=token).model_dump()},
        message="User registered successfully",
    )

@router.post("/login")
async def login(credentials: LoginRequest, container: Container = Depends(get_container)):
    user = await container.users.authenticate(credentials.email, credentials.password)
    token = container.tokens.create_access_token(user["id"])
    return success(
        {"user": user_out(user), "token": Token(access_token=token).model_dump()},
        message="Login successful",
    )

@router.post("/token", response_model=Token)
async def token_for_swagger(
    form_data: OAuth2PasswordRequestForm = Depends(),
    container: Container = Depends(get_container),
):
    """OAuth2 password flow used by the Swagger UI "Authorize" dialog."""
    user = await container.users.authenticate(form_data.username, form_data.password)
    return Token(access_token=container.tokens.create_access_token(user["id"]))

@router.get("/me")
async def me(current_user: dict = Depends(get_current_user)):
    return success({"user": user_out(current_user)})
