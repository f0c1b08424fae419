from typing import Any, Dict

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from ..core.container import Container
from ..core.exceptions import AuthenticationError, ForbiddenError, NotFoundError
from ..schemas.user import Role

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/auth/token",
    description="Enter the access token directly (without 'Bearer' prefix)",
    scheme_name="JWT",
)

def get_container(request: Request) -> Container:
    return request.app.state.container

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    container: Container = Depends(get_container),
) -> Dict[str, Any]:
    """Resolve the bearer token to an active user."""
    user_id = container.tokens.decode(token)
    try:
        user = await container.users.find(user_id)
    except NotFoundError as e:
        raise AuthenticationError("Could not validate credentials") from e
    if not user.get("is_active", True):
        raise AuthenticationError("Account is deactivated")
    return user

async def get_current_admin(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if current_user.get("role") != Role.ADMIN.value:
        raise ForbiddenError("Admin access required")
    return current_user
