from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import Settings
from .exceptions import AuthenticationError

class PasswordHasher:
    def __init__(self, schemes: list[str]):
        self.context = CryptContext(schemes=schemes, deprecated="auto")

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        return self.context.verify(plain_password, hashed_password)

class TokenIssuer:
    """Issues and decodes the bearer JWTs; ``sub`` carries the user id."""

    def __init__(self, secret: str, algorithm: str, expire_minutes: int):
        self.secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(settings.jwt_secret, settings.jwt_algorithm, settings.jwt_expiration_minutes)

    def create_access_token(self, user_id: str, expires_delta: Optional[timedelta] = None) -> str:
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=self.expire_minutes))
        return jwt.encode({"sub": user_id, "exp": expire}, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> str:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            raise AuthenticationError("Invalid authentication token", error=str(e)) from e
        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Token missing subject")
        return user_id
