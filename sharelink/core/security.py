from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool
from sharelink.config import settings


class SecretVerifier:
    """
    Salted, deliberately slow hashing of link passwords.

    bcrypt via passlib; the work factor comes from PASSWORD_HASH_ROUNDS.
    The async variants run in the threadpool so a hash never stalls the
    event loop.
    """

    def __init__(self, rounds: Optional[int] = None):
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds or settings.PASSWORD_HASH_ROUNDS,
        )

    def hash(self, plaintext: str) -> str:
        """Hash a password."""
        return self.pwd_context.hash(plaintext)

    def verify(self, plaintext: Optional[str], hashed: Optional[str]) -> bool:
        """Verify a password against its hash. Returns False instead of raising."""
        if not plaintext or not hashed:
            return False
        try:
            return self.pwd_context.verify(plaintext, hashed)
        except (ValueError, TypeError):
            # Malformed or unknown hash format
            return False

    async def hash_async(self, plaintext: str) -> str:
        return await run_in_threadpool(self.hash, plaintext)

    async def verify_async(self, plaintext: Optional[str], hashed: Optional[str]) -> bool:
        return await run_in_threadpool(self.verify, plaintext, hashed)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token for a document owner."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT access token."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except JWTError:
        return None
