"""
Identity service: signup, sign-in (password and federated) and session
verification.

Every successful path returns the same ``SessionResponse`` shape.  Failed
password sign-ins use one message whether the email is unknown or the
password is wrong.
"""
import logging
import random
import re
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from blogsphere.config import Settings
from blogsphere.errors import (
    AccountNotFoundError,
    ConflictError,
    DuplicateKeyError,
    InvalidCredentialError,
    ValidationError,
)
from blogsphere.federated import TokenVerifier
from blogsphere.models import User
from blogsphere.schemas import SessionResponse
from blogsphere.security import PasswordHasher, TokenManager
from blogsphere.services import username_service
from blogsphere.store import DocumentStore

logger = logging.getLogger(__name__)

_AVATAR_STYLES = ("notionists-neutral", "adventurer-neutral", "fun-emoji")
_AVATAR_SEEDS = ("Garfield", "Tinkerbell", "Annie", "Loki", "Cleo", "Angel", "Bob", "Mia", "Coco", "Gracie")

# Federated profile pictures embed their size; ask for a larger rendition.
_PICTURE_SMALL = "s96-c"
_PICTURE_LARGE = "s384-c"


def default_profile_img() -> str:
    return "https://api.dicebear.com/6.x/{}/svg?seed={}".format(
        random.choice(_AVATAR_STYLES), random.choice(_AVATAR_SEEDS)
    )


class IdentityService:
    def __init__(
        self,
        settings: Settings,
        verifier: TokenVerifier,
        hasher: PasswordHasher | None = None,
    ) -> None:
        self.settings = settings
        self.verifier = verifier
        self.hasher = hasher or PasswordHasher(settings)
        self.tokens = TokenManager(settings)
        self._email_re = re.compile(settings.EMAIL_PATTERN)
        self._password_re = re.compile(settings.PASSWORD_PATTERN)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _session_for(self, user: User) -> SessionResponse:
        return SessionResponse(
            access_token=self.tokens.create_access_token(user.id),
            profile_img=user.profile_img,
            username=user.username,
            fullname=user.fullname,
        )

    def _validate_signup(self, fullname: str, email: str, password: str) -> None:
        if len(fullname) < self.settings.FULLNAME_MIN_LENGTH:
            raise ValidationError(
                f"Fullname must be at least {self.settings.FULLNAME_MIN_LENGTH} letters long",
                field="fullname",
            )
        if not email:
            raise ValidationError("Enter email", field="email")
        if len(email) > self.settings.EMAIL_MAX_LENGTH:
            raise ValidationError("Email is too long", field="email")
        if not self._email_re.match(email):
            raise ValidationError("Email is invalid", field="email")
        if not self._password_re.match(password):
            raise ValidationError(
                "Password should be 6 to 20 characters long with a numeric, "
                "1 lowercase and 1 uppercase letters",
                field="password",
            )

    async def _allocate_username(self, db: AsyncSession, email: str) -> str:
        return await username_service.allocate(
            db,
            email,
            suffix_length=self.settings.USERNAME_SUFFIX_LENGTH,
            max_attempts=self.settings.USERNAME_MAX_ATTEMPTS,
        )

    async def _insert_new(self, store: DocumentStore, user: User) -> None:
        """Insert *user*; a unique-index violation names the taken field."""
        try:
            await store.insert(user)
        except DuplicateKeyError as exc:
            if await store.exists(User, email=user.email):
                raise ConflictError("Email already exists") from exc
            # Another signup claimed the allocated username first.
            raise ConflictError("Username already exists, please try again") from exc

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def register(self, db: AsyncSession, fullname: str, email: str, password: str) -> SessionResponse:
        self._validate_signup(fullname, email, password)
        store = DocumentStore(db)

        user = User(
            fullname=fullname,
            email=email,
            username=await self._allocate_username(db, email),
            password_hash=await self.hasher.hash_password(password),
            profile_img=default_profile_img(),
            google_auth=False,
            joined_at=datetime.now(timezone.utc),
        )
        await self._insert_new(store, user)

        logger.info("Registered user id=%s username=%s", user.id, user.username)
        return self._session_for(user)

    async def authenticate(self, db: AsyncSession, email: str, password: str) -> SessionResponse:
        user = await DocumentStore(db).find_one(User, email=email)
        if user is None:
            raise AccountNotFoundError()
        if user.password_hash is None:
            raise ConflictError("Account was created using Google. Try logging in with Google")
        if not await self.hasher.verify_password(password, user.password_hash):
            raise InvalidCredentialError()
        return self._session_for(user)

    async def authenticate_federated(self, db: AsyncSession, external_token: str) -> SessionResponse:
        claims = await self.verifier.verify(external_token)
        picture = claims.picture.replace(_PICTURE_SMALL, _PICTURE_LARGE)
        store = DocumentStore(db)

        user = await store.find_one(User, email=claims.email)
        if user is not None:
            if not user.google_auth:
                raise ConflictError(
                    "This email was signed up without Google. "
                    "Please log in with password to access the account"
                )
            return self._session_for(user)

        user = User(
            fullname=claims.name,
            email=claims.email,
            username=await self._allocate_username(db, claims.email),
            password_hash=None,
            profile_img=picture or default_profile_img(),
            google_auth=True,
            joined_at=datetime.now(timezone.utc),
        )
        await self._insert_new(store, user)

        logger.info("Registered federated user id=%s username=%s", user.id, user.username)
        return self._session_for(user)

    def verify(self, token: str) -> int:
        """Return the user id carried by a session token."""
        return self.tokens.decode_access_token(token)
