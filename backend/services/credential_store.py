# backend/services/credential_store.py
from typing import Optional
import structlog
from sqlmodel import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from errors import AuthResolutionError, CredentialError, PersistenceError
from models import User

logger = structlog.get_logger(__name__)

async def _lookup(session: AsyncSession, statement):
    try:
        return await session.execute(statement)
    except SQLAlchemyError as e:
        logger.error("user_lookup_failed", error=str(e))
        raise PersistenceError("Could not look up users") from e

async def find_by_identity(session: AsyncSession, google_id: str) -> Optional[User]:
    result = await _lookup(session, select(User).where(User.googleId == google_id))
    return result.scalar_one_or_none()

async def find_any(session: AsyncSession) -> Optional[User]:
    """First stored user by insertion order, used only in single-tenant mode."""
    result = await _lookup(session, select(User).order_by(User.id).limit(1))
    return result.scalars().first()

async def upsert(session: AsyncSession, google_id: str, refresh_token: Optional[str],
                 email: Optional[str], name: Optional[str]) -> User:
    db_user = await find_by_identity(session, google_id)
    if db_user:
        db_user.email = email
        db_user.displayName = name
        # Google only returns a refresh token on the first consent
        if refresh_token:
            db_user.oauth_refresh_token = refresh_token
    else:
        db_user = User(googleId=google_id, email=email, displayName=name, oauth_refresh_token=refresh_token)
    session.add(db_user)
    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise PersistenceError(f"Could not store user {google_id}") from e
    await session.refresh(db_user)
    logger.info("user_upserted", google_id=google_id, has_refresh_token=bool(db_user.oauth_refresh_token))
    return db_user

async def resolve_owner(session: AsyncSession, google_id: Optional[str]) -> User:
    if google_id:
        user = await find_by_identity(session, google_id)
    elif get_settings().SINGLE_TENANT_MODE:
        user = await find_any(session)
    else:
        user = None
    if user is None:
        raise AuthResolutionError("No Google-authenticated user found. Please /auth/google first.")
    return user

async def resolve_credentialed_user(session: AsyncSession, google_id: Optional[str]) -> User:
    try:
        user = await resolve_owner(session, google_id)
    except AuthResolutionError as e:
        raise CredentialError("No Google refresh token found") from e
    if not user.oauth_refresh_token:
        raise CredentialError(f"No Google refresh token found for user {user.googleId}")
    return user
