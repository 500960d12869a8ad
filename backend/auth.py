# backend/auth.py
from typing import Optional
from authlib.integrations.starlette_client import OAuth
from fastapi import Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from models import User
from services import credential_store

GOOGLE_SCOPES = 'openid email profile https://www.googleapis.com/auth/calendar'

oauth = OAuth()
_settings = get_settings()
oauth.register(
    name='google', client_id=_settings.GOOGLE_CLIENT_ID, client_secret=_settings.GOOGLE_CLIENT_SECRET,
    server_metadata_url='https://accounts.google.com/.well-known/openid-configuration',
    client_kwargs={'scope': GOOGLE_SCOPES, 'prompt': 'consent'},
    authorize_params={'access_type': 'offline'},
)

def _redirect_uri(request: Request) -> str:
    return get_settings().GOOGLE_REDIRECT_URI or str(request.url_for('auth_callback'))

async def build_authorization_link(request: Request) -> str:
    """Creates the Google consent URL and stores the OAuth state in the session cookie."""
    assert oauth.google is not None
    redirect_uri = _redirect_uri(request)
    rv = await oauth.google.create_authorization_url(redirect_uri)
    await oauth.google.save_authorize_data(request, redirect_uri=redirect_uri, **rv)
    return rv['url']

async def complete_authorization(request: Request, session: AsyncSession) -> User:
    assert oauth.google is not None
    token = await oauth.google.authorize_access_token(request)
    user_info = token.get('userinfo') or await oauth.google.userinfo(token=token)
    google_id = user_info.get('sub') or user_info.get('id')
    if not google_id:
        raise ValueError("Invalid user info from Google")
    return await credential_store.upsert(
        session, google_id, token.get('refresh_token'), user_info.get('email'), user_info.get('name'),
    )

async def get_acting_identity(x_google_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """The caller's Google identity from the optional ``X-Google-Id`` header."""
    return x_google_id or None
