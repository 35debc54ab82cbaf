from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from slideshow.context import AppContext
from slideshow.exceptions import InvalidTokenError
from slideshow.models.user import User
from slideshow.services.streaming import STREAMING_CORS_HEADERS

# Use auto_error=False to allow dev user bypass
security = HTTPBearer(auto_error=False)

# DEV_USER token constant
DEV_TOKEN = "dev-token"


def get_context(request: Request) -> AppContext:
    return request.app.state.context


Context = Annotated[AppContext, Depends(get_context)]


async def _get_or_create_dev_user(context: AppContext) -> User:
    settings = context.settings
    dev_user_id = UUID(settings.dev_user_id)
    async with context.session_maker() as session:
        user = await session.get(User, dev_user_id)
        if user is None:
            user = User(id=dev_user_id, display_name=settings.dev_user_name)
            session.add(user)
            await session.commit()
    return user


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    context: Context,
) -> User:
    """Authenticate the caller from a session bearer token.

    In dev mode a missing token (or the dev token) resolves to the dev user.
    """
    token = credentials.credentials if credentials else None

    if context.settings.dev_mode and (token is None or token == DEV_TOKEN):
        return await _get_or_create_dev_user(context)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_id = context.session_tokens.verify(token)
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    async with context.session_maker() as session:
        user = await session.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_streaming_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    context: Context,
) -> User:
    """Same as get_current_user, but auth failures keep the streaming CORS headers."""
    try:
        return await get_current_user(credentials, context)
    except HTTPException as e:
        e.headers = {**STREAMING_CORS_HEADERS, **(e.headers or {})}
        raise


StreamingUser = Annotated[User, Depends(get_streaming_user)]
