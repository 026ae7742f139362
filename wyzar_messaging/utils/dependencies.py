import logging
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from wyzar_messaging.config import Settings
from wyzar_messaging.database.connection import mongo_db_dependency
from wyzar_messaging.repositories.user_repository import UserRepository
from wyzar_messaging.utils.relay import Relay
from wyzar_messaging.utils.security import decode_access_token


logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_relay(request: Request) -> Relay:
    return request.app.state.relay


async def resolve_user(token: Optional[str], settings: Settings, db) -> Optional[dict]:
    """Map a bearer token to the stored user, or None when it does not check out."""
    if not token:
        return None
    try:
        payload = decode_access_token(token, settings.jwt_secret, settings.jwt_algorithm)
    except jwt.PyJWTError:
        logger.debug("Rejected bearer token", exc_info=True)
        return None
    return await UserRepository(db).get_user_by_id(str(payload.get("sub")))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_app_settings),
    db=Depends(mongo_db_dependency),
) -> dict:
    user = await resolve_user(credentials.credentials if credentials else None, settings, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
