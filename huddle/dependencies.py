"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from huddle.auth import AuthService
from huddle.config import get_settings
from huddle.errors import AuthenticationError
from huddle.kv import InMemoryKvStore, KvStore, RedisKvStore, SqlKvStore
from huddle.repository import TeamRepository
from huddle.storage import CosStorageClient, InMemoryStorageClient, StorageClient

_kv_store: KvStore | None = None
_repository: TeamRepository | None = None
_auth_service: AuthService | None = None
_storage_client: StorageClient | None = None

bearer_scheme = HTTPBearer(auto_error=False)


def get_kv_store() -> KvStore:
    """
    Return a singleton store so records persist across requests.
    """
    global _kv_store
    if _kv_store:
        return _kv_store

    settings = get_settings()
    if settings.kv_backend == "sql":
        _kv_store = SqlKvStore(settings.database_url or "")
    elif settings.kv_backend == "redis":
        if not settings.redis_url:
            raise ValueError("REDIS_URL is required for the redis backend")
        _kv_store = RedisKvStore(
            url=settings.redis_url, key_prefix=settings.redis_key_prefix
        )
    else:
        _kv_store = InMemoryKvStore()
    return _kv_store


def get_repository() -> TeamRepository:
    global _repository
    if _repository:
        return _repository
    _repository = TeamRepository(get_kv_store())
    return _repository


def get_auth_service() -> AuthService:
    global _auth_service
    if _auth_service:
        return _auth_service

    settings = get_settings()
    _auth_service = AuthService(
        get_repository(),
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expiry_hours=settings.jwt_expiry_hours,
    )
    return _auth_service


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if not settings.cos_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = CosStorageClient(
            bucket=settings.cos_bucket,
            region=settings.cos_region or "",
            endpoint=settings.cos_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.public_storage_base_url,
        )
    return _storage_client


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> str:
    if not credentials or not credentials.credentials:
        raise AuthenticationError("Unauthorized")
    return auth.verify_token(credentials.credentials)
