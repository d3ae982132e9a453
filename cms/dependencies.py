"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
import threading

import firebase_admin
from firebase_admin import credentials, firestore, storage

from cms.config import Settings, get_settings
from cms.ordering import ReorderSession
from cms.storage import (
    FirebaseStorageClient,
    InMemoryStorageClient,
    S3StorageClient,
    StorageClient,
)
from cms.store import DocumentStore, FirestoreDocumentStore, InMemoryDocumentStore, Scope

logger = logging.getLogger(__name__)

_document_store: DocumentStore | None = None
_storage_client: StorageClient | None = None
_reorder_sessions: dict[Scope, ReorderSession] = {}
_sessions_lock = threading.Lock()


def get_firebase_app(settings: Settings) -> firebase_admin.App:
    """Initialize the default firebase-admin app once and return it."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if settings.firebase_credentials_path:
        cred = credentials.Certificate(settings.firebase_credentials_path)
    else:
        cred = credentials.ApplicationDefault()
    options = {}
    if settings.firebase_project_id:
        options["projectId"] = settings.firebase_project_id
    if settings.firebase_storage_bucket:
        options["storageBucket"] = settings.firebase_storage_bucket
    return firebase_admin.initialize_app(cred, options)


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store so listeners and sessions share one client.
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.firebase_project_id:
        _document_store = InMemoryDocumentStore()
    else:
        app = get_firebase_app(settings)
        _document_store = FirestoreDocumentStore(firestore.client(app))
    return _document_store


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _storage_client = InMemoryStorageClient()
    elif settings.firebase_storage_bucket:
        app = get_firebase_app(settings)
        _storage_client = FirebaseStorageClient(bucket=storage.bucket(app=app))
    elif settings.s3_bucket:
        _storage_client = S3StorageClient(
            bucket=settings.s3_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.s3_public_base_url or "",
        )
    else:
        _storage_client = InMemoryStorageClient()
    return _storage_client


def get_reorder_session(
    scope: Scope, store: DocumentStore | None = None
) -> ReorderSession:
    """
    Return the open reorder session for `scope`, creating and subscribing it
    on first use.
    """
    with _sessions_lock:
        session = _reorder_sessions.get(scope)
        if session is None:
            session = ReorderSession(store or get_document_store(), scope).open()
            _reorder_sessions[scope] = session
        return session


def close_reorder_session(scope: Scope) -> None:
    with _sessions_lock:
        session = _reorder_sessions.pop(scope, None)
    if session is not None:
        session.close()


def close_reorder_sessions() -> None:
    with _sessions_lock:
        sessions = list(_reorder_sessions.values())
        _reorder_sessions.clear()
    for session in sessions:
        session.close()


def reset_backends() -> None:
    """Drop every singleton (useful in tests)."""
    global _document_store, _storage_client
    close_reorder_sessions()
    _document_store = None
    _storage_client = None
