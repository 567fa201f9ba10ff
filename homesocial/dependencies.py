"""
Explicitly constructed clients, created in the app lifespan and injected into
routes with FastAPI's Depends. Tests swap them via app.dependency_overrides.
"""

from homesocial.database.store import HomeSocialStore
from homesocial.services.auth_service import FirebaseAuthClient
from homesocial.services.storage_service import GCSMediaStorage
from homesocial.services.thread_broker import ThreadBroker

_store: HomeSocialStore | None = None
_storage: GCSMediaStorage | None = None
_broker: ThreadBroker | None = None
_auth_client: FirebaseAuthClient | None = None


def get_store() -> HomeSocialStore:
    if _store is None:
        raise RuntimeError("Store not initialized")
    return _store


def get_storage() -> GCSMediaStorage:
    if _storage is None:
        raise RuntimeError("Media storage not initialized")
    return _storage


def get_broker() -> ThreadBroker:
    if _broker is None:
        raise RuntimeError("Message broker not initialized")
    return _broker


def get_auth_client() -> FirebaseAuthClient:
    global _auth_client
    if _auth_client is None:
        _auth_client = FirebaseAuthClient()
    return _auth_client
