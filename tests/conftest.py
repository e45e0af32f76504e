"""
Pytest configuration and shared fixtures for all tests.

This file is automatically loaded by pytest and provides:
  - Test configuration (env vars set before any blusocial import)
  - In-memory stand-ins for the profile store, relationship mutator and
    notification sender, so graphs and the suggester run without Firebase
  - Profile factories
"""

import os

# Set before blusocial.config is imported anywhere: the settings singleton
# is built at import time.
os.environ.setdefault("FIREBASE_PROJECT_ID", "test-project")
os.environ.setdefault("GOOGLE_APPLICATION_CREDENTIALS", "/config/test-serviceAccountKey.json")
os.environ.setdefault("DEBUG", "True")

from math import pi

import pytest
from unittest.mock import MagicMock

from blusocial.models.notification import DeliveryResult
from blusocial.models.profile import Profile
from blusocial.tools.batch_tools import fetch_in_chunks
from blusocial.tools.firestore_tools import stored_field
from blusocial.utils.errors import FirestoreUnavailableError, InvalidInputError
from blusocial.utils.geo import EARTH_RADIUS_KM

LA = (34.0522, -118.2437)


class InMemoryProfileStore:
    """ProfileStore over a dict of camelCase documents keyed by id."""

    def __init__(self, documents=None, chunk_size=30):
        self.documents = {k: dict(v) for k, v in (documents or {}).items()}
        self.chunk_size = chunk_size
        self.chunk_calls = []
        self.append_calls = []
        self.fail_reads = False
        self.fail_appends = False

    def add(self, profile: Profile) -> None:
        self.documents[profile.id] = profile.model_dump(mode="json", by_alias=True, exclude={"id"})

    async def get_profile(self, user_id):
        if self.fail_reads:
            raise FirestoreUnavailableError("store offline")
        data = self.documents.get(user_id)
        return None if data is None else Profile.from_document(user_id, data)

    async def list_profiles(self, status=None, limit=None):
        if self.fail_reads:
            raise FirestoreUnavailableError("store offline")
        profiles = [Profile.from_document(k, v) for k, v in self.documents.items()]
        if status is not None:
            profiles = [p for p in profiles if p.status == status]
        return profiles[:limit] if limit else profiles

    async def _fetch_chunk(self, chunk):
        self.chunk_calls.append(list(chunk))
        return [
            Profile.from_document(i, self.documents[i])
            for i in chunk
            if i in self.documents
        ]

    async def get_profiles_by_ids(self, ids):
        return await fetch_in_chunks(list(ids), self._fetch_chunk, self.chunk_size)

    async def update_profile(self, user_id, partial):
        doc = self.documents.setdefault(user_id, {})
        doc.update({stored_field(k): v for k, v in partial.items()})

    async def append_to_set(self, user_id, field, value):
        self.append_calls.append((user_id, field, value))
        if self.fail_appends:
            raise FirestoreUnavailableError("write failed")
        values = self.documents.setdefault(user_id, {}).setdefault(stored_field(field), [])
        if value not in values:
            values.append(value)


class InMemoryRelationshipMutator:
    """Applies the same two-sided updates as the Firestore mutator."""

    def __init__(self, store: InMemoryProfileStore):
        self.store = store
        self.pings = []

    def _union(self, user_id, field, value):
        values = self.store.documents[user_id].setdefault(field, [])
        if value not in values:
            values.append(value)

    def _remove(self, user_id, field, value):
        values = self.store.documents[user_id].get(field, [])
        self.store.documents[user_id][field] = [v for v in values if v != value]

    async def send_friend_request(self, sender_id, receiver_id):
        self._union(sender_id, "friendRequestsSent", receiver_id)
        self._union(receiver_id, "friendRequestsReceived", sender_id)

    async def accept_friend_request(self, user_id, requester_id):
        if requester_id not in self.store.documents[user_id].get("friendRequestsReceived", []):
            raise InvalidInputError(f"No pending friend request from {requester_id}.")
        self._union(user_id, "friends", requester_id)
        self._remove(user_id, "friendRequestsReceived", requester_id)
        self._union(requester_id, "friends", user_id)
        self._remove(requester_id, "friendRequestsSent", user_id)

    async def decline_friend_request(self, user_id, requester_id):
        self._remove(user_id, "friendRequestsReceived", requester_id)
        self._remove(requester_id, "friendRequestsSent", user_id)

    async def remove_friend(self, user_id, friend_id):
        self._remove(user_id, "friends", friend_id)
        self._remove(friend_id, "friends", user_id)

    async def ping_user(self, pinger_id, pinged_id):
        self.pings.append((pinger_id, pinged_id))


class RecordingSender:
    """NotificationSender that records payloads; can be told to fail."""

    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send(self, payload, recipient):
        if self.fail:
            raise RuntimeError("messaging not initialized")
        self.sent.append((payload, recipient))
        return DeliveryResult(success=True, success_count=1)


def make_profile(id="viewer", lat=LA[0], lng=LA[1], **kwargs) -> Profile:
    """Build a profile at (lat, lng); pass location=None for no location."""
    data = {"id": id, "name": id.title(), "location": {"lat": lat, "lng": lng}}
    data.update(kwargs)
    return Profile.model_validate(data)


def offset_north(km: float) -> tuple:
    """LA shifted north by roughly ``km`` kilometers."""
    return (LA[0] + km / (EARTH_RADIUS_KM * pi / 180), LA[1])


@pytest.fixture
def store():
    return InMemoryProfileStore()


@pytest.fixture
def mutator(store):
    return InMemoryRelationshipMutator(store)


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def mock_firebase_app(monkeypatch):
    """
    Provide a mock Firebase app and async Firestore client.

    Example:
        def test_something(mock_firebase_app):
            # get_db() returns mock_firebase_app["db"]
            pass
    """
    mock_app = MagicMock()
    mock_db = MagicMock()

    monkeypatch.setattr("firebase_admin._apps", {"[DEFAULT]": mock_app})
    monkeypatch.setattr("firebase_admin.get_app", MagicMock(return_value=mock_app))
    monkeypatch.setattr("firebase_admin.firestore_async.client", MagicMock(return_value=mock_db))
    monkeypatch.setattr("blusocial.tools.firestore_tools._db", None)

    return {"app": mock_app, "db": mock_db}
