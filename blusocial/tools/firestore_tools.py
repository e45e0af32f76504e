"""Firestore adapters for profile reads and relationship writes.

These helpers centralize Firebase initialization, error handling, and logging
so graph nodes stay focused on orchestration logic. Every Firestore failure
surfaces as FirestoreUnavailableError.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from typing import Any, Optional, Protocol

import firebase_admin
from firebase_admin import credentials, firestore, firestore_async
from pydantic.alias_generators import to_camel

from blusocial.config import config
from blusocial.models.profile import PresenceStatus, Profile
from blusocial.tools.batch_tools import fetch_in_chunks
from blusocial.utils.errors import FirestoreUnavailableError, InvalidInputError
from blusocial.utils.logging_config import logger

_db: Any = None


class ProfileStore(Protocol):
    """Profile persistence used by the graphs and the suggester."""

    async def get_profile(self, user_id: str) -> Optional[Profile]: ...

    async def list_profiles(
        self, status: Optional[PresenceStatus] = None, limit: Optional[int] = None
    ) -> list[Profile]: ...

    async def get_profiles_by_ids(self, ids: Sequence[str]) -> list[Profile]: ...

    async def update_profile(self, user_id: str, partial: dict) -> None: ...

    async def append_to_set(self, user_id: str, field: str, value: str) -> None: ...


def ensure_firebase_app() -> firebase_admin.App:
    """Initialize the default Firebase app once and return it."""

    if firebase_admin._apps:
        return firebase_admin.get_app()

    cred_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    if not cred_path:
        raise RuntimeError("GOOGLE_APPLICATION_CREDENTIALS is not set")

    cred = credentials.Certificate(cred_path)
    options = {"projectId": config.FIREBASE_PROJECT_ID} if config.FIREBASE_PROJECT_ID else None
    return firebase_admin.initialize_app(cred, options)


def get_db():
    """Get an async Firestore client, initializing Firebase lazily."""
    global _db

    if _db is not None:
        return _db

    try:
        ensure_firebase_app()
        _db = firestore_async.client()
        return _db

    except Exception as exc:
        logger.error("Failed to initialize Firestore: %s", exc)
        raise FirestoreUnavailableError(str(exc)) from exc


def stored_field(name: str) -> str:
    """Map a model attribute name (``suggested_matches``) to its document key."""

    return to_camel(name) if "_" in name else name


def _require_distinct_ids(first: str, second: str) -> None:
    if not first or not second:
        raise InvalidInputError("Invalid user IDs provided.")
    if first == second:
        raise InvalidInputError("A user cannot target themselves.")


class FirestoreProfileStore:
    """ProfileStore backed by the ``users`` collection."""

    def __init__(
        self,
        db: Any = None,
        collection: str = config.USERS_COLLECTION,
        chunk_size: int = config.BATCH_CHUNK_SIZE,
    ):
        self._db = db
        self.collection = collection
        self.chunk_size = chunk_size

    @property
    def db(self):
        if self._db is None:
            self._db = get_db()
        return self._db

    def _users(self):
        return self.db.collection(self.collection)

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        """Fetch users/{user_id}. Returns None if the document does not exist."""

        try:
            doc = await self._users().document(user_id).get()
            if not doc.exists:
                return None
            return Profile.from_document(doc.id, doc.to_dict())
        except Exception as exc:
            logger.error("Failed to fetch user profile: %s", str(exc))
            raise FirestoreUnavailableError(str(exc)) from exc

    async def list_profiles(
        self, status: Optional[PresenceStatus] = None, limit: Optional[int] = None
    ) -> list[Profile]:
        """Query profiles, optionally restricted to a presence status."""

        try:
            query = self._users()
            if status is not None:
                query = query.where("status", "==", status.value)
            if limit:
                query = query.limit(limit)

            return [
                Profile.from_document(doc.id, doc.to_dict())
                async for doc in query.stream()
            ]
        except Exception as exc:
            logger.error("Failed to query profiles: %s", str(exc))
            raise FirestoreUnavailableError(str(exc)) from exc

    async def _fetch_chunk(self, chunk: list[str]) -> list[Profile]:
        users = self._users()
        refs = [users.document(user_id) for user_id in chunk]
        query = users.where("__name__", "in", refs)
        return [
            Profile.from_document(doc.id, doc.to_dict())
            async for doc in query.stream()
        ]

    async def get_profiles_by_ids(self, ids: Sequence[str]) -> list[Profile]:
        """Fetch many profiles with chunked "in" queries issued concurrently.

        Missing documents are simply absent from the result.
        """

        return await fetch_in_chunks(
            list(dict.fromkeys(ids)), self._fetch_chunk, chunk_size=self.chunk_size
        )

    async def update_profile(self, user_id: str, partial: dict) -> None:
        """Merge ``partial`` into users/{user_id}; other fields are untouched."""

        try:
            data = {stored_field(key): value for key, value in partial.items()}
            await self._users().document(user_id).set(data, merge=True)
        except Exception as exc:
            logger.error("Failed to update profile: %s", str(exc))
            raise FirestoreUnavailableError(str(exc)) from exc

    async def append_to_set(self, user_id: str, field: str, value: str) -> None:
        """Array-union ``value`` into ``field``. Adding a present value is a no-op."""

        try:
            await self._users().document(user_id).update(
                {stored_field(field): firestore.ArrayUnion([value])}
            )
        except Exception as exc:
            logger.error("Failed to append to %s: %s", field, str(exc))
            raise FirestoreUnavailableError(str(exc)) from exc


class FirestoreRelationshipMutator:
    """Two-sided friend/ping writes. Reads live in FirestoreProfileStore."""

    def __init__(self, db: Any = None, collection: str = config.USERS_COLLECTION):
        self._db = db
        self.collection = collection

    @property
    def db(self):
        if self._db is None:
            self._db = get_db()
        return self._db

    def _ref(self, user_id: str):
        return self.db.collection(self.collection).document(user_id)

    async def _commit_pair(self, updates: list[tuple[str, dict]], action: str) -> None:
        try:
            batch = self.db.batch()
            for user_id, data in updates:
                batch.update(self._ref(user_id), data)
            await batch.commit()
        except Exception as exc:
            logger.error("Failed to %s: %s", action, str(exc))
            raise FirestoreUnavailableError(str(exc)) from exc

    async def send_friend_request(self, sender_id: str, receiver_id: str) -> None:
        _require_distinct_ids(sender_id, receiver_id)
        await self._commit_pair(
            [
                (sender_id, {"friendRequestsSent": firestore.ArrayUnion([receiver_id])}),
                (receiver_id, {"friendRequestsReceived": firestore.ArrayUnion([sender_id])}),
            ],
            "send friend request",
        )

    async def accept_friend_request(self, user_id: str, requester_id: str) -> None:
        """Make both users friends and clear the request, in one transaction.

        Raises:
            InvalidInputError: If either profile is missing or no request from
                ``requester_id`` is pending.
        """

        _require_distinct_ids(user_id, requester_id)
        user_ref = self._ref(user_id)
        requester_ref = self._ref(requester_id)

        @firestore.async_transactional
        async def _accept(transaction) -> None:
            user_doc = await user_ref.get(transaction=transaction)
            requester_doc = await requester_ref.get(transaction=transaction)
            if not user_doc.exists or not requester_doc.exists:
                raise InvalidInputError("User profile not found.")

            pending = (user_doc.to_dict() or {}).get("friendRequestsReceived") or []
            if requester_id not in pending:
                raise InvalidInputError(
                    f"No pending friend request from {requester_id}."
                )

            transaction.update(
                user_ref,
                {
                    "friends": firestore.ArrayUnion([requester_id]),
                    "friendRequestsReceived": firestore.ArrayRemove([requester_id]),
                },
            )
            transaction.update(
                requester_ref,
                {
                    "friends": firestore.ArrayUnion([user_id]),
                    "friendRequestsSent": firestore.ArrayRemove([user_id]),
                },
            )

        try:
            await _accept(self.db.transaction())
        except InvalidInputError:
            raise
        except Exception as exc:
            logger.error("Failed to accept friend request: %s", str(exc))
            raise FirestoreUnavailableError(str(exc)) from exc

    async def decline_friend_request(self, user_id: str, requester_id: str) -> None:
        _require_distinct_ids(user_id, requester_id)
        await self._commit_pair(
            [
                (user_id, {"friendRequestsReceived": firestore.ArrayRemove([requester_id])}),
                (requester_id, {"friendRequestsSent": firestore.ArrayRemove([user_id])}),
            ],
            "decline friend request",
        )

    async def remove_friend(self, user_id: str, friend_id: str) -> None:
        _require_distinct_ids(user_id, friend_id)
        await self._commit_pair(
            [
                (user_id, {"friends": firestore.ArrayRemove([friend_id])}),
                (friend_id, {"friends": firestore.ArrayRemove([user_id])}),
            ],
            "remove friend",
        )

    async def ping_user(self, pinger_id: str, pinged_id: str) -> None:
        """Record a one-way ping in the ``pings`` collection."""

        _require_distinct_ids(pinger_id, pinged_id)
        try:
            await self.db.collection("pings").add(
                {
                    "pingerId": pinger_id,
                    "pingedId": pinged_id,
                    "timestamp": firestore.SERVER_TIMESTAMP,
                }
            )
        except Exception as exc:
            logger.error("Failed to save ping: %s", str(exc))
            raise FirestoreUnavailableError(str(exc)) from exc
