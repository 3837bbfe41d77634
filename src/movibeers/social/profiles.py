"""Profile management business logic."""

from __future__ import annotations

import re
from zoneinfo import ZoneInfo

import structlog

from movibeers.clock import Clock, utcnow
from movibeers.errors import FetchFailed, NotFound, SaveFailed, UpdateFailed, ValidationFailed
from movibeers.models import USERNAMES, USERS, User
from movibeers.social.fanout import PROPAGATE_USERNAME_JOB
from movibeers.store import AlreadyExists, DocumentNotFound, RecordStore, StoreError
from movibeers.tracking.week import start_of_week
from movibeers.workers.queue import TaskQueue

logger = structlog.get_logger()

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.]{3,30}$")
MAX_BIO_LENGTH = 160


def validate_username(username: str) -> str:
    """
    Check a username's shape.

    Raises:
        ValidationFailed: If it is not 3-30 letters, digits, underscores or dots.
    """
    username = username.strip()
    if not USERNAME_PATTERN.match(username):
        msg = "Username must be 3-30 characters: letters, digits, underscores or dots"
        raise ValidationFailed(msg, field="username")
    return username


class ProfileService:
    """Profiles and usernames.

    Usernames are unique through reservation documents in ``usernames``
    keyed by the name itself, so two concurrent claims cannot both commit.
    """

    def __init__(
        self,
        store: RecordStore,
        tasks: TaskQueue,
        clock: Clock = utcnow,
        tz: ZoneInfo | None = None,
    ) -> None:
        self.store = store
        self.tasks = tasks
        self.clock = clock
        self.tz = tz or ZoneInfo("UTC")

    async def create_profile(self, user_id: str, username: str, email: str = "") -> User:
        """
        Create the profile for a newly authenticated identity.

        Raises:
            ValidationFailed: If the username is malformed or taken, or the profile exists.
        """
        username = validate_username(username)
        now = self.clock()
        user = User(
            id=user_id,
            username=username,
            email=email,
            join_date=now,
            counter_week_start=start_of_week(now, self.tz),
        )

        batch = self.store.batch()
        batch.create(USERNAMES, username, {"userId": user_id})
        batch.create(USERS, user_id, user.to_document())
        try:
            await batch.commit()
        except AlreadyExists as exc:
            if exc.collection == USERS:
                raise ValidationFailed("Profile already exists", field="user_id") from exc
            raise ValidationFailed("Username is already taken", field="username") from exc
        except StoreError as exc:
            raise SaveFailed(f"Could not create profile: {exc}") from exc

        logger.info("profile_created", user_id=user_id, username=username)
        return user

    async def get_profile(self, user_id: str) -> User:
        try:
            record = await self.store.get(USERS, user_id)
        except StoreError as exc:
            raise FetchFailed(f"Could not load profile: {exc}") from exc
        if record is None:
            raise NotFound("user", user_id)
        return User.from_record(record)

    async def update_profile(
        self,
        user_id: str,
        bio: str | None = None,
        profile_image_url: str | None = None,
    ) -> User:
        """Update free-form profile fields; ``None`` leaves a field unchanged."""
        changes: dict[str, str] = {}
        if bio is not None:
            if len(bio) > MAX_BIO_LENGTH:
                raise ValidationFailed(f"Bio cannot exceed {MAX_BIO_LENGTH} characters", field="bio")
            changes["bio"] = bio
        if profile_image_url is not None:
            changes["profileImageURL"] = profile_image_url

        if changes:
            try:
                await self.store.update(USERS, user_id, changes)
            except DocumentNotFound as exc:
                raise NotFound("user", user_id) from exc
            except StoreError as exc:
                raise UpdateFailed(f"Could not update profile: {exc}") from exc
        return await self.get_profile(user_id)

    async def update_username(self, user_id: str, new_username: str) -> User:
        """
        Rename a user, then queue the rewrite of their posts and notifications.

        Raises:
            ValidationFailed: If the name is malformed or held by another user.
                The current username is left untouched.
        """
        new_username = validate_username(new_username)
        user = await self.get_profile(user_id)
        previous = user.username
        if new_username == previous:
            return user

        batch = self.store.batch()
        batch.create(USERNAMES, new_username, {"userId": user_id})
        batch.delete(USERNAMES, previous)
        batch.update(USERS, user_id, {"username": new_username})
        try:
            await batch.commit()
        except AlreadyExists as exc:
            raise ValidationFailed("Username is already taken", field="username") from exc
        except DocumentNotFound as exc:
            raise NotFound("user", user_id) from exc
        except StoreError as exc:
            raise UpdateFailed(f"Could not change username: {exc}") from exc

        logger.info("username_changed", user_id=user_id, previous=previous, new=new_username)
        user.username = new_username

        try:
            await self.tasks.enqueue(PROPAGATE_USERNAME_JOB, user_id, new_username)
        except Exception:
            # The rename stands; posts keep the old name until a later fan-out.
            logger.warning("username_fanout_enqueue_failed", user_id=user_id, exc_info=True)
        return user
