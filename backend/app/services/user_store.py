"""
File-backed store of registered users. Passwords are hashed with bcrypt
before they are written; the configured demo account is checked first on login.
"""

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import bcrypt

from app.exceptions import MalformedInput, UserAlreadyExists
from app.models.user import UserInDB, UserPublic

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

_write_lock = threading.Lock()


class UserStore:
    def __init__(
        self,
        path: str,
        demo_email: Optional[str] = None,
        demo_password: Optional[str] = None,
        rounds: int = 12,
    ):
        self.path = Path(path)
        self.demo_email = demo_email
        self.demo_password = demo_password
        self.rounds = rounds

    def _read(self) -> List[UserInDB]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        return [UserInDB(**item) for item in raw]

    def _write(self, users: List[UserInDB]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps([user.model_dump() for user in users], indent=2),
            encoding="utf-8",
        )

    def find_by_email(self, email: str) -> Optional[UserInDB]:
        wanted = email.lower()
        for user in self._read():
            if user.email.lower() == wanted:
                return user
        return None

    def register(self, name: Optional[str], email: Optional[str], password: Optional[str]) -> UserPublic:
        """
        Registers a new user.

        Raises:
            MalformedInput: If a field is missing or the password is too short.
            UserAlreadyExists: If the email is already registered (case-insensitive).
        """
        if not name or not email or not password:
            raise MalformedInput("Name, email, and password are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise MalformedInput(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )

        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds))
        with _write_lock:
            users = self._read()
            if any(user.email.lower() == email.lower() for user in users):
                raise UserAlreadyExists(email)

            new_user = UserInDB(
                id=uuid.uuid4().hex,
                name=name,
                email=email.lower(),
                password=hashed.decode("utf-8"),
                createdAt=datetime.now(timezone.utc).isoformat(),
            )
            users.append(new_user)
            self._write(users)

        logger.info("New user registered: %s", new_user.email)
        return new_user.public()

    def authenticate(self, email: str, password: str) -> Optional[UserPublic]:
        """Returns the matching user, or None when the credentials are wrong."""
        if not email or not password:
            return None

        if self.demo_email and email.lower() == self.demo_email.lower() and password == self.demo_password:
            return UserPublic(id="1", name="Demo User", email=self.demo_email)

        user = self.find_by_email(email)
        if user and bcrypt.checkpw(password.encode("utf-8"), user.password.encode("utf-8")):
            return user.public()
        return None
