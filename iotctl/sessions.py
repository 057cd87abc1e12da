"""Client sessions and single-user device authorization.

The first user who sends a message takes control of the devices. Everyone
else is turned away until that user disconnects or times out.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Iterator, Optional

from .parser import split_string

TIMEOUT_SECONDS = 30
MAX_CLIENTS = 1024
USERID_MAX = 19
BUSY_MESSAGE = "현재 기기 사용 중입니다. 나중에 이용해주세요.\n"
DAY_REPLY = "Day"
NIGHT_REPLY = "Night"

Controls = tuple[str, str, str]


@dataclass
class ClientSession:
    """One connected client: its key, last activity time and user id."""

    key: Hashable
    last_active: float
    userid: str = ""


@dataclass(frozen=True)
class Reply:
    """The answer to one client message.

    ``controls`` holds the LED, buzzer and timer commands when the sender
    is the authorized user, and is ``None`` when the sender was rejected.
    """

    text: str
    userid: str
    controls: Optional[Controls] = None

    @property
    def authorized(self) -> bool:
        return self.controls is not None


class SessionRegistry:
    """Tracks connected clients and which user currently controls the devices."""

    def __init__(self, timeout: float = TIMEOUT_SECONDS) -> None:
        self.timeout = timeout
        self.authorized_userid = ""
        self._sessions: dict[Hashable, ClientSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, key: object) -> bool:
        return key in self._sessions

    def __iter__(self) -> Iterator[ClientSession]:
        return iter(list(self._sessions.values()))

    def get(self, key: Hashable) -> Optional[ClientSession]:
        return self._sessions.get(key)

    def add(self, key: Hashable, now: float) -> Optional[ClientSession]:
        """Register a new client; nothing is added once the table is full."""
        if key not in self._sessions and len(self._sessions) >= MAX_CLIENTS:
            return None
        session = ClientSession(key, now)
        self._sessions[key] = session
        return session

    def touch(self, key: Hashable, now: float) -> None:
        """Record activity for a client."""
        session = self._sessions.get(key)
        if session is not None:
            session.last_active = now

    def set_userid(self, key: Hashable, userid: str) -> None:
        """Remember the client's user id; the first one given sticks."""
        session = self._sessions.get(key)
        if session is not None and not session.userid:
            session.userid = userid[:USERID_MAX]

    def remove(self, key: Hashable) -> Optional[ClientSession]:
        """Forget a client without touching the authorization."""
        return self._sessions.pop(key, None)

    def _release(self, session: ClientSession) -> bool:
        if session.userid == self.authorized_userid:
            self.authorized_userid = ""
            return True
        return False

    def disconnect(self, key: Hashable) -> bool:
        """Remove a client; return True if it held the authorization, which is released."""
        session = self._sessions.pop(key, None)
        if session is None:
            return False
        return self._release(session)

    def expired(self, now: float) -> list[ClientSession]:
        """Remove and return every client idle for longer than the timeout."""
        stale = [s for s in self._sessions.values() if now - s.last_active > self.timeout]
        for session in stale:
            del self._sessions[session.key]
            self._release(session)
        return stale

    def handle_message(self, key: Hashable, message: str, daynight: str) -> Reply:
        """Process ``userid:command:led:buzzer:timer`` from a client.

        Raises ``ValueError`` when the authorized user sends a message with
        fewer than five fields.
        """
        fields = split_string(message, ":")
        userid = fields[0]
        self.set_userid(key, userid)

        if not self.authorized_userid:
            self.authorized_userid = userid[:USERID_MAX]

        if self.authorized_userid != userid:
            return Reply(BUSY_MESSAGE, userid)

        if len(fields) < 5:
            raise ValueError(f"malformed control message: {message!r}")
        led, buzzer, timer = (value[0] if value else "x" for value in fields[2:5])
        text = DAY_REPLY if daynight == "d" else NIGHT_REPLY
        return Reply(text, userid, (led, buzzer, timer))