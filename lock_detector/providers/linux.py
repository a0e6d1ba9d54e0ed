from __future__ import annotations

import asyncio
import itertools
import logging
import os
import subprocess
from collections.abc import Callable
from threading import Event, Lock, Thread

from ..engine.types import ScreenState

logger = logging.getLogger(__name__)

LOGIN1_SERVICE = "org.freedesktop.login1"
LOGIN1_PATH = "/org/freedesktop/login1"
LOGIN1_MANAGER = "org.freedesktop.login1.Manager"
LOGIN1_SESSION = "org.freedesktop.login1.Session"
DBUS_PROPERTIES = "org.freedesktop.DBus.Properties"

# Names used on LogindBus; logind itself only reports LockedHint changes.
LOGIND_LOCKED = "logind.session.locked"
LOGIND_UNLOCKED = "logind.session.unlocked"


class LinuxPlatform:
    """Linux desktop provider backed by systemd-logind.

    The session properties reported by `loginctl show-session` act as the
    session-attribute dictionary: `LockedHint` is the lock flag, and a missing
    hint means the session is unlocked. No session, or no properties at all,
    means the state cannot be known.
    """

    locked_event = LOGIND_LOCKED
    unlocked_event = LOGIND_UNLOCKED

    def __init__(self, *, session_id: str | None = None):
        self._session_id = session_id
        self._user: str | None = None
        self._bus: LogindBus | None = None

    def _get_user(self) -> str:
        if self._user is None:
            self._user = os.environ.get("USER") or os.environ.get("USERNAME") or ""
        return self._user

    def _find_session_id(self) -> str | None:
        """Find active session for current user."""

        env_session = os.environ.get("XDG_SESSION_ID")
        if env_session:
            return env_session

        user = self._get_user()
        try:
            result = subprocess.run(
                ["loginctl", "list-sessions", "--no-legend", "--no-pager"],
                capture_output=True,
                text=True,
                check=True,
            )
        except (subprocess.CalledProcessError, FileNotFoundError):
            return None

        user_session_ids: list[str] = []
        for line in result.stdout.strip().split("\n"):
            parts = line.split()
            if len(parts) >= 3 and parts[2] == user:
                user_session_ids.append(parts[0])

        if not user_session_ids:
            return None

        for session_id in user_session_ids:
            props = self._get_session_properties(session_id)
            if props.get("State") == "active":
                return session_id

        return user_session_ids[0]

    def session_id(self) -> str | None:
        if self._session_id is None:
            self._session_id = self._find_session_id()
        return self._session_id

    def _get_session_properties(self, session_id: str) -> dict[str, str]:
        try:
            result = subprocess.run(
                [
                    "loginctl",
                    "show-session",
                    session_id,
                    "--property=LockedHint",
                    "--property=State",
                ],
                capture_output=True,
                text=True,
                check=True,
            )
        except (subprocess.CalledProcessError, FileNotFoundError):
            return {}

        props: dict[str, str] = {}
        for line in result.stdout.strip().split("\n"):
            if "=" in line:
                key, value = line.split("=", 1)
                props[key] = value
        return props

    def direct_state(self) -> ScreenState:
        session_id = self.session_id()
        if session_id is None:
            logger.debug("No logind session found for user %r", self._get_user())
            return ScreenState.UNKNOWN

        props = self._get_session_properties(session_id)
        if not props:
            return ScreenState.UNKNOWN

        locked_hint = props.get("LockedHint")
        if locked_hint is None:
            return ScreenState.UNLOCKED
        if locked_hint == "yes":
            return ScreenState.LOCKED
        if locked_hint == "no":
            return ScreenState.UNLOCKED
        return ScreenState.UNKNOWN

    def notification_bus(self) -> LogindBus:
        if self._bus is None:
            self._bus = LogindBus(session_id=self.session_id)
        return self._bus


class LogindBus:
    """Lock transitions of the caller's logind session, from the system bus.

    A daemon thread runs the dbus-next event loop; callbacks are invoked one
    at a time from that thread.
    """

    def __init__(self, *, session_id: Callable[[], str | None]):
        self._session_id = session_id
        self._observers: dict[int, tuple[str, Callable[[], None]]] = {}
        self._tokens = itertools.count(1)
        self._lock = Lock()
        self._start_lock = Lock()
        self._thread: Thread | None = None
        self._started = False
        self._ready = Event()
        self._available = False
        self._last_error: str | None = None

    def start(self) -> bool:
        # Concurrent callers wait for the first one; only one listener thread runs.
        with self._start_lock:
            if self._started:
                return self._available

            self._started = True
            self._thread = Thread(target=self._run, name="lock-detector-logind", daemon=True)
            self._thread.start()
            self._ready.wait(timeout=2.0)
            return self._available

    def is_available(self) -> bool:
        return self._available

    def last_error(self) -> str | None:
        return self._last_error

    def add_observer(self, name: str, callback: Callable[[], None]) -> int:
        if not self.start():
            logger.warning("logind signals unavailable: %s", self._last_error)

        with self._lock:
            token = next(self._tokens)
            self._observers[token] = (name, callback)
        return token

    def remove_observer(self, token: int) -> None:
        with self._lock:
            self._observers.pop(token, None)

    def dispatch(self, name: str) -> None:
        with self._lock:
            callbacks = [cb for event, cb in self._observers.values() if event == name]
        for callback in callbacks:
            callback()

    def _run(self) -> None:
        try:
            asyncio.run(self._listen())
        except Exception as exc:
            self._last_error = str(exc)
            self._available = False
            self._ready.set()

    async def _listen(self) -> None:
        try:
            from dbus_next.aio import MessageBus
            from dbus_next.constants import BusType
        except Exception as exc:
            self._last_error = f"dbus import failed: {exc}"
            self._available = False
            self._ready.set()
            return

        bus = await MessageBus(bus_type=BusType.SYSTEM).connect()
        introspection = await bus.introspect(LOGIN1_SERVICE, LOGIN1_PATH)
        manager = bus.get_proxy_object(LOGIN1_SERVICE, LOGIN1_PATH, introspection).get_interface(
            LOGIN1_MANAGER
        )

        # "auto" resolves to the caller's own session.
        session_path = await manager.call_get_session(self._session_id() or "auto")  # type: ignore[attr-defined]
        session_introspection = await bus.introspect(LOGIN1_SERVICE, session_path)
        properties = bus.get_proxy_object(
            LOGIN1_SERVICE, session_path, session_introspection
        ).get_interface(DBUS_PROPERTIES)

        properties.on_properties_changed(self.on_properties_changed)  # type: ignore[attr-defined]
        self._available = True
        self._ready.set()
        await asyncio.get_running_loop().create_future()

    def on_properties_changed(self, interface: str, changed: dict, invalidated: list) -> None:
        """PropertiesChanged handler: forward LockedHint flips of the session."""

        if interface != LOGIN1_SESSION:
            return
        variant = changed.get("LockedHint")
        if variant is None:
            return
        self.dispatch(LOGIND_LOCKED if variant.value else LOGIND_UNLOCKED)
