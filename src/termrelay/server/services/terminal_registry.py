"""Registry of live terminal sessions."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from termrelay.server.services.event_hub import EventHub, RelayEvent
from termrelay.server.services.pty_process import PtyProcess, spawn
from termrelay.util.errors import DuplicateSession, InvalidDimension

logger = logging.getLogger(__name__)

# Ctrl-C, interpreted by whatever program currently owns the terminal
INTERRUPT_SEQUENCE = b"\x03"

SpawnFn = Callable[..., PtyProcess]


@dataclass
class TerminalSession:
    """A caller-named shell session and the process backing it."""

    id: str
    handle: PtyProcess
    cwd: Path
    cols: int = 80
    rows: int = 24
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class TerminalRegistry:
    """Thread-safe map of session id to live PTY process.

    Session ids are trusted caller input; the only uniqueness check is the
    collision check in ``create``. Every mutation of the map (create, destroy
    and exit-triggered removal) happens under one lock, so a destroy racing a
    natural exit removes the entry exactly once.
    """

    def __init__(self, hub: EventHub, spawn_fn: SpawnFn = spawn, shell: str | None = None):
        self._hub = hub
        self._spawn = spawn_fn
        self._shell = shell
        self._sessions: dict[str, TerminalSession] = {}
        self._lock = threading.RLock()

    def create(
        self,
        session_id: str,
        cwd: str | Path | None = None,
        cols: int = 80,
        rows: int = 24,
        env: dict[str, str] | None = None,
    ) -> TerminalSession:
        """Spawn a shell for ``session_id``.

        Raises:
            DuplicateSession: the id is already registered.
            SpawnError: the process could not be started.
            InvalidDimension: initial size is not positive.
        """
        if cols < 1 or rows < 1:
            raise InvalidDimension(cols, rows)

        with self._lock:
            if session_id in self._sessions:
                raise DuplicateSession(session_id)

            work_dir = Path(cwd).expanduser() if cwd else Path.home()
            handle = self._spawn(self._shell, work_dir, env, cols, rows)
            session = TerminalSession(id=session_id, handle=handle, cwd=work_dir, cols=cols, rows=rows)

            handle.on_data(lambda data: self._handle_data(session_id, handle, data))
            handle.on_exit(lambda exit_code: self._handle_exit(session_id, handle, exit_code))
            self._sessions[session_id] = session

        handle.start()
        logger.info("Terminal session %s started (pid %s)", session_id, handle.pid)
        return session

    def get(self, session_id: str) -> TerminalSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def list_sessions(self) -> list[TerminalSession]:
        with self._lock:
            return list(self._sessions.values())

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def write(self, session_id: str, data: bytes | str) -> None:
        """Send input to a session. Unknown ids and write failures are ignored."""
        session = self.get(session_id)
        if session is None:
            return
        try:
            session.handle.write(data)
        except OSError as e:
            logger.warning("Write to terminal session %s failed: %s", session_id, e)

    def resize(self, session_id: str, cols: int, rows: int) -> None:
        """Resize a session's terminal.

        Raises:
            InvalidDimension: cols or rows below 1, whether or not the id exists.
        """
        if cols < 1 or rows < 1:
            raise InvalidDimension(cols, rows)
        session = self.get(session_id)
        if session is None:
            return
        try:
            session.handle.resize(cols, rows)
        except OSError as e:
            logger.warning("Resize of terminal session %s failed: %s", session_id, e)
            return
        session.cols = cols
        session.rows = rows

    def interrupt(self, session_id: str) -> bool:
        """Send Ctrl-C through the session's input. False if the id is unknown."""
        session = self.get(session_id)
        if session is None:
            return False
        try:
            session.handle.write(INTERRUPT_SEQUENCE)
        except OSError as e:
            logger.warning("Interrupt of terminal session %s failed: %s", session_id, e)
        return True

    def destroy(self, session_id: str) -> bool:
        """Kill a session and drop it from the registry immediately.

        The id may be reused by ``create`` right away; late output and the exit
        notification from the killed process are discarded. Returns False if
        the id was not registered.
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)
            if session is None:
                return False
            self._hub.publish(RelayEvent(type="session_exit", key=session_id))

        session.handle.kill()
        logger.info("Terminal session %s destroyed", session_id)
        return True

    def destroy_all(self) -> None:
        for session in self.list_sessions():
            self.destroy(session.id)

    def _is_current(self, session_id: str, handle: PtyProcess) -> bool:
        session = self._sessions.get(session_id)
        return session is not None and session.handle is handle

    def _handle_data(self, session_id: str, handle: PtyProcess, data: bytes) -> None:
        with self._lock:
            if not self._is_current(session_id, handle):
                return
            self._hub.publish(RelayEvent(type="session_data", key=session_id, data=data))

    def _handle_exit(self, session_id: str, handle: PtyProcess, exit_code: int | None) -> None:
        with self._lock:
            if not self._is_current(session_id, handle):
                # Destroyed earlier, or the id now belongs to a newer process
                return
            del self._sessions[session_id]
            self._hub.publish(RelayEvent(type="session_exit", key=session_id, exit_code=exit_code))
        logger.info("Terminal session %s exited with code %s", session_id, exit_code)
