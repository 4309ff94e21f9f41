"""Pseudo-terminal process handles.

Wraps spawning a shell on a PTY, writing input, resizing, signalling and
observing its output and exit behind one small interface.
"""

from __future__ import annotations

import errno
import logging
import os
import select
import signal
import struct
import subprocess
import sys
import threading
from pathlib import Path
from typing import Callable

from termrelay.util.errors import InvalidDimension, SpawnError

try:
    import fcntl
    import pty
    import termios
except ImportError:
    fcntl = None
    pty = None
    termios = None

logger = logging.getLogger(__name__)

# Fixed per-platform shell choice
DEFAULT_SHELLS = {"win32": "powershell.exe"}
FALLBACK_SHELL = "bash"

TERM_NAME = "xterm-color"
READ_SIZE = 4096
KILL_GRACE_SECONDS = 2.0

DataCallback = Callable[[bytes], None]
ExitCallback = Callable[["int | None"], None]


def default_shell(platform: str | None = None) -> str:
    """Return the shell used for new terminal sessions on ``platform``."""
    return DEFAULT_SHELLS.get(platform or sys.platform, FALLBACK_SHELL)


def _set_winsize(fd: int, rows: int, cols: int) -> None:
    winsize = struct.pack("HHHH", rows, cols, 0, 0)
    fcntl.ioctl(fd, termios.TIOCSWINSZ, winsize)


def _validate_size(cols: int, rows: int) -> None:
    if cols < 1 or rows < 1:
        raise InvalidDimension(cols, rows)


class PtyProcess:
    """A shell process attached to a pseudo-terminal.

    Register callbacks with ``on_data``/``on_exit`` and then call ``start`` to
    begin pumping output. Data callbacks run on the pump thread in the order
    the process produced the bytes; exit callbacks run once, after the last
    data callback.
    """

    def __init__(self, proc: subprocess.Popen, master_fd: int, cols: int, rows: int):
        self._proc = proc
        self._master_fd = master_fd
        self.cols = cols
        self.rows = rows
        self.exit_code: int | None = None

        self._data_callbacks: list[DataCallback] = []
        self._exit_callbacks: list[ExitCallback] = []
        self._write_lock = threading.Lock()
        self._exited = threading.Event()
        self._fd_closed = False
        self._thread: threading.Thread | None = None
        self._kill_timer: threading.Timer | None = None

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def alive(self) -> bool:
        return not self._exited.is_set()

    def on_data(self, callback: DataCallback) -> None:
        self._data_callbacks.append(callback)

    def on_exit(self, callback: ExitCallback) -> None:
        self._exit_callbacks.append(callback)

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._read_output_loop,
            name=f"pty-pump-{self.pid}",
            daemon=True,
        )
        self._thread.start()

    def wait(self, timeout: float | None = None) -> bool:
        """Wait until the exit callbacks have run. Returns False on timeout."""
        return self._exited.wait(timeout)

    def write(self, data: bytes | str) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        view = memoryview(data)
        with self._write_lock:
            # The fd number may already belong to another file once closed
            if self._fd_closed:
                raise OSError(errno.EBADF, "PTY is closed")
            while view:
                try:
                    written = os.write(self._master_fd, view)
                except BlockingIOError:
                    # Master is non-blocking; wait until the kernel buffer drains
                    select.select([], [self._master_fd], [], 1.0)
                    continue
                view = view[written:]

    def resize(self, cols: int, rows: int) -> None:
        _validate_size(cols, rows)
        with self._write_lock:
            if self._fd_closed:
                return
            _set_winsize(self._master_fd, rows, cols)
        self.cols = cols
        self.rows = rows
        try:
            os.killpg(os.getpgid(self.pid), signal.SIGWINCH)
        except (OSError, ProcessLookupError):
            pass

    def send_signal(self, sig: int) -> None:
        try:
            os.killpg(os.getpgid(self.pid), sig)
        except ProcessLookupError:
            pass

    def kill(self) -> None:
        """Ask the process to terminate. Returns before it has exited."""
        if not self.alive:
            return
        self.send_signal(signal.SIGHUP)

        def force_kill():
            if self.alive:
                logger.info("PTY process %s ignored SIGHUP; sending SIGKILL", self.pid)
                try:
                    self.send_signal(signal.SIGKILL)
                except OSError:
                    pass

        self._kill_timer = threading.Timer(KILL_GRACE_SECONDS, force_kill)
        self._kill_timer.daemon = True
        self._kill_timer.start()

    def _read_output_loop(self) -> None:
        while True:
            try:
                rlist, _, _ = select.select([self._master_fd], [], [], 0.1)
            except (ValueError, OSError):
                break
            if self._master_fd not in rlist:
                # Nothing buffered and the shell is gone (a background job may
                # still hold the slave open, so EIO never arrives)
                if self._proc.poll() is not None:
                    break
                continue
            try:
                data = os.read(self._master_fd, READ_SIZE)
            except BlockingIOError:
                continue
            except OSError as e:
                # EIO means the slave side closed: the process is gone
                if e.errno != errno.EIO:
                    logger.warning("PTY read failed for pid %s: %s", self.pid, e)
                break
            if not data:
                break
            for callback in list(self._data_callbacks):
                try:
                    callback(data)
                except Exception:
                    logger.exception("PTY data callback failed for pid %s", self.pid)

        self._finish()

    def _finish(self) -> None:
        try:
            self._proc.wait(timeout=1.0)
            self.exit_code = self._proc.returncode
        except subprocess.TimeoutExpired:
            self.exit_code = None
        if self._kill_timer is not None:
            self._kill_timer.cancel()
        with self._write_lock:
            self._fd_closed = True
            try:
                os.close(self._master_fd)
            except OSError:
                pass

        self._exited.set()
        for callback in list(self._exit_callbacks):
            try:
                callback(self.exit_code)
            except Exception:
                logger.exception("PTY exit callback failed for pid %s", self.pid)


def spawn(
    shell: str | None = None,
    cwd: str | Path | None = None,
    env: dict[str, str] | None = None,
    cols: int = 80,
    rows: int = 24,
    args: list[str] | None = None,
) -> PtyProcess:
    """Start ``shell`` on a new pseudo-terminal.

    Uses subprocess.Popen with pty.openpty() rather than pty.fork(), which can
    deadlock in multi-threaded processes such as the API server.

    Raises:
        SpawnError: the platform has no PTY support or the OS refused to start
            the process.
        InvalidDimension: initial size is not positive.
    """
    if pty is None:
        raise SpawnError("PTY not available on this platform")
    _validate_size(cols, rows)

    shell = shell or default_shell()
    cmd = [shell, *(args or [])]
    work_dir = Path(cwd).expanduser() if cwd else Path.home()
    if not work_dir.is_dir():
        raise SpawnError(f"Working directory does not exist: {work_dir}")

    full_env = os.environ.copy()
    if env:
        full_env.update(env)
    full_env["TERM"] = TERM_NAME
    full_env["LINES"] = str(rows)
    full_env["COLUMNS"] = str(cols)

    try:
        master_fd, slave_fd = pty.openpty()
    except OSError as e:
        raise SpawnError(f"Could not allocate a pseudo-terminal: {e}") from e

    try:
        _set_winsize(master_fd, rows, cols)

        def setup_child():
            os.setsid()
            fcntl.ioctl(slave_fd, termios.TIOCSCTTY, 0)

        proc = subprocess.Popen(
            cmd,
            stdin=slave_fd,
            stdout=slave_fd,
            stderr=slave_fd,
            cwd=str(work_dir),
            env=full_env,
            preexec_fn=setup_child,
            close_fds=True,
            pass_fds=(slave_fd,),
        )
    except (OSError, ValueError, subprocess.SubprocessError) as e:
        os.close(master_fd)
        os.close(slave_fd)
        raise SpawnError(f"Failed to start {shell}: {e}") from e

    # The child has its own copy of the slave
    os.close(slave_fd)

    flags = fcntl.fcntl(master_fd, fcntl.F_GETFL)
    fcntl.fcntl(master_fd, fcntl.F_SETFL, flags | os.O_NONBLOCK)

    logger.info("Spawned %s (pid %s) in %s at %dx%d", shell, proc.pid, work_dir, cols, rows)
    return PtyProcess(proc, master_fd, cols, rows)
