"""Line-oriented client for one UCI engine process."""

from __future__ import annotations

import queue
import re
import subprocess  # noqa: S404
import threading
import time
from collections.abc import Iterable, Mapping, Sequence
from contextlib import AbstractContextManager
from pathlib import Path
from typing import IO

from pvexplorer.engine.uci_parser import parse_uci_line
from pvexplorer.engine.uci_types import (
    AnalysisOutput,
    EngineInfo,
    EngineStatus,
    UciBestMove,
    UciInfoPV,
)
from pvexplorer.errors import (
    EngineBusyError,
    EngineConnectionError,
    EngineTerminatedError,
    EngineTimeoutError,
)
from pvexplorer.utils.logger import get_logger

logger = get_logger(__name__)

_VERSION_TOKEN_RE = re.compile(r"^v?\d+(\.\d+)*[a-z0-9]*$", re.IGNORECASE)
_READER_JOIN_TIMEOUT_S = 1.0


def _matches(line: str, token: str) -> bool:
    return line == token or line.startswith(f"{token} ")


def _format_option_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _engine_info_from_lines(lines: Iterable[str]) -> EngineInfo:
    name: str | None = None
    author: str | None = None
    options: list[str] = []
    for line in lines:
        if line.startswith("id name "):
            name = line[len("id name ") :].strip() or None
        elif line.startswith("id author "):
            author = line[len("id author ") :].strip() or None
        elif line.startswith("option name "):
            option = line[len("option name ") :].split(" type ", 1)[0].strip()
            if option:
                options.append(option)
    version: str | None = None
    if name:
        head, _, tail = name.rpartition(" ")
        if head and _VERSION_TOKEN_RE.match(tail):
            name, version = head, tail.lstrip("vV")
    return EngineInfo(name=name, author=author, version=version, options=tuple(options))


def _wait_for_exit(process: subprocess.Popen[str], timeout_s: float) -> bool:
    try:
        process.wait(timeout=timeout_s)
    except subprocess.TimeoutExpired:
        return False
    return True


class UciClient(AbstractContextManager["UciClient"]):
    """Drive a single engine process over stdin/stdout.

    Lines read from stdout are queued by a reader thread and consumed by the
    thread that issued the current request; only one request is pending at a
    time. Status transitions happen under ``_lock``::

        disconnected -> idle -> analyzing -> idle -> disconnected
                             \\-> error (process failure, from any state)
    """

    def __init__(
        self,
        command: str | Path | Sequence[str | Path],
        *,
        options: Mapping[str, object] | None = None,
        startup_timeout_s: float = 10.0,
        analysis_timeout_s: float = 300.0,
        stop_grace_s: float = 1.0,
        quit_grace_s: float = 1.0,
        terminate_grace_s: float = 1.0,
        kill_grace_s: float = 0.5,
    ) -> None:
        if isinstance(command, (str, Path)):
            self.command = [str(command)]
        else:
            self.command = [str(part) for part in command]
        self.options = dict(options or {})
        self.startup_timeout_s = startup_timeout_s
        self.analysis_timeout_s = analysis_timeout_s
        self.stop_grace_s = stop_grace_s
        self.quit_grace_s = quit_grace_s
        self.terminate_grace_s = terminate_grace_s
        self.kill_grace_s = kill_grace_s
        self._lock = threading.Lock()
        self._status = EngineStatus.DISCONNECTED
        self._process: subprocess.Popen[str] | None = None
        self._lines: queue.Queue[str | None] = queue.Queue()
        self._readers: list[threading.Thread] = []
        self._closing = False
        self._engine_info = EngineInfo()

    def __enter__(self) -> UciClient:
        self.connect()
        return self

    def __exit__(self, _exc_type, _exc, _exc_tb) -> None:
        self.disconnect()

    @property
    def status(self) -> EngineStatus:
        with self._lock:
            return self._status

    @property
    def engine_info(self) -> EngineInfo:
        return self._engine_info

    def is_running(self) -> bool:
        process = self._process
        return process is not None and process.poll() is None

    def connect(self) -> EngineInfo:
        """Spawn the engine, run the handshake and become idle."""
        with self._lock:
            if self._status in (EngineStatus.IDLE, EngineStatus.ANALYZING):
                return self._engine_info
        if self._process is not None:
            self._closing = True
            self._release_process()
        self._spawn()
        try:
            self.execute("uci")
            handshake = self.wait_for("uciok", self.startup_timeout_s)
            self._engine_info = _engine_info_from_lines(handshake)
            for name, value in self.options.items():
                self.set_option(name, value)
            self.execute("isready")
            self.wait_for("readyok", self.startup_timeout_s)
        except EngineTerminatedError as exc:
            self._fail_startup()
            raise EngineConnectionError(
                f"Engine exited during startup: {' '.join(self.command)}"
            ) from exc
        except EngineTimeoutError:
            self._fail_startup()
            raise
        self._set_status(EngineStatus.IDLE)
        logger.info(
            "Engine connected: %s %s",
            self._engine_info.name or "unknown",
            self._engine_info.version or "",
        )
        return self._engine_info

    def _spawn(self) -> None:
        self._closing = False
        self._lines = queue.Queue()
        try:
            process = subprocess.Popen(  # noqa: S603
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                bufsize=1,
            )
        except OSError as exc:
            self._set_status(EngineStatus.ERROR)
            raise EngineConnectionError(
                f"Unable to start engine {' '.join(self.command)}: {exc}"
            ) from exc
        self._process = process
        self._readers = [
            threading.Thread(
                target=self._read_stdout,
                args=(process.stdout, self._lines),
                name="uci-stdout",
                daemon=True,
            ),
            threading.Thread(
                target=self._read_stderr,
                args=(process.stderr,),
                name="uci-stderr",
                daemon=True,
            ),
        ]
        for reader in self._readers:
            reader.start()

    def _fail_startup(self) -> None:
        self._closing = True
        self._release_process()
        self._set_status(EngineStatus.ERROR)

    def execute(self, command: str, *args: object) -> None:
        """Write one command line to the engine."""
        process = self._process
        if process is None or process.stdin is None:
            raise EngineConnectionError("Engine is not connected")
        line = " ".join([command, *(str(arg) for arg in args)])
        logger.debug("engine << %s", line)
        try:
            process.stdin.write(f"{line}\n")
            process.stdin.flush()
        except (OSError, ValueError) as exc:
            raise EngineTerminatedError(f"Engine input closed while sending '{command}'") from exc

    def set_option(self, name: str, value: object) -> None:
        self.execute("setoption", "name", name, "value", _format_option_value(value))

    def wait_for(self, token: str, timeout_s: float) -> list[str]:
        """Return the lines read up to and including the first line starting with ``token``."""
        deadline = time.monotonic() + timeout_s
        seen: list[str] = []
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise EngineTimeoutError(f"Timed out after {timeout_s}s waiting for '{token}'")
            try:
                line = self._lines.get(timeout=remaining)
            except queue.Empty:
                raise EngineTimeoutError(
                    f"Timed out after {timeout_s}s waiting for '{token}'"
                ) from None
            if line is None:
                # Keep the end-of-output marker visible to later waiters.
                self._lines.put(None)
                raise EngineTerminatedError(f"Engine output closed while waiting for '{token}'")
            seen.append(line)
            if _matches(line, token):
                return seen

    def analyze(
        self,
        fen: str,
        *,
        depth: int | None = None,
        movetime_ms: int | None = None,
        multipv: int = 1,
        timeout_s: float | None = None,
    ) -> AnalysisOutput:
        """Search ``fen`` and return every PV update plus the closing bestmove."""
        if depth is None and movetime_ms is None:
            raise ValueError("analyze() needs a depth or a movetime")
        with self._lock:
            if self._status == EngineStatus.ANALYZING:
                raise EngineBusyError("Engine is already analyzing a position")
            if self._status != EngineStatus.IDLE:
                raise EngineConnectionError(f"Engine is not ready (status={self._status})")
            self._status = EngineStatus.ANALYZING
        self._drain_stale_lines()
        go_args = ("depth", depth) if depth is not None else ("movetime", movetime_ms)
        try:
            self.set_option("MultiPV", max(1, multipv))
            self.execute("ucinewgame")
            self.execute("position", "fen", fen)
            self.execute("go", *go_args)
            lines = self.wait_for("bestmove", timeout_s or self.analysis_timeout_s)
        except EngineTimeoutError:
            self._stop_after_timeout()
            raise
        except EngineTerminatedError:
            self._set_status(EngineStatus.ERROR)
            raise
        infos: list[UciInfoPV] = []
        best_move: UciBestMove | None = None
        for line in lines:
            event = parse_uci_line(line)
            if isinstance(event, UciInfoPV):
                infos.append(event)
            elif isinstance(event, UciBestMove):
                best_move = event
        self._leave_analyzing()
        return AnalysisOutput(infos=infos, best_move=best_move)

    def _stop_after_timeout(self) -> None:
        logger.warning("Analysis timed out; sending stop")
        try:
            self.execute("stop")
            self.wait_for("bestmove", self.stop_grace_s)
        except (EngineTimeoutError, EngineTerminatedError):
            logger.warning("Engine did not answer stop; marking it failed")
            self._set_status(EngineStatus.ERROR)
            return
        self._leave_analyzing()

    def _drain_stale_lines(self) -> None:
        while True:
            try:
                line = self._lines.get_nowait()
            except queue.Empty:
                return
            if line is None:
                self._lines.put(None)
                return

    def disconnect(self) -> None:
        """Quit, then terminate, then kill. Never raises."""
        self._closing = True
        if self._process is not None:
            try:
                self.execute("quit")
            except (EngineTerminatedError, EngineConnectionError):
                logger.debug("Engine input already closed before quit")
            self._release_process()
        self._set_status(EngineStatus.DISCONNECTED)

    def _release_process(self) -> None:
        process = self._process
        if process is None:
            return
        if not _wait_for_exit(process, self.quit_grace_s):
            logger.warning("Engine ignored quit; terminating")
            process.terminate()
            if not _wait_for_exit(process, self.terminate_grace_s):
                logger.warning("Engine ignored terminate; killing")
                process.kill()
                _wait_for_exit(process, self.kill_grace_s)
        for reader in self._readers:
            reader.join(timeout=_READER_JOIN_TIMEOUT_S)
        for stream in (process.stdin, process.stdout, process.stderr):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError:
                logger.debug("Engine pipe already closed")
        self._readers = []
        self._process = None

    def _set_status(self, status: EngineStatus) -> None:
        with self._lock:
            self._status = status

    def _leave_analyzing(self) -> None:
        # A reader that saw the process exit has already moved us to error.
        with self._lock:
            if self._status == EngineStatus.ANALYZING:
                self._status = EngineStatus.IDLE

    def _read_stdout(self, stream: IO[str], lines: queue.Queue[str | None]) -> None:
        try:
            for raw in stream:
                line = raw.strip()
                if line:
                    lines.put(line)
        except (OSError, ValueError):
            logger.debug("Engine stdout closed")
        finally:
            lines.put(None)
            self._on_output_closed()

    def _read_stderr(self, stream: IO[str]) -> None:
        try:
            for raw in stream:
                line = raw.rstrip()
                if line:
                    logger.debug("engine stderr: %s", line)
        except (OSError, ValueError):
            logger.debug("Engine stderr closed")

    def _on_output_closed(self) -> None:
        if self._closing:
            return
        with self._lock:
            if self._status != EngineStatus.DISCONNECTED:
                self._status = EngineStatus.ERROR
        logger.warning("Engine process output closed unexpectedly")
