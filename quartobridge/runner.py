"""Quarto subprocess management: preview servers and one-shot commands."""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
import sys
from collections.abc import Callable
from pathlib import Path

from PySide6.QtCore import QObject, QProcess, QProcessEnvironment, QRunnable, QThreadPool, Signal

from .project import WHOLE_PROJECT
from .settings import DEFAULT_QUARTO_BINARY

logger = logging.getLogger(__name__)

PREVIEW_ARGUMENTS = ["preview", ".", "--no-browser", "--no-watch-inputs"]
# Quarto announces its local server with one of these phrasings depending on
# project type and version; the captured group is the base URL only.
READY_PATTERNS = (
    re.compile(r"Browsing at (http://localhost:\d+)"),
    re.compile(r"Listening on (http://localhost:\d+)"),
)


def _search_ready(text: str) -> re.Match | None:
    for pattern in READY_PATTERNS:
        match = pattern.search(text)
        if match:
            return match
    return None


def parse_preview_url(text: str) -> str | None:
    """Return the local server URL announced in ``text``, if any."""
    match = _search_ready(text)
    return match.group(1) if match else None


def resolve_executable(quarto_binary: str) -> str:
    # shutil.which honors PATHEXT, so `quarto` also finds quarto.cmd on Windows.
    return shutil.which(quarto_binary) or quarto_binary


def render_command(quarto_binary: str, target: str) -> list[str]:
    return [resolve_executable(quarto_binary), "render", target]


def create_command(quarto_binary: str, name: str, project_type: str, engine: str) -> list[str]:
    return [
        resolve_executable(quarto_binary),
        "create",
        "project",
        project_type,
        name,
        "--engine",
        engine,
        "--no-open",
    ]


class QuartoError(Exception):
    """Base class for failed Quarto invocations."""


class QuartoExitError(QuartoError):
    """A one-shot Quarto command exited with a non-zero code."""

    def __init__(self, returncode: int, command: list[str] | None = None):
        super().__init__(f"Exited with code {returncode}")
        self.returncode = returncode
        self.command = list(command or [])


class PreviewSession:
    """One live ``quarto preview`` process tracked under its project directory."""

    def __init__(self, project_dir: str, process, on_url_ready: Callable[[str], None] | None = None):
        self.project_dir = project_dir
        self.process = process
        self.on_url_ready = on_url_ready
        self.url: str | None = None
        self._pending_stdout = ""

    @property
    def ready(self) -> bool:
        return self.url is not None

    def feed_stdout(self, text: str) -> list[str]:
        """Return URLs announced by the complete lines now available."""
        lines = (self._pending_stdout + text).splitlines(keepends=True)
        self._pending_stdout = ""
        # Output chunks can end mid-line; hold the tail until it is complete.
        if lines and not lines[-1].endswith(("\n", "\r")):
            self._pending_stdout = lines.pop()
        urls: list[str] = []
        for line in lines:
            url = parse_preview_url(line)
            if url is not None:
                urls.append(url)
        # Quarto may leave the ready line unterminated. Once anything follows
        # the port digits, the port cannot grow any more.
        match = _search_ready(self._pending_stdout)
        if match and match.end() < len(self._pending_stdout):
            urls.append(match.group(1))
            self._pending_stdout = self._pending_stdout[match.end():]
        return urls


class QuartoJobSignals(QObject):
    """Signals emitted by background Quarto command workers."""

    finished = Signal(object)


class QuartoJob(QRunnable):
    """Run one Quarto command to completion in a worker thread.

    After ``finished`` fires, ``error`` is ``None`` on success, a
    ``QuartoExitError`` for a non-zero exit, or the exception raised while
    spawning the process. ``returncode`` is set whenever the process ran.
    """

    def __init__(
        self,
        kind: str,
        command: list[str],
        working_dir: Path,
        on_finished: Callable[["QuartoJob"], None] | None = None,
    ):
        super().__init__()
        self.kind = kind
        self.command = command
        self.working_dir = Path(working_dir)
        self.on_finished = on_finished
        self.returncode: int | None = None
        self.error: Exception | None = None
        self.signals = QuartoJobSignals()
        # Results are read after the pool is done with the runnable.
        self.setAutoDelete(False)

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.returncode == 0

    def run(self) -> None:
        logger.info("Running %s in %s", " ".join(self.command), self.working_dir)
        try:
            # No timeout; the job waits for Quarto to exit.
            result = subprocess.run(
                self.command,
                cwd=str(self.working_dir),
                env=os.environ.copy(),
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
            )
        except Exception as exc:
            logger.error("Quarto %s could not start: %s", self.kind, exc)
            self.error = exc
            self.signals.finished.emit(self)
            return

        self.returncode = result.returncode
        for line in (result.stdout or "").splitlines():
            logger.info("[quarto %s] %s", self.kind, line)
        for line in (result.stderr or "").splitlines():
            logger.info("[quarto %s stderr] %s", self.kind, line)
        if result.returncode != 0:
            self.error = QuartoExitError(result.returncode, self.command)
        self.signals.finished.emit(self)


JOB_MESSAGES = {
    "render": {
        "done": "Quarto render complete!",
        "failed": "Quarto render failed with code {code}",
        "error": "Quarto render error: {message}",
    },
    "create": {
        "done": "Quarto project created!",
        "failed": "Quarto create failed with code {code}",
        "error": "Quarto create error: {message}",
    },
}


def _decode(data) -> str:
    return bytes(data.data()).decode("utf-8", errors="replace")


class QuartoRunner(QObject):
    """Owns the project directory -> preview process registry.

    All registry access happens on the thread that owns the runner (the UI
    thread), so the mapping needs no locking. Render and create commands run
    on a thread pool and are not tracked in the registry.
    """

    notice = Signal(str)
    preview_ready = Signal(str, str)
    preview_exited = Signal(str, int)
    job_finished = Signal(object)

    def __init__(self, parent=None, process_factory=None, thread_pool: QThreadPool | None = None):
        super().__init__(parent)
        self._sessions: dict[str, PreviewSession] = {}
        self._process_factory = process_factory if process_factory is not None else (lambda: QProcess(self))
        self._pool = thread_pool if thread_pool is not None else QThreadPool(self)
        self._active_jobs: set[QuartoJob] = set()

    # Preview servers -----------------------------------------------------

    def start_preview(
        self,
        project_dir: str | Path,
        on_url_ready: Callable[[str], None] | None = None,
        quarto_binary: str = DEFAULT_QUARTO_BINARY,
    ) -> PreviewSession:
        key = str(project_dir)
        # Replace, never queue: a stale server for the same project would
        # keep holding its port.
        self._terminate(key)
        self.notice.emit("Starting Quarto preview...")

        process = self._process_factory()
        process.setProgram(resolve_executable(quarto_binary))
        process.setArguments(list(PREVIEW_ARGUMENTS))
        process.setWorkingDirectory(key)
        # Inherit PATH so R/Python toolchains used by Quarto engines resolve.
        process.setProcessEnvironment(QProcessEnvironment.systemEnvironment())

        session = PreviewSession(key, process, on_url_ready)
        self._connect_session(session)
        self._sessions[key] = session
        logger.info("Starting Quarto preview in %s", key)
        process.start()
        return session

    def stop_preview(self, project_dir: str | Path) -> bool:
        if not self._terminate(str(project_dir)):
            return False
        self.notice.emit("Stopped Quarto preview")
        return True

    def stop_all(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            self._signal_stop(session)

    def session_for(self, project_dir: str | Path) -> PreviewSession | None:
        return self._sessions.get(str(project_dir))

    def active_projects(self) -> list[str]:
        return list(self._sessions)

    def _connect_session(self, session: PreviewSession) -> None:
        process = session.process
        process.readyReadStandardOutput.connect(lambda: self._on_preview_stdout(session))
        process.readyReadStandardError.connect(lambda: self._on_preview_stderr(session))
        process.errorOccurred.connect(lambda error: self._on_preview_error(session, error))
        process.finished.connect(lambda code, *_status: self._on_preview_finished(session, code))

    def _is_current(self, session: PreviewSession) -> bool:
        return self._sessions.get(session.project_dir) is session

    def _forget(self, session: PreviewSession) -> bool:
        # A replacement may already sit under the same key; only drop our own.
        if not self._is_current(session):
            return False
        del self._sessions[session.project_dir]
        return True

    def _terminate(self, key: str) -> bool:
        session = self._sessions.pop(key, None)
        if session is None:
            return False
        self._signal_stop(session)
        return True

    def _signal_stop(self, session: PreviewSession) -> None:
        logger.info("Stopping Quarto preview in %s", session.project_dir)
        if sys.platform == "win32":
            # terminate() only posts WM_CLOSE on Windows, which console apps ignore.
            session.process.kill()
        else:
            session.process.terminate()

    def _on_preview_stdout(self, session: PreviewSession) -> None:
        text = _decode(session.process.readAllStandardOutput())
        for line in text.splitlines():
            if line.strip():
                logger.info("[quarto] %s", line)
        for url in session.feed_stdout(text):
            self._announce(session, url)

    def _on_preview_stderr(self, session: PreviewSession) -> None:
        # Quarto writes progress to stderr as well, so it is never fatal.
        text = _decode(session.process.readAllStandardError())
        for line in text.splitlines():
            if line.strip():
                logger.info("[quarto stderr] %s", line)

    def _announce(self, session: PreviewSession, url: str) -> None:
        # Repeats of the current URL are deduplicated; only a new URL re-fires.
        if not self._is_current(session) or url == session.url:
            return
        first = session.url is None
        session.url = url
        if session.on_url_ready is not None:
            session.on_url_ready(url)
        self.preview_ready.emit(session.project_dir, url)
        if first:
            self.notice.emit("Quarto preview ready!")

    def _on_preview_error(self, session: PreviewSession, error) -> None:
        message = session.process.errorString()
        if error == QProcess.ProcessError.FailedToStart:
            # finished never follows a failed start, so release the process here.
            session.process.deleteLater()
            if self._forget(session):
                logger.error("Quarto preview failed to start in %s: %s", session.project_dir, message)
                self.notice.emit(f"Quarto process error: {message}")
            return
        if not self._is_current(session):
            # Stopped or replaced sessions report Crashed after terminate().
            logger.debug("Ignoring %s from stopped preview in %s", error, session.project_dir)
            return
        logger.warning("Quarto preview error in %s: %s", session.project_dir, message)

    def _on_preview_finished(self, session: PreviewSession, code: int) -> None:
        logger.info("Quarto process in %s exited with code %s", session.project_dir, code)
        if self._forget(session):
            self.preview_exited.emit(session.project_dir, code)
        session.process.deleteLater()

    # One-shot commands ---------------------------------------------------

    def render(
        self,
        working_dir: str | Path,
        target: str,
        quarto_binary: str = DEFAULT_QUARTO_BINARY,
        on_finished: Callable[[QuartoJob], None] | None = None,
    ) -> QuartoJob:
        label = "project" if target == WHOLE_PROJECT else target
        self.notice.emit(f"Rendering {label}...")
        job = QuartoJob("render", render_command(quarto_binary, target), Path(working_dir), on_finished)
        return self._start_job(job)

    def create_project(
        self,
        parent_dir: str | Path,
        name: str,
        project_type: str,
        engine: str,
        quarto_binary: str = DEFAULT_QUARTO_BINARY,
        on_finished: Callable[[QuartoJob], None] | None = None,
    ) -> QuartoJob:
        self.notice.emit(f"Creating Quarto project: {name}...")
        command = create_command(quarto_binary, name, project_type, engine)
        job = QuartoJob("create", command, Path(parent_dir), on_finished)
        return self._start_job(job)

    def wait_for_jobs(self, msecs: int = -1) -> bool:
        return self._pool.waitForDone(msecs)

    def _start_job(self, job: QuartoJob) -> QuartoJob:
        self._active_jobs.add(job)
        job.signals.finished.connect(self._on_job_finished)
        self._pool.start(job)
        return job

    def _on_job_finished(self, job: QuartoJob) -> None:
        self._active_jobs.discard(job)
        messages = JOB_MESSAGES[job.kind]
        if job.error is None:
            self.notice.emit(messages["done"])
        elif isinstance(job.error, QuartoExitError):
            self.notice.emit(messages["failed"].format(code=job.error.returncode))
        else:
            self.notice.emit(messages["error"].format(message=job.error))
        if job.on_finished is not None:
            job.on_finished(job)
        self.job_finished.emit(job)
