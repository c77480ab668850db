"""Optional launcher for a local backend process."""

import logging
import shlex
import subprocess
from typing import Optional

logger = logging.getLogger(__name__)


class BackendProcess:
    """Starts the backend command and stops it on shutdown."""

    def __init__(self, command: str, cwd: Optional[str] = None) -> None:
        self.command = command
        self.cwd = cwd
        self.process: Optional[subprocess.Popen] = None

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def start(self) -> None:
        if self.is_running:
            return
        logger.info(f"Starting backend: {self.command} (cwd: {self.cwd or '.'})")
        self.process = subprocess.Popen(shlex.split(self.command), cwd=self.cwd)

    def stop(self, timeout: float = 10.0) -> None:
        if not self.is_running:
            return
        logger.info("Stopping backend")
        self.process.terminate()
        try:
            self.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Backend did not exit, killing it")
            self.process.kill()
            self.process.wait()
        logger.info(f"Backend exited with code {self.process.returncode}")

    def __enter__(self) -> "BackendProcess":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
