"""Xray child process supervision.

The sidecar runs Xray as a child process so that it can keep serving the
status API and the webhook next to it. SIGINT and SIGTERM kill the child
and exit the sidecar; otherwise the sidecar lives as long as Xray does.

Example:
    supervisor = XraySupervisor(Path("/tmp/config.json"))
    supervisor.start()
    supervisor.install_signal_handlers()
    supervisor.wait()
"""

import os
import shutil
import signal
import subprocess
import sys
from pathlib import Path
from types import FrameType
from typing import Final

from loguru import logger

from xray_sidecar.core.exceptions import SupervisorError

TERMINATE_TIMEOUT: Final = 5.0  # Seconds before a terminated child is killed


class XraySupervisor:
    """Launch and watch the xray binary."""

    def __init__(self, config_path: Path, binary: str = "xray") -> None:
        """Initialize the supervisor.

        Args:
            config_path: Rendered config passed to ``xray run -config``
            binary: Name or path of the xray executable
        """
        self.config_path = config_path
        self.binary = binary
        self.process: subprocess.Popen[bytes] | None = None

    def command(self) -> list[str]:
        """Build the xray command line.

        Raises:
            SupervisorError: If the binary is not on PATH
        """
        path = shutil.which(self.binary)
        if path is None:
            raise SupervisorError(f"{self.binary} binary not found in PATH")
        return [path, "run", "-config", str(self.config_path)]

    def start(self) -> subprocess.Popen[bytes]:
        """Spawn xray with the sidecar's environment and stdio.

        Raises:
            SupervisorError: If the binary is missing or cannot be executed
        """
        cmd = self.command()
        try:
            self.process = subprocess.Popen(cmd, env=os.environ.copy())  # noqa: S603
        except OSError as e:
            raise SupervisorError(f"Failed to start {self.binary}: {e}") from e
        logger.info(f"Started {self.binary} (pid {self.process.pid})")
        return self.process

    def _handle_signal(self, signum: int, _frame: FrameType | None) -> None:
        logger.info(f"Received signal {signal.Signals(signum).name}, shutting down {self.binary}")
        if self.process is not None and self.process.poll() is None:
            self.process.kill()
        sys.exit(0)

    def install_signal_handlers(self) -> None:
        """Kill the child and exit on SIGINT or SIGTERM."""
        for signum in (signal.SIGINT, signal.SIGTERM):
            signal.signal(signum, self._handle_signal)

    def wait(self) -> int:
        """Block until xray exits and return its exit code."""
        if self.process is None:
            raise SupervisorError(f"{self.binary} has not been started")
        returncode = self.process.wait()
        if returncode != 0:
            logger.error(f"{self.binary} exited with error: exit status {returncode}")
        else:
            logger.info(f"{self.binary} exited")
        return returncode

    def stop(self) -> None:
        """Terminate xray, killing it if it does not exit in time."""
        if self.process is None or self.process.poll() is not None:
            return
        self.process.terminate()
        try:
            self.process.wait(timeout=TERMINATE_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.warning(f"Force killing {self.binary}...")
            self.process.kill()
            self.process.wait()
