"""
MCP server configuration and PID file management.

Handles server configuration file loading (.devflow/mcp-config.yaml) and
PID file operations for server lifecycle management.
"""

import logging
import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Literal, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR = ".devflow"
CONFIG_FILENAME = "mcp-config.yaml"
PID_FILENAME = ".mcp-server.pid"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def default_pid_file(project_path: Path) -> Path:
    return project_path / CONFIG_DIR / PID_FILENAME


@dataclass
class MCPConfig:
    """
    MCP server configuration loaded from .devflow/mcp-config.yaml.

    Attributes:
        host: Server bind address (default: "127.0.0.1")
        port: Server port for network transports (default: 8000)
        transport: Transport mode ("stdio", "sse" or "http", default: "stdio")
        log_level: Root log level (default: "INFO")
        capabilities: Capability set names to load (None = all built-in sets)
        pid_file: Path to PID file (default: .devflow/.mcp-server.pid)
    """

    host: str = "127.0.0.1"
    port: int = 8000
    transport: Literal["stdio", "sse", "http"] = "stdio"
    log_level: str = "INFO"
    capabilities: Optional[List[str]] = None
    pid_file: Optional[Path] = None

    @classmethod
    def load(cls, project_path: Path) -> "MCPConfig":
        """
        Load MCP configuration from .devflow/mcp-config.yaml.

        Falls back to defaults if file doesn't exist. Environment variables
        override config file values.

        Args:
            project_path: Path to project root (contains .devflow/)

        Returns:
            MCPConfig instance with loaded/default values

        Raises:
            ValueError: If config file has invalid format
        """
        config_file = project_path / CONFIG_DIR / CONFIG_FILENAME
        config_dict = {}

        if config_file.exists():
            try:
                with open(config_file) as f:
                    config_dict = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid {CONFIG_FILENAME}: {e}") from e

            if not isinstance(config_dict, dict):
                raise ValueError(f"Invalid {CONFIG_FILENAME}: expected a mapping at top level")
            logger.debug("Loaded MCP config from %s", config_file)

        # Environment variables override config file
        if "MCP_SERVER_HOST" in os.environ:
            config_dict["host"] = os.environ["MCP_SERVER_HOST"]

        if "MCP_SERVER_PORT" in os.environ:
            try:
                config_dict["port"] = int(os.environ["MCP_SERVER_PORT"])
            except ValueError:
                raise ValueError(
                    f"Invalid MCP_SERVER_PORT: {os.environ['MCP_SERVER_PORT']}. "
                    "Must be an integer."
                )

        if "MCP_SERVER_TRANSPORT" in os.environ:
            config_dict["transport"] = os.environ["MCP_SERVER_TRANSPORT"]

        if "MCP_SERVER_LOG_LEVEL" in os.environ:
            config_dict["log_level"] = os.environ["MCP_SERVER_LOG_LEVEL"]

        if "MCP_SERVER_CAPABILITIES" in os.environ:
            config_dict["capabilities"] = [
                name.strip()
                for name in os.environ["MCP_SERVER_CAPABILITIES"].split(",")
                if name.strip()
            ]

        if "log_level" in config_dict:
            config_dict["log_level"] = str(config_dict["log_level"]).upper()
            if config_dict["log_level"] not in LOG_LEVELS:
                raise ValueError(
                    f"Invalid log_level: {config_dict['log_level']}. "
                    f"Must be one of: {', '.join(LOG_LEVELS)}."
                )

        # Set default PID file path if not specified
        if "pid_file" not in config_dict:
            config_dict["pid_file"] = default_pid_file(project_path)
        else:
            config_dict["pid_file"] = Path(config_dict["pid_file"])

        return cls(**{k: v for k, v in config_dict.items() if k in cls.__annotations__})

    def save(self, project_path: Path):
        """
        Save MCP configuration to .devflow/mcp-config.yaml.

        The PID file location is not persisted unless it differs from the default.

        Args:
            project_path: Path to project root (contains .devflow/)
        """
        config_file = project_path / CONFIG_DIR / CONFIG_FILENAME
        config_file.parent.mkdir(parents=True, exist_ok=True)

        config_dict = {
            "host": self.host,
            "port": self.port,
            "transport": self.transport,
            "log_level": self.log_level,
        }
        if self.capabilities is not None:
            config_dict["capabilities"] = list(self.capabilities)
        if self.pid_file is not None and self.pid_file != default_pid_file(project_path):
            config_dict["pid_file"] = str(self.pid_file)

        with open(config_file, "w") as f:
            yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)


# Seconds between liveness checks while waiting for a stopped server to exit
STOP_POLL_INTERVAL = 0.25


class ServerAlreadyRunning(RuntimeError):
    """A live server already owns the PID file."""

    def __init__(self, pid: int, pid_file: Path):
        self.pid = pid
        self.pid_file = pid_file
        super().__init__(
            f"devflow MCP server is already running as PID {pid} ({pid_file}). "
            "Run 'devflow mcp stop' before starting another one."
        )


class ServerNotRunning(RuntimeError):
    """No live server is recorded in the PID file."""


@dataclass
class ServerStatus:
    """Liveness of the server recorded in a PID file."""
    running: bool
    pid: Optional[int]
    pid_file: Path


def process_alive(pid: int) -> bool:
    """Return True if a process with this PID exists."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Owned by another user
        return True
    except OSError:
        return False
    return True


class PIDFileManager:
    """
    Owns the PID file of one project's server.

    A single PID file guards against two servers for the same project and
    lets `devflow mcp stop` find the process to signal.
    """

    def __init__(self, pid_file: Path):
        self.pid_file = pid_file

    def read(self) -> Optional[int]:
        """Return the recorded PID, or None when the file is absent or unreadable."""
        try:
            content = self.pid_file.read_text().strip()
        except OSError:
            return None
        return int(content) if content.isdigit() else None

    def acquire(self) -> None:
        """
        Record the current process as the running server.

        A PID file left behind by a dead process is replaced.

        Raises:
            ServerAlreadyRunning: If the recorded process is still alive
        """
        recorded = self.read()
        if recorded is not None and process_alive(recorded):
            raise ServerAlreadyRunning(recorded, self.pid_file)
        if self.pid_file.exists():
            logger.info("Replacing PID file %s left by PID %s", self.pid_file, recorded)

        self.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.pid_file.write_text(str(os.getpid()))
        logger.debug("Recorded server PID %d in %s", os.getpid(), self.pid_file)

    def release(self) -> None:
        """Delete the PID file if present."""
        self.pid_file.unlink(missing_ok=True)

    def status(self) -> ServerStatus:
        pid = self.read()
        if pid is not None and process_alive(pid):
            return ServerStatus(running=True, pid=pid, pid_file=self.pid_file)
        return ServerStatus(running=False, pid=None, pid_file=self.pid_file)

    def stop(self, timeout: float = 10) -> bool:
        """
        Send SIGTERM to the recorded server and wait for it to exit.

        Args:
            timeout: Seconds to wait after signalling

        Returns:
            True once the process has exited and the PID file is gone,
            False if it is still alive when the timeout expires

        Raises:
            ServerNotRunning: If no live server is recorded (a dead
                server's PID file is deleted first)
            RuntimeError: If the process cannot be signalled
        """
        pid = self.read()
        if pid is None:
            raise ServerNotRunning(f"No devflow MCP server is recorded in {self.pid_file}")
        if not process_alive(pid):
            self.release()
            raise ServerNotRunning(
                f"Recorded server PID {pid} has already exited; removed {self.pid_file}"
            )

        try:
            os.kill(pid, signal.SIGTERM)
        except PermissionError as e:
            raise RuntimeError(f"Not permitted to signal server PID {pid}") from e
        except OSError as e:
            raise RuntimeError(f"Could not signal server PID {pid}: {e}") from e

        logger.info("Sent SIGTERM to server PID %d", pid)
        deadline = time.monotonic() + timeout
        while process_alive(pid):
            if time.monotonic() >= deadline:
                logger.warning("Server PID %d still alive after %ss", pid, timeout)
                return False
            time.sleep(STOP_POLL_INTERVAL)

        self.release()
        return True
