"""Starting the external converters and waiting for them."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, Sequence

__all__ = [
    "LaunchError",
    "ProcessHandle",
    "ProcessRunner",
    "SubprocessRunner",
]


class LaunchError(RuntimeError):
    """Raised when an external converter cannot be started."""

    def __init__(self, executable: str, detail: str) -> None:
        super().__init__(f"failed to start {executable}: {detail}")
        self.executable = executable
        self.detail = detail


class ProcessRunner(Protocol):
    """Capability used by the pipeline to run one external stage."""

    def start(
        self, executable: str, args: Sequence[str], workdir: Path
    ) -> Any:
        ...

    def wait(self, handle: Any) -> int:
        ...


@dataclass
class ProcessHandle:
    """A started child process and, once waited on, its captured output."""

    executable: str
    args: tuple[str, ...]
    workdir: Path
    process: subprocess.Popen
    stdout: str = field(default="", repr=False)
    stderr: str = field(default="", repr=False)


class SubprocessRunner:
    """Run converters with :mod:`subprocess`, capturing stdout and stderr."""

    def start(
        self, executable: str, args: Sequence[str], workdir: Path
    ) -> ProcessHandle:
        command = [executable, *args]
        try:
            process = subprocess.Popen(
                command,
                cwd=str(workdir),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except (OSError, ValueError) as exc:
            raise LaunchError(executable, str(exc)) from exc
        return ProcessHandle(
            executable=executable,
            args=tuple(args),
            workdir=workdir,
            process=process,
        )

    def wait(self, handle: ProcessHandle) -> int:
        # communicate() drains both pipes so a chatty converter cannot block.
        stdout, stderr = handle.process.communicate()
        handle.stdout = stdout or ""
        handle.stderr = stderr or ""
        return handle.process.returncode
