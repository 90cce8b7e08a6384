"""Run asciidoc, or asciidoc followed by pandoc, for a conversion request."""

from __future__ import annotations

import logging
import os
import shlex
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence

from .arguments import ConversionRequest
from .formats import DEFAULT_REGISTRY, FormatKind, FormatRegistry
from .formats import UnknownFormatError
from .process import LaunchError, ProcessRunner

__all__ = [
    "EXIT_FAILURE",
    "EXIT_OK",
    "ConversionPipeline",
    "ConversionResult",
    "PipelineState",
    "StageResult",
    "run_conversion",
]

EXIT_OK = 0
EXIT_FAILURE = 1

Lookup = Callable[[str], str]

_STARTUP_ERRORS = (KeyError, LaunchError, OSError, ValueError)


@dataclass(frozen=True)
class StageResult:
    """One external converter invocation."""

    name: str
    executable: str
    args: tuple[str, ...]
    workdir: Path
    status: Optional[int] = None
    error: Optional[str] = None

    @property
    def launched(self) -> bool:
        return self.error is None


@dataclass
class PipelineState:
    """Bookkeeping for a two-stage conversion."""

    intermediate_path: Path
    stage1_status: Optional[int] = None
    stage2_status: Optional[int] = None


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of a pipeline run; ``error`` is set on failure."""

    request: ConversionRequest
    stages: tuple[StageResult, ...] = ()
    state: Optional[PipelineState] = None
    error: Optional[str] = None
    warnings: tuple[str, ...] = field(default=())

    @property
    def exit_code(self) -> int:
        return EXIT_FAILURE if self.error else EXIT_OK


class ConversionPipeline:
    """Sequence the external converters for a :class:`ConversionRequest`.

    Direct formats take a single asciidoc run writing the final output.
    Chained formats render asciidoc's configured backend into a temporary
    file, then let pandoc turn that file into the final output. The
    temporary file is removed on every path out of :meth:`run`.

    A converter that starts and exits with a nonzero status does not fail
    the run; the status is logged and reported as a warning.
    """

    def __init__(
        self,
        *,
        lookup: Lookup,
        runner: ProcessRunner,
        logger: logging.Logger,
        registry: FormatRegistry = DEFAULT_REGISTRY,
        temp_dir: Optional[Path] = None,
    ) -> None:
        self._lookup = lookup
        self._runner = runner
        self._logger = logger
        self._registry = registry
        self._temp_dir = temp_dir

    def run(self, request: ConversionRequest) -> ConversionResult:
        kind = request.kind
        try:
            registered = self._registry.classify(request.output_format)
        except UnknownFormatError:
            return ConversionResult(
                request=request,
                error=f'output format "{request.output_format}" is not '
                'recognized; run "help" to list supported formats',
            )
        if registered is not kind:
            return ConversionResult(
                request=request,
                error=f'output format "{request.output_format}" is '
                f"{registered.value}, not {kind.value}",
            )

        self._logger.info(
            "Starting conversion",
            extra={
                "input_path": str(request.input_path),
                "output_format": request.output_format,
                "output_path": str(request.output_path),
                "kind": kind.value,
            },
        )
        if kind is FormatKind.DIRECT:
            result = self._run_direct(request)
        else:
            result = self._run_chained(request)

        log = self._logger.error if result.error else self._logger.info
        log(
            "Finished conversion",
            extra={
                "exit_code": result.exit_code,
                "error": result.error,
                "stages": [stage.name for stage in result.stages],
            },
        )
        return result

    def _run_direct(self, request: ConversionRequest) -> ConversionResult:
        stage = self._run_stage(
            "asciidoc",
            "asciidoc_path",
            lambda: [
                "-b",
                request.output_format,
                "-o",
                str(request.output_path),
                str(request.input_path),
            ],
            workdir=Path.cwd(),
        )
        return ConversionResult(
            request=request,
            stages=(stage,),
            error=stage.error,
            warnings=_warnings_for((stage,)),
        )

    def _run_chained(self, request: ConversionRequest) -> ConversionResult:
        try:
            intermediate = self._create_intermediate()
        except OSError as exc:
            return ConversionResult(
                request=request,
                error=f"failed to create intermediate file: {exc}",
            )

        state = PipelineState(intermediate_path=intermediate)
        stages: list[StageResult] = []
        try:
            error = self._run_stages(request, state, stages)
        finally:
            self._remove_intermediate(intermediate)

        return ConversionResult(
            request=request,
            stages=tuple(stages),
            state=state,
            error=error,
            warnings=_warnings_for(stages),
        )

    def _run_stages(
        self,
        request: ConversionRequest,
        state: PipelineState,
        stages: list[StageResult],
    ) -> Optional[str]:
        intermediate = state.intermediate_path
        first = self._run_stage(
            "asciidoc",
            "asciidoc_path",
            lambda: [
                "-b",
                self._lookup("asciidoc_backend"),
                "-o",
                str(intermediate),
                str(request.input_path),
            ],
            workdir=Path.cwd(),
        )
        stages.append(first)
        state.stage1_status = first.status
        if not first.launched:
            return first.error

        workdir = _input_directory(request.input_path)
        if workdir is None:
            return (
                "cannot determine the directory of input file "
                f"{request.input_path}"
            )

        output_path = request.output_path.expanduser().resolve()
        second = self._run_stage(
            "pandoc",
            "pandoc_path",
            lambda: [
                "-f",
                self._lookup("pandoc_input_format"),
                "-t",
                request.output_format,
                *shlex.split(self._lookup("pandoc_extra_args")),
                "-o",
                str(output_path),
                str(intermediate),
            ],
            workdir=workdir,
        )
        stages.append(second)
        state.stage2_status = second.status
        return second.error

    def _run_stage(
        self,
        name: str,
        executable_key: str,
        build_args: Callable[[], Sequence[str]],
        *,
        workdir: Path,
    ) -> StageResult:
        executable = ""
        args: tuple[str, ...] = ()
        try:
            executable = self._lookup(executable_key)
            args = tuple(build_args())
            self._logger.debug(
                "Starting stage",
                extra={
                    "stage": name,
                    "executable": executable,
                    "arguments": list(args),
                    "workdir": str(workdir),
                },
            )
            handle = self._runner.start(executable, args, workdir)
        except _STARTUP_ERRORS as exc:
            self._logger.error(
                "Failed to start stage",
                extra={"stage": name, "executable": executable},
                exc_info=True,
            )
            return StageResult(
                name=name,
                executable=executable,
                args=args,
                workdir=workdir,
                error=_launch_message(name, exc),
            )

        status = self._runner.wait(handle)
        self._logger.debug(
            "Stage output",
            extra={
                "stage": name,
                "stdout": getattr(handle, "stdout", ""),
                "stderr": getattr(handle, "stderr", ""),
            },
        )
        if status != 0:
            self._logger.warning(
                "Stage exited with nonzero status",
                extra={"stage": name, "status": status},
            )
        return StageResult(
            name=name,
            executable=executable,
            args=args,
            workdir=workdir,
            status=status,
        )

    def _create_intermediate(self) -> Path:
        handle, name = tempfile.mkstemp(
            prefix="adoc-convert-",
            suffix=".xml",
            dir=None if self._temp_dir is None else str(self._temp_dir),
        )
        os.close(handle)
        return Path(name)

    def _remove_intermediate(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError:
            self._logger.warning(
                "Could not remove intermediate file",
                extra={"path": str(path)},
                exc_info=True,
            )


def run_conversion(
    request: ConversionRequest,
    *,
    lookup: Lookup,
    runner: ProcessRunner,
    logger: logging.Logger,
    registry: FormatRegistry = DEFAULT_REGISTRY,
    temp_dir: Optional[Path] = None,
) -> ConversionResult:
    """Convert ``request`` with a one-off :class:`ConversionPipeline`."""

    pipeline = ConversionPipeline(
        lookup=lookup,
        runner=runner,
        logger=logger,
        registry=registry,
        temp_dir=temp_dir,
    )
    return pipeline.run(request)


def _input_directory(input_path: Path) -> Optional[Path]:
    try:
        parent = input_path.expanduser().resolve().parent
    except (OSError, RuntimeError):
        return None
    if not parent.is_dir():
        return None
    return parent


def _launch_message(name: str, exc: BaseException) -> str:
    if isinstance(exc, LaunchError):
        return str(exc)
    if isinstance(exc, KeyError):
        # KeyError.__str__ quotes its argument.
        detail = exc.args[0] if exc.args else exc
        return f"cannot start {name}: {detail}"
    return f"cannot start {name}: {exc}"


def _warnings_for(stages: Sequence[StageResult]) -> tuple[str, ...]:
    return tuple(
        f"{stage.name} exited with status {stage.status}"
        for stage in stages
        if stage.status not in (None, 0)
    )
