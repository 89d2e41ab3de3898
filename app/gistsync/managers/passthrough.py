"""Raw passthrough execution of the package manager.

The child's stdout and stderr are copied to ours by two independent pump
threads; both are joined before the exit code is returned, so no output
is lost or interleaved after the call completes.
"""

import contextlib
import logging
import subprocess
import sys
import threading
from collections.abc import Iterator
from typing import BinaryIO

from gistsync.managers.base import PASSTHROUGH_LAUNCH_FAILED, PassthroughResult

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 4096
_UTF8_CODE_PAGE = 65001


def _pump(source: BinaryIO, target: BinaryIO) -> None:
    """Copy bytes from ``source`` to ``target`` until EOF."""
    try:
        while chunk := source.read1(_CHUNK_SIZE):  # type: ignore[attr-defined]
            target.write(chunk)
            target.flush()
    except (OSError, ValueError) as e:
        logger.debug("Output pump stopped: %s", e)
    finally:
        source.close()


@contextlib.contextmanager
def console_output_encoding(code_page: int = _UTF8_CODE_PAGE) -> Iterator[None]:
    """Temporarily switch the Windows console output code page.

    Restores the previous code page on every exit path. A no-op outside
    Windows or without an attached console.
    """
    if sys.platform != "win32":
        yield
        return

    import ctypes

    kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
    previous = kernel32.GetConsoleOutputCP()
    changed = previous not in (0, code_page) and bool(kernel32.SetConsoleOutputCP(code_page))
    try:
        yield
    finally:
        if changed:
            kernel32.SetConsoleOutputCP(previous)


def _binary_stream(stream: object) -> BinaryIO:
    return getattr(stream, "buffer", stream)  # type: ignore[return-value]


def run_passthrough(
    command: list[str],
    *,
    stdout: BinaryIO | None = None,
    stderr: BinaryIO | None = None,
) -> PassthroughResult:
    """Run ``command`` streaming its output, returning the exit code verbatim.

    Args:
        command: Executable and arguments, passed through unmodified.
        stdout: Binary stream receiving the child's stdout. Defaults to ours.
        stderr: Binary stream receiving the child's stderr. Defaults to ours.

    Returns:
        PassthroughResult with the child's exit code, or
        PASSTHROUGH_LAUNCH_FAILED and the reason if it could not start.
    """
    out_target = stdout if stdout is not None else _binary_stream(sys.stdout)
    err_target = stderr if stderr is not None else _binary_stream(sys.stderr)

    with console_output_encoding():
        try:
            process = subprocess.Popen(
                command,
                stdin=None,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            logger.debug("Failed to launch %s: %s", command[0], e)
            return PassthroughResult(exit_code=PASSTHROUGH_LAUNCH_FAILED, error=str(e))

        pumps = [
            threading.Thread(target=_pump, args=(process.stdout, out_target), daemon=True),
            threading.Thread(target=_pump, args=(process.stderr, err_target), daemon=True),
        ]
        for pump in pumps:
            pump.start()

        try:
            returncode = process.wait()
        finally:
            for pump in pumps:
                pump.join()

    logger.debug("%s exited with %d", command[0], returncode)
    return PassthroughResult(exit_code=returncode)
