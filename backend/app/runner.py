"""
Test runner - executes a rendered test file with the external intellitester CLI
and streams its output as it arrives
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, List, Optional

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4096


class RunnerError(Exception):
    """The runner process could not be started"""


@dataclass
class RunOptions:
    browser: Optional[str] = None
    visible: bool = False


@dataclass
class RunChunk:
    """Output text, or the exit status once the process has finished"""
    text: str = ""
    exit_code: Optional[int] = None

    @property
    def finished(self) -> bool:
        return self.exit_code is not None


class TestRunner:
    """Runs `<command> <test file> [--visible] [--browser <name>]`"""
    __test__ = False

    def __init__(self, command: List[str]):
        if not command:
            raise ValueError("Runner command must not be empty")
        self.command = list(command)

    def build_args(self, test_path: str, options: RunOptions) -> List[str]:
        args = self.command + [test_path]
        if options.visible:
            args.append("--visible")
        if options.browser:
            args.extend(["--browser", options.browser])
        return args

    @staticmethod
    def working_dir(test_path: str) -> str:
        """Parent of the test directory, where the runner finds its config"""
        return str(Path(test_path).resolve().parent.parent)

    async def run_test(self, test_path: str, options: Optional[RunOptions] = None) -> AsyncIterator[RunChunk]:
        """Yield output chunks (stdout and stderr merged), then the exit status"""
        options = options or RunOptions()
        args = self.build_args(test_path, options)
        logger.info(f"[RUNNER] Starting: {' '.join(args)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                cwd=self.working_dir(test_path),
                env=dict(os.environ),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise RunnerError(f"Could not start {args[0]}: {e}") from e

        try:
            while True:
                data = await process.stdout.read(CHUNK_SIZE)
                if not data:
                    break
                yield RunChunk(text=data.decode("utf-8", errors="replace"))

            exit_code = await process.wait()
        finally:
            # Consumer stopped early: do not leave the child running
            if process.returncode is None:
                logger.info(f"[RUNNER] Stopping {args[0]} (pid {process.pid})")
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()

        logger.info(f"[RUNNER] Finished with code {exit_code}")
        yield RunChunk(exit_code=exit_code)
