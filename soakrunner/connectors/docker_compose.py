"""
docker compose environment manager.

Starts and stops the stand under test by shelling out to ``docker compose``
in the configured working directory. Any non-zero exit is a lifecycle error.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from typing import Sequence

from soakrunner.connectors.base import EnvManager
from soakrunner.core.errors import EnvLifecycleError

logger = logging.getLogger(__name__)

_STDERR_TAIL_CHARS = 2_000


class DockerComposeEnv(EnvManager):
    """Manages a docker compose project."""

    def __init__(
        self,
        work_dir: str,
        *,
        compose_file: str | None = None,
        project_name: str | None = None,
        command: Sequence[str] | str = ("docker", "compose"),
    ) -> None:
        self.work_dir = work_dir
        self.compose_file = compose_file
        self.project_name = project_name
        if isinstance(command, str):
            command = shlex.split(command)
        self.command = list(command)
        if not self.command:
            raise ValueError("compose command must not be empty")

    def _base_args(self) -> list[str]:
        args = list(self.command)
        if self.compose_file:
            args.extend(["-f", self.compose_file])
        if self.project_name:
            args.extend(["-p", self.project_name])
        return args

    def up_args(self) -> list[str]:
        return self._base_args() + ["up", "-d", "--remove-orphans"]

    def down_args(self) -> list[str]:
        return self._base_args() + ["down"]

    async def start(self) -> None:
        await self._exec("start stand", self.up_args())

    async def stop(self) -> None:
        await self._exec("stop stand", self.down_args())

    async def _exec(self, log_msg: str, args: list[str]) -> None:
        logger.info(log_msg)
        logger.debug("Running %s in %s", shlex.join(args), self.work_dir)
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                cwd=self.work_dir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, NotADirectoryError, PermissionError) as exc:
            raise EnvLifecycleError(
                f"{log_msg} failed: {exc}",
                context={"args": args, "work_dir": self.work_dir},
            ) from exc

        stdout, stderr = await proc.communicate()
        out_text = (stdout or b"").decode("utf-8", errors="replace").strip()
        err_text = (stderr or b"").decode("utf-8", errors="replace").strip()
        if out_text:
            logger.debug("%s stdout:\n%s", log_msg, out_text)

        if proc.returncode != 0:
            tail = err_text[-_STDERR_TAIL_CHARS:]
            raise EnvLifecycleError(
                f"{log_msg} failed: {shlex.join(args)} exited with {proc.returncode}",
                returncode=proc.returncode,
                stderr=tail,
                context={"args": args, "work_dir": self.work_dir},
            )
        if err_text:
            # compose reports progress on stderr
            logger.debug("%s stderr:\n%s", log_msg, err_text)
