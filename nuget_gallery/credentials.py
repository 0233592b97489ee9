"""
Acquire feed credentials from the external credential provider.
"""

from __future__ import annotations

import asyncio
import json
import logging
import subprocess
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import CredentialError
from .interfaces import TaskRunner
from .models import Credentials


logger = logging.getLogger(__name__)

USER_PROFILE_PLACEHOLDER = "{user-profile}"


class SubprocessTaskRunner:
    """Run an interactive command attached to the current terminal."""

    async def run(self, command: str, args: Sequence[str]) -> None:
        cmd = [command, *args]
        logger.info("Running interactive task: %s", " ".join(cmd))
        await asyncio.to_thread(subprocess.run, cmd, check=True)


class CredentialAcquirer:
    """Obtain a username/password pair for a source URL.

    The provider is first run silently. If that fails, the interactive
    login runs through the task runner and the provider is queried again
    for the credentials it has now cached.
    """

    def __init__(
        self,
        provider_folder: str,
        task_runner: Optional[TaskRunner] = None,
        timeout: float = 10.0,
        platform: str = sys.platform,
        runtime: str = "dotnet",
    ) -> None:
        """Initialize the acquirer.

        Args:
            provider_folder: Folder holding the credential provider; may
                contain ``{user-profile}``
            task_runner: Runner for the interactive login step
            timeout: Bound in seconds for each non-interactive invocation
            platform: ``sys.platform`` value deciding the executable form
            runtime: Runtime host used to launch the provider off Windows
        """
        self.provider_folder = provider_folder
        self.task_runner = task_runner or SubprocessTaskRunner()
        self.timeout = timeout
        self.platform = platform
        self.runtime = runtime

    def resolve_provider_folder(self) -> str:
        folder = self.provider_folder.replace(USER_PROFILE_PLACEHOLDER, str(Path.home()))
        return folder.rstrip("/\\")

    def provider_command(self) -> List[str]:
        folder = self.resolve_provider_folder()
        if self.platform == "win32":
            return [folder + "\\CredentialProvider.Microsoft.exe"]
        return [self.runtime, f"{folder}/CredentialProvider.Microsoft.dll"]

    async def acquire(self, source_url: str) -> Credentials:
        command = self.provider_command()
        try:
            try:
                output = await self._run_provider(command + ["-I", "-N", "-F", "Json", "-U", source_url])
            except (subprocess.SubprocessError, OSError) as e:
                logger.warning("Silent credential acquisition failed for %s: %s", source_url, e)
                await self.task_runner.run(
                    command[0], command[1:] + ["-C", "False", "-R", "-U", source_url]
                )
                output = await self._run_provider(command + ["-N", "-F", "Json", "-U", source_url])
            return self._parse_output(output)
        except (subprocess.SubprocessError, OSError, RuntimeError, ValueError, KeyError, TypeError) as e:
            logger.error("Failed to fetch credentials for %s: %s", source_url, e)
            raise CredentialError() from e

    async def _run_provider(self, cmd: List[str]) -> str:
        logger.debug("Invoking credential provider: %s", " ".join(cmd[:-1]))
        result = await asyncio.to_thread(
            subprocess.run,
            cmd,
            capture_output=True,
            text=True,
            timeout=self.timeout,
        )
        if result.returncode != 0:
            raise subprocess.CalledProcessError(
                result.returncode, cmd, output=result.stdout, stderr=result.stderr
            )
        return result.stdout

    @staticmethod
    def _parse_output(output: str) -> Credentials:
        data = json.loads(output)
        return Credentials(username=data["Username"], password=data["Password"])
