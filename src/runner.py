"""
External command execution with an environment overlay.
"""

import logging
import os
import subprocess
from typing import Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """A command could not be started or exited non-zero."""

    def __init__(
        self,
        args: List[str],
        returncode: Optional[int],
        stdout: str = "",
        stderr: str = "",
        reason: str = "",
    ):
        detail = reason or f"exit status {returncode}"
        message = f"error running {' '.join(args)}: {detail}"
        if stderr:
            message += f"\nstderr:\n{stderr.strip()}"
        super().__init__(message)
        self.args_list = args
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class CommandRunner:
    """Runs commands in a child process with extra environment variables."""

    def __init__(self, base_env: Optional[Mapping[str, str]] = None):
        """
        Args:
            base_env: Environment the overlay is applied on top of. Defaults
                to a snapshot of os.environ taken at each run.
        """
        self.base_env = dict(base_env) if base_env is not None else None

    def build_env(self, env_overlay: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Return the child environment; the process environment is not modified."""
        env = dict(self.base_env if self.base_env is not None else os.environ)
        if env_overlay:
            env.update(env_overlay)
        return env

    def run(
        self, args: List[str], env_overlay: Optional[Mapping[str, str]] = None
    ) -> Tuple[str, str]:
        """
        Run a command and capture its output.

        Args:
            args: Program and arguments
            env_overlay: Variables added to (or replacing) the base environment

        Returns:
            Tuple of (stdout, stderr)

        Raises:
            CommandError: If the program is missing or exits non-zero
        """
        logger.info(f"Running {' '.join(args)}")
        if env_overlay:
            logger.debug(f"Environment overlay: {sorted(env_overlay)}")

        try:
            result = subprocess.run(
                args,
                env=self.build_env(env_overlay),
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise CommandError(args, None, reason=f"command not found ({e})")
        except subprocess.CalledProcessError as e:
            logger.error(f"Command failed: {e.stderr}")
            raise CommandError(args, e.returncode, e.stdout or "", e.stderr or "")

        logger.debug(f"stdout: {result.stdout}")
        return result.stdout, result.stderr
