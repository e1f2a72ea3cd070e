"""Bounded external-process runner for DDC helper tools."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence

from monitorswitch.core.errors import (
    ToolNotFoundError,
    TransportCommandError,
    TransportError,
    TransportTimeoutError,
)

LOGGER = logging.getLogger(__name__)


class ProcessRunner:
    def run(self, argv: Sequence[str], *, timeout_s: float) -> str:
        """Run a helper and return its stdout; raise on any failure."""
        LOGGER.debug("Running %s (timeout %.1fs)", " ".join(argv), timeout_s)
        try:
            result = subprocess.run(
                list(argv),
                check=False,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=timeout_s,
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError(f"'{argv[0]}' is not installed or not on PATH") from exc
        except subprocess.TimeoutExpired as exc:
            raise TransportTimeoutError(
                f"'{' '.join(argv)}' timed out after {timeout_s:g}s"
            ) from exc
        except OSError as exc:
            raise TransportError(f"could not run '{argv[0]}': {exc}") from exc

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            LOGGER.debug("%s exited with %d: %s", argv[0], result.returncode, stderr)
            raise TransportCommandError(argv, result.returncode, stderr)
        return result.stdout or ""
