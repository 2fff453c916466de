from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from sitespeed_web.domain.errors import MeasurementFailedError
from sitespeed_web.domain.models import MeasurementResult

logger = logging.getLogger(__name__)

# Fixed profile: one iteration, fixed viewport, video + visual metrics,
# and the analysisstorer plugin that writes the JSON summaries.
FIXED_ARGS = (
    "--plugins.add", "analysisstorer",
    "--visualMetrics",
    "--video",
    "--viewPort", "1920x1080",
    "--browsertime.chrome.cleanUserDataDir=true",
    "--browsertime.iterations", "1",
)


class MeasurementRunner:
    """Strategy interface for the external page-measurement process."""
    def run(self, output_dir: Path, urls: Sequence[str]) -> MeasurementResult:
        raise NotImplementedError


@dataclass
class SitespeedRunner(MeasurementRunner):
    node_bin: str
    sitespeed_bin: str
    timeout_seconds: int

    def build_command(self, output_dir: Path, urls: Sequence[str]) -> list[str]:
        cmd = [self.node_bin, self.sitespeed_bin, "--outputFolder", str(output_dir), *FIXED_ARGS]
        # URLs always go last
        cmd += list(urls)
        return cmd

    def run(self, output_dir: Path, urls: Sequence[str]) -> MeasurementResult:
        cmd = self.build_command(output_dir, urls)
        logger.info("Running: %r", cmd)

        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired as e:
            raise MeasurementFailedError("Execution timed out.", _decode(e.stderr)) from e
        except OSError as e:
            raise MeasurementFailedError(f"Failed to execute: {e}") from e

        return MeasurementResult(returncode=proc.returncode, stdout=proc.stdout or "", stderr=proc.stderr or "")


def _decode(raw) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw
