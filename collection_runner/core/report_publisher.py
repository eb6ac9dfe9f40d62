from __future__ import annotations

import asyncio
import subprocess
import time

from collection_runner.config.settings import settings
from collection_runner.core.errors import ReportGenerationError
from collection_runner.core.logger import get_logger
from collection_runner.core.workspace import RunWorkspace

logger = get_logger(__name__)

REPORT_ENTRY_PATH = "/allure-report/index.html"


class ReportPublisher:
    """Regenerates the allure report from the results directory.

    The report directory is rebuilt from scratch each time (``--clean``).
    """

    def __init__(self, command: list[str] | None = None, base_url: str | None = None, timeout: float | None = None):
        self.command = list(command or settings.allure_command)
        self.base_url = (base_url or settings.public_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.report_timeout

    def report_url(self) -> str:
        return f"{self.base_url}{REPORT_ENTRY_PATH}"

    def build_command(self, workspace: RunWorkspace) -> list[str]:
        return [*self.command, "generate", str(workspace.results_dir), "--clean", "-o", str(workspace.report_dir)]

    def _execute(self, command: list[str]) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(command, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as exc:
            raise ReportGenerationError(f"Report generator not found: {command[0]}") from exc
        except OSError as exc:
            raise ReportGenerationError(f"Report generator could not be started: {exc}") from exc
        except subprocess.TimeoutExpired as exc:
            raise ReportGenerationError(f"Report generation timed out after {self.timeout}s") from exc

    async def publish(self, workspace: RunWorkspace) -> str:
        command = self.build_command(workspace)
        logger.info("report.generate.start", command=command)
        start = time.time()
        result = await asyncio.to_thread(self._execute, command)
        if result.returncode != 0:
            logger.error(
                "report.generate.failed",
                returncode=result.returncode,
                stderr_tail=result.stderr[-2000:],
            )
            raise ReportGenerationError(f"Report generator exited with code {result.returncode}")
        url = self.report_url()
        logger.info("report.generate.end", report_url=url, duration_sec=round(time.time() - start, 3))
        return url
