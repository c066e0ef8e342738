import logging
import re
from pathlib import Path
from typing import Callable

from reddidna.client import PersonaServiceClient
from reddidna.errors import ReddidnaError
from reddidna.models import PersonaReport

_log = logging.getLogger(__name__)

EXPORT_FAILED = "Could not download the report."
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def export_filename(identity: str, ext: str = "txt") -> str:
    # Reddit handles only use [A-Za-z0-9_-]; anything else must not reach the path.
    safe = _UNSAFE_CHARS.sub("_", identity)
    return f"{safe}_persona_report.{ext}"


class ReportExporter:
    """Fetches the rendered report from the service and saves it to disk.

    Failures go to ``notify`` and return None; the report and any acquisition
    state are never touched, so an export can simply be attempted again.
    """

    def __init__(self, client: PersonaServiceClient, notify: Callable[[str], None]) -> None:
        self._client = client
        self._notify = notify

    async def export(self, identity: str, report: PersonaReport, directory: Path) -> Path | None:
        try:
            payload = await self._client.download_report(report)
        except ReddidnaError as exc:
            _log.warning("report export for %s failed: %s", identity, exc)
            self._notify(EXPORT_FAILED)
            return None

        directory = Path(directory)
        target = directory / export_filename(identity)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            target.write_bytes(payload)
        except OSError as exc:
            _log.warning("could not write %s: %s", target, exc)
            self._notify(EXPORT_FAILED)
            return None
        _log.info("saved report for %s to %s", identity, target)
        return target
