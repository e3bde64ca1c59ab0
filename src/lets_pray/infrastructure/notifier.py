"""Desktop notification adapters."""

import asyncio
import logging
import shutil

from lets_pray.domain.errors import PermissionDeniedError
from lets_pray.services.ports import NotifierPort

logger = logging.getLogger(__name__)

APP_NAME = "Lets Pray"


class NotifySendNotifier(NotifierPort):
    """Notifications through `notify-send` (libnotify)."""

    def __init__(self, urgency: str = "critical", timeout: float = 5.0) -> None:
        self._urgency = urgency
        self._timeout = timeout

    async def notify(self, title: str, body: str) -> None:
        """Show a notification."""
        proc = await asyncio.create_subprocess_exec(
            "notify-send",
            "-a",
            APP_NAME,
            "-u",
            self._urgency,
            "-i",
            "appointment-soon",
            title,
            body,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            raise PermissionDeniedError("notify-send did not answer") from None

        if proc.returncode != 0:
            error_msg = stderr.decode().strip() if stderr else ""
            raise PermissionDeniedError(f"notify-send failed ({proc.returncode}): {error_msg}")


class LoggingNotifier(NotifierPort):
    """Fallback that only writes the notification to the log."""

    async def notify(self, title: str, body: str) -> None:
        logger.info(f"[notification] {title}: {body}")


def get_best_notifier() -> NotifierPort:
    """Return the best notifier available on this system."""
    if shutil.which("notify-send") is not None:
        logger.info("Notifier selected: notify-send")
        return NotifySendNotifier()
    logger.info("notify-send not found, notifications go to the log.")
    return LoggingNotifier()
