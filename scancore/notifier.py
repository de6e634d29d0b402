import logging
import time

from plyer import notification

_last_alert = 0


def alert(message, title="Code Scanner", cooldown=5):
    """Show a desktop notification for a scan, rate limited to one per cooldown."""
    global _last_alert
    now = time.time()

    if now - _last_alert < cooldown:
        return

    _last_alert = now

    try:
        notification.notify(
            title=title,
            message=message,
            app_name="Code Scanner",
            timeout=3
        )
    except Exception:
        logging.error("Notification backend failure", exc_info=True)
