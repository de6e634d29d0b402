"""In-memory app state with persisted camera selection."""
import logging

from scancore import storage

SELECTED_DEVICE_KEY = "selected_device_id"


class AppState:
    """Global UI state: selected camera, scanning flag, last accepted result."""

    def __init__(self):
        self.selected_device_id = None
        self.scanning_active = False
        self.last_result = None

    def load(self):
        try:
            self.selected_device_id = storage.get_app_state(SELECTED_DEVICE_KEY)
        except Exception:
            logging.warning("Could not restore the selected camera", exc_info=True)
            self.selected_device_id = None
        return self.selected_device_id

    def remember_device(self, device_id):
        self.selected_device_id = device_id
        try:
            storage.set_app_state(SELECTED_DEVICE_KEY, device_id)
        except Exception:
            logging.warning("Could not persist the selected camera", exc_info=True)


app_state = AppState()
