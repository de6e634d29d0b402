from scanner.services.scan_models import HistoryEntry


def format_entry(entry: HistoryEntry) -> str:
    stamp = entry.detected_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")
    return f"#{entry.id}  {entry.text}  [{entry.symbology.value}]  {stamp}"


class HistoryController:
    def __init__(self, scan_controller):
        self.scanner = scan_controller

    def list_entries(self):
        return self.scanner.get_history()

    def list_labels(self):
        return [format_entry(entry) for entry in self.list_entries()]

    def clear(self):
        if not self.scanner.get_history():
            return False, "History is already empty"
        self.scanner.clear_history()
        return True, "History cleared"
