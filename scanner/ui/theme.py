class Colors:
    """Palette for the scanner window."""

    BG_WHITE = "#ffffff"
    FG_BLACK = "#111111"
    BORDER_LIGHT = "#d6d6d6"
    BORDER_MEDIUM = "#cdcdcd"
    HOVER_BG = "#f7f7f7"
    PRESSED_BG = "#eeeeee"

    BG_DARK = "#332f2a"
    FG_LIGHT = "#c8c1b7"
    BORDER_DARK = "#595148"

    SELECT_BG = "#6f7f94"
    SELECT_BORDER = "#7f8fa3"

    OK_FG = "#2e6b3a"
    ERROR_FG = "#a33a2f"


class Styles:
    """Stylesheet templates shared by the scanner widgets."""

    @staticmethod
    def button():
        return f"""
            QPushButton {{
                background-color: {Colors.BG_WHITE};
                color: {Colors.FG_BLACK};
                border: 1px solid {Colors.BORDER_LIGHT};
                border-radius: 6px;
                padding: 8px 12px;
                outline: none;
            }}
            QPushButton:hover {{
                background-color: {Colors.HOVER_BG};
                border-color: {Colors.BORDER_MEDIUM};
            }}
            QPushButton:pressed {{
                background-color: {Colors.PRESSED_BG};
            }}
            QPushButton:disabled {{
                color: #9a9a9a;
            }}
        """

    @staticmethod
    def combo_box():
        return f"""
            QComboBox {{ background-color: {Colors.BG_WHITE}; color: {Colors.FG_BLACK}; border: 1px solid {Colors.BORDER_LIGHT}; border-radius: 6px; padding: 6px 10px; }}
            QComboBox:focus {{ border: 2px solid {Colors.SELECT_BORDER}; }}
            QComboBox QAbstractItemView {{ background-color: {Colors.BG_WHITE}; color: {Colors.FG_BLACK}; selection-background-color: {Colors.SELECT_BG}; selection-color: #ffffff; }}
        """

    @staticmethod
    def preview_label(object_name):
        return f"""
            QLabel#{object_name} {{
                border: 2px solid {Colors.BORDER_DARK};
                background-color: {Colors.BG_DARK};
                color: {Colors.FG_LIGHT};
                border-radius: 8px;
                padding: 8px;
            }}
        """

    @staticmethod
    def info_label(color=Colors.FG_BLACK):
        return f"""
            QLabel {{
                color: {color};
                background-color: transparent;
                padding: 4px;
                font-size: 13px;
            }}
        """

    @staticmethod
    def result_label():
        return f"""
            QLabel {{
                color: {Colors.FG_BLACK};
                background-color: {Colors.HOVER_BG};
                border: 1px solid {Colors.BORDER_LIGHT};
                border-radius: 6px;
                padding: 10px;
                font-size: 16px;
                font-weight: bold;
            }}
        """

    @staticmethod
    def history_list():
        return f"""
            QListWidget {{
                background-color: {Colors.BG_WHITE};
                color: {Colors.FG_BLACK};
                border: 1px solid {Colors.BORDER_LIGHT};
                border-radius: 8px;
                font-family: monospace;
            }}
            QListWidget::item:selected {{
                background-color: {Colors.SELECT_BG};
                color: #ffffff;
            }}
        """
