"""Qt stylesheets generated from the color palette."""

from .color_palette import ColorPalette, Theme


class Styles:
    """Builds stylesheets for the current theme."""

    @staticmethod
    def get_main_window_style(theme: Theme = Theme.DARK) -> str:
        return f"""
            QMainWindow, QWidget {{
                background-color: {ColorPalette.SURFACE.get(theme)};
                color: {ColorPalette.TEXT_PRIMARY.get(theme)};
                font-family: 'Inter', 'Segoe UI', sans-serif;
                font-size: 14px;
            }}
            QPushButton {{
                background-color: {ColorPalette.BUTTON_BG.get(theme)};
                color: {ColorPalette.TEXT_PRIMARY.get(theme)};
                border: 1px solid {ColorPalette.BORDER.get(theme)};
                border-radius: 6px;
                padding: 6px 12px;
            }}
            QPushButton:hover {{
                background-color: {ColorPalette.BUTTON_HOVER_BG.get(theme)};
            }}
            QPushButton:disabled {{
                color: {ColorPalette.TEXT_MUTED.get(theme)};
            }}
            QListWidget, QSpinBox, QComboBox {{
                background-color: {ColorPalette.SURFACE_RAISED.get(theme)};
                border: 1px solid {ColorPalette.BORDER.get(theme)};
                border-radius: 6px;
                padding: 4px;
            }}
            QTabBar::tab {{
                background-color: {ColorPalette.SURFACE_RAISED.get(theme)};
                padding: 8px 16px;
                border-top-left-radius: 6px;
                border-top-right-radius: 6px;
            }}
            QTabBar::tab:selected {{
                background-color: {ColorPalette.ACCENT.get(theme)};
                color: {ColorPalette.ACCENT_TEXT.get(theme)};
            }}
            QGroupBox {{
                border: 1px solid {ColorPalette.BORDER.get(theme)};
                border-radius: 6px;
                margin-top: 6px;
                padding-top: 10px;
            }}
        """

    @staticmethod
    def get_large_label_style() -> str:
        return "font-size: 16pt; font-weight: bold;"

    @staticmethod
    def get_live_label_style(theme: Theme = Theme.DARK) -> str:
        return f"color: {ColorPalette.LIVE.get(theme)}; font-weight: bold;"

    @staticmethod
    def get_leader_label_style(theme: Theme = Theme.DARK) -> str:
        return f"color: {ColorPalette.GOLD.get(theme)}; font-size: 16pt; font-weight: bold;"
