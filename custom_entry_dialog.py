# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QVBoxLayout,
    QWidget,
)

from launch_dispatcher import normalize_link


class CustomEntryDialog(QDialog):
    """Ask for the title and link of a user-registered app."""

    def __init__(self, namespace: str = "", parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Add Custom App")
        self.data: tuple[str, str] | None = None

        layout = QVBoxLayout(self)
        if namespace:
            layout.addWidget(QLabel(f"The app is saved to your {namespace} list."))
        form = QFormLayout()
        layout.addLayout(form)

        self.title_edit = QLineEdit()
        self.title_edit.setPlaceholderText("Title")
        form.addRow("Title:", self.title_edit)

        self.link_edit = QLineEdit()
        self.link_edit.setPlaceholderText("https://")
        form.addRow("Link:", self.link_edit)

        self.button_box = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        layout.addWidget(self.button_box)
        self.button_box.accepted.connect(self.accept)
        self.button_box.rejected.connect(self.reject)

        self._update_ok()
        self.title_edit.textChanged.connect(self._update_ok)
        self.link_edit.textChanged.connect(self._update_ok)

    def _update_ok(self) -> None:
        ok_btn = self.button_box.button(QDialogButtonBox.StandardButton.Ok)
        ok_btn.setEnabled(
            bool(self.title_edit.text().strip()) and bool(self.link_edit.text().strip())
        )

    def accept(self) -> None:  # noqa: D401
        self.data = (
            self.title_edit.text().strip(),
            normalize_link(self.link_edit.text()),
        )
        super().accept()
