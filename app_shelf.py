# app_shelf.py
# Desktop catalog launcher: pinned/unpinned tile sections fed by a JSON catalog.
# Windows/Mac/Linux.  Requires: Python 3.10+  pip install PySide6
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import sys
from functools import partial
from pathlib import Path
from typing import Callable, Collection, Optional, Sequence

from PySide6.QtCore import QSize, Qt
from PySide6.QtGui import QAction, QActionGroup, QColor, QFont, QIcon, QPainter, QPixmap
from PySide6.QtWidgets import (
    QApplication,
    QFrame,
    QGridLayout,
    QHBoxLayout,
    QInputDialog,
    QLineEdit,
    QMainWindow,
    QMenu,
    QMessageBox,
    QScrollArea,
    QToolBar,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

import debug_scaffold
from catalog_source import fetch_catalog, fetch_image
from custom_entry_dialog import CustomEntryDialog
from debug_scaffold import record_breadcrumb
from filters import apply_category_filter, apply_text_filter
from launch_dispatcher import BrowserNavigator, LaunchDispatcher
from list_builder import ListBuilder, PlacedEntry
from shelf_config import (
    APP_NAME,
    ICON_DIR,
    STORAGE_PATH,
    Mode,
    Page,
    ShelfConfig,
    resolve_context,
)
from shelf_models import ShelfContext, use_user_collation
from shelf_storage import KeyValueStore, SessionStore

logger = logging.getLogger(__name__)

TILE_SIZE = QSize(150, 140)
STATUS_COLORS = {"red": "#D13438", "yellow": "#C19C00"}


def letter_icon(text: str, size: int = 92, bg: str = "#F5F6FA") -> QIcon:
    """Generate a round icon with the first letter of the name."""
    stripped = (text or "?").removeprefix("[Custom]").strip() or "?"
    ch = stripped[0].upper()
    pix = QPixmap(size, size)
    pix.fill(Qt.GlobalColor.transparent)
    p = QPainter(pix)
    p.setRenderHint(QPainter.RenderHint.Antialiasing, True)
    p.setBrush(QColor(bg))
    p.setPen(QColor("#D6D8E1"))
    p.drawEllipse(1, 1, size - 2, size - 2)
    font = QFont()
    font.setBold(True)
    font.setPointSize(int(size * 0.45))
    p.setFont(font)
    p.setPen(QColor("#222"))
    p.drawText(pix.rect(), Qt.AlignmentFlag.AlignCenter, ch)
    p.end()
    return QIcon(pix)


class EntryTile(QFrame):
    """One rendered entry: a launch button and, when pinnable, a pin toggle."""

    def __init__(
        self,
        placed: PlacedEntry,
        icon: QIcon,
        on_launch: Callable[[], object],
        on_pin: Optional[Callable[[], object]],
    ) -> None:
        super().__init__()
        self.placed = placed
        self.label = placed.entry.name
        self.categories = placed.entry.categories
        self.filtered_out = False
        self._on_launch = on_launch
        self._on_pin = on_pin

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        top = QHBoxLayout()
        top.addStretch(1)
        self.pin_button: QToolButton | None = None
        if on_pin is not None:
            self.pin_button = QToolButton()
            self.pin_button.setText("📌")
            self.pin_button.setAutoRaise(True)
            self.pin_button.setToolTip("Unpin" if placed.pinned else "Pin")
            self.pin_button.clicked.connect(lambda _=False: on_pin())
            top.addWidget(self.pin_button)
        layout.addLayout(top)

        self.button = QToolButton()
        self.button.setText(placed.entry.name)
        self.button.setToolButtonStyle(Qt.ToolButtonStyle.ToolButtonTextUnderIcon)
        self.button.setIcon(icon)
        self.button.setIconSize(QSize(72, 72))
        self.button.setFixedSize(TILE_SIZE)
        self.button.setCursor(Qt.CursorShape.PointingHandCursor)
        if placed.entry.say:
            self.button.setToolTip(placed.entry.say)
        self.button.clicked.connect(lambda _=False: on_launch())
        self._apply_style()
        layout.addWidget(self.button)

    def _apply_style(self) -> None:
        color = STATUS_COLORS.get(self.placed.status.color, "#222") if self.placed.status else "#222"
        border = "#C7CAD8" if self.placed.pinned else "#E3E5EE"
        self.button.setStyleSheet(f"""
        QToolButton {{
            background: #F5F6FA;
            color: {color};
            border: 1px solid {border};
            border-radius: 12px;
            padding-top: 10px;
        }}
        QToolButton:hover {{
            border-color: #C7CAD8;
        }}
        """)

    def setVisible(self, visible: bool) -> None:  # noqa: N802
        self.filtered_out = not visible
        super().setVisible(visible)

    def contextMenuEvent(self, event):  # noqa: N802
        m = QMenu(self)
        m.addAction("Open", lambda: self._on_launch())
        if self._on_pin is not None:
            m.addAction("Unpin" if self.placed.pinned else "Pin", lambda: self._on_pin())
        m.exec(event.globalPos())


class _Section(QWidget):
    def __init__(self, columns: int) -> None:
        super().__init__()
        self.columns = max(1, columns)
        self.nodes: list[EntryTile] = []
        self.grid = QGridLayout(self)
        self.grid.setSpacing(12)
        self.grid.setContentsMargins(16, 8, 16, 8)
        self.grid.setAlignment(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop)

    def clear(self) -> None:
        for node in self.nodes:
            self.grid.removeWidget(node)
            node.hide()
            node.deleteLater()
        self.nodes.clear()

    def add(self, node: EntryTile, front: bool = False) -> None:
        node.setParent(self)
        if front:
            self.nodes.insert(0, node)
        else:
            self.nodes.append(node)

    def relayout(self) -> None:
        for node in self.nodes:
            self.grid.removeWidget(node)
        r = c = 0
        for node in self.nodes:
            if node.filtered_out:
                continue
            self.grid.addWidget(node, r, c)
            node.show()
            c += 1
            if c >= self.columns:
                c = 0
                r += 1
        self.setVisible(any(not n.filtered_out for n in self.nodes))


class QtRenderTarget:
    """Pinned and unpinned tile sections stacked in one scrollable root."""

    def __init__(self, columns: int, icon_for: Callable[[PlacedEntry, ShelfContext], QIcon]) -> None:
        self.icon_for = icon_for
        self.root = QWidget()
        self.layout = QVBoxLayout(self.root)
        self.layout.setContentsMargins(0, 0, 0, 0)
        self.pinned = _Section(columns)
        self.unpinned = _Section(columns)
        self.layout.addWidget(self.unpinned)
        self.layout.addStretch(1)

    def clear(self) -> None:
        self.pinned.clear()
        self.unpinned.clear()

    def make_node(
        self,
        placed: PlacedEntry,
        ctx: ShelfContext,
        on_launch: Callable[[], object],
        on_pin: Optional[Callable[[], object]],
    ) -> EntryTile:
        return EntryTile(placed, self.icon_for(placed, ctx), on_launch, on_pin)

    def place(self, node: EntryTile, pinned: bool) -> None:
        (self.pinned if pinned else self.unpinned).add(node)

    def prepend(self, node: EntryTile) -> None:
        self.unpinned.add(node, front=True)
        self.unpinned.relayout()

    def attach(self) -> None:
        self.layout.removeWidget(self.pinned)
        self.layout.insertWidget(0, self.pinned)
        self.relayout()

    def relayout(self) -> None:
        self.pinned.relayout()
        self.unpinned.relayout()

    def nodes(self) -> list[EntryTile]:
        return self.pinned.nodes + self.unpinned.nodes


class QtPrompter:
    """Modal dialogs; a dismissed dialog answers ``None``."""

    def __init__(self, parent: QWidget, namespace: Callable[[], str]) -> None:
        self.parent = parent
        self.namespace = namespace

    def advise(self, message: str) -> None:
        QMessageBox.information(self.parent, APP_NAME, message)

    def choose_link(self, options: Sequence[str]) -> Optional[str]:
        text, ok = QInputDialog.getText(
            self.parent,
            "Select link",
            "Select a link by entering the corresponding number:\n" + "\n".join(options),
        )
        return text if ok else None

    def ask_custom_entry(self) -> Optional[tuple[str, str]]:
        dlg = CustomEntryDialog(self.namespace(), self.parent)
        if dlg.exec() == CustomEntryDialog.DialogCode.Accepted and dlg.data:
            return dlg.data
        return None


class Main(QMainWindow):
    def __init__(self) -> None:
        super().__init__()
        self.cfg = ShelfConfig.load()
        self.ctx = resolve_context(self.cfg)
        self.store = KeyValueStore(STORAGE_PATH)
        self.session = SessionStore()

        self.prompter = QtPrompter(self, lambda: self.ctx.namespace.tag)
        self.navigator = BrowserNavigator(self.cfg.go_route, self.cfg.now_route, self.cfg.dy_route)
        self.dispatcher = LaunchDispatcher(self.navigator, self.prompter, self.store, self.session)
        self.render_target = QtRenderTarget(self.cfg.columns, self._icon_for)
        self.builder: ListBuilder[EntryTile] = ListBuilder(
            fetch=partial(fetch_catalog, timeout=self.cfg.fetch_timeout),
            store=self.store,
            target=self.render_target,
            launch=self.dispatcher.launch,
            on_built=self._after_build,
        )
        self.dispatcher.on_custom_added = self.builder.render_custom
        # "text", "category" or None; the filters do not compose
        self._active_filter: Optional[str] = None

        self.setWindowTitle(self.cfg.title)
        self.setMinimumSize(360, 240)
        self.resize(1040, 680)

        self.toolbar = QToolBar()
        self.toolbar.setMovable(False)
        self.addToolBar(Qt.ToolBarArea.TopToolBarArea, self.toolbar)

        self._mode_group = QActionGroup(self)
        self._mode_actions: dict[str, QAction] = {}
        for label, value in [("Apps", "apps"), ("Tools", "tools")]:
            act = QAction(label, self)
            act.setCheckable(True)
            act.triggered.connect(lambda _=False, v=value: self.set_mode(v))
            self._mode_group.addAction(act)
            self.toolbar.addAction(act)
            self._mode_actions[value] = act
        self.toolbar.addSeparator()

        self.category_button = QToolButton()
        self.category_button.setText("Categories")
        self.category_button.setPopupMode(QToolButton.ToolButtonPopupMode.InstantPopup)
        self.category_menu = QMenu(self)
        self.category_button.setMenu(self.category_menu)
        self.toolbar.addWidget(self.category_button)
        self._category_actions: dict[str, QAction] = {}

        self.search = QLineEdit()
        self.search.setPlaceholderText("Search…")
        self.search.setClearButtonEnabled(True)
        self.search.setMaximumWidth(260)
        self.search.textChanged.connect(self.search_changed)
        self.toolbar.addWidget(self.search)
        self.toolbar.addSeparator()

        refresh = QAction("⟳ Refresh", self)
        refresh.triggered.connect(self.rebuild)
        self.toolbar.addAction(refresh)
        self.add_custom_action = QAction("➕ Custom App", self)
        self.add_custom_action.triggered.connect(self.add_custom_entry)
        self.toolbar.addAction(self.add_custom_action)

        page_menu = self.menuBar().addMenu("Page")
        self._page_group = QActionGroup(self)
        self._page_actions: dict[str, QAction] = {}
        for label, value in [("Apps && Tools", "apps"), ("Games", "games")]:
            act = QAction(label, self)
            act.setCheckable(True)
            act.triggered.connect(lambda _=False, v=value: self.set_page(v))
            self._page_group.addAction(act)
            page_menu.addAction(act)
            self._page_actions[value] = act

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(self.render_target.root)
        self.setCentralWidget(scroll)

        self._sync_controls()
        self.rebuild()

    # -------- view state --------
    def _sync_controls(self) -> None:
        on_apps_page = self.cfg.page == "apps"
        for value, act in self._mode_actions.items():
            act.setVisible(on_apps_page)
            act.setChecked(value == self.cfg.mode)
        for value, act in self._page_actions.items():
            act.setChecked(value == self.cfg.page)
        self.add_custom_action.setEnabled(self.ctx.custom_entries)

    def _switch_context(self) -> bool:
        """Rebuild for the page/mode now in ``cfg``; restores ``ctx`` on failure."""
        previous = self.ctx
        self.ctx = resolve_context(self.cfg)
        if not self.rebuild():
            self.ctx = previous
            record_breadcrumb("namespace_switch_failed", namespace=previous.namespace.tag)
            return False
        self.cfg.save()
        record_breadcrumb("namespace_switch", namespace=self.ctx.namespace.tag)
        return True

    def set_mode(self, mode: Mode) -> None:
        if mode == self.cfg.mode:
            return
        previous = self.cfg.mode
        self.cfg.mode = mode
        if not self._switch_context():
            self.cfg.mode = previous
        self._sync_controls()

    def set_page(self, page: Page) -> None:
        if page == self.cfg.page:
            return
        previous = self.cfg.page
        self.cfg.page = page
        if not self._switch_context():
            self.cfg.page = previous
        self._sync_controls()

    def rebuild(self) -> bool:
        if self.builder.build(self.ctx):
            return True
        self.statusBar().showMessage(f"Could not load {self.ctx.namespace.tag} catalog")
        return False

    def _after_build(self, ctx: ShelfContext) -> None:
        self._populate_categories(self.selected_categories())
        if self._active_filter == "text":
            self.search_changed(self.search.text())
        elif self._active_filter == "category":
            self.categories_changed()
        else:
            self.statusBar().showMessage(f"{len(self.render_target.nodes())} entries")

    def _populate_categories(self, keep: Collection[str] = ()) -> None:
        self.category_menu.clear()
        self._category_actions.clear()
        all_act = self.category_menu.addAction("All")
        all_act.triggered.connect(self.clear_categories)
        self.category_menu.addSeparator()

        options = list(self.ctx.namespace.categories)
        if not options and self.builder.last_plan is not None:
            seen: dict[str, None] = {}
            for placed in self.builder.last_plan.indexed:
                for cat in placed.entry.categories:
                    seen.setdefault(cat, None)
            options = [(c, c) for c in seen]
        for value, label in options:
            act = self.category_menu.addAction(label)
            act.setCheckable(True)
            act.setChecked(value in keep)
            act.toggled.connect(lambda _=False: self.categories_changed())
            self._category_actions[value] = act

    def selected_categories(self) -> set[str]:
        return {v for v, act in self._category_actions.items() if act.isChecked()}

    # -------- filters --------
    def categories_changed(self) -> None:
        self._active_filter = "category"
        shown = apply_category_filter(self.render_target.nodes(), self.selected_categories())
        self.render_target.relayout()
        self.statusBar().showMessage(f"{shown} entries")

    def clear_categories(self) -> None:
        for act in self._category_actions.values():
            act.blockSignals(True)
            act.setChecked(False)
            act.blockSignals(False)
        self.categories_changed()

    def search_changed(self, text: str) -> None:
        self._active_filter = "text"
        shown = apply_text_filter(self.render_target.nodes(), text)
        self.render_target.relayout()
        self.statusBar().showMessage(f"{shown} entries")

    # -------- actions --------
    def add_custom_entry(self) -> None:
        self.dispatcher.create_custom_entry(self.ctx)

    def _icon_for(self, placed: PlacedEntry, ctx: ShelfContext) -> QIcon:
        image = placed.entry.image
        if self.cfg.fetch_images and image:
            path: Optional[Path] = fetch_image(ctx.resolve(image), ICON_DIR)
            if path is not None:
                icon = QIcon(str(path))
                if not icon.isNull():
                    return icon
        return letter_icon(placed.entry.name)


def main() -> int:
    app = QApplication(sys.argv)
    debug_scaffold.install_debug_scaffold(app, app_name=APP_NAME)
    use_user_collation()
    mw = Main()
    mw.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
