"""User interface components and event handling."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any

from PySide6.QtCore import (
    QAbstractListModel,
    QModelIndex,
    QPersistentModelIndex,
    Qt,
)
from PySide6.QtGui import QCloseEvent, QColor, QFont, QPalette
from PySide6.QtWidgets import (
    QApplication,
    QComboBox,
    QFileDialog,
    QFormLayout,
    QGraphicsDropShadowEffect,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListView,
    QMessageBox,
    QPushButton,
    QSpinBox,
    QSplitter,
    QTextBrowser,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from timeline.constants import (
    ALL,
    CURRENT_YEAR,
    DEFAULT_QUICK_ADD_DATE,
    START_YEAR,
)
from timeline.exceptions import DecodeError, FormatError
from timeline.models import ImportMode, TimelineEntry, ViewMode
from timeline.normalizer import build_quick_add_media, normalize_media
from timeline.reconcile import suggested_export_filename
from timeline.session import TimelineSession
from timeline.utils import (
    file_to_data_url,
    format_entry_caption,
    render_empty_timeline_html,
    render_entry_detail_html,
)


class TimelineEntryListModel(QAbstractListModel):
    """自定义 List Model，展示当前筛选、排序后的时间线条目。

    只保存对条目的引用，列表内容由 TimelineSession 的计算结果整体替换。
    """

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self._entries: list[TimelineEntry] = []

    def rowCount(
        self, parent: QModelIndex | QPersistentModelIndex = QModelIndex()
    ) -> int:
        """返回模型中的行数。"""
        if parent.isValid():
            return 0
        return len(self._entries)

    def data(
        self,
        index: QModelIndex | QPersistentModelIndex,
        role: int = Qt.ItemDataRole.DisplayRole,
    ) -> Any:
        """返回指定索引和角色的数据。"""
        if not index.isValid() or index.row() >= len(self._entries):
            return None

        entry = self._entries[index.row()]

        if role == Qt.ItemDataRole.DisplayRole:
            return format_entry_caption(entry)
        elif role == Qt.ItemDataRole.ToolTipRole:
            return entry.title
        elif role == Qt.ItemDataRole.UserRole:
            return entry

        return None

    def get_entry(self, index: QModelIndex) -> TimelineEntry | None:
        if not index.isValid() or index.row() >= len(self._entries):
            return None
        return self._entries[index.row()]

    def row_for_id(self, entry_id: str | None) -> int:
        """Row of the entry with ``entry_id``, or -1."""
        for row, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return row
        return -1

    def set_entries(self, entries: list[TimelineEntry]) -> None:
        """设置新的条目列表并通知视图更新。"""
        self.beginResetModel()
        self._entries = list(entries)
        self.endResetModel()


class TimelineWindow(QWidget):
    """Main window: filters and timeline list, detail pane and the entry form."""

    def __init__(self, session: TimelineSession) -> None:
        super().__init__()
        self.setWindowTitle(f"Dynamic Timeline · {START_YEAR}–{CURRENT_YEAR}")
        self.setObjectName("TimelineWindow")
        self._apply_fluent_theme()

        self.session = session
        self._editing_id: str | None = None
        self._image_data: str = ""
        self._syncing_selection = False

        layout = QHBoxLayout()
        layout.setContentsMargins(24, 24, 24, 20)
        layout.setSpacing(18)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.addWidget(self._build_detail_panel())
        splitter.addWidget(self._build_filter_panel())
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 1)
        layout.addWidget(splitter)
        self.setLayout(layout)

        self.refresh_facets()
        self.refresh_view()

    # ---- layout ----
    def _build_detail_panel(self) -> QWidget:
        panel = QWidget()
        panel_layout = QVBoxLayout()
        panel_layout.setSpacing(12)

        toolbar = QHBoxLayout()
        self.count_label = QLabel("0 items")
        toolbar.addWidget(self.count_label)
        toolbar.addStretch()

        self.prev_button = QPushButton("‹ Previous")
        self.prev_button.clicked.connect(self.show_previous)
        self.next_button = QPushButton("Next ›")
        self.next_button.clicked.connect(self.show_next)
        self.edit_button = QPushButton("Edit")
        self.edit_button.clicked.connect(self.begin_edit)
        self.delete_button = QPushButton("Delete")
        self.delete_button.clicked.connect(self.delete_selected)
        for button in (
            self.prev_button,
            self.next_button,
            self.edit_button,
            self.delete_button,
        ):
            toolbar.addWidget(button)
        panel_layout.addLayout(toolbar)

        self.detail_view = QTextBrowser()
        self.detail_view.setObjectName("EntryDetailView")
        self.detail_view.setOpenExternalLinks(True)
        self.detail_view.setReadOnly(True)
        panel_layout.addWidget(self.detail_view, stretch=2)
        self._apply_shadow(self.detail_view, blur_radius=32, y_offset=10)

        panel_layout.addWidget(self._build_entry_form(), stretch=1)

        transfer_row = QHBoxLayout()
        self.import_button = QPushButton("Import JSON…")
        self.import_button.clicked.connect(self.import_timeline)
        self.export_button = QPushButton("Export JSON…")
        self.export_button.clicked.connect(self.export_timeline)
        transfer_row.addStretch()
        transfer_row.addWidget(self.import_button)
        transfer_row.addWidget(self.export_button)
        panel_layout.addLayout(transfer_row)

        panel.setLayout(panel_layout)
        return panel

    def _build_entry_form(self) -> QWidget:
        form_widget = QWidget()
        form = QFormLayout()

        self.form_heading = QLabel("Quick add a new entry")
        form.addRow(self.form_heading)

        self.title_input = QLineEdit()
        self.date_input = QLineEdit(DEFAULT_QUICK_ADD_DATE)
        self.date_input.setPlaceholderText("YYYY-MM-DD or YYYY")
        self.place_input = QLineEdit()
        self.event_input = QLineEdit()
        self.person_input = QLineEdit()
        self.person_input.setPlaceholderText("e.g., Juan Perón")
        self.description_input = QTextEdit()
        self.description_input.setFixedHeight(72)
        self.image_url_input = QLineEdit()
        self.image_url_input.setPlaceholderText("https://…")
        self.video_url_input = QLineEdit()
        self.video_url_input.setPlaceholderText("YouTube/Vimeo/MP4")

        form.addRow("Title", self.title_input)
        form.addRow("Date", self.date_input)
        form.addRow("Place", self.place_input)
        form.addRow("Event (category)", self.event_input)
        form.addRow("Person", self.person_input)
        form.addRow("Description", self.description_input)
        form.addRow("Image URL (optional)", self.image_url_input)

        upload_row = QHBoxLayout()
        self.upload_button = QPushButton("Upload image…")
        self.upload_button.setObjectName("secondaryButton")
        self.upload_button.clicked.connect(self.pick_image)
        self.upload_label = QLabel("")
        upload_row.addWidget(self.upload_button)
        upload_row.addWidget(self.upload_label)
        upload_row.addStretch()
        form.addRow("Upload image (optional)", upload_row)
        form.addRow("Video URL (optional)", self.video_url_input)

        buttons = QHBoxLayout()
        buttons.addStretch()
        self.cancel_edit_button = QPushButton("Cancel")
        self.cancel_edit_button.setObjectName("secondaryButton")
        self.cancel_edit_button.clicked.connect(self.reset_form)
        self.cancel_edit_button.hide()
        self.submit_button = QPushButton("Add")
        self.submit_button.clicked.connect(self.submit_entry)
        buttons.addWidget(self.cancel_edit_button)
        buttons.addWidget(self.submit_button)
        form.addRow(buttons)

        form_widget.setLayout(form)
        return form_widget

    def _build_filter_panel(self) -> QWidget:
        panel = QWidget()
        panel_layout = QVBoxLayout()
        panel_layout.setSpacing(10)

        panel_layout.addWidget(QLabel("Filters"))

        self.view_selector = QComboBox()
        for mode in ViewMode:
            self.view_selector.addItem(f"View by {mode.value}")
        self.view_selector.currentIndexChanged.connect(self.on_filters_changed)
        panel_layout.addWidget(self.view_selector)

        self.query_input = QLineEdit()
        self.query_input.setPlaceholderText("Search title, place, event, person…")
        self.query_input.textChanged.connect(self.on_filters_changed)
        panel_layout.addWidget(self.query_input)

        years = QHBoxLayout()
        self.year_from_input = QSpinBox()
        self.year_to_input = QSpinBox()
        for spin, value in (
            (self.year_from_input, START_YEAR),
            (self.year_to_input, CURRENT_YEAR),
        ):
            spin.setRange(START_YEAR, CURRENT_YEAR)
            spin.setValue(value)
            spin.valueChanged.connect(self.on_filters_changed)
        years.addWidget(QLabel("From"))
        years.addWidget(self.year_from_input)
        years.addWidget(QLabel("To"))
        years.addWidget(self.year_to_input)
        panel_layout.addLayout(years)

        self.facet_selectors: dict[str, QComboBox] = {}
        for field, label in (("place", "Place"), ("event", "Event"), ("person", "Person")):
            panel_layout.addWidget(QLabel(label))
            selector = QComboBox()
            selector.currentIndexChanged.connect(self.on_filters_changed)
            panel_layout.addWidget(selector)
            self.facet_selectors[field] = selector

        panel_layout.addWidget(QLabel("Timeline"))
        self.timeline_model = TimelineEntryListModel(self)
        self.timeline_list = QListView()
        self.timeline_list.setObjectName("TimelineListView")
        self.timeline_list.setModel(self.timeline_model)
        self.timeline_list.setSelectionMode(QListView.SelectionMode.SingleSelection)
        self.timeline_list.setVerticalScrollMode(QListView.ScrollMode.ScrollPerPixel)
        self.timeline_list.selectionModel().currentChanged.connect(
            self.on_timeline_selection_changed
        )
        panel_layout.addWidget(self.timeline_list, stretch=1)
        self._apply_shadow(self.timeline_list, blur_radius=26, y_offset=6)

        panel.setLayout(panel_layout)
        return panel

    def _apply_shadow(
        self, target: QWidget, *, blur_radius: int = 24, y_offset: int = 6
    ) -> None:
        """Apply a soft drop shadow to match Fluent cards."""
        if target.graphicsEffect() is not None:
            return
        shadow = QGraphicsDropShadowEffect(target)
        shadow.setBlurRadius(blur_radius)
        shadow.setOffset(0, y_offset)
        shadow.setColor(QColor(0, 0, 0, 45))
        target.setGraphicsEffect(shadow)

    def _apply_fluent_theme(self) -> None:
        """Configure palette and styles to approximate Fluent Design."""
        app = QApplication.instance()
        QApplication.setStyle("Fusion")

        accent_color = QColor(15, 108, 189)
        foreground = QColor(32, 31, 30)
        neutral_window = QColor(243, 242, 241)
        neutral_base = QColor(255, 255, 255)

        palette = QPalette()
        palette.setColor(QPalette.ColorRole.Window, neutral_window)
        palette.setColor(QPalette.ColorRole.Base, neutral_base)
        palette.setColor(QPalette.ColorRole.Text, foreground)
        palette.setColor(QPalette.ColorRole.WindowText, foreground)
        palette.setColor(QPalette.ColorRole.ButtonText, foreground)
        palette.setColor(QPalette.ColorRole.Highlight, accent_color)
        palette.setColor(QPalette.ColorRole.Link, accent_color)

        if app is not None and isinstance(app, QApplication):
            app.setPalette(palette)

        self.setPalette(palette)
        self.setFont(QFont("Segoe UI", 10))

        accent_hex = accent_color.name()
        self.setStyleSheet(
            f"""
            QWidget#TimelineWindow {{
                background-color: {neutral_window.name()};
            }}
            QLineEdit, QTextEdit, QTextBrowser, QComboBox, QSpinBox {{
                background-color: {neutral_base.name()};
                border: 1px solid rgba(32, 31, 30, 40);
                border-radius: 10px;
                padding: 6px 10px;
            }}
            QLineEdit:focus, QTextEdit:focus {{
                border: 2px solid {accent_hex};
            }}
            QListView#TimelineListView {{
                background-color: {neutral_base.name()};
                border: 1px solid rgba(32, 31, 30, 40);
                border-radius: 12px;
                padding: 6px;
            }}
            QListView#TimelineListView::item {{
                margin: 3px;
                border-radius: 8px;
                padding: 6px;
            }}
            QListView#TimelineListView::item:selected {{
                background-color: {foreground.name()};
                color: white;
            }}
            QPushButton {{
                background-color: {accent_hex};
                border: none;
                border-radius: 8px;
                padding: 6px 14px;
                font-weight: 600;
                color: white;
            }}
            QPushButton:hover {{
                background-color: #115ea3;
            }}
            QPushButton#secondaryButton {{
                background-color: transparent;
                color: {accent_hex};
                border: 1px solid {accent_hex};
            }}
        """
        )

    def is_dark_theme(self) -> bool:
        palette = self.detail_view.palette()
        return palette.color(QPalette.ColorRole.Base).lightnessF() < 0.5

    # ---- view refresh ----
    def refresh_facets(self) -> None:
        """Rebuild the facet menus, keeping the current choice when it still exists."""
        facets = self.session.facets()
        vanished: dict[str, str] = {}
        for field, selector in self.facet_selectors.items():
            current = getattr(self.session.criteria, field)
            values = facets[field]
            selector.blockSignals(True)
            selector.clear()
            for value in values:
                selector.addItem(value)
            position = 0
            if current is not ALL:
                if current in values[1:]:
                    position = values.index(current, 1)
                else:
                    vanished[field] = ALL
            selector.setCurrentIndex(position)
            selector.blockSignals(False)
        if vanished:
            self.session.criteria = dataclasses.replace(self.session.criteria, **vanished)

    def refresh_view(self) -> None:
        """Push the session's visible entries and selection into the widgets."""
        self.session.refresh()
        visible = self.session.visible_entries
        self.count_label.setText(f"{len(visible)} items")

        self._syncing_selection = True
        try:
            self.timeline_model.set_entries(visible)
            row = self.timeline_model.row_for_id(self.session.cursor.selected_id)
            if row >= 0:
                self.timeline_list.setCurrentIndex(self.timeline_model.index(row, 0))
        finally:
            self._syncing_selection = False

        self.show_selected()

    def show_selected(self) -> None:
        entry = self.session.selected
        has_entry = entry is not None
        for button in (
            self.prev_button,
            self.next_button,
            self.edit_button,
            self.delete_button,
        ):
            button.setEnabled(has_entry)

        if entry is None:
            self.detail_view.setHtml(render_empty_timeline_html(self.is_dark_theme()))
            return
        self.detail_view.setHtml(render_entry_detail_html(entry, self.is_dark_theme()))

    # ---- slots ----
    def on_filters_changed(self, *_: object) -> None:
        # row 0 of every facet menu is the "All" sentinel
        changes: dict[str, Any] = {
            "query_text": self.query_input.text(),
            "year_from": self.year_from_input.value(),
            "year_to": self.year_to_input.value(),
            "view_mode": list(ViewMode)[max(self.view_selector.currentIndex(), 0)],
        }
        for field, selector in self.facet_selectors.items():
            row = selector.currentIndex()
            if row < 0:
                continue
            changes[field] = ALL if row == 0 else selector.itemText(row)
        self.session.criteria = dataclasses.replace(self.session.criteria, **changes)
        self.refresh_view()

    def on_timeline_selection_changed(
        self, current: QModelIndex, previous: QModelIndex
    ) -> None:
        if self._syncing_selection:
            return
        entry = self.timeline_model.get_entry(current)
        if entry is None:
            return
        self.session.select(entry.id)
        self.show_selected()

    def show_previous(self) -> None:
        self.session.select_previous()
        self.refresh_view()

    def show_next(self) -> None:
        self.session.select_next()
        self.refresh_view()

    def pick_image(self) -> None:
        path_str, _ = QFileDialog.getOpenFileName(
            self, "Upload image", str(Path.home()), "Images (*.png *.jpg *.jpeg *.gif *.webp)"
        )
        if not path_str:
            return
        try:
            self._image_data = file_to_data_url(Path(path_str))
        except OSError as exc:
            logging.exception("Failed to read image %s", path_str)
            QMessageBox.critical(self, "Upload Failed", f"Could not read image: {exc}")
            return
        self.upload_label.setText("✓ Image attached")

    def submit_entry(self) -> None:
        """Add a new entry, or save the one being edited."""
        values = {
            "title": self.title_input.text().strip(),
            "date": self.date_input.text().strip(),
            "place": self.place_input.text().strip(),
            "event": self.event_input.text().strip(),
            "person": self.person_input.text().strip(),
            "description": self.description_input.toPlainText(),
        }
        missing = [name for name in ("title", "date", "place", "event") if not values[name]]
        if missing:
            QMessageBox.warning(
                self,
                "Missing Fields",
                "Please fill in: " + ", ".join(name.capitalize() for name in missing),
            )
            return

        media = build_quick_add_media(
            image_url=self.image_url_input.text().strip(),
            image_data=self._image_data,
            video_url=self.video_url_input.text().strip(),
        )

        if self._editing_id is not None:
            # media given in the form replaces the stored media of the same type
            original = self.session.store.get_by_id(self._editing_id)
            new_types = {item.type for item in media}
            kept_media = [
                item
                for item in (original.media if original is not None else [])
                if item.type not in new_types
            ]
            entry = TimelineEntry(
                id=self._editing_id,
                media=normalize_media([*kept_media, *media]),
                **values,
            )
            self.session.update_entry(entry)
            self.session.select(entry.id)
        else:
            try:
                self.session.add_entry(media=media, **values)
            except ValueError as exc:
                QMessageBox.warning(self, "Could Not Add", str(exc))
                return

        self.reset_form()
        self.refresh_facets()
        self.refresh_view()

    def begin_edit(self) -> None:
        entry = self.session.selected
        if entry is None:
            return
        self._editing_id = entry.id
        self.form_heading.setText(f"Edit “{entry.title}”")
        self.title_input.setText(entry.title)
        self.date_input.setText(entry.date)
        self.place_input.setText(entry.place)
        self.event_input.setText(entry.event)
        self.person_input.setText(entry.person)
        self.description_input.setPlainText(entry.description)
        self.image_url_input.clear()
        self.video_url_input.clear()
        self.submit_button.setText("Save")
        self.cancel_edit_button.show()

    def reset_form(self) -> None:
        self._editing_id = None
        self._image_data = ""
        self.form_heading.setText("Quick add a new entry")
        for line_edit in (
            self.title_input,
            self.place_input,
            self.event_input,
            self.person_input,
            self.image_url_input,
            self.video_url_input,
        ):
            line_edit.clear()
        self.date_input.setText(DEFAULT_QUICK_ADD_DATE)
        self.description_input.clear()
        self.upload_label.setText("")
        self.submit_button.setText("Add")
        self.cancel_edit_button.hide()

    def delete_selected(self) -> None:
        entry = self.session.selected
        if entry is None:
            return
        answer = QMessageBox.question(
            self,
            "Delete Entry",
            f"Delete “{entry.title}”? This cannot be undone.",
        )
        if answer != QMessageBox.StandardButton.Yes:
            return
        self.session.delete_entry(entry.id)
        if self._editing_id == entry.id:
            self.reset_form()
        self.refresh_facets()
        self.refresh_view()

    def _ask_import_mode(self) -> ImportMode | None:
        box = QMessageBox(self)
        box.setWindowTitle("Import Timeline")
        box.setText(
            "Merge keeps existing entries and overwrites those with the same id.\n"
            "Replace discards every current entry."
        )
        merge_button = box.addButton("Merge", QMessageBox.ButtonRole.AcceptRole)
        replace_button = box.addButton(
            "Replace", QMessageBox.ButtonRole.DestructiveRole
        )
        box.addButton(QMessageBox.StandardButton.Cancel)
        box.exec()
        clicked = box.clickedButton()
        if clicked is merge_button:
            return ImportMode.MERGE
        if clicked is replace_button:
            return ImportMode.REPLACE
        return None

    def import_timeline(self) -> None:
        """Import a JSON document after asking for merge or replace."""
        path_str, _ = QFileDialog.getOpenFileName(
            self, "Import Timeline", str(Path.home()), "JSON Files (*.json);;All Files (*)"
        )
        if not path_str:
            return
        mode = self._ask_import_mode()
        if mode is None:
            return

        try:
            processed = self.session.import_from(Path(path_str), mode)
        except (DecodeError, FormatError) as exc:
            logging.warning("Rejected import document %s: %s", path_str, exc)
            QMessageBox.critical(self, "Import Failed", f"Could not import: {exc}")
            return
        except OSError as exc:
            QMessageBox.critical(self, "Import Failed", f"Could not read file: {exc}")
            return

        self.refresh_facets()
        self.refresh_view()
        QMessageBox.information(
            self, "Import Complete", f"Imported {processed} entries ({mode.value})."
        )

    def export_timeline(self) -> None:
        """Export timeline entries to a JSON file."""
        default_path = str(Path.home() / suggested_export_filename())

        target_path_str, _ = QFileDialog.getSaveFileName(
            self,
            "Export Timeline to JSON",
            default_path,
            "JSON Files (*.json);;All Files (*)",
        )

        if not target_path_str:
            return

        target_path = Path(target_path_str)

        try:
            exported = self.session.export_to(target_path)
        except OSError as exc:
            QMessageBox.critical(
                self, "Export Failed", f"Could not export timeline: {exc}"
            )
            return

        QMessageBox.information(
            self,
            "Export Complete",
            f"Exported {exported} entries to {target_path.resolve()}",
        )

    def closeEvent(self, event: QCloseEvent) -> None:
        self.session.store.save()
        super().closeEvent(event)
