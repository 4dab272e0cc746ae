"""
Main application window.

Orchestrates image loading, crop/placement editing, export settings, and
rendering of the print composite with its quality report.
"""

import logging
from pathlib import Path

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QLabel,
    QFileDialog, QSplitter, QGroupBox, QMessageBox, QStatusBar, QToolBar,
    QComboBox, QSpinBox, QApplication, QScrollArea, QFormLayout,
)
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QPixmap, QImage, QAction, QActionGroup, QKeySequence, QShortcut

from print_crop_tool import asset_store
from print_crop_tool.config import DPI_MAX, DPI_MIN, OUTPUT_FORMATS, IMAGE_EXTENSIONS
from print_crop_tool.crop_widget import AssetLoaderThread, FrameEditor
from print_crop_tool.image_io import save_composite
from print_crop_tool.metadata import format_resolution
from print_crop_tool.models import (
    ImageAsset, SelectionMode, SelectionNotReadyError, UnsupportedImageError,
)
from print_crop_tool.session import EditSession
from print_crop_tool.settings import load_settings, save_settings, target_for

logger = logging.getLogger(__name__)

_PREVIEW_WIDTH = 200


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("8\"×10\" Photo Frame")
        self.setMinimumSize(900, 600)

        # Screen-aware startup size, clamped to 80% of screen
        preferred_w, preferred_h = 1400, 900
        screen = QApplication.primaryScreen()
        if screen is not None:
            avail = screen.availableGeometry()
            preferred_w = min(preferred_w, int(avail.width() * 0.8))
            preferred_h = min(preferred_h, int(avail.height() * 0.8))
        self.resize(preferred_w, preferred_h)

        self._session = EditSession()
        self._settings = load_settings()
        self._output_root: Path | None = None
        self._loader: AssetLoaderThread | None = None

        self._build_ui()
        self._update_button_states()
        self._restore_stored_asset()

    # =========================================================================
    # UI construction
    # =========================================================================

    def _build_ui(self):
        self._build_toolbar()

        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QHBoxLayout(central)
        main_layout.setContentsMargins(4, 4, 4, 4)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        main_layout.addWidget(splitter)

        self._editor = FrameEditor()
        self._editor.selection_changed.connect(self._on_selection_changed)
        self._editor.selection_completed.connect(self._on_selection_completed)
        splitter.addWidget(self._editor)

        splitter.addWidget(self._build_right_panel())
        splitter.setSizes([1000, 280])

        self._status = QStatusBar()
        self.setStatusBar(self._status)
        self._status.showMessage("Open a PNG or JPEG photo to begin.")

        QShortcut(QKeySequence(Qt.Key.Key_C), self, lambda: self._set_mode(SelectionMode.CROP))
        QShortcut(QKeySequence(Qt.Key.Key_P), self, lambda: self._set_mode(SelectionMode.PLACEMENT))
        QShortcut(QKeySequence(Qt.Key.Key_Return), self, self._set_to_frame)

    def _build_toolbar(self):
        toolbar = QToolBar("Main")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        act_open = QAction("📂 Open Photo", self)
        act_open.triggered.connect(self._select_image)
        toolbar.addAction(act_open)

        act_remove = QAction("🗑 Remove Photo", self)
        act_remove.triggered.connect(self._remove_image)
        toolbar.addAction(act_remove)
        self._act_remove = act_remove

        toolbar.addSeparator()

        mode_group = QActionGroup(self)
        mode_group.setExclusive(True)
        self._mode_actions: dict[SelectionMode, QAction] = {}
        for mode, label in ((SelectionMode.CROP, "✂ Crop"), (SelectionMode.PLACEMENT, "🖼 Place in Frame")):
            act = QAction(label, self)
            act.setCheckable(True)
            act.triggered.connect(lambda checked, m=mode: self._set_mode(m))
            mode_group.addAction(act)
            toolbar.addAction(act)
            self._mode_actions[mode] = act
        self._mode_actions[SelectionMode.CROP].setChecked(True)

        toolbar.addSeparator()

        act_frame = QAction("▶ Set to Frame", self)
        act_frame.triggered.connect(self._set_to_frame)
        toolbar.addAction(act_frame)
        self._act_frame = act_frame

        act_download = QAction("💾 Download Print-Quality Image", self)
        act_download.triggered.connect(self._download)
        toolbar.addAction(act_download)
        self._act_download = act_download

    def _build_right_panel(self) -> QWidget:
        inner = QWidget()
        inner_layout = QVBoxLayout(inner)
        inner_layout.setContentsMargins(0, 0, 0, 0)

        inner_layout.addWidget(self._build_source_group())

        self._advisory_label = QLabel("")
        self._advisory_label.setWordWrap(True)
        self._advisory_label.setStyleSheet(
            "background: #5a4a10; color: #ffe9a8; border: 1px solid #8a7420; "
            "border-radius: 4px; padding: 6px;"
        )
        self._advisory_label.setVisible(False)
        inner_layout.addWidget(self._advisory_label)

        self._selection_label = QLabel("Selection: —")
        self._selection_label.setWordWrap(True)
        inner_layout.addWidget(self._selection_label)

        inner_layout.addWidget(self._build_print_group())
        inner_layout.addWidget(self._build_output_group())
        inner_layout.addStretch()

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(inner)
        scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        scroll.setFrameShape(scroll.Shape.NoFrame)

        right_panel = QWidget()
        right_panel.setFixedWidth(280)
        right_layout = QVBoxLayout(right_panel)
        right_layout.setContentsMargins(4, 0, 0, 0)
        right_layout.addWidget(scroll)
        return right_panel

    def _build_source_group(self) -> QGroupBox:
        group = QGroupBox("Image Information")
        form = QFormLayout(group)
        self._source_labels: dict[str, QLabel] = {}
        for key, title in (
            ("name", "Name:"), ("type", "Type:"), ("size", "Size:"),
            ("resolution", "Resolution:"), ("dpi_x", "DPI (X):"),
            ("dpi_y", "DPI (Y):"), ("ppi", "PPI:"), ("tier", "Source quality:"),
        ):
            label = QLabel("—")
            label.setWordWrap(True)
            form.addRow(title, label)
            self._source_labels[key] = label
        return group

    def _build_print_group(self) -> QGroupBox:
        group = QGroupBox("Print Settings")
        layout = QVBoxLayout(group)

        size_row = QHBoxLayout()
        size_row.addWidget(QLabel("Print size:"))
        self._size_combo = QComboBox()
        self._size_combo.addItems([s["name"] for s in self._settings["print_sizes"]])
        self._size_combo.setCurrentText(self._settings["selected_size"])
        self._size_combo.currentTextChanged.connect(self._on_print_setting_changed)
        size_row.addWidget(self._size_combo)
        layout.addLayout(size_row)

        dpi_row = QHBoxLayout()
        dpi_row.addWidget(QLabel("DPI:"))
        self._dpi_spin = QSpinBox()
        self._dpi_spin.setRange(DPI_MIN, DPI_MAX)
        self._dpi_spin.setValue(int(target_for(self._settings).dpi))
        self._dpi_spin.valueChanged.connect(self._on_print_setting_changed)
        dpi_row.addWidget(self._dpi_spin)
        layout.addLayout(dpi_row)

        fmt_row = QHBoxLayout()
        fmt_row.addWidget(QLabel("Format:"))
        self._format_combo = QComboBox()
        self._format_combo.addItems(OUTPUT_FORMATS)
        self._format_combo.setCurrentText(self._settings["format"])
        self._format_combo.currentTextChanged.connect(self._on_print_setting_changed)
        fmt_row.addWidget(self._format_combo)
        layout.addLayout(fmt_row)

        self._target_label = QLabel("")
        self._target_label.setStyleSheet("color: #aaa; font-size: 8pt;")
        layout.addWidget(self._target_label)
        self._update_target_label()

        return group

    def _build_output_group(self) -> QGroupBox:
        group = QGroupBox("Your Framed Photo")
        layout = QVBoxLayout(group)

        self._preview_label = QLabel("Not rendered yet")
        self._preview_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._preview_label.setStyleSheet("border: 6px solid #8b5a2b; background: #1e1e1e;")
        self._preview_label.setMinimumHeight(120)
        layout.addWidget(self._preview_label)

        self._output_label = QLabel("")
        self._output_label.setWordWrap(True)
        layout.addWidget(self._output_label)

        btn_frame = QPushButton("▶ Set to Frame")
        btn_frame.clicked.connect(self._set_to_frame)
        layout.addWidget(btn_frame)
        self._btn_frame = btn_frame

        return group

    # =========================================================================
    # Loading
    # =========================================================================

    def _select_image(self):
        patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
        path, _ = QFileDialog.getOpenFileName(self, "Open Photo", "", f"Images ({patterns})")
        if path:
            self._start_load(path=Path(path))

    def _restore_stored_asset(self):
        stored = asset_store.load_current_asset()
        if stored is not None:
            self._start_load(stored=stored)

    def _start_load(self, path: Path | None = None, stored: tuple | None = None):
        token = self._session.begin_load()
        self._editor.clear()
        self._editor.set_loading(True)

        # Detach the previous loader; its result would be stale anyway
        if self._loader is not None:
            try:
                self._loader.finished.disconnect()
                self._loader.error.disconnect()
            except (TypeError, RuntimeError):
                pass  # Already disconnected or destroyed

        self._loader = AssetLoaderThread(token, path=path, stored=stored, parent=self)
        self._loader.finished.connect(self._on_asset_loaded)
        self._loader.error.connect(self._on_asset_load_error)
        self._loader.start()
        self._status.showMessage("Loading photo…")

    def _on_asset_loaded(self, token: int, asset: ImageAsset, image: QImage):
        if not self._session.finish_load(token, asset):
            return
        try:
            asset_store.store_asset(asset.asset_id, asset.data, asset.mime_type, asset.name)
        except OSError as exc:
            logger.error("Could not persist asset %s: %s", asset.asset_id, exc)

        self._editor.set_image(QPixmap.fromImage(image), asset.native_width, asset.native_height)
        self._attach_region()
        self._update_source_info()
        self._update_selection_info()
        self._update_output_info()
        self._update_button_states()
        self._status.showMessage(f"Loaded {asset.name or asset.asset_id}")

    def _on_asset_load_error(self, token: int, error: str):
        if not self._session.is_current(token):
            return
        self._editor.set_loading(False)
        self._status.showMessage(f"Failed to load image: {error}")
        QMessageBox.warning(self, "Unsupported Image", error)

    def _remove_image(self):
        asset = self._session.asset
        if asset is None:
            return
        asset_store.delete_asset(asset.asset_id)
        self._session.clear()
        self._editor.clear()
        self._update_source_info()
        self._update_selection_info()
        self._update_output_info()
        self._update_button_states()
        self._status.showMessage("Photo removed.")

    # =========================================================================
    # Selection
    # =========================================================================

    def _set_mode(self, mode: SelectionMode):
        self._session.set_mode(mode)
        self._mode_actions[mode].setChecked(True)
        self._attach_region()
        self._update_selection_info()
        self._update_button_states()

    def _attach_region(self):
        if self._session.region is not None:
            self._editor.set_region(self._session.region, self._session.mode)

    def _on_selection_changed(self):
        self._update_selection_info()

    def _on_selection_completed(self):
        self._update_selection_info()
        self._update_button_states()

    def _update_selection_info(self):
        session = self._session
        advisory = session.advisory
        self._advisory_label.setText(f"⚠️ {advisory.message}" if advisory else "")
        self._advisory_label.setVisible(advisory is not None)

        sel = session.selection
        if sel is None:
            self._selection_label.setText("Selection: —")
            return
        if session.mode == SelectionMode.CROP:
            left, top, right, bottom = session.crop.crop_box()
            self._selection_label.setText(
                f"Crop: {round(right - left)}×{round(bottom - top)} px\n"
                f"Position: ({round(left)}, {round(top)})"
            )
        else:
            covered = session.placement.covered_fraction() * 100
            self._selection_label.setText(
                f"Image layer: {sel.width:.1f}% × {sel.height:.1f}% of frame\n"
                f"Frame covered: {covered:.0f}%"
            )

    # =========================================================================
    # Print settings
    # =========================================================================

    def _on_print_setting_changed(self, *args):
        self._settings["selected_size"] = self._size_combo.currentText()
        self._settings["dpi"] = self._dpi_spin.value()
        self._settings["format"] = self._format_combo.currentText()
        try:
            save_settings(self._settings)
        except (ValueError, OSError) as exc:
            logger.warning("Could not save settings: %s", exc)
        self._update_target_label()

    def _update_target_label(self):
        target = target_for(self._settings)
        out_w, out_h = target.output_size()
        self._target_label.setText(f"Output: {out_w} × {out_h} px at {target.dpi:g} DPI")

    # =========================================================================
    # Rendering / export
    # =========================================================================

    def _set_to_frame(self):
        target = target_for(self._settings)
        QApplication.setOverrideCursor(Qt.CursorShape.WaitCursor)
        try:
            result = self._session.export(target)
        except SelectionNotReadyError as exc:
            self._status.showMessage(f"Not ready: {exc}")
            return
        except UnsupportedImageError as exc:
            QMessageBox.warning(self, "Unsupported Image", str(exc))
            return
        finally:
            QApplication.restoreOverrideCursor()

        data = result.image.convert("RGB").tobytes("raw", "RGB")
        qimg = QImage(data, result.size[0], result.size[1], result.size[0] * 3, QImage.Format.Format_RGB888)
        preview = QPixmap.fromImage(qimg).scaledToWidth(
            _PREVIEW_WIDTH, Qt.TransformationMode.SmoothTransformation,
        )
        self._preview_label.setPixmap(preview)
        self._update_output_info()
        self._update_button_states()
        self._status.showMessage(f"Rendered {result.size[0]}×{result.size[1]} for {target.label}\" print")

    def _download(self):
        result = self._session.result
        if result is None:
            return
        if not self._output_root:
            folder = QFileDialog.getExistingDirectory(self, "Select Output Folder")
            if not folder:
                return
            self._output_root = Path(folder)
        try:
            out_path = save_composite(result, self._output_root, self._format_combo.currentText())
        except OSError as exc:
            QMessageBox.warning(self, "Export Failed", f"Could not save image:\n{exc}")
            return
        self._status.showMessage(f"Saved {out_path}")

    # =========================================================================
    # Info panels
    # =========================================================================

    def _update_source_info(self):
        labels = self._source_labels
        asset = self._session.asset
        if asset is None:
            for label in labels.values():
                label.setText("—")
            return
        meta = asset.metadata
        labels["name"].setText(asset.name or "—")
        labels["type"].setText(asset.mime_type)
        labels["size"].setText(asset.size_label)
        labels["resolution"].setText(f"{meta.native_width} x {meta.native_height} px")
        labels["dpi_x"].setText(format_resolution(meta.dpi_x))
        labels["dpi_y"].setText(format_resolution(meta.dpi_y))
        labels["ppi"].setText(format_resolution(meta.ppi))
        labels["tier"].setText(self._session.source_quality().tier.value)

    def _update_output_info(self):
        result = self._session.result
        if result is None:
            self._preview_label.clear()
            self._preview_label.setText("Not rendered yet")
            self._output_label.setText("")
            return
        report = self._session.quality_report()
        fmt = self._format_combo.currentText()
        self._output_label.setText(
            f"Aspect ratio: 8:10 ({result.target.label}\" print)\n"
            f"Format: {'High-quality JPEG (100% quality)' if fmt == 'JPEG' else 'Lossless PNG'}\n"
            f"Resolution: {report.width} × {report.height} pixels\n"
            f"Estimated print DPI: {report.dpi_label} ({report.tier.value} quality)"
        )

    def _update_button_states(self):
        has_asset = self._session.asset is not None
        ready = has_asset and self._session.completed_selection is not None
        self._act_remove.setEnabled(has_asset)
        self._act_frame.setEnabled(ready)
        self._btn_frame.setEnabled(ready)
        self._act_download.setEnabled(self._session.result is not None)
        for act in self._mode_actions.values():
            act.setEnabled(has_asset)

    def closeEvent(self, event):
        if self._loader is not None and self._loader.isRunning():
            self._loader.wait(2000)
        super().closeEvent(event)
