"""
Interactive selection widget and the background asset loader.

This module contains everything that touches both Qt **and** image display:
the ``AssetLoaderThread`` and the ``FrameEditor`` widget, which drives
either a ``CropRegion`` (crop overlay on the image) or a
``PlacementRegion`` (image layer inside a fixed print frame).  All geometry
corrections happen in the regions; the widget only turns mouse movement
into candidate rectangles.
"""

from pathlib import Path

from PIL import Image
from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QRectF, QPointF, pyqtSignal, QThread
from PyQt6.QtGui import (
    QPainter, QPainterPath, QPixmap, QColor, QPen, QBrush, QImage,
    QKeyEvent, QMouseEvent, QPaintEvent, QResizeEvent,
)

from print_crop_tool.config import HANDLE_SIZE, NUDGE_LARGE, NUDGE_SMALL, RATIO_H, RATIO_W
from print_crop_tool.image_io import decode_image, load_asset, read_asset_file
from print_crop_tool.models import SelectionMode, SelectionRect, fit_ratio


def pil_to_qimage(pil_img: Image.Image) -> QImage:
    """Convert a PIL Image to a QImage that owns its pixel buffer."""
    rgba = pil_img.convert("RGBA")
    data = rgba.tobytes("raw", "RGBA")
    qimg = QImage(data, rgba.width, rgba.height, rgba.width * 4, QImage.Format.Format_RGBA8888)
    return qimg.copy()


# =============================================================================
# Background asset loader
# =============================================================================

class AssetLoaderThread(QThread):
    """Reads, validates and decodes a source image off the UI thread.

    Every signal carries the session load token so the receiver can drop
    results from loads that have since been superseded.
    """
    finished = pyqtSignal(int, object, QImage)
    error = pyqtSignal(int, str)

    def __init__(self, token: int, path: Path | None = None, stored: tuple | None = None, parent=None):
        super().__init__(parent)
        self._token = token
        self._path = path
        self._stored = stored  # (data, mime_type, name) from the asset store

    def run(self):
        try:
            if self._path is not None:
                asset = read_asset_file(self._path)
            else:
                data, mime_type, name = self._stored
                asset = load_asset(data, name=name, mime_type=mime_type or None)
            # Same upright raster the compositor renders from
            image = pil_to_qimage(decode_image(asset.data))
            self.finished.emit(self._token, asset, image)
        except (OSError, ValueError) as e:
            self.error.emit(self._token, str(e))


# =============================================================================
# Frame editor: crop overlay or placement frame
# =============================================================================

class FrameEditor(QWidget):
    """Widget that displays an image with an interactive, ratio-locked selection."""

    selection_changed = pyqtSignal()
    selection_completed = pyqtSignal()

    HANDLE_NONE = 0
    HANDLE_TL = 1
    HANDLE_TR = 2
    HANDLE_BL = 3
    HANDLE_BR = 4
    DRAG_NONE = 0
    DRAG_MOVE = 1
    DRAG_RESIZE = 2

    _HANDLE_CURSORS = {
        HANDLE_TL: Qt.CursorShape.SizeFDiagCursor,
        HANDLE_BR: Qt.CursorShape.SizeFDiagCursor,
        HANDLE_TR: Qt.CursorShape.SizeBDiagCursor,
        HANDLE_BL: Qt.CursorShape.SizeBDiagCursor,
    }

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setMinimumSize(400, 300)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        self._pixmap: QPixmap | None = None
        self._img_w = 0
        self._img_h = 0
        self._region = None
        self._selection_mode = SelectionMode.CROP

        # Display mapping (image in crop mode, frame in placement mode)
        self._scale = 1.0
        self._offset_x = 0.0
        self._offset_y = 0.0
        self._frame = QRectF()

        # Interaction state
        self._drag = self.DRAG_NONE
        self._active_handle = self.HANDLE_NONE
        self._drag_start = QPointF()
        self._sel_start = SelectionRect()
        self._loading = False

    def set_loading(self, loading: bool):
        """Toggle the placeholder text shown while a photo is read."""
        self._loading = loading
        self.update()

    def set_image(self, pixmap: QPixmap, img_w: int, img_h: int):
        """Set the image to display."""
        self._loading = False
        self._pixmap = pixmap
        self._img_w = img_w
        self._img_h = img_h
        self._update_display_mapping()
        self.update()

    def set_region(self, region, selection_mode: SelectionMode):
        """Attach the CropRegion or PlacementRegion the widget edits."""
        self._region = region
        self._selection_mode = selection_mode
        self._update_display_mapping()
        self.update()

    def has_image(self) -> bool:
        """Return True if an image is loaded and ready for selection edits."""
        return self._pixmap is not None and self._region is not None

    def clear(self):
        self._pixmap = None
        self._region = None
        self._img_w = 0
        self._img_h = 0
        self.update()

    # --- Coordinate mapping ---

    def _update_display_mapping(self):
        """Fit the image (crop mode) or the print frame (placement mode) with letterboxing."""
        ww, wh = self.width(), self.height()
        if self._selection_mode == SelectionMode.PLACEMENT:
            fw, fh = fit_ratio(ww * 0.9, wh * 0.9, RATIO_W / RATIO_H)
            self._frame = QRectF((ww - fw) / 2, (wh - fh) / 2, fw, fh)
            if self._region is not None and fw > 0 and fh > 0:
                self._region.set_frame_size(fw, fh)
            return
        if not self._pixmap or self._img_w == 0 or self._img_h == 0:
            return
        self._scale = min(ww / self._img_w, wh / self._img_h)
        disp_w = self._img_w * self._scale
        disp_h = self._img_h * self._scale
        self._offset_x = (ww - disp_w) / 2
        self._offset_y = (wh - disp_h) / 2
        self._frame = QRectF(self._offset_x, self._offset_y, disp_w, disp_h)

    def _selection_display_rect(self) -> QRectF:
        """Selection in widget coordinates; percentages are relative to ``_frame``."""
        sel = self._region.selection if self._region else None
        if sel is None:
            return QRectF()
        f = self._frame
        return QRectF(
            f.left() + sel.x / 100.0 * f.width(),
            f.top() + sel.y / 100.0 * f.height(),
            sel.width / 100.0 * f.width(),
            sel.height / 100.0 * f.height(),
        )

    def _to_percent(self, dx: float, dy: float) -> tuple[float, float]:
        """Widget-space delta to percent of the frame."""
        f = self._frame
        if f.width() == 0 or f.height() == 0:
            return 0.0, 0.0
        return dx / f.width() * 100.0, dy / f.height() * 100.0

    # --- Handle hit testing ---

    def _handle_rects(self) -> dict[int, QRectF]:
        """Return screen-coordinate rectangles for the corner handles."""
        r = self._selection_display_rect()
        hs = HANDLE_SIZE
        handles = {self.HANDLE_BR: QRectF(r.right() - hs, r.bottom() - hs, hs * 2, hs * 2)}
        if self._selection_mode == SelectionMode.CROP:
            handles[self.HANDLE_TL] = QRectF(r.left() - hs, r.top() - hs, hs * 2, hs * 2)
            handles[self.HANDLE_TR] = QRectF(r.right() - hs, r.top() - hs, hs * 2, hs * 2)
            handles[self.HANDLE_BL] = QRectF(r.left() - hs, r.bottom() - hs, hs * 2, hs * 2)
        return handles

    def _hit_test(self, pos: QPointF) -> tuple[int, int]:
        """(drag kind, handle) that a press at ``pos`` would start."""
        for handle_id, rect in self._handle_rects().items():
            if rect.contains(pos):
                return self.DRAG_RESIZE, handle_id
        if self._selection_display_rect().contains(pos):
            return self.DRAG_MOVE, self.HANDLE_NONE
        return self.DRAG_NONE, self.HANDLE_NONE

    def _hover_cursor(self, pos: QPointF) -> Qt.CursorShape:
        drag, handle = self._hit_test(pos)
        if drag == self.DRAG_RESIZE:
            return self._HANDLE_CURSORS[handle]
        if drag == self.DRAG_MOVE:
            return Qt.CursorShape.OpenHandCursor
        return Qt.CursorShape.ArrowCursor

    # --- Painting ---

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(36, 36, 36))

        if not self.has_image():
            painter.setPen(QColor(140, 140, 140))
            msg = "Reading photo…" if self._loading else "Open a PNG or JPEG photo to frame it"
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, msg)
            painter.end()
            return

        sel_rect = self._selection_display_rect()
        if self._selection_mode == SelectionMode.PLACEMENT:
            self._paint_placement(painter, sel_rect)
        else:
            self._paint_crop(painter, sel_rect)

        # Corner handles
        painter.setPen(QPen(QColor(0, 0, 0), 1))
        painter.setBrush(QBrush(QColor(255, 255, 255)))
        for rect in self._handle_rects().values():
            painter.drawRect(rect)

        painter.end()

    def _paint_crop(self, painter: QPainter, crop_rect: QRectF):
        dest = self._frame
        painter.drawPixmap(dest.toRect(), self._pixmap)

        # Dim everything outside the print area
        outside = QPainterPath()
        outside.setFillRule(Qt.FillRule.OddEvenFill)
        outside.addRect(dest)
        outside.addRect(crop_rect)
        painter.fillPath(outside, QColor(0, 0, 0, 150))

        below_minimum = self._region.advisory is not None
        edge = QColor(255, 196, 64) if below_minimum else QColor(255, 255, 255)
        painter.setPen(QPen(edge, 2))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(crop_rect)

        # Thirds guides
        painter.setPen(QPen(QColor(255, 255, 255, 70), 1, Qt.PenStyle.DotLine))
        for t in (1 / 3, 2 / 3):
            gx = crop_rect.left() + crop_rect.width() * t
            gy = crop_rect.top() + crop_rect.height() * t
            painter.drawLine(QPointF(gx, crop_rect.top()), QPointF(gx, crop_rect.bottom()))
            painter.drawLine(QPointF(crop_rect.left(), gy), QPointF(crop_rect.right(), gy))

        # Native pixel size of the print area
        box = self._region.crop_box()
        if box:
            painter.setPen(edge)
            left, top, right, bottom = box
            label = f"{round(right - left)} × {round(bottom - top)} px"
            painter.drawText(
                crop_rect.adjusted(0, -22, 0, 0).toRect(),
                Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignBottom,
                label,
            )

    def _paint_placement(self, painter: QPainter, layer_rect: QRectF):
        frame = self._frame
        painter.fillRect(frame, QColor(255, 255, 255))
        painter.save()
        painter.setClipRect(frame)
        painter.drawPixmap(layer_rect.toRect(), self._pixmap)
        painter.restore()

        # Ghost of the layer outside the frame
        painter.setOpacity(0.3)
        painter.drawPixmap(layer_rect.toRect(), self._pixmap)
        painter.setOpacity(1.0)

        painter.setPen(QPen(QColor(255, 255, 255), 2, Qt.PenStyle.DashLine))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(frame)

    def resizeEvent(self, event: QResizeEvent):
        self._update_display_mapping()
        super().resizeEvent(event)

    # --- Mouse interaction ---

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton or not self.has_image():
            return
        if self._region.selection is None:
            return
        pos = event.position()
        self._drag, self._active_handle = self._hit_test(pos)
        if self._drag != self.DRAG_NONE:
            self._drag_start = pos
            self._sel_start = self._region.selection

    def mouseMoveEvent(self, event: QMouseEvent):
        if not self.has_image():
            return

        pos = event.position()

        if self._drag == self.DRAG_NONE:
            self.setCursor(self._hover_cursor(pos))
            return

        dx, dy = self._to_percent(pos.x() - self._drag_start.x(), pos.y() - self._drag_start.y())
        s = self._sel_start
        if self._drag == self.DRAG_MOVE:
            self._region.propose_change(SelectionRect(s.x + dx, s.y + dy, s.width, s.height))
        else:
            candidate = self._resize_candidate(dx)
            if candidate is None:
                return
            if self._selection_mode == SelectionMode.CROP:
                # Corrections must keep the corner opposite the handle in place
                self._region.propose_resize(
                    candidate,
                    anchor_right=self._active_handle in (self.HANDLE_TL, self.HANDLE_BL),
                    anchor_bottom=self._active_handle in (self.HANDLE_TL, self.HANDLE_TR),
                )
            else:
                self._region.propose_change(candidate)
        self.selection_changed.emit()
        self.update()

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton and self._drag != self.DRAG_NONE:
            self._drag = self.DRAG_NONE
            self._active_handle = self.HANDLE_NONE
            self._region.complete()
            self.selection_completed.emit()

    def _resize_candidate(self, dx: float) -> SelectionRect | None:
        """Candidate for a corner drag: width follows the mouse, the opposite corner is the anchor."""
        s = self._sel_start
        if self._active_handle in (self.HANDLE_BR, self.HANDLE_TR):
            width = s.width + dx
        elif self._active_handle in (self.HANDLE_BL, self.HANDLE_TL):
            width = s.width - dx
        else:
            return None
        width = max(width, 0.0)
        height = s.height * width / s.width if s.width else s.height

        x = s.x if self._active_handle in (self.HANDLE_BR, self.HANDLE_TR) else s.x + s.width - width
        y = s.y if self._active_handle in (self.HANDLE_BR, self.HANDLE_BL) else s.y + s.height - height
        return SelectionRect(x, y, width, height)

    # --- Keyboard nudge ---

    def keyPressEvent(self, event: QKeyEvent):
        if not self.has_image() or self._region.selection is None:
            return
        amount = NUDGE_LARGE if event.modifiers() & Qt.KeyboardModifier.ShiftModifier else NUDGE_SMALL
        offsets = {
            Qt.Key.Key_Left: (-amount, 0),
            Qt.Key.Key_Right: (amount, 0),
            Qt.Key.Key_Up: (0, -amount),
            Qt.Key.Key_Down: (0, amount),
        }
        offset = offsets.get(event.key())
        if offset is None:
            super().keyPressEvent(event)
            return

        if self._selection_mode == SelectionMode.CROP:
            self._region.nudge(*offset)
        else:
            # Placement nudges are in screen pixels
            dx, dy = self._to_percent(*offset)
            s = self._region.selection
            self._region.propose_change(SelectionRect(s.x + dx, s.y + dy, s.width, s.height))
        self._region.complete()
        self.selection_changed.emit()
        self.selection_completed.emit()
        self.update()
