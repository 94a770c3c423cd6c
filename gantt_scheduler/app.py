"""Main PyQt application entry point."""
from __future__ import annotations

import logging
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, Optional, Tuple

from PyQt6.QtCore import QPointF, QRectF, Qt, pyqtSignal
from PyQt6.QtGui import QAction, QActionGroup, QCloseEvent, QColor, QKeySequence, QPainter, QPen, QPolygonF
from PyQt6.QtWidgets import (
    QApplication,
    QFileDialog,
    QMainWindow,
    QMessageBox,
    QScrollArea,
    QWidget,
)

from .critical_path import CriticalPathAnalyzer, CriticalPathResult, DependencyGraphError
from .interaction import InteractionEngine, InteractionPolicy, ResizeEdge
from .logger import configure_logging
from .models import Project, ResizeConstraint, Task
from .settings import settings
from .storage import load_project, save_project
from .timescale import TimeScaleMapper
from .work_calendar import WorkingCalendar
from .zoom import ZoomController, ZoomLevel

logger = logging.getLogger(__name__)

LABEL_WIDTH = 220
HEADER_HEIGHT = 32
ROW_HEIGHT = 28
BAR_MARGIN = 6
RANGE_PADDING_DAYS = 7
_DRAG_HANDLE_TOLERANCE = 6

TASK_COLOR = QColor("#1976d2")
SUMMARY_COLOR = QColor("#8d6e63")
CRITICAL_COLOR = QColor("#d32f2f")
PREVIEW_COLOR = QColor(25, 118, 210, 90)
CRITICAL_PREVIEW_COLOR = QColor(211, 47, 47, 90)
NON_WORKING_COLOR = QColor("#f5f5f5")
GRID_COLOR = QColor("#e0e0e0")
LINK_COLOR = QColor("#616161")


def format_label(day: date, level: ZoomLevel) -> str:
    quarter = (day.month - 1) // 3 + 1
    return day.strftime(level.label_format.replace("%q", str(quarter)))


class GanttCanvas(QWidget):
    """Timeline with task bars that can be dragged and resized.

    The canvas owns no scheduling rules: pointer events go to the
    InteractionEngine, and every committed change re-runs the critical path
    analysis before repainting.
    """

    status_message = pyqtSignal(str)
    schedule_changed = pyqtSignal()
    undo_available = pyqtSignal(bool)
    redo_available = pyqtSignal(bool)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.calendar = WorkingCalendar()
        self.project = Project()
        self.zoom = ZoomController(initial_level_id=settings.DEFAULT_ZOOM_LEVEL)
        self.mapper = TimeScaleMapper(date.today(), self.zoom, self.calendar)
        self.constraint = ResizeConstraint(allow_overlap=True)
        self.policy = InteractionPolicy()
        self.analysis = CriticalPathResult()
        self.engine = self._make_engine()
        self.dirty = False
        self.zoom.subscribe(self._handle_zoom_changed)
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self._relayout()

    # --- Project wiring ---------------------------------------------------------

    def set_project(self, calendar: WorkingCalendar, project: Project) -> None:
        self.calendar = calendar
        self.project = project
        self.mapper = TimeScaleMapper(
            self._range()[0],
            self.zoom,
            calendar,
            working_days_only=self.mapper.working_days_only,
        )
        self.engine = self._make_engine()
        self.dirty = False
        self.recalculate()

    def _make_engine(self) -> InteractionEngine:
        return InteractionEngine(
            self.project,
            self.mapper,
            self._persist_task_dates,
            policy=self.policy,
            on_dependency_recalculate=self.recalculate,
        )

    def _persist_task_dates(self, task_id: str, start: date, end: date) -> bool:
        """Changes stay in memory until the project is saved."""
        self.dirty = True
        return True

    def recalculate(self) -> None:
        analyzer = CriticalPathAnalyzer(self.calendar if self.mapper.working_days_only else None)
        try:
            self.analysis = analyzer.analyze(self.project.tasks, self.project.links)
        except DependencyGraphError as exc:
            self.analysis = CriticalPathResult()
            for task in self.project.tasks:
                task.clear_analysis()
            self.status_message.emit(str(exc))
        self._emit_history()
        self._relayout()
        self.schedule_changed.emit()

    def set_working_days_only(self, enabled: bool) -> None:
        self.engine.cancel()
        self.mapper.set_working_days_only(enabled)
        self.recalculate()

    def set_snap_enabled(self, enabled: bool) -> None:
        self.policy.snap.enabled = enabled

    def undo(self) -> bool:
        result = self.engine.undo_last()
        self.status_message.emit(result.message)
        self._emit_history()
        return result.success

    def redo(self) -> bool:
        result = self.engine.redo_last()
        self.status_message.emit(result.message)
        self._emit_history()
        return result.success

    def _emit_history(self) -> None:
        self.undo_available.emit(self.engine.can_undo())
        self.redo_available.emit(self.engine.can_redo())

    def fit_to_width(self, width: int) -> None:
        start, end = self._range()
        self.zoom.fit_to_span(start, end, max(1, width - LABEL_WIDTH))

    # --- Geometry -------------------------------------------------------------

    def _range(self) -> Tuple[date, date]:
        if not self.project.tasks:
            today = date.today()
            return today, today + timedelta(days=30)
        start = min(task.start for task in self.project.tasks)
        end = max(task.end for task in self.project.tasks)
        padding = timedelta(days=RANGE_PADDING_DAYS)
        return start - padding, end + padding

    def _relayout(self) -> None:
        start, end = self._range()
        self.mapper.project_start = start
        width = LABEL_WIDTH + self.mapper.date_to_pixel(end) + self.mapper.pixels_per_day
        height = HEADER_HEIGHT + ROW_HEIGHT * max(1, len(self.project.tasks))
        self.setMinimumSize(int(width), int(height))
        self.resize(int(width), int(height))
        self.update()

    def _handle_zoom_changed(self, pixels_per_day: float) -> None:
        self.status_message.emit(f"Zoom: {self.zoom.level.name} ({pixels_per_day:.2f} px/day)")
        self._relayout()

    def bar_rect(self, task: Task) -> QRectF:
        row = self.project.index_of(task.id)
        start, end = task.start, task.end
        if self.project.is_summary(task.id):
            span = self.project.summary_span(task.id)
            if span is not None:
                start, end = span
        left, width = self.mapper.bar_geometry(Task(task.id, start, end))
        top = HEADER_HEIGHT + row * ROW_HEIGHT + BAR_MARGIN
        return QRectF(LABEL_WIDTH + left, top, width, ROW_HEIGHT - 2 * BAR_MARGIN)

    def hit_test(self, x: float, y: float) -> Tuple[Optional[Task], Optional[ResizeEdge]]:
        """Find the bar under the pointer and whether an edge was grabbed."""
        row = int((y - HEADER_HEIGHT) // ROW_HEIGHT)
        if y < HEADER_HEIGHT or row < 0 or row >= len(self.project.tasks):
            return None, None
        task = self.project.tasks[row]
        rect = self.bar_rect(task)
        if task.is_milestone():
            if abs(x - rect.left()) <= _DRAG_HANDLE_TOLERANCE:
                return task, None
            return None, None
        # Detect resizes even if users grab near, but not exactly on, the edge.
        if abs(x - rect.left()) <= _DRAG_HANDLE_TOLERANCE:
            return task, ResizeEdge.START
        if abs(x - rect.right()) <= _DRAG_HANDLE_TOLERANCE:
            return task, ResizeEdge.END
        if rect.left() <= x <= rect.right():
            return task, None
        return None, None

    # --- Gestures ---------------------------------------------------------------

    def handle_press(self, x: float, y: float) -> bool:
        if self.engine.is_active():
            return False
        task, edge = self.hit_test(x, y)
        if task is None or self.project.is_summary(task.id):
            return False
        if edge is None:
            started = self.engine.start_drag(task.id, task.start, task.end, x)
        else:
            started = self.engine.start_resize(task.id, task.start, task.end, edge, x)
        if not started:
            self.status_message.emit(f'"{task.name}" cannot be changed here')
        return started

    def handle_move(self, x: float) -> None:
        if self.engine.is_dragging():
            self.engine.update_drag(x)
        elif self.engine.is_resizing():
            self.engine.update_resize(x)
        else:
            return
        self.update()

    def handle_release(self, x: float) -> None:
        if self.engine.is_dragging():
            result = self.engine.complete_drag(x, self.constraint)
        elif self.engine.is_resizing():
            result = self.engine.complete_resize(x, self.constraint)
        else:
            return
        self.status_message.emit(result.message)
        self.update()

    def cancel_gesture(self) -> None:
        self.engine.cancel()
        self.update()

    def mousePressEvent(self, event):  # type: ignore[override]
        if event.button() == Qt.MouseButton.LeftButton:
            self.handle_press(event.position().x(), event.position().y())
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):  # type: ignore[override]
        self.handle_move(event.position().x())
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event):  # type: ignore[override]
        if event.button() == Qt.MouseButton.LeftButton:
            self.handle_release(event.position().x())
        super().mouseReleaseEvent(event)

    def keyPressEvent(self, event):  # type: ignore[override]
        if event.key() == Qt.Key.Key_Escape and self.engine.is_active():
            self.cancel_gesture()
            self.status_message.emit("Change cancelled")
            return
        super().keyPressEvent(event)

    def wheelEvent(self, event):  # type: ignore[override]
        control = bool(event.modifiers() & Qt.KeyboardModifier.ControlModifier)
        if self.zoom.handle_wheel(-event.angleDelta().y(), control):
            event.accept()
            return
        super().wheelEvent(event)

    # --- Painting -------------------------------------------------------------

    def paintEvent(self, event):  # type: ignore[override]  # pragma: no cover - requires UI
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        painter.fillRect(QRectF(self.rect()), QColor("white"))
        self._draw_grid(painter)
        rects: Dict[str, QRectF] = {}
        for row, task in enumerate(self.project.tasks):
            top = HEADER_HEIGHT + row * ROW_HEIGHT
            painter.setPen(QPen(QColor("#333333")))
            painter.drawText(
                QRectF(6, top, LABEL_WIDTH - 12, ROW_HEIGHT),
                Qt.AlignmentFlag.AlignVCenter | Qt.AlignmentFlag.AlignLeft,
                task.name,
            )
            rects[task.id] = self._draw_bar(painter, task)
        self._draw_links(painter, rects)
        painter.end()

    def _draw_grid(self, painter: QPainter) -> None:
        start, end = self._range()
        height = self.height()
        if not self.mapper.working_days_only and self.zoom.level.grid_interval == 1:
            for day in self.calendar.non_working_days(start, end):
                x = LABEL_WIDTH + self.mapper.date_to_pixel(day)
                painter.fillRect(QRectF(x, HEADER_HEIGHT, self.mapper.pixels_per_day, height), NON_WORKING_COLOR)
        painter.setPen(QPen(GRID_COLOR))
        for x, day in self.mapper.grid_lines(start, end):
            left = LABEL_WIDTH + x
            painter.drawLine(QPointF(left, 0), QPointF(left, height))
            painter.setPen(QPen(QColor("#555555")))
            painter.drawText(QRectF(left + 2, 0, 80, HEADER_HEIGHT), Qt.AlignmentFlag.AlignVCenter, format_label(day, self.zoom.level))
            painter.setPen(QPen(GRID_COLOR))
        painter.drawLine(QPointF(0, HEADER_HEIGHT), QPointF(self.width(), HEADER_HEIGHT))

    def _draw_bar(self, painter: QPainter, task: Task) -> QRectF:
        rect = self.bar_rect(task)
        if self.project.is_summary(task.id):
            color = SUMMARY_COLOR
        elif task.is_critical:
            color = CRITICAL_COLOR
        else:
            color = TASK_COLOR
        if task.is_milestone():
            center = QPointF(rect.left(), rect.center().y())
            half = rect.height() / 2
            painter.setBrush(color)
            painter.setPen(QPen(color))
            painter.drawPolygon(QPolygonF([
                QPointF(center.x(), center.y() - half),
                QPointF(center.x() + half, center.y()),
                QPointF(center.x(), center.y() + half),
                QPointF(center.x() - half, center.y()),
            ]))
        else:
            painter.fillRect(rect, color)
        session = self.engine.session
        if session is not None and session.task_id == task.id:
            preview = QRectF(rect)
            if self.engine.is_dragging():
                preview.translate(session.current_offset, 0)
            elif getattr(session, "edge", None) is ResizeEdge.START:
                preview.setLeft(rect.left() + session.current_offset)
            else:
                preview.setRight(rect.right() + session.current_offset)
            painter.fillRect(preview.normalized(), CRITICAL_PREVIEW_COLOR if session.critical else PREVIEW_COLOR)
        return rect

    def _draw_links(self, painter: QPainter, rects: Dict[str, QRectF]) -> None:
        critical_links = set(self.analysis.critical_link_ids)
        for link in self.project.links:
            source, target = rects.get(link.source_id), rects.get(link.target_id)
            if source is None or target is None:
                continue
            pen = QPen(CRITICAL_COLOR if link.id in critical_links else LINK_COLOR)
            painter.setPen(pen)
            painter.drawLine(
                QPointF(source.right(), source.center().y()),
                QPointF(target.left(), target.center().y()),
            )


class MainWindow(QMainWindow):
    """Primary window with menus and central widgets."""

    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("Gantt Scheduler")
        self.current_path: Optional[Path] = None
        self.canvas = GanttCanvas()
        self.undo_action: QAction | None = None
        self.redo_action: QAction | None = None
        # Wire up the canvas so the status bar and menu items stay in sync.
        self.canvas.status_message.connect(self._show_message)
        self.canvas.undo_available.connect(self._handle_undo_available)
        self.canvas.redo_available.connect(self._handle_redo_available)
        self._build_layout()
        self._build_menu()
        self.resize(1200, 700)

    def _build_layout(self) -> None:
        scroll = QScrollArea()
        scroll.setWidget(self.canvas)
        scroll.setWidgetResizable(False)
        self.setCentralWidget(scroll)

    def _build_menu(self) -> None:
        """Create File/Edit/View menus along with shortcuts."""
        menu = self.menuBar()
        file_menu = menu.addMenu("File")

        new_action = QAction("New", self)
        new_action.triggered.connect(self.action_new)
        file_menu.addAction(new_action)

        open_action = QAction("Open", self)
        open_action.triggered.connect(self.action_open)
        file_menu.addAction(open_action)

        save_action = QAction("Save", self)
        save_action.setShortcut(QKeySequence.StandardKey.Save)
        save_action.triggered.connect(self.action_save)
        file_menu.addAction(save_action)

        file_menu.addSeparator()
        quit_action = QAction("Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        edit_menu = menu.addMenu("Edit")
        undo_action = QAction("Undo", self)
        undo_action.setShortcut("Ctrl+Z")
        undo_action.setEnabled(False)
        undo_action.triggered.connect(self.canvas.undo)
        edit_menu.addAction(undo_action)
        self.undo_action = undo_action

        redo_action = QAction("Redo", self)
        redo_action.setShortcut("Ctrl+Shift+Z")
        redo_action.setEnabled(False)
        redo_action.triggered.connect(self.canvas.redo)
        edit_menu.addAction(redo_action)
        self.redo_action = redo_action

        snap_action = QAction("Snap to grid", self)
        snap_action.setCheckable(True)
        snap_action.setChecked(self.canvas.policy.snap.enabled)
        snap_action.toggled.connect(self.canvas.set_snap_enabled)
        edit_menu.addAction(snap_action)

        view_menu = menu.addMenu("View")
        zoom_in_action = QAction("Zoom In", self)
        zoom_in_action.setShortcut(QKeySequence.StandardKey.ZoomIn)
        zoom_in_action.triggered.connect(self.canvas.zoom.zoom_in)
        view_menu.addAction(zoom_in_action)

        zoom_out_action = QAction("Zoom Out", self)
        zoom_out_action.setShortcut(QKeySequence.StandardKey.ZoomOut)
        zoom_out_action.triggered.connect(self.canvas.zoom.zoom_out)
        view_menu.addAction(zoom_out_action)

        fit_action = QAction("Fit to Window", self)
        fit_action.triggered.connect(lambda: self.canvas.fit_to_width(self.centralWidget().width()))
        view_menu.addAction(fit_action)

        view_menu.addSeparator()
        level_group = QActionGroup(self)
        for level in self.canvas.zoom.available_levels():
            level_action = QAction(level.name, self)
            level_action.triggered.connect(lambda _checked=False, level_id=level.id: self.canvas.zoom.zoom_to_level(level_id))
            level_group.addAction(level_action)
            view_menu.addAction(level_action)

        view_menu.addSeparator()
        working_days_action = QAction("Working days only", self)
        working_days_action.setCheckable(True)
        working_days_action.toggled.connect(self.canvas.set_working_days_only)
        view_menu.addAction(working_days_action)

    # Menu actions ------------------------------------------------------
    def action_new(self) -> None:
        """Reset the chart to an empty project."""
        self.canvas.set_project(WorkingCalendar(), Project())
        self.current_path = None
        self.statusBar().showMessage("Started new project", 3000)

    def action_open(self) -> None:
        """Load a saved CSV project file into the chart."""
        path, _ = QFileDialog.getOpenFileName(
            self,
            "Open project",
            filter="CSV Files (*.csv)",
        )
        if not path:
            return
        try:
            calendar, project = load_project(path)
        except (OSError, ValueError) as exc:  # pragma: no cover - interactive guard
            QMessageBox.critical(self, "Open failed", str(exc))
            return
        self.canvas.set_project(calendar, project)
        self.current_path = Path(path)
        self.statusBar().showMessage(f"Loaded project from {path}", 3000)

    def action_save(self) -> None:
        """Persist the CSV format used for reopening projects."""
        if not self.current_path:
            path, _ = QFileDialog.getSaveFileName(
                self,
                "Save project",
                filter="CSV Files (*.csv)",
                initialFilter="CSV Files (*.csv)",
            )
            if not path:
                return
            self.current_path = Path(path)
        save_project(self.current_path, self.canvas.calendar, self.canvas.project)
        self.canvas.dirty = False
        self.statusBar().showMessage(f"Saved to {self.current_path}", 3000)

    def _show_message(self, message: str) -> None:
        self.statusBar().showMessage(message, 4000)

    def _handle_undo_available(self, available: bool) -> None:
        """Enable/disable the Edit → Undo action based on history."""
        if self.undo_action is not None:
            self.undo_action.setEnabled(available)

    def _handle_redo_available(self, available: bool) -> None:
        if self.redo_action is not None:
            self.redo_action.setEnabled(available)

    def closeEvent(self, event: QCloseEvent) -> None:  # pragma: no cover - requires UI
        """Ask for confirmation before discarding unsaved changes."""
        if not self.canvas.dirty:
            event.accept()
            return
        if QMessageBox.question(self, "Quit", "Discard unsaved changes?") == QMessageBox.StandardButton.Yes:
            event.accept()
        else:
            event.ignore()


def run() -> None:
    """Entry point used by `python -m gantt_scheduler`."""
    configure_logging()
    app = QApplication(sys.argv)
    window = MainWindow()
    if len(sys.argv) > 1:
        calendar, project = load_project(sys.argv[1])
        window.canvas.set_project(calendar, project)
        window.current_path = Path(sys.argv[1])
    window.show()
    app.exec()


if __name__ == "__main__":
    run()
