from datetime import datetime, date
from PyQt5.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QPushButton, QTableWidget, QTableWidgetItem, QPlainTextEdit,
    QLabel, QStatusBar, QMessageBox, QFileDialog, QHeaderView, QProgressBar
)
from PyQt5.QtCore import Qt, QThread, pyqtSignal
from typing import List
from api.lookup import BondLookup
from config import LOOKUP_SETTINGS
from data.batch_refresh import BatchRefresher, RefreshTarget
import pandas as pd

# Колонки таблицы после колонки "Тикер": (заголовок, функция)
LOOKUP_COLUMNS = [
    ("Наименование", "GET_MOEX_NAME"),
    ("Цена, %", "GET_MOEX_PRICE"),
    ("След. купон", "GET_NEXT_COUPON"),
    ("Купон, руб", "GET_COUPON_VALUE"),
    ("Погашение", "GET_MATURITY_DATE"),
    ("Ближ. оферта/аморт.", "GET_NEAREST_OPTION_DATE"),
]


def format_cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, date):
        return value.strftime("%d.%m.%Y")
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


class RefreshWorker(QThread):
    cell_ready = pyqtSignal(int, int, object, str)
    finished = pyqtSignal(int)
    error = pyqtSignal(str)

    def __init__(self, lookup: BondLookup, targets: List[RefreshTarget]):
        super().__init__()
        self.lookup = lookup
        self.targets = targets

    def _emit(self, target: RefreshTarget, result):
        value = result.display() if result is not None else None
        note = (result.note or "") if result is not None else ""
        self.cell_ready.emit(target.row, target.column, value, note)

    def run(self):
        try:
            refresher = BatchRefresher(self.lookup, self.lookup.settings)
            results = refresher.refresh(self.targets, on_result=self._emit)
            self.finished.emit(len(results))
        except Exception as e:
            self.error.emit(str(e))


class MainWindow(QMainWindow):
    def __init__(self, lookup: BondLookup = None):
        super().__init__()
        self.setWindowTitle("Облигации MOEX: цены, купоны, оферты")
        self.resize(1200, 700)

        self.lookup = lookup or BondLookup(settings=LOOKUP_SETTINGS)
        self.worker = None

        self.init_ui()

    def init_ui(self):
        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QVBoxLayout(central_widget)

        top_layout = QHBoxLayout()

        input_layout = QVBoxLayout()
        input_layout.addWidget(QLabel("Тикеры (по одному в строке):"))
        self.tickers_edit = QPlainTextEdit()
        self.tickers_edit.setPlaceholderText("SU26227RMFS7\nRU000A105WR3")
        self.tickers_edit.setMaximumHeight(120)
        input_layout.addWidget(self.tickers_edit)
        top_layout.addLayout(input_layout)

        btn_layout = QVBoxLayout()
        self.btn_refresh = QPushButton("Обновить все данные (с задержкой)")
        self.btn_clear_cache = QPushButton("Сбросить кэш")
        self.btn_save = QPushButton("Сохранить в Excel")
        self.btn_save.setEnabled(False)
        self.btn_refresh.clicked.connect(self.refresh_all)
        self.btn_clear_cache.clicked.connect(self.clear_cache)
        self.btn_save.clicked.connect(self.save_to_excel)

        btn_layout.addWidget(self.btn_refresh)
        btn_layout.addWidget(self.btn_clear_cache)
        btn_layout.addWidget(self.btn_save)
        btn_layout.addStretch()
        top_layout.addLayout(btn_layout)
        main_layout.addLayout(top_layout)

        self.table = QTableWidget()
        self.setup_table()
        main_layout.addWidget(self.table)

        self.progress_bar = QProgressBar()
        self.progress_bar.setVisible(False)
        main_layout.addWidget(self.progress_bar)

        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)
        self.status_bar.showMessage("Готово")

    def setup_table(self):
        headers = ["Тикер"] + [title for title, _ in LOOKUP_COLUMNS]
        self.table.setColumnCount(len(headers))
        self.table.setHorizontalHeaderLabels(headers)
        self.table.setEditTriggers(QTableWidget.NoEditTriggers)
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeToContents)

    def read_tickers(self) -> List[str]:
        lines = self.tickers_edit.toPlainText().splitlines()
        return [line.strip() for line in lines if line.strip()]

    def build_targets(self, tickers: List[str]) -> List[RefreshTarget]:
        targets = []
        for row, ticker in enumerate(tickers):
            for offset, (_, function) in enumerate(LOOKUP_COLUMNS):
                targets.append(RefreshTarget(row, offset + 1, function, ticker))
        return targets

    def refresh_all(self):
        tickers = self.read_tickers()
        if not tickers:
            QMessageBox.information(self, "Нет тикеров", "Введите хотя бы один тикер.")
            return

        self.table.setRowCount(len(tickers))
        for row, ticker in enumerate(tickers):
            self.table.setItem(row, 0, QTableWidgetItem(ticker))
            for col in range(1, self.table.columnCount()):
                self.table.setItem(row, col, QTableWidgetItem(""))

        targets = self.build_targets(tickers)
        self.btn_refresh.setEnabled(False)
        self.btn_save.setEnabled(False)
        self.progress_bar.setRange(0, len(targets))
        self.progress_bar.setValue(0)
        self.progress_bar.setVisible(True)
        self.status_bar.showMessage(f"Обновление {len(targets)} ячеек...")

        self.worker = RefreshWorker(self.lookup, targets)
        self.worker.cell_ready.connect(self.on_cell_ready)
        self.worker.finished.connect(self.on_refresh_finished)
        self.worker.error.connect(self.on_refresh_error)
        self.worker.start()

    def on_cell_ready(self, row: int, col: int, value, note: str):
        item = QTableWidgetItem(format_cell(value))
        item.setData(Qt.UserRole, value)
        if note:
            # Примечание к ячейке: все ближайшие события
            item.setToolTip(note)
        self.table.setItem(row, col, item)
        self.progress_bar.setValue(self.progress_bar.value() + 1)

    def on_refresh_finished(self, count: int):
        self.btn_refresh.setEnabled(True)
        self.btn_save.setEnabled(count > 0)
        self.progress_bar.setVisible(False)
        self.table.resizeRowsToContents()
        self.status_bar.showMessage("Обновление данных завершено!")

    def on_refresh_error(self, error_msg: str):
        self.btn_refresh.setEnabled(True)
        self.progress_bar.setVisible(False)
        self.status_bar.showMessage("Ошибка обновления")
        QMessageBox.critical(self, "Ошибка", f"Не удалось обновить данные:\n{error_msg}")

    def clear_cache(self):
        self.lookup.cache.clear()
        self.status_bar.showMessage("Кэш сброшен")

    def table_to_frame(self) -> pd.DataFrame:
        headers = [self.table.horizontalHeaderItem(c).text() for c in range(self.table.columnCount())]
        rows = []
        for r in range(self.table.rowCount()):
            row = []
            for c in range(self.table.columnCount()):
                item = self.table.item(r, c)
                if item is None:
                    row.append(None)
                    continue
                value = item.data(Qt.UserRole)
                row.append(value if value is not None else item.text())
            rows.append(row)
        return pd.DataFrame(rows, columns=headers)

    def save_to_excel(self):
        if self.table.rowCount() == 0:
            QMessageBox.warning(self, "Предупреждение", "Нет данных для сохранения.")
            return

        default_name = f"moex_bonds_{datetime.now().strftime('%Y%m%d_%H%M')}.xlsx"
        file_path, _ = QFileDialog.getSaveFileName(
            self, "Сохранить данные по облигациям", default_name, "Excel Files (*.xlsx)"
        )
        if not file_path:
            return

        try:
            df = self.table_to_frame()
            with pd.ExcelWriter(file_path, engine='openpyxl') as writer:
                df.to_excel(writer, sheet_name="Облигации", index=False)

            self.status_bar.showMessage(f"Данные сохранены: {file_path}")
            QMessageBox.information(self, "Успех", f"Данные сохранены в:\n{file_path}")

        except Exception as e:
            self.status_bar.showMessage("Ошибка сохранения")
            QMessageBox.critical(self, "Ошибка", f"Ошибка при сохранении файла:\n{str(e)}")
