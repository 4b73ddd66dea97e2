from typing import Any, Optional, Sequence


class _Absent:
    """Маркер отсутствующей колонки (в отличие от значения null)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "ABSENT"


ABSENT = _Absent()


class TabularBlock:
    """
    Блок ответа ISS: список колонок и список строк, выровненных по колонкам.
    Доступ к значениям только по имени колонки.
    """

    def __init__(self, columns: Sequence[str], rows: Sequence[Sequence[Any]]):
        self.columns = list(columns)
        self.rows = [list(row) for row in rows]
        self._index = {name: i for i, name in enumerate(self.columns)}

    @classmethod
    def from_json(cls, block: Any) -> Optional["TabularBlock"]:
        """
        Строит блок из словаря {"columns": [...], "data": [[...], ...]}.
        Возвращает None, если структура не похожа на блок ISS.
        """
        if not isinstance(block, dict):
            return None
        columns = block.get("columns")
        data = block.get("data")
        if not isinstance(columns, list) or not isinstance(data, list):
            return None
        if not all(isinstance(row, list) for row in data):
            return None
        return cls(columns, data)

    @classmethod
    def empty(cls) -> "TabularBlock":
        return cls([], [])

    def __len__(self):
        return len(self.rows)

    def __repr__(self):
        return f"<TabularBlock columns={len(self.columns)} rows={len(self.rows)}>"

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def index_of(self, name: str) -> Optional[int]:
        return self._index.get(name)

    def has_column(self, name: str) -> bool:
        return name in self._index

    def value(self, row_index: int, name: str) -> Any:
        idx = self._index.get(name)
        if idx is None:
            return ABSENT
        row = self.rows[row_index]
        if idx >= len(row):
            return ABSENT
        return row[idx]

    def first_row_value(self, name: str) -> Any:
        if self.is_empty:
            return ABSENT
        return self.value(0, name)
