import json
from datetime import date
from enum import Enum
from typing import Any, Optional, Union


class ErrorKind(Enum):
    EMPTY_INPUT = "empty_input"
    API_STATUS = "api_status"
    NOT_FOUND = "not_found"
    FIELD_ABSENT = "field_absent"
    VALUE_UNAVAILABLE = "value_unavailable"
    TRANSPORT = "transport"


class ValueKind(Enum):
    NUMBER = "number"
    DATE = "date"
    TEXT = "text"
    ERROR = "error"


CellValue = Union[float, date, str, None]


class LookupResult:
    """
    Результат поиска одного факта по тикеру: число, дата, строка или ошибка.

    Ошибка хранит вид (ErrorKind) и текст для пользователя. В ячейку
    попадает только display(), структура ошибки наружу не выходит.
    Примечание (note) необязательно: например, список
    ближайших оферт.
    """

    __slots__ = ("kind", "value", "error", "note")

    def __init__(
        self,
        kind: ValueKind,
        value: Any,
        error: Optional[ErrorKind] = None,
        note: Optional[str] = None
    ):
        self.kind = kind
        self.value = value
        self.error = error
        self.note = note

    @classmethod
    def of_number(cls, value: float) -> "LookupResult":
        return cls(ValueKind.NUMBER, value)

    @classmethod
    def of_date(cls, value: date, note: Optional[str] = None) -> "LookupResult":
        return cls(ValueKind.DATE, value, note=note)

    @classmethod
    def of_text(cls, value: str) -> "LookupResult":
        return cls(ValueKind.TEXT, value)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "LookupResult":
        return cls(ValueKind.ERROR, message, error=error)

    @property
    def is_error(self) -> bool:
        return self.kind is ValueKind.ERROR

    def display(self) -> CellValue:
        return self.value

    def __eq__(self, other):
        if not isinstance(other, LookupResult):
            return NotImplemented
        # NaN != NaN, поэтому сравниваем сериализованные формы
        return self.to_json() == other.to_json()

    def __repr__(self):
        if self.is_error:
            return f"<LookupResult error={self.error.value} {self.value!r}>"
        return f"<LookupResult {self.kind.value}={self.value!r}>"

    def to_json(self) -> str:
        payload = {"kind": self.kind.value}
        if self.kind is ValueKind.DATE:
            # Только календарная дата, без времени и часового пояса
            payload["value"] = self.value.isoformat()
        else:
            payload["value"] = self.value
        if self.error is not None:
            payload["error"] = self.error.value
        if self.note is not None:
            payload["note"] = self.note
        return json.dumps(payload, ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> "LookupResult":
        payload = json.loads(raw)
        kind = ValueKind(payload["kind"])
        value = payload.get("value")
        if kind is ValueKind.DATE:
            value = date.fromisoformat(value)
        error = ErrorKind(payload["error"]) if "error" in payload else None
        return cls(kind, value, error=error, note=payload.get("note"))
