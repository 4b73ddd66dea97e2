import re
import time
import logging
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

from config import LOOKUP_FUNCTIONS, LOOKUP_SETTINGS
from models.result import LookupResult
from utils.helpers import is_blank_ticker

logger = logging.getLogger(__name__)

_CALL_RE = re.compile(
    r"(" + "|".join(LOOKUP_FUNCTIONS) + r")\s*\(\s*\"([^\"]*)\"\s*\)",
    re.IGNORECASE
)


class RefreshTarget(NamedTuple):
    row: int
    column: int
    function: str
    ticker: str


def find_lookup_cells(formulas: Sequence[Sequence[Optional[str]]]) -> List[RefreshTarget]:
    """
    Ищет на листе ячейки с любой из функций LOOKUP_FUNCTIONS.
    Тикер разбирается только из строкового литерала в кавычках. Если аргумент
    задан ссылкой на ячейку или выражением, тикер остаётся пустым и при
    обновлении такая ячейка пропускается.
    """
    targets = []
    for i, row in enumerate(formulas):
        for j, formula in enumerate(row):
            if not formula:
                continue
            upper = formula.upper()
            function = next((fn for fn in LOOKUP_FUNCTIONS if fn in upper), None)
            if function is None:
                continue
            match = _CALL_RE.search(formula)
            if match:
                targets.append(RefreshTarget(i, j, match.group(1).upper(), match.group(2)))
            else:
                targets.append(RefreshTarget(i, j, function, ""))
    return targets


class BatchRefresher:
    """Пересчитывает ячейки по очереди с паузой между запросами к API."""

    def __init__(self, lookup, settings: dict = None, sleep: Callable[[float], None] = time.sleep):
        self.lookup = lookup
        self.settings = settings or LOOKUP_SETTINGS
        self.delay = self.settings.get("refresh_delay_ms", LOOKUP_SETTINGS["refresh_delay_ms"]) / 1000
        self.sleep = sleep

    def refresh(
        self,
        targets: Sequence[RefreshTarget],
        on_result: Optional[Callable[[RefreshTarget, Optional[LookupResult]], None]] = None
    ) -> List[Tuple[RefreshTarget, Optional[LookupResult]]]:
        logger.info(f"Обновление {len(targets)} ячеек...")
        results = []
        requested = False
        for target in targets:
            if is_blank_ticker(target.ticker):
                logger.info(f"Пропуск ячейки ({target.row}, {target.column}): тикер не задан строкой")
                result = None
            else:
                if requested:
                    self.sleep(self.delay)
                result = self.lookup.lookup(target.function, target.ticker)
                requested = True
            results.append((target, result))
            if on_result is not None:
                on_result(target, result)
        logger.info("Обновление данных завершено")
        return results
