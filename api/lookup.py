# api/lookup.py

import logging
from typing import Callable, Optional

from analyzers.bond_resolver import BondResolver
from config import LOOKUP_SETTINGS
from data.cache import CacheFacade, MemoryCache
from models.result import CellValue, LookupResult
from utils.helpers import is_blank_ticker

logger = logging.getLogger(__name__)

# Функция таблицы -> (вид данных, метод BondResolver)
FACTS = {
    "GET_MOEX_PRICE": ("price", "resolve_price"),
    "GET_NEXT_COUPON": ("next_coupon", "resolve_next_coupon"),
    "GET_MOEX_NAME": ("name", "resolve_name"),
    "GET_COUPON_VALUE": ("coupon_value", "resolve_coupon_value"),
    "GET_MATURITY_DATE": ("maturity_date", "resolve_maturity_date"),
    "GET_NEAREST_OPTION_DATE": ("nearest_event", "resolve_nearest_event"),
}


class BondLookup:
    """
    Функции поиска по тикеру для ячеек таблицы.
    Сначала кэш, при промахе BondResolver; результат кладётся в кэш.
    """

    def __init__(
        self,
        resolver: Optional[BondResolver] = None,
        cache: Optional[CacheFacade] = None,
        settings: dict = None
    ):
        self.settings = settings or LOOKUP_SETTINGS
        self.resolver = resolver or BondResolver(settings=self.settings)
        self.cache = cache if cache is not None else MemoryCache(
            maxsize=self.settings.get("cache_maxsize", LOOKUP_SETTINGS["cache_maxsize"])
        )

    def cache_key(self, ticker: str, fact: str) -> str:
        suffix = self.settings["cache_suffix"].get(fact)
        return ticker if suffix is None else f"{ticker}_{suffix}"

    def _read_cache(self, key: str) -> Optional[LookupResult]:
        raw = self.cache.get(key)
        if raw is None:
            return None
        try:
            return LookupResult.from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Повреждённая запись кэша {key}: {e}")
            self.cache.remove(key)
            return None

    def lookup(self, function_name: str, ticker: str) -> Optional[LookupResult]:
        name = function_name.upper()
        if name not in FACTS:
            raise ValueError(f"Неизвестная функция: {function_name}")
        if is_blank_ticker(ticker):
            return None

        fact, method = FACTS[name]
        ttl = self.settings["cache_ttl"].get(fact)
        key = self.cache_key(ticker, fact) if ttl else None

        if key is not None:
            cached = self._read_cache(key)
            if cached is not None:
                logger.debug(f"Кэш: {key}")
                return cached

        result = getattr(self.resolver, method)(ticker)
        if key is not None and result is not None:
            self.cache.put(key, result.to_json(), ttl)
        return result

    def evaluate(self, function_name: str, ticker: str) -> CellValue:
        result = self.lookup(function_name, ticker)
        return result.display() if result is not None else None

    def get_moex_price(self, ticker: str) -> CellValue:
        return self.evaluate("GET_MOEX_PRICE", ticker)

    def get_next_coupon(self, ticker: str) -> CellValue:
        return self.evaluate("GET_NEXT_COUPON", ticker)

    def get_moex_name(self, ticker: str) -> CellValue:
        return self.evaluate("GET_MOEX_NAME", ticker)

    def get_coupon_value(self, ticker: str) -> CellValue:
        return self.evaluate("GET_COUPON_VALUE", ticker)

    def get_maturity_date(self, ticker: str) -> CellValue:
        return self.evaluate("GET_MATURITY_DATE", ticker)

    def get_nearest_option_date(
        self,
        ticker: str,
        note_sink: Optional[Callable[[str], None]] = None
    ) -> CellValue:
        """
        Ближайшая дата оферты/амортизации. Примечание со списком событий
        передаётся в note_sink; ошибки note_sink на результат не влияют.
        """
        result = self.lookup("GET_NEAREST_OPTION_DATE", ticker)
        if result is None:
            return None
        if note_sink is not None and result.note:
            try:
                note_sink(result.note)
            except Exception as e:
                logger.debug(f"Не удалось установить примечание для {ticker}: {e}")
        return result.display()


_default_lookup: Optional[BondLookup] = None


def default_lookup() -> BondLookup:
    global _default_lookup
    if _default_lookup is None:
        _default_lookup = BondLookup()
    return _default_lookup


def GET_MOEX_PRICE(ticker):
    return default_lookup().get_moex_price(ticker)


def GET_NEXT_COUPON(ticker):
    return default_lookup().get_next_coupon(ticker)


def GET_MOEX_NAME(ticker):
    return default_lookup().get_moex_name(ticker)


def GET_COUPON_VALUE(ticker):
    return default_lookup().get_coupon_value(ticker)


def GET_MATURITY_DATE(ticker):
    return default_lookup().get_maturity_date(ticker)


def GET_NEAREST_OPTION_DATE(ticker):
    return default_lookup().get_nearest_option_date(ticker)
