# analyzers/bond_resolver.py

import logging
from datetime import date
from typing import Any, Callable, Optional

from config import LOOKUP_SETTINGS
from data.moex_api import MoexAPI, MoexAPIError
from models.result import ErrorKind, LookupResult
from models.tabular import ABSENT
from utils.helpers import (
    NO_DATE, build_bond_events, build_coupon_schedule, format_events_note,
    is_blank_ticker, parse_iss_date, select_coupon_value, to_float, today_msk
)

logger = logging.getLogger(__name__)

# Порядок поиска цены: (блок, колонка)
PRICE_FALLBACK = (
    ("marketdata", "LAST"),
    ("marketdata", "CLOSEPRICE"),
    ("securities", "PREVLEGALCLOSEPRICE"),
    ("securities", "PREVPRICE"),
)


def _present(value: Any) -> bool:
    return value is not None and value is not ABSENT


class BondResolver:
    """
    Извлекает отдельные факты об облигации из ответов MOEX ISS.

    Каждый метод принимает тикер и возвращает LookupResult (значение или
    ошибку с описанием). Для пустого тикера возвращается None без запроса
    к API. Исключения клиента наружу не выходят.
    """

    def __init__(
        self,
        api: Optional[MoexAPI] = None,
        settings: dict = None,
        today: Callable[[], date] = today_msk
    ):
        self.settings = settings or LOOKUP_SETTINGS
        self.api = api or MoexAPI(self.settings)
        self.today = today

    @staticmethod
    def _failure(error: MoexAPIError, not_found_message: str = None) -> LookupResult:
        message = str(error)
        if error.kind is ErrorKind.NOT_FOUND and not_found_message:
            message = not_found_message
        return LookupResult.failure(error.kind, message)

    def resolve_price(self, ticker: str) -> Optional[LookupResult]:
        if is_blank_ticker(ticker):
            return None
        try:
            data = self.api.fetch_security_data(ticker, required=("securities", "marketdata"))
        except MoexAPIError as e:
            return self._failure(e, "Тикер не найден или API вернул неполные данные")

        blocks = {"securities": data.securities, "marketdata": data.marketdata}
        for block_name, column in PRICE_FALLBACK:
            price = blocks[block_name].first_row_value(column)
            if _present(price):
                logger.debug(f"{ticker}: цена из {block_name}.{column} = {price}")
                return LookupResult.of_number(to_float(price))

        return LookupResult.failure(ErrorKind.VALUE_UNAVAILABLE, "Цена не найдена")

    def _resolve_date_field(self, ticker: str, column: str, unavailable: str) -> Optional[LookupResult]:
        if is_blank_ticker(ticker):
            return None
        try:
            data = self.api.fetch_security_data(ticker, required=("securities",))
        except MoexAPIError as e:
            return self._failure(e, "Тикер не найден")

        raw = data.securities.first_row_value(column)
        if raw is ABSENT:
            return LookupResult.failure(ErrorKind.FIELD_ABSENT, f"Поле {column} отсутствует")
        # 0000-00-00 проверяется как строка до разбора даты
        if not raw or raw == NO_DATE:
            return LookupResult.failure(ErrorKind.VALUE_UNAVAILABLE, unavailable)

        parsed = parse_iss_date(raw)
        if parsed is None:
            return LookupResult.failure(ErrorKind.VALUE_UNAVAILABLE, f"Некорректная дата: {raw}")
        return LookupResult.of_date(parsed)

    def resolve_next_coupon(self, ticker: str) -> Optional[LookupResult]:
        return self._resolve_date_field(ticker, "NEXTCOUPON", "Нет предстоящих купонов")

    def resolve_maturity_date(self, ticker: str) -> Optional[LookupResult]:
        return self._resolve_date_field(ticker, "MATDATE", "Дата погашения не определена")

    def resolve_name(self, ticker: str) -> Optional[LookupResult]:
        if is_blank_ticker(ticker):
            return None
        try:
            data = self.api.fetch_security_data(ticker, required=("securities",))
        except MoexAPIError as e:
            return self._failure(e, "Тикер не найден")

        # SECNAME — полное наименование, SHORTNAME — краткое
        name = data.securities.first_row_value("SECNAME")
        if not name:
            name = data.securities.first_row_value("SHORTNAME")
        if not name:
            return LookupResult.failure(ErrorKind.VALUE_UNAVAILABLE, "Наименование не найдено")
        return LookupResult.of_text(str(name))

    def resolve_coupon_value(self, ticker: str) -> Optional[LookupResult]:
        """
        Размер ближайшего купона. Сначала COUPONVALUE из карточки; ноль там
        означает, что купон ещё не зафиксирован (флоатер), и тогда размер
        ищется по графику купонов.
        """
        if is_blank_ticker(ticker):
            return None
        try:
            data = self.api.fetch_security_data(ticker, required=("securities",))
        except MoexAPIError as e:
            return self._failure(e, "Тикер не найден")

        raw = data.securities.first_row_value("COUPONVALUE")
        if _present(raw):
            value = to_float(raw)
            if value != 0:
                return LookupResult.of_number(value)

        logger.debug(f"{ticker}: COUPONVALUE не задан или равен 0, смотрим bondization")
        return self.resolve_coupon_from_schedule(ticker)

    def resolve_coupon_from_schedule(self, ticker: str) -> Optional[LookupResult]:
        if is_blank_ticker(ticker):
            return None
        try:
            bondization = self.api.fetch_bondization(ticker, required=("coupons",))
        except MoexAPIError as e:
            return self._failure(e, "Нет данных о купонах (bondization)")

        if not bondization.coupons.has_column("coupondate"):
            return LookupResult.failure(ErrorKind.FIELD_ABSENT, "Нет даты купона в данных")

        schedule = build_coupon_schedule(bondization.coupons)
        value = select_coupon_value(schedule, self.today())
        if value is None:
            return LookupResult.failure(ErrorKind.VALUE_UNAVAILABLE, "Купон не определен")
        return LookupResult.of_number(value)

    def resolve_nearest_event(self, ticker: str) -> Optional[LookupResult]:
        """
        Ближайшая дата амортизации или оферты (put/call).
        В note список всех будущих событий и ближайшее из них.
        Дату погашения вместо события не подставляем.
        """
        if is_blank_ticker(ticker):
            return None
        try:
            bondization = self.api.fetch_bondization(ticker)
        except MoexAPIError as e:
            return self._failure(e)

        events = build_bond_events(bondization.amortizations, bondization.offers, self.today())
        if not events:
            return LookupResult.failure(ErrorKind.VALUE_UNAVAILABLE, "Нет оферт/аморт.")

        nearest = events[0]
        logger.debug(f"{ticker}: событий впереди {len(events)}, ближайшее {nearest.description}")
        return LookupResult.of_date(nearest.event_date, note=format_events_note(events))
