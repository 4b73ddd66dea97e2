# utils/helpers.py

import math
import re
from datetime import datetime, date
from typing import Any, List, Optional

import pytz

from models.bond import CouponRecord, BondEvent
from models.tabular import ABSENT, TabularBlock

MOSCOW_TZ = pytz.timezone('Europe/Moscow')

# ISS отдаёт эту строку вместо даты, когда дата неприменима
NO_DATE = "0000-00-00"

# Дата, за которой может идти только время через T или пробел
_ISS_DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?)?$")

AMORTIZATION_LABEL = "Амортизация"
DEFAULT_OFFER_LABEL = "Оферта"


def today_msk() -> date:
    """Текущая календарная дата по Москве (время суток отбрасывается)."""
    return datetime.now(MOSCOW_TZ).date()


def is_blank_ticker(ticker: Any) -> bool:
    return ticker is None or not str(ticker).strip()


def parse_iss_date(value: Any) -> Optional[date]:
    """
    Разбирает дату ISS вида YYYY-MM-DD, допускается хвост со временем
    ("2026-11-05 00:00:00", "2026-11-05T00:00:00"). Пустое значение,
    0000-00-00 и мусор -> None.
    """
    if not value or value == NO_DATE:
        return None
    if isinstance(value, date):
        return value
    match = _ISS_DATE_RE.match(str(value).strip())
    if match is None:
        return None
    try:
        return datetime.strptime(match.group(1), "%Y-%m-%d").date()
    except ValueError:
        return None


def to_float(value: Any) -> float:
    """Приведение к числу; нечисловое значение даёт NaN, а не исключение."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def is_meaningful_amount(value: Optional[float]) -> bool:
    """Сумма известна: не None, не NaN и не ноль."""
    return value is not None and not math.isnan(value) and value != 0


def build_coupon_schedule(coupons: TabularBlock) -> List[CouponRecord]:
    """
    График купонов по возрастанию даты.
    Размер берётся из value_rub, если он заполнен, иначе из value.
    Строки без разборчивой даты пропускаются.
    """
    schedule = []
    for i in range(len(coupons)):
        coupon_date = parse_iss_date(coupons.value(i, "coupondate"))
        if coupon_date is None:
            continue

        raw = coupons.value(i, "value_rub")
        if raw is None or raw is ABSENT:
            raw = coupons.value(i, "value")
        value = None if raw is None or raw is ABSENT else to_float(raw)

        schedule.append(CouponRecord(coupon_date, value))

    schedule.sort(key=lambda c: c.coupon_date)
    return schedule


def select_coupon_value(schedule: List[CouponRecord], today: date) -> Optional[float]:
    """
    Размер ближайшего купона.

    Идём от старых купонов к новым. Из прошедших запоминаем последний
    известный ненулевой размер. На первом купоне с датой >= today
    останавливаемся: если его размер известен, возвращаем его, иначе
    возвращаем последний известный из прошлых (или None).
    """
    last_known = None
    for coupon in schedule:
        if coupon.coupon_date >= today:
            if is_meaningful_amount(coupon.value):
                return coupon.value
            break
        if is_meaningful_amount(coupon.value):
            last_known = coupon.value
    return last_known


def build_bond_events(
    amortizations: TabularBlock,
    offers: TabularBlock,
    today: date
) -> List[BondEvent]:
    """
    Будущие (включая сегодня) амортизации и оферты, отсортированные по дате.
    Тип оферты берётся из offertype, если колонка есть и заполнена.
    """
    events = []

    for i in range(len(amortizations)):
        raw = amortizations.value(i, "amortdate")
        event_date = parse_iss_date(raw)
        if event_date is None or event_date < today:
            continue
        events.append(BondEvent(
            event_date, AMORTIZATION_LABEL, f"{AMORTIZATION_LABEL}: {event_date.isoformat()}"
        ))

    for i in range(len(offers)):
        raw = offers.value(i, "offerdate")
        event_date = parse_iss_date(raw)
        if event_date is None or event_date < today:
            continue
        offer_type = offers.value(i, "offertype")
        label = str(offer_type) if offer_type else DEFAULT_OFFER_LABEL
        events.append(BondEvent(event_date, label, f"{label}: {event_date.isoformat()}"))

    # sort стабилен: при равных датах амортизации остаются перед офертами
    events.sort(key=lambda e: e.event_date)
    return events


def format_events_note(events: List[BondEvent]) -> str:
    """Примечание: все события без повторов и отдельной строкой ближайшее."""
    descriptions = list(dict.fromkeys(e.description for e in events))
    return "\n".join(descriptions) + f"\n\nБлижайшая: {events[0].description}"
