from datetime import date
from typing import NamedTuple, Optional

from models.tabular import TabularBlock


class CouponRecord(NamedTuple):
    """Строка графика купонов: дата выплаты и размер (если известен)."""
    coupon_date: date
    value: Optional[float]


class BondEvent(NamedTuple):
    """Амортизация или оферта (put/call) в одном нормализованном виде."""
    event_date: date
    kind: str
    description: str


class SecurityData:
    """Карточка облигации: блоки securities и marketdata одного ответа ISS."""

    def __init__(self, ticker: str, securities: TabularBlock, marketdata: TabularBlock):
        self.ticker = ticker
        self.securities = securities
        self.marketdata = marketdata

    def __repr__(self):
        return (
            f"<SecurityData {self.ticker} | securities={len(self.securities)} "
            f"| marketdata={len(self.marketdata)}>"
        )


class Bondization:
    """Купоны, амортизации и оферты облигации из bondization.json."""

    def __init__(
        self,
        ticker: str,
        coupons: TabularBlock,
        amortizations: TabularBlock,
        offers: TabularBlock
    ):
        self.ticker = ticker
        self.coupons = coupons
        self.amortizations = amortizations
        self.offers = offers

    def __repr__(self):
        return (
            f"<Bondization {self.ticker} | coupons={len(self.coupons)} "
            f"| amortizations={len(self.amortizations)} | offers={len(self.offers)}>"
        )
