# config.py

from urllib.parse import quote

# API endpoints
MOEX_API_BASE = "https://iss.moex.com/iss"

# Параметры запроса карточки облигации (метаданные колонок не нужны)
SECURITY_PARAMS = {"iss.meta": "off"}

# Параметры запроса купонов/амортизаций/оферт: без ограничения количества строк
BONDIZATION_PARAMS = {"iss.meta": "off", "limit": "unlimited"}


def get_security_url(ticker: str, base: str = MOEX_API_BASE) -> str:
    return f"{base}/engines/stock/markets/bonds/securities/{quote(ticker, safe='')}.json"


def get_bondization_url(ticker: str, base: str = MOEX_API_BASE) -> str:
    return f"{base}/securities/{quote(ticker, safe='')}/bondization.json"


# Функции, доступные из таблицы.
# При добавлении новой функции допишите её сюда и в api/lookup.FACTS.
LOOKUP_FUNCTIONS = (
    "GET_MOEX_PRICE",
    "GET_NEXT_COUPON",
    "GET_MOEX_NAME",
    "GET_COUPON_VALUE",
    "GET_MATURITY_DATE",
    "GET_NEAREST_OPTION_DATE",
)

LOOKUP_SETTINGS = {
    "base_url": MOEX_API_BASE,
    "timeout": 10,
    "user_agent": "BondLookup/1.0 (Python)",
    "refresh_delay_ms": 400,        # пауза между ячейками при массовом обновлении
    "cache_maxsize": 5000,          # максимум записей в кэше
    # Время жизни кэша по видам данных, секунды
    "cache_ttl": {
        "price": 300,
        "next_coupon": 21600,
        "coupon_value": 21600,
        "name": 86400,
        "maturity_date": 86400,
    },
    # Суффикс ключа кэша: "{ticker}_{suffix}"; для цены ключ — сам тикер.
    # Версию в суффиксе повышают, чтобы сбросить кэш после смены логики.
    "cache_suffix": {
        "price": None,
        "next_coupon": "coupon",
        "coupon_value": "coupon_value_v3",
        "name": "name",
        "maturity_date": "maturity",
    },
}
