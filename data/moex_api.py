import requests
from typing import Dict, Iterable, Optional
import logging

from config import (
    LOOKUP_SETTINGS, SECURITY_PARAMS, BONDIZATION_PARAMS,
    get_security_url, get_bondization_url
)
from models.bond import SecurityData, Bondization
from models.result import ErrorKind
from models.tabular import TabularBlock

logger = logging.getLogger(__name__)


class MoexAPIError(ConnectionError):
    """Ошибка получения данных с MOEX ISS."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, endpoint: str = "securities"):
        super().__init__(message)
        self.endpoint = endpoint


class ApiStatusError(MoexAPIError):
    kind = ErrorKind.API_STATUS

    def __init__(self, status_code: int, endpoint: str = "securities"):
        if endpoint == "bondization":
            message = f"Ошибка API (bondization): {status_code}"
        else:
            message = f"Ошибка API: {status_code}"
        super().__init__(message, endpoint)
        self.status_code = status_code


class NotFoundError(MoexAPIError):
    """Ответ 200, но нужного блока нет или в нём нет строк."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, block: str, message: Optional[str] = None, endpoint: str = "securities"):
        super().__init__(message or f"Тикер не найден (нет данных в блоке {block})", endpoint)
        self.block = block


class TransportError(MoexAPIError):
    kind = ErrorKind.TRANSPORT


class MoexAPI:
    SECURITY_BLOCKS = ("securities", "marketdata")
    BONDIZATION_BLOCKS = ("coupons", "amortizations", "offers")

    def __init__(self, settings: dict = None, session: Optional[requests.Session] = None):
        self.settings = settings or LOOKUP_SETTINGS
        self.base_url = self.settings.get("base_url", LOOKUP_SETTINGS["base_url"])
        self.timeout = self.settings.get("timeout", LOOKUP_SETTINGS["timeout"])
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": self.settings.get("user_agent", LOOKUP_SETTINGS["user_agent"])
        })

    def _fetch_json(self, url: str, params: Dict, endpoint: str) -> dict:
        logger.debug(f"GET {url} {params}")
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Ошибка при запросе к MOEX API ({endpoint}): {e}")
            raise TransportError(f"Ошибка запроса: {e}", endpoint) from e

        if response.status_code != 200:
            logger.warning(f"MOEX API ({endpoint}) вернул статус {response.status_code} для {url}")
            raise ApiStatusError(response.status_code, endpoint)

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"Некорректный JSON от MOEX API ({endpoint}): {e}")
            raise TransportError(f"Ошибка разбора ответа: {e}", endpoint) from e

        if not isinstance(data, dict):
            raise TransportError("Ошибка разбора ответа: ожидался JSON-объект", endpoint)
        return data

    def _parse_iss_blocks(
        self,
        json_data: dict,
        names: Iterable[str],
        required: Iterable[str],
        endpoint: str
    ) -> Dict[str, TabularBlock]:
        blocks = {}
        for name in names:
            block = TabularBlock.from_json(json_data.get(name))
            blocks[name] = block if block is not None else TabularBlock.empty()

        for name in required:
            if blocks.get(name) is None or blocks[name].is_empty:
                logger.info(f"Блок {name} отсутствует или пуст ({endpoint})")
                raise NotFoundError(name, endpoint=endpoint)
        return blocks

    def fetch_security_data(
        self,
        ticker: str,
        required: Iterable[str] = SECURITY_BLOCKS
    ) -> SecurityData:
        """
        Карточка облигации по тикеру (блоки securities и marketdata).
        Блоки из required должны присутствовать и содержать строки,
        иначе NotFoundError. Из строк имеет смысл только первая.
        """
        url = get_security_url(ticker, self.base_url)
        data = self._fetch_json(url, SECURITY_PARAMS, "securities")
        blocks = self._parse_iss_blocks(data, self.SECURITY_BLOCKS, required, "securities")
        return SecurityData(ticker, blocks["securities"], blocks["marketdata"])

    def fetch_bondization(self, ticker: str, required: Iterable[str] = ()) -> Bondization:
        """
        Полная история купонов, амортизаций и оферт облигации.
        Отсутствующие необязательные блоки возвращаются пустыми.
        """
        url = get_bondization_url(ticker, self.base_url)
        data = self._fetch_json(url, BONDIZATION_PARAMS, "bondization")
        blocks = self._parse_iss_blocks(data, self.BONDIZATION_BLOCKS, required, "bondization")
        return Bondization(
            ticker,
            coupons=blocks["coupons"],
            amortizations=blocks["amortizations"],
            offers=blocks["offers"]
        )
