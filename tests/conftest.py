import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from newsagg.config import Config, ConfigModel
from newsagg.db.cache import MemoryCache


class FakeClock:
    """Manually advanced monotonic clock for MemoryCache."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> MemoryCache:
    return MemoryCache(clock=clock)


@pytest.fixture
def config_model() -> ConfigModel:
    return ConfigModel(
        providers={
            "newsapi": {"api_key": "newsapi-test-key", "api_key_env": None},
            "guardian": {"api_key": "guardian-test-key", "api_key_env": None},
            "nyt": {"api_key": "nyt-test-key", "api_key_env": None},
        }
    )


@pytest.fixture
def config(config_model: ConfigModel) -> Config:
    return Config.from_model(config_model)


def json_client(
    payload: Any = None,
    status_code: int = 200,
    requests: List[httpx.Request] = None,
    handler: Callable[[httpx.Request], httpx.Response] = None,
) -> httpx.Client:
    """An httpx client answering every request from a MockTransport."""

    def respond(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        if handler is not None:
            return handler(request)
        return httpx.Response(status_code, content=json.dumps(payload).encode())

    return httpx.Client(transport=httpx.MockTransport(respond))


def newsapi_item(url: str, title: str = "Title", **overrides: Any) -> Dict[str, Any]:
    item = {
        "source": {"id": None, "name": "TechCrunch"},
        "author": "Jane Doe",
        "title": title,
        "description": "Something happened",
        "url": url,
        "urlToImage": "https://cdn.example.com/lead.jpg",
        "publishedAt": "2024-11-05T10:00:00Z",
    }
    item.update(overrides)
    return item
