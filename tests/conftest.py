"""Shared fixtures for the pin store, handoff service and HTTP app."""

from typing import Callable, Iterable, Sequence

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from biboop.config import Settings
from biboop.main import create_app
from biboop.pin_store import PinStore
from biboop.services.pins import PinGenerator, PinService


@pytest.fixture
def scripted_choice() -> Callable[[Iterable[str]], Callable[[Sequence[str]], str]]:
    """Build `choice` replacements that yield the given characters in order."""

    def factory(chars: Iterable[str]) -> Callable[[Sequence[str]], str]:
        it = iter(chars)
        return lambda _alphabet: next(it)

    return factory


@pytest.fixture
def settings() -> Settings:
    return Settings(
        PIN_LENGTH=4,
        PIN_ATTEMPTS=10,
        MAX_RESULT_SIZE_BYTES=3000,
        STALE_AGE_SECONDS=600,
        SWEEP_INTERVAL_SECONDS=10,
        CORS_ORIGINS="*",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def store() -> PinStore:
    return PinStore()


@pytest.fixture
def generator(store: PinStore) -> PinGenerator:
    return PinGenerator(store)


@pytest.fixture
def service(store: PinStore, generator: PinGenerator) -> PinService:
    return PinService(store, generator, max_result_bytes=3000)


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    # no context manager: the lifespan (and its sweeper thread) stays off
    return TestClient(app)
