"""Shared fixtures for the cmsindex test suite."""

from __future__ import annotations

import logging
from typing import Iterator

import pytest
from support import FakeSession, FakeStore


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("cmsindex")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()
