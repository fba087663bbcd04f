"""Shared test fixtures."""

import logging

import pytest

from services.storage.StorageService import StorageService
from shared.helper.HelperConfig import HelperConfig
from support import InMemoryDocStoreClient


@pytest.fixture
def docstore_env(monkeypatch, tmp_path):
    monkeypatch.setenv("ROOT_DIR", str(tmp_path))
    monkeypatch.setenv("DOCSTORE_ENGINE", "firestore")
    monkeypatch.setenv("DOCSTORE_FIRESTORE_PROJECT_ID", "demo-project")
    monkeypatch.setenv("DOCSTORE_FIRESTORE_BASE_URL", "http://firestore.test/v1")
    monkeypatch.setenv("DOCSTORE_FIRESTORE_ACCESS_TOKEN", "secret-token")
    monkeypatch.setenv("APP_API_KEY", "test-key")
    monkeypatch.delenv("DOCSTORE_FIRESTORE_DATABASE", raising=False)
    monkeypatch.delenv("VALIDATION_TRANSLATIONS_FILE", raising=False)
    monkeypatch.delenv("VALIDATION_LANG", raising=False)
    return monkeypatch


@pytest.fixture
def helper_config(docstore_env):
    return HelperConfig(logger=logging.getLogger("tests"))


@pytest.fixture
def memory_client(helper_config):
    return InMemoryDocStoreClient(helper_config=helper_config)


@pytest.fixture
def storage(helper_config, memory_client):
    return StorageService(helper_config=helper_config, docstore_client=memory_client)
