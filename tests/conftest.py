"""Конфигурация для pytest."""
import itertools
import sys
from pathlib import Path

import pytest

# Добавляем корневую директорию в путь
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

from infrastructure.logging.config import LoggerFactoryConfig
from infrastructure.logging.logger_factory import LoggerFactory
from utils.env_config import get_env_config
from utils.logger import reset_logger_factory


_provider_ids = itertools.count()


def pytest_configure(config):
    """Регистрация кастомных маркеров."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )
    config.addinivalue_line(
        "markers", "integration: интеграционные тесты"
    )
    config.addinivalue_line(
        "markers", "unit: юнит-тесты"
    )
    config.addinivalue_line(
        "markers", "infrastructure: тесты инфраструктуры логирования"
    )
    config.addinivalue_line(
        "markers", "utils: тесты утилит"
    )


def pytest_collection_modifyitems(config, items):
    """Автоматическая маркировка тестов по расположению."""
    for item in items:
        path = str(item.path)

        if "integration" in path.lower():
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)

        if "test_logging" in path:
            item.add_marker(pytest.mark.infrastructure)
        elif "test_utils" in path:
            item.add_marker(pytest.mark.utils)


@pytest.fixture
def provider_name() -> str:
    """Уникальное имя провайдера (дерево логгеров stdlib не пересекается между тестами)."""
    return f"TestProvider{next(_provider_ids)}"


@pytest.fixture
def make_factory(provider_name):
    """Создаёт LoggerFactory с уникальным провайдером и закрывает её после теста."""
    factories = []

    def _make(**overrides) -> LoggerFactory:
        overrides.setdefault("provider_name", f"{provider_name}_{len(factories)}")
        factory = LoggerFactory(LoggerFactoryConfig(**overrides))
        factories.append(factory)
        return factory

    yield _make

    for factory in factories:
        factory.close()


@pytest.fixture(autouse=True)
def cleanup_logging(monkeypatch):
    """Автоматический сброс фабрики процесса и переменных окружения логирования."""
    for name in ("LOG_LEVEL", "LOG_PROVIDER_NAME", "LOG_CONFIG_FILE", "LOG_CONSUMER_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    get_env_config.cache_clear()
    reset_logger_factory()

    yield

    reset_logger_factory()
    get_env_config.cache_clear()
