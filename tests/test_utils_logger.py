"""Тесты для utils/logger.py - фабрики логгеров процесса."""
import pytest

from infrastructure.logging.config import (
    ConfigurationConflictError,
    CustomChannelConfig,
    LoggerFactoryConfig,
)
from infrastructure.logging.logger_factory import LoggerFactory
from tests.factories import RecordingChannel
from utils.env_config import get_env_config
from utils.logger import configure_logging, get_logger, get_logger_factory, reset_logger_factory


class TestConfigureLogging:
    """Тесты единой точки построения фабрики."""

    def test_configure_then_get(self, provider_name) -> None:
        """Тест: get_logger_factory возвращает сконфигурированную фабрику."""
        channel = RecordingChannel()
        factory = configure_logging(LoggerFactoryConfig(
            provider_name=provider_name,
            default_channel=CustomChannelConfig(channel=channel),
        ))

        assert get_logger_factory() is factory

        get_logger("Service").info("hello")
        assert [r.message for r in channel.records] == ["hello"]

    def test_second_configure_is_conflict(self, provider_name) -> None:
        """Тест: повторная конфигурация - ошибка."""
        configure_logging(LoggerFactoryConfig(provider_name=provider_name))

        with pytest.raises(ConfigurationConflictError):
            configure_logging(LoggerFactoryConfig(provider_name=provider_name))

    def test_configure_after_get_is_conflict(self, provider_name, monkeypatch) -> None:
        """Тест: конфигурация после ленивого создания фабрики - ошибка."""
        monkeypatch.setenv("LOG_PROVIDER_NAME", provider_name)
        monkeypatch.setenv("LOG_CONFIG_FILE", "/nonexistent/config.toml")
        get_env_config.cache_clear()

        get_logger_factory()

        with pytest.raises(ConfigurationConflictError):
            configure_logging(LoggerFactoryConfig(provider_name=provider_name))

    def test_lazy_default_factory(self, provider_name, monkeypatch) -> None:
        """Тест: без configure_logging фабрика строится из окружения."""
        monkeypatch.setenv("LOG_PROVIDER_NAME", provider_name)
        monkeypatch.setenv("LOG_LEVEL", "WARN")
        monkeypatch.setenv("LOG_CONFIG_FILE", "/nonexistent/config.toml")
        get_env_config.cache_clear()

        factory = get_logger_factory()

        assert isinstance(factory, LoggerFactory)
        assert factory.config.provider_name == provider_name
        assert get_logger_factory() is factory
        assert get_logger("Service") is factory.get_logger("Service")

    def test_reset(self, provider_name) -> None:
        """Тест: после сброса можно сконфигурировать заново."""
        configure_logging(LoggerFactoryConfig(provider_name=provider_name))
        reset_logger_factory()

        factory = configure_logging(LoggerFactoryConfig(provider_name=provider_name))

        assert get_logger_factory() is factory
