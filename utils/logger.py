"""Единая точка построения фабрики логгеров процесса.

LoggerFactory - обычный класс, который можно создать и передать явно.
Этот модуль хранит один экземпляр на процесс для кода, которому удобнее
получить логгер по имени.

Примеры использования:
    ```python
    from utils.logger import configure_logging, get_logger

    # При старте процесса (не более одного раза)
    factory = configure_logging(LoggerFactoryConfig(global_level="INFO"))
    factory.messages_consumer(MessagesLogAdapter(messages))

    # В модулях
    logger = get_logger("AuthService")
    logger.info("Пользователь {} вошёл", user_id)
    logger.error("Ошибка входа", error)
    ```

Зависимости:
    - infrastructure.logging: система логирования
    - utils.config: конфигурация из config.toml и окружения

Примечания:
    - Повторный configure_logging() - ошибка (ConfigurationConflictError)
    - get_logger_factory() без configure_logging() строит фабрику из config.toml
    - Thread-safe: можно использовать из разных потоков
"""
import threading
from typing import Any, Optional

from infrastructure.logging.config import ConfigurationConflictError, LoggerFactoryConfig
from infrastructure.logging.logger import Logger
from infrastructure.logging.logger_factory import LoggerFactory
from utils.config import load_logging_config


# Глобальная фабрика логгеров
_default_logger_factory: Optional[LoggerFactory] = None
# Блокировка для thread-safe инициализации
_logger_factory_lock = threading.Lock()


def configure_logging(config: Optional[LoggerFactoryConfig] = None) -> LoggerFactory:
    """Создаёт фабрику логгеров процесса.

    Args:
        config: Конфигурация (None - из config.toml и окружения)

    Returns:
        Созданная фабрика

    Raises:
        ConfigurationConflictError: Фабрика уже создана
        LoggingConfigurationError: Некорректная конфигурация
    """
    global _default_logger_factory

    with _logger_factory_lock:
        if _default_logger_factory is not None:
            raise ConfigurationConflictError(
                "Логирование уже настроено; используйте get_logger_factory()"
            )
        _default_logger_factory = _create_logger_factory(config)
        return _default_logger_factory


def get_logger_factory() -> LoggerFactory:
    """Возвращает фабрику логгеров процесса (thread-safe).

    Использует double-check locking pattern: если фабрика ещё не
    создана, она строится из config.toml и переменных окружения.

    Returns:
        Глобальный экземпляр LoggerFactory
    """
    global _default_logger_factory

    # Первая проверка без блокировки (быстрый путь)
    if _default_logger_factory is not None:
        return _default_logger_factory

    with _logger_factory_lock:
        # Double-check: проверяем ещё раз после получения блокировки
        if _default_logger_factory is None:
            _default_logger_factory = _create_logger_factory(None)

    return _default_logger_factory


def _create_logger_factory(config: Optional[LoggerFactoryConfig]) -> LoggerFactory:
    if config is None:
        config = load_logging_config()
    return LoggerFactory(config)


def get_logger(source: Any) -> Logger:
    """Возвращает логгер по имени, классу или объекту с __name__.

    Args:
        source: Имя логгера, класс или объект

    Returns:
        Logger из кэша фабрики процесса
    """
    return get_logger_factory().get_logger(source)


def reset_logger_factory() -> None:
    """Сбрасывает фабрику процесса (для тестов)."""
    global _default_logger_factory

    with _logger_factory_lock:
        if _default_logger_factory is not None:
            _default_logger_factory.close()
        _default_logger_factory = None
