"""Переопределение настроек логирования из переменных окружения.

Предоставляет Pydantic модель для работы с переменными окружения.
Используется для переопределения секции [logging] из config.toml.

Примеры использования:
    ```python
    from utils.env_config import get_env_config

    env_config = get_env_config()
    if env_config.log_level is not None:
        print(env_config.log_level)
    ```

Переменные окружения:
    - LOG_LEVEL: глобальный уровень логирования (TRACE..OFF)
    - LOG_PROVIDER_NAME: имя провайдера логов
    - LOG_CONFIG_FILE: путь к config.toml
    - LOG_CONSUMER_TIMEOUT: таймаут потребителя логов в секундах

Зависимости:
    - pydantic: для валидации конфигурации
    - os: для доступа к переменным окружения
    - functools: для кэширования

Примечания:
    - Конфигурация кэшируется (lru_cache), для тестов есть cache_clear()
    - Переменные окружения имеют приоритет над config.toml
    - Незаданные переменные остаются None
"""
import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LoggingEnvironmentConfig(BaseModel):
    """Настройки логирования из переменных окружения."""

    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    log_level: Optional[str] = Field(default=None, alias="LOG_LEVEL")
    log_provider_name: Optional[str] = Field(default=None, alias="LOG_PROVIDER_NAME")
    log_config_file: Optional[str] = Field(default=None, alias="LOG_CONFIG_FILE")
    log_consumer_timeout: Optional[float] = Field(default=None, alias="LOG_CONSUMER_TIMEOUT", gt=0)

    @classmethod
    def from_env(cls) -> 'LoggingEnvironmentConfig':
        """Создаёт конфигурацию из переменных окружения.

        Пустые значения и нечисловой таймаут игнорируются.

        Returns:
            Экземпляр LoggingEnvironmentConfig
        """
        env_dict: dict[str, str | float] = {}
        for field_name, field_info in cls.model_fields.items():
            alias = field_info.alias or field_name.upper()
            value = os.getenv(alias)

            if value is None or not value.strip():
                continue

            if field_info.annotation in (float, Optional[float]):
                try:
                    timeout = float(value)
                except ValueError:
                    continue
                if timeout > 0:
                    env_dict[field_name] = timeout
            else:
                env_dict[field_name] = value.strip()

        return cls(**env_dict)  # type: ignore[arg-type]


@lru_cache(maxsize=1)
def get_env_config() -> LoggingEnvironmentConfig:
    """Возвращает кэшированную конфигурацию из переменных окружения.

    Returns:
        Экземпляр LoggingEnvironmentConfig
    """
    return LoggingEnvironmentConfig.from_env()
