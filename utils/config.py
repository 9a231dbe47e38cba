"""Загрузка конфигурации логирования из config.toml.

Конфигурация читается из секции [logging] файла config.toml в корне
проекта и превращается в LoggerFactoryConfig.

Примеры использования:
    ```python
    from utils.config import load_logging_config

    config = load_logging_config()
    config = load_logging_config("deploy/config.toml")
    ```

Формат секции:
    ```toml
    [logging]
    provider_name = "Opinion"
    global_level = "INFO"
    consumer_timeout = 5.0

    [logging.default_channel]
    type = "console"
    format = "DETAILED"

    [[logging.appenders]]
    name = "audit"
    level = "WARN"
    groups = ["Auth"]          # вхождение подстроки в имя логгера
    patterns = ["^Payment"]    # регулярные выражения
    channel = { type = "async-consumer", channel_name = "audit-queue" }

    [[logging.groups]]
    identifier = "http"
    expression = "^Http"
    level = "WARN"
    ```

Приоритет настроек:
    1. Переменные окружения (высший приоритет)
    2. config.toml
    3. Значения по умолчанию

Зависимости:
    - tomllib (Python 3.11+) или tomli (для Python < 3.11)
    - pydantic: валидация через LoggerFactoryConfig

Связанные утилиты:
    - utils.env_config: работа с переменными окружения
    - utils.logger: построение фабрики логгеров

Примечания:
    - Отсутствующий файл - используются значения по умолчанию
    - Нечитаемый файл - значения по умолчанию и диагностика в stderr
      (логирование ещё не настроено, поэтому не через логгер)
    - Пользовательские (custom) каналы задаются только программно
"""
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union
import sys
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found]  # Fallback для Python < 3.11

from infrastructure.logging.channel import write_diagnostic
from infrastructure.logging.config import LoggerFactoryConfig
from infrastructure.logging.models import LogLevel
from utils.env_config import LoggingEnvironmentConfig, get_env_config


DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config.toml"

LOGGING_SECTION = "logging"


def resolve_config_path(
    path: Optional[Union[str, Path]] = None,
    env_config: Optional[LoggingEnvironmentConfig] = None
) -> Path:
    """Путь к config.toml: аргумент, затем LOG_CONFIG_FILE, затем корень проекта."""
    if path is not None:
        return Path(path)
    env_config = env_config or get_env_config()
    if env_config.log_config_file:
        return Path(env_config.log_config_file)
    return DEFAULT_CONFIG_PATH


def read_logging_section(config_path: Path) -> Dict[str, Any]:
    """Читает секцию [logging] из файла.

    Args:
        config_path: Путь к config.toml

    Returns:
        Содержимое секции (пустой словарь, если файла или секции нет
        либо файл не удалось прочитать)
    """
    if not config_path.exists():
        return {}

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        write_diagnostic(
            f"Ошибка загрузки {config_path}, используются значения по умолчанию", e
        )
        return {}

    section = data.get(LOGGING_SECTION, {})
    return dict(section) if isinstance(section, dict) else {}


def _normalize_appender(appender: Dict[str, Any]) -> Dict[str, Any]:
    # groups - подстроки, patterns - регулярные выражения
    appender = dict(appender)
    groups = list(appender.get("groups") or [])
    groups.extend(re.compile(pattern) for pattern in appender.pop("patterns", None) or [])
    appender["groups"] = groups
    return appender


def build_logging_config(
    section: Dict[str, Any],
    env_config: Optional[LoggingEnvironmentConfig] = None
) -> LoggerFactoryConfig:
    """Собирает LoggerFactoryConfig из секции файла и переменных окружения.

    Args:
        section: Содержимое секции [logging]
        env_config: Переопределения из окружения (None - текущее окружение)

    Returns:
        Конфигурация фабрики логгеров

    Raises:
        pydantic.ValidationError: Некорректные значения конфигурации
    """
    env_config = env_config or get_env_config()
    values = dict(section)

    if "appenders" in values and values["appenders"] is not None:
        values["appenders"] = [_normalize_appender(appender) for appender in values["appenders"]]

    if env_config.log_level is not None:
        values["global_level"] = LogLevel.parse(env_config.log_level)
    if env_config.log_provider_name is not None:
        values["provider_name"] = env_config.log_provider_name
    if env_config.log_consumer_timeout is not None:
        values["consumer_timeout"] = env_config.log_consumer_timeout

    return LoggerFactoryConfig.model_validate(values)


def load_logging_config(path: Optional[Union[str, Path]] = None) -> LoggerFactoryConfig:
    """Загружает конфигурацию логирования.

    Args:
        path: Путь к config.toml (None - LOG_CONFIG_FILE или корень проекта)

    Returns:
        Конфигурация фабрики логгеров
    """
    env_config = get_env_config()
    config_path = resolve_config_path(path, env_config)
    return build_logging_config(read_logging_section(config_path), env_config)
