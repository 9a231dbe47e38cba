"""Конфигурация системы логирования: каналы, appender-ы, фабрика."""
import re
from enum import Enum
from typing import Annotated, Any, Callable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from infrastructure.logging.channel import LogChannel, RawLogChannel
from infrastructure.logging.formatting import resolve_format
from infrastructure.logging.models import LogLevel


DEFAULT_PROVIDER_NAME = "Opinion"

# Формат провайдера в стиле log4ts: "2025-10-03 17:47:25,102 INFO  [Logger] текст"
PREFORMATTED_MESSAGE_FORMAT = "%(asctime)s %(log_level)-5s [%(log_name)s] %(message)s"


class LoggingConfigurationError(Exception):
    """Ошибка конфигурации логирования (обнаруживается при построении)."""
    pass


class ConfigurationConflictError(LoggingConfigurationError):
    """Повторная конфигурация уже настроенной фабрики логгеров."""
    pass


class ChannelType(str, Enum):
    """Типы каналов."""
    CONSOLE = "console"
    CUSTOM = "custom"
    MULTI = "multi"
    ASYNC_CONSUMER = "async-consumer"


def _parse_level(value: Any) -> Any:
    if value is None or isinstance(value, LogLevel):
        return value
    return LogLevel.parse(value)


class ConsoleChannelConfig(BaseModel):
    """Вывод в консоль.

    Атрибуты:
        format: Пресет (SIMPLE, DETAILED, COMPACT, JSON), шаблон или функция
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    type: Literal["console"] = "console"
    format: Optional[Any] = Field(default=None, description="Формат вывода")

    @field_validator("format", mode="before")
    @classmethod
    def resolve_log_format(cls, value: Any) -> Any:
        return resolve_format(value)


class CustomChannelConfig(BaseModel):
    """Пользовательский канал (LogChannel или RawLogChannel)."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    type: Literal["custom"] = "custom"
    channel: Any = Field(description="Экземпляр LogChannel или RawLogChannel")

    @field_validator("channel")
    @classmethod
    def check_channel(cls, value: Any) -> Any:
        if not isinstance(value, (LogChannel, RawLogChannel)):
            raise ValueError(
                f"Пользовательский канал должен быть LogChannel или RawLogChannel, "
                f"получено {type(value).__name__}"
            )
        return value


class MultiChannelConfig(BaseModel):
    """Запись одновременно в несколько каналов."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    type: Literal["multi"] = "multi"
    channels: List["ChannelConfig"] = Field(default_factory=list)


class AsyncConsumerChannelConfig(BaseModel):
    """Именованная очередь асинхронных потребителей."""
    model_config = ConfigDict(frozen=True)

    type: Literal["async-consumer"] = "async-consumer"
    channel_name: str = Field(min_length=1, description="Имя канала потребителей")


ChannelConfig = Annotated[
    Union[
        ConsoleChannelConfig,
        CustomChannelConfig,
        MultiChannelConfig,
        AsyncConsumerChannelConfig,
    ],
    Field(discriminator="type"),
]

MultiChannelConfig.model_rebuild()


class AppenderConfig(BaseModel):
    """Независимое правило маршрутизации записей.

    Атрибуты:
        name: Уникальное имя appender-а
        level: Минимальный уровень (None - принимать всё)
        groups: Подстроки или регулярные выражения по имени логгера
            (пусто - любое имя)
        channel: Канал назначения
        enabled: Включён ли appender
        date_formatter: Форматирование времени записи (мс с эпохи -> строка)
        argument_formatter: Форматирование args для raw каналов
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    level: Optional[LogLevel] = None
    groups: List[Any] = Field(default_factory=list)
    channel: ChannelConfig
    enabled: bool = True
    date_formatter: Optional[Callable[[float], str]] = None
    argument_formatter: Optional[Callable[[Any], str]] = None

    @field_validator("level", mode="before")
    @classmethod
    def parse_level(cls, value: Any) -> Any:
        return _parse_level(value)

    @field_validator("groups", mode="before")
    @classmethod
    def check_groups(cls, value: Any) -> Any:
        if value is None:
            return []
        for group in value:
            if not isinstance(group, (str, re.Pattern)):
                raise ValueError(
                    f"Группа appender-а должна быть строкой или re.Pattern, получено {group!r}"
                )
        return list(value)


class ProviderGroupConfig(BaseModel):
    """Группа логгеров провайдера (по регулярному выражению).

    Задаёт порог уровня для логгеров группы. В простой конфигурации
    (без appender-ов) группа может также задать собственный канал: логгеры,
    для которых она первая совпавшая, пишут в него вместо default_channel.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    identifier: str = Field(min_length=1)
    expression: Any = Field(description="Регулярное выражение по имени логгера")
    level: LogLevel = LogLevel.DEBUG
    channel: Optional[ChannelConfig] = None

    @field_validator("expression", mode="before")
    @classmethod
    def compile_expression(cls, value: Any) -> Any:
        if isinstance(value, re.Pattern):
            return value
        if isinstance(value, str):
            return re.compile(value)
        raise ValueError(f"Выражение группы должно быть строкой или re.Pattern, получено {value!r}")

    @field_validator("level", mode="before")
    @classmethod
    def parse_level(cls, value: Any) -> Any:
        return _parse_level(value)


class LoggerFactoryConfig(BaseModel):
    """Конфигурация фабрики логгеров.

    Атрибуты:
        provider_name: Имя провайдера (корневой логгер stdlib logging)
        global_level: Уровень провайдера, если appender-ы не заданы
        default_channel: Канал, если appender-ы не заданы
        appenders: Список appender-ов (если задан - маршрутизация через них)
        groups: Пороги уровней провайдера по группам логгеров
        message_format: %-формат, которым провайдер предварительно рендерит сообщения
        consumer_timeout: Таймаут одного вызова consume() в секундах (None - без таймаута)
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    provider_name: str = Field(default=DEFAULT_PROVIDER_NAME, min_length=1)
    global_level: LogLevel = LogLevel.DEBUG
    default_channel: ChannelConfig = Field(default_factory=ConsoleChannelConfig)
    appenders: Optional[List[AppenderConfig]] = None
    groups: Optional[List[ProviderGroupConfig]] = None
    message_format: Optional[str] = None
    consumer_timeout: Optional[float] = Field(default=None, gt=0)

    @field_validator("global_level", mode="before")
    @classmethod
    def parse_level(cls, value: Any) -> Any:
        return _parse_level(value) if value is not None else LogLevel.DEBUG
