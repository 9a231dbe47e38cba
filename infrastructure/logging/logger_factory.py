"""LoggerFactory - маршрутизация записей по appender-ам и реестр логгеров.

Фабрика создаёт провайдер и единственный маршрутизирующий канал, через
который проходит каждая принятая провайдером запись. Для каждой записи
канал выбирает подходящие appender-ы (уровень + группы) и пишет в канал
каждого из них отдельную копию записи. Именованные очереди асинхронных
потребителей (AsyncConsumerLogChannel) принадлежат фабрике.
"""
import re
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Sequence

from infrastructure.logging.async_consumer import (
    AsyncConsumerLogChannel,
    AsyncLogConsumer,
    RemoveConsumerFunction,
)
from infrastructure.logging.channel import (
    AnyLogChannel,
    ArgumentFormatter,
    LogChannel,
    write_diagnostic,
    write_to_channel,
)
from infrastructure.logging.channel_factory import ChannelFactory
from infrastructure.logging.config import (
    AppenderConfig,
    AsyncConsumerChannelConfig,
    LoggerFactoryConfig,
    LoggingConfigurationError,
    ProviderGroupConfig,
)
from infrastructure.logging.formatting import format_arg, recover_preformatted
from infrastructure.logging.logger import Logger
from infrastructure.logging.models import UNKNOWN_LOGGER, LogLevel, LogRecord
from infrastructure.logging.provider import LogProvider, match_provider_group


UNKNOWN_CLASS_NAME = "UnknownClass"
DEFAULT_APPENDER_NAME = "default"
MESSAGES_CHANNEL_NAME = "messages"
GROUP_APPENDER_PREFIX = "group-"

# Зарезервированный appender для пользовательских сообщений (UI)
MESSAGES_APPENDER = AppenderConfig(
    name=MESSAGES_CHANNEL_NAME,
    level=LogLevel.TRACE,
    groups=[re.compile(".+")],
    channel=AsyncConsumerChannelConfig(channel_name=MESSAGES_CHANNEL_NAME),
)


def group_matches(group: Any, log_name: str) -> bool:
    """Проверяет одну группу appender-а: regex или вхождение подстроки."""
    if isinstance(group, re.Pattern):
        return group.search(log_name) is not None
    return group in log_name


def appender_matches(appender: AppenderConfig, log_name: str, level: LogLevel) -> bool:
    """Проверяет, принимает ли appender запись.

    Appender принимает запись, если у него нет порога уровня или уровень
    записи не ниже порога, и если у него нет групп или хотя бы одна группа
    совпала с именем логгера.

    Args:
        appender: Конфигурация appender-а
        log_name: Имя логгера записи
        level: Уровень записи

    Returns:
        True если запись должна попасть в канал appender-а
    """
    if appender.level is not None and level < appender.level:
        return False
    if not appender.groups:
        return True
    return any(group_matches(group, log_name) for group in appender.groups)


def check_unique_names(names: Sequence[str]) -> None:
    """Проверяет уникальность имён appender-ов.

    Raises:
        LoggingConfigurationError: Есть повторяющиеся имена
    """
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise LoggingConfigurationError(
            f"Имена appender-ов должны быть уникальными: {', '.join(duplicates)}"
        )


def channel_owner_filter(
    groups: Sequence[ProviderGroupConfig],
    owner: Optional[ProviderGroupConfig]
) -> Callable[[str], bool]:
    """Фильтр имён логгеров, пишущих в канал группы owner.

    Логгер принадлежит первой совпавшей группе. Если у неё нет канала
    (или группа не совпала), логгер пишет в канал по умолчанию (owner=None).
    """
    def accepts(log_name: str) -> bool:
        group = match_provider_group(groups, log_name)
        if group is None or group.channel is None:
            return owner is None
        return group is owner

    return accepts


def resolve_logger_name(source: Any) -> str:
    """Имя логгера из строки, класса или объекта с __name__."""
    if isinstance(source, str):
        return source or UNKNOWN_CLASS_NAME
    name = getattr(source, "__name__", None)
    if isinstance(name, str) and name:
        return name
    return UNKNOWN_CLASS_NAME


@dataclass
class RoutedAppender:
    """Appender вместе с построенным для него каналом."""
    config: AppenderConfig
    channel: AnyLogChannel
    # Дополнительный фильтр по имени логгера (неявные appender-ы групп)
    accepts_logger: Optional[Callable[[str], bool]] = None

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def format_arg(self) -> ArgumentFormatter:
        return self.config.argument_formatter or format_arg

    def prepare(self, record: LogRecord) -> LogRecord:
        """Копия записи с именем appender-а и отформатированной датой."""
        formatted_date = record.formatted_date
        if self.config.date_formatter is not None:
            formatted_date = self.config.date_formatter(record.time_in_millis)
        return replace(record, appender_name=self.config.name, formatted_date=formatted_date)


class ConsumerQueueChannel(LogChannel):
    """Привязка AsyncConsumer конфигурации к именованной очереди фабрики.

    Пока у очереди нет потребителей, запись не преобразуется и не ставится
    в очередь.
    """

    def __init__(self, queue: AsyncConsumerLogChannel) -> None:
        self.queue = queue

    def write(self, record: LogRecord) -> None:
        if self.queue.consumer_count == 0:
            return
        self.queue.write(recover_preformatted(record))


class AppenderRoutingChannel(LogChannel):
    """Маршрутизирующий канал провайдера.

    Ошибка одного appender-а сообщается в диагностику и не мешает
    доставке остальным.
    """

    def __init__(self, appenders: Sequence[RoutedAppender]) -> None:
        self._appenders: List[RoutedAppender] = list(appenders)

    @property
    def appenders(self) -> List[RoutedAppender]:
        return list(self._appenders)

    def add_appender(self, appender: RoutedAppender) -> None:
        self._appenders.append(appender)

    def matching_appenders(self, record: LogRecord) -> List[RoutedAppender]:
        """Appender-ы, которые примут запись."""
        log_name = record.log_name or UNKNOWN_LOGGER
        return [
            appender for appender in self._appenders
            if appender_matches(appender.config, log_name, record.level)
            and (appender.accepts_logger is None or appender.accepts_logger(log_name))
        ]

    def write(self, record: LogRecord) -> None:
        for appender in self.matching_appenders(record):
            try:
                write_to_channel(appender.channel, appender.prepare(record), appender.format_arg)
            except Exception as error:
                write_diagnostic(f"Appender '{appender.name}': ошибка записи", error)

    def flush(self) -> None:
        for appender in self._appenders:
            try:
                appender.channel.flush()
            except Exception as error:
                write_diagnostic(f"Appender '{appender.name}': ошибка flush", error)


class LoggerFactory:
    """Фабрика логгеров: провайдер, маршрутизация, кэш логгеров и очереди потребителей.

    Создаётся один раз при старте процесса (см. utils.logger) и
    передаётся компонентам, которым нужны логгеры или потребители.

    Атрибуты:
        config: Конфигурация фабрики
        provider: Провайдер логов (stdlib logging)
    """

    def __init__(self, config: Optional[LoggerFactoryConfig] = None) -> None:
        """Инициализация LoggerFactory.

        Каналы всех appender-ов строятся сразу, поэтому ошибки
        конфигурации обнаруживаются здесь, а не при первой записи.

        Args:
            config: Конфигурация (None - значения по умолчанию)

        Raises:
            LoggingConfigurationError: Нет включённых appender-ов, повторяющиеся
                имена appender-ов, Multi канал без каналов или канал группы
                вместе с appenders
        """
        self.config = config or LoggerFactoryConfig()
        self._async_channels: Dict[str, AsyncConsumerLogChannel] = {}
        self._loggers: Dict[str, Logger] = {}
        self._channel_factory = ChannelFactory(async_channel_resolver=self._bind_async_channel)

        self._routing_channel = AppenderRoutingChannel(self._build_appenders())

        # С appender-ами фильтрация по уровню выполняется ими
        level = LogLevel.TRACE if self.config.appenders is not None else self.config.global_level
        self.provider = LogProvider(
            name=self.config.provider_name,
            level=level,
            channel=self._routing_channel,
            groups=self.config.groups,
            message_format=self.config.message_format,
        )

    def _build_appenders(self) -> List[RoutedAppender]:
        if self.config.appenders is None:
            return self._simple_appenders()

        if any(group.channel is not None for group in self.config.groups or []):
            raise LoggingConfigurationError(
                "Канал группы задаётся только в простой конфигурации (без appenders)"
            )

        enabled = [appender for appender in self.config.appenders if appender.enabled]
        if not enabled:
            raise LoggingConfigurationError("Не задано ни одного включённого appender-а")

        check_unique_names([appender.name for appender in enabled])
        return [self._route(appender) for appender in enabled]

    def _simple_appenders(self) -> List[RoutedAppender]:
        """Неявные appender-ы простой конфигурации.

        Запись логгера попадает ровно в один канал: в канал первой
        совпавшей группы, если он у неё задан, иначе в default_channel.
        """
        groups = list(self.config.groups or [])
        default = AppenderConfig(name=DEFAULT_APPENDER_NAME, channel=self.config.default_channel)
        channel_groups = [group for group in groups if group.channel is not None]
        if not channel_groups:
            return [self._route(default)]

        routed = [self._route(default, accepts_logger=channel_owner_filter(groups, None))]
        for group in channel_groups:
            appender = AppenderConfig(
                name=f"{GROUP_APPENDER_PREFIX}{group.identifier}",
                groups=[group.expression],
                channel=group.channel,
            )
            routed.append(self._route(appender, accepts_logger=channel_owner_filter(groups, group)))

        check_unique_names([appender.name for appender in routed])
        return routed

    def _route(
        self,
        appender: AppenderConfig,
        accepts_logger: Optional[Callable[[str], bool]] = None
    ) -> RoutedAppender:
        return RoutedAppender(
            config=appender,
            channel=self._channel_factory.create_channel(appender.channel),
            accepts_logger=accepts_logger,
        )

    def _bind_async_channel(self, channel_name: str) -> LogChannel:
        return ConsumerQueueChannel(self._get_or_create_async_channel(channel_name))

    def _get_or_create_async_channel(self, channel_name: str) -> AsyncConsumerLogChannel:
        channel = self._async_channels.get(channel_name)
        if channel is None:
            channel = AsyncConsumerLogChannel(channel_name, consumer_timeout=self.config.consumer_timeout)
            self._async_channels[channel_name] = channel
        return channel

    @property
    def appender_names(self) -> List[str]:
        """Имена активных appender-ов в порядке маршрутизации."""
        return [appender.name for appender in self._routing_channel.appenders]

    def get_logger(self, source: Any) -> Logger:
        """Возвращает логгер по имени, классу или объекту с __name__.

        Логгер создаётся при первом обращении и далее берётся из кэша.

        Args:
            source: Имя логгера, класс или объект

        Returns:
            Logger
        """
        name = resolve_logger_name(source)
        logger = self._loggers.get(name)
        if logger is None:
            logger = Logger(name, self.provider)
            self._loggers[name] = logger
        return logger

    def add_log_consumer(self, channel_name: str, consumer: AsyncLogConsumer) -> RemoveConsumerFunction:
        """Регистрирует потребителя именованного канала.

        Регистрация не зависит от того, ссылается ли на канал какой-либо
        appender.

        Args:
            channel_name: Имя канала
            consumer: Потребитель

        Returns:
            Функция отмены регистрации
        """
        return self._get_or_create_async_channel(channel_name).add_consumer(consumer)

    def messages_consumer(self, consumer: AsyncLogConsumer) -> RemoveConsumerFunction:
        """Регистрирует потребителя канала пользовательских сообщений.

        Канал "messages" принимает записи всех логгеров от уровня TRACE;
        соответствующий appender добавляется при первой регистрации.
        """
        self._ensure_messages_appender()
        return self.add_log_consumer(MESSAGES_CHANNEL_NAME, consumer)

    def _ensure_messages_appender(self) -> None:
        """Добавляет appender "messages", если его ещё нет.

        Raises:
            LoggingConfigurationError: Appender "messages" уже настроен
                на другой канал
        """
        for appender in self._routing_channel.appenders:
            if appender.name != MESSAGES_APPENDER.name:
                continue
            channel_config = appender.config.channel
            if (
                isinstance(channel_config, AsyncConsumerChannelConfig)
                and channel_config.channel_name == MESSAGES_CHANNEL_NAME
            ):
                return
            raise LoggingConfigurationError(
                f"Appender '{MESSAGES_APPENDER.name}' зарезервирован для канала "
                f"'{MESSAGES_CHANNEL_NAME}' и не может писать в другой канал"
            )
        self._routing_channel.add_appender(self._route(MESSAGES_APPENDER))

    def get_async_channel(self, channel_name: str) -> Optional[AsyncConsumerLogChannel]:
        """Возвращает очередь потребителей по имени (None если её нет)."""
        return self._async_channels.get(channel_name)

    def log_channel_names(self) -> List[str]:
        """Имена всех созданных очередей потребителей."""
        return list(self._async_channels.keys())

    def log_consumer_count(self, channel_name: str) -> int:
        """Количество потребителей канала."""
        channel = self._async_channels.get(channel_name)
        return channel.consumer_count if channel is not None else 0

    def clear_log_consumers(self, channel_name: str) -> None:
        """Удаляет всех потребителей канала."""
        channel = self._async_channels.get(channel_name)
        if channel is not None:
            channel.clear_consumers()

    def clear_all_log_consumers(self) -> None:
        """Удаляет потребителей всех каналов."""
        for channel in self._async_channels.values():
            channel.clear_consumers()

    async def flush(self) -> None:
        """Ждёт разбора всех очередей и сбрасывает буферы каналов."""
        for channel in list(self._async_channels.values()):
            await channel.join()
        self._routing_channel.flush()

    def close(self) -> None:
        """Отключает провайдер от маршрутизирующего канала."""
        self.provider.close()
