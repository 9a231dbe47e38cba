"""ChannelFactory - построение каналов по конфигурации."""
from typing import Callable, List, Optional

from infrastructure.logging.channel import (
    AnyLogChannel,
    ArgumentFormatter,
    LogChannel,
    RawLogChannel,
    write_diagnostic,
    write_to_channel,
)
from infrastructure.logging.config import (
    AsyncConsumerChannelConfig,
    ChannelConfig,
    ConsoleChannelConfig,
    CustomChannelConfig,
    LoggingConfigurationError,
    MultiChannelConfig,
)
from infrastructure.logging.console_channel import ConsoleLogChannel
from infrastructure.logging.formatting import format_arg, recover_preformatted
from infrastructure.logging.models import LogRecord


AsyncChannelResolver = Callable[[str], LogChannel]


class CustomChannelAdapter(RawLogChannel):
    """Приводит пользовательский канал к сигнатуре raw канала.

    Перед записью восстанавливает поля записи из предварительно
    отрендеренного провайдером сообщения.
    """

    def __init__(self, channel: AnyLogChannel) -> None:
        self.channel = channel

    def write(self, record: LogRecord, format_arg: ArgumentFormatter = format_arg) -> None:
        write_to_channel(self.channel, recover_preformatted(record), format_arg)

    def flush(self) -> None:
        self.channel.flush()


class MultiLogChannel(RawLogChannel):
    """Раздаёт запись нескольким каналам.

    Ошибка одного канала сообщается в диагностику и не мешает остальным.
    """

    def __init__(self, channels: List[AnyLogChannel]) -> None:
        self.channels = channels

    def write(self, record: LogRecord, format_arg: ArgumentFormatter = format_arg) -> None:
        for channel in self.channels:
            try:
                write_to_channel(channel, record, format_arg)
            except Exception as error:
                write_diagnostic(f"MultiLogChannel: ошибка записи в {type(channel).__name__}", error)

    def flush(self) -> None:
        for channel in self.channels:
            try:
                channel.flush()
            except Exception as error:
                write_diagnostic(f"MultiLogChannel: ошибка flush в {type(channel).__name__}", error)


class AsyncConsumerPlaceholderChannel(LogChannel):
    """Канал-заглушка для AsyncConsumer вне LoggerFactory: ничего не делает."""

    def __init__(self, channel_name: str) -> None:
        self.channel_name = channel_name

    def write(self, record: LogRecord) -> None:
        pass


class ChannelFactory:
    """Фабрика каналов.

    Атрибуты:
        async_channel_resolver: Функция, возвращающая именованную очередь
            потребителей для AsyncConsumer конфигурации (None - каналы-заглушки)
    """

    def __init__(self, async_channel_resolver: Optional[AsyncChannelResolver] = None) -> None:
        self.async_channel_resolver = async_channel_resolver

    def create_channel(self, config: ChannelConfig) -> AnyLogChannel:
        """Создаёт канал по конфигурации.

        Args:
            config: Конфигурация канала

        Returns:
            Готовый канал

        Raises:
            LoggingConfigurationError: Multi без каналов или неизвестная конфигурация
        """
        if isinstance(config, ConsoleChannelConfig):
            return ConsoleLogChannel(log_format=config.format)

        if isinstance(config, CustomChannelConfig):
            return CustomChannelAdapter(config.channel)

        if isinstance(config, MultiChannelConfig):
            return self._create_multi_channel(config)

        if isinstance(config, AsyncConsumerChannelConfig):
            if self.async_channel_resolver is None:
                return AsyncConsumerPlaceholderChannel(config.channel_name)
            return self.async_channel_resolver(config.channel_name)

        raise LoggingConfigurationError(
            f"Неизвестная конфигурация канала: {type(config).__name__}"
        )

    def _create_multi_channel(self, config: MultiChannelConfig) -> MultiLogChannel:
        # Вложенные Multi не поддерживаются и пропускаются
        children = [
            child for child in config.channels
            if not isinstance(child, MultiChannelConfig)
        ]
        if not children:
            raise LoggingConfigurationError(
                "Multi канал не содержит ни одного канала (вложенные Multi не учитываются)"
            )
        return MultiLogChannel([self.create_channel(child) for child in children])
