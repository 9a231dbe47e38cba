"""Инфраструктурный слой логирования.

Система логирования предоставляет:
- Фасад Logger с отложенным вычислением сообщений
- Каналы (консоль, память, пользовательские, мультиплексор)
- Маршрутизацию записей по независимым appender-ам (LoggerFactory)
- Именованные очереди асинхронных потребителей с сохранением порядка
"""
from infrastructure.logging.models import LogLevel, LogRecord
from infrastructure.logging.channel import LogChannel, RawLogChannel, write_diagnostic
from infrastructure.logging.formatting import LogFormatPreset, format_arg
from infrastructure.logging.console_channel import ConsoleLogChannel
from infrastructure.logging.memory_channel import MemoryLogChannel
from infrastructure.logging.config import (
    AppenderConfig,
    AsyncConsumerChannelConfig,
    ConfigurationConflictError,
    ConsoleChannelConfig,
    CustomChannelConfig,
    LoggerFactoryConfig,
    LoggingConfigurationError,
    MultiChannelConfig,
    ProviderGroupConfig,
)
from infrastructure.logging.channel_factory import ChannelFactory
from infrastructure.logging.async_consumer import AsyncConsumerLogChannel, AsyncLogConsumer
from infrastructure.logging.logger import Logger
from infrastructure.logging.logger_factory import LoggerFactory, appender_matches
from infrastructure.logging.stream_adapter import LogStreamAdapter, create_sse_event
from infrastructure.logging.messages_adapter import MessagesLogAdapter

__all__ = [
    "LogLevel",
    "LogRecord",
    "LogChannel",
    "RawLogChannel",
    "write_diagnostic",
    "LogFormatPreset",
    "format_arg",
    "ConsoleLogChannel",
    "MemoryLogChannel",
    "AppenderConfig",
    "AsyncConsumerChannelConfig",
    "ConfigurationConflictError",
    "ConsoleChannelConfig",
    "CustomChannelConfig",
    "LoggerFactoryConfig",
    "LoggingConfigurationError",
    "MultiChannelConfig",
    "ProviderGroupConfig",
    "ChannelFactory",
    "AsyncConsumerLogChannel",
    "AsyncLogConsumer",
    "Logger",
    "LoggerFactory",
    "appender_matches",
    "LogStreamAdapter",
    "create_sse_event",
    "MessagesLogAdapter",
]
