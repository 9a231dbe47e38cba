"""Провайдер логов поверх стандартного logging.

Провайдер отвечает за уровни (глобальный и по группам логгеров) и за
доставку каждой принятой записи в единственный маршрутизирующий канал.
Сообщение передаётся отложенно и вычисляется только для включённых уровней.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from infrastructure.logging.channel import LogChannel, write_diagnostic
from infrastructure.logging.config import ProviderGroupConfig
from infrastructure.logging.models import UNKNOWN_LOGGER, LogLevel, LogRecord


# Числовые уровни stdlib logging для LogLevel
PROVIDER_LEVELS: Dict[LogLevel, int] = {
    LogLevel.TRACE: 5,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.FATAL: logging.CRITICAL,
    LogLevel.OFF: 100,
}

logging.addLevelName(PROVIDER_LEVELS[LogLevel.TRACE], "TRACE")

MessageSupplier = Callable[[], str]


def match_provider_group(
    groups: Sequence[ProviderGroupConfig],
    log_name: str
) -> Optional[ProviderGroupConfig]:
    """Первая группа, выражение которой совпало с именем логгера."""
    for group in groups:
        if group.expression.search(log_name):
            return group
    return None


def level_from_provider(levelno: int) -> LogLevel:
    """Преобразует числовой уровень stdlib logging в LogLevel."""
    result = LogLevel.TRACE
    for level, number in PROVIDER_LEVELS.items():
        if level is not LogLevel.OFF and levelno >= number:
            result = level
    return result


class DeferredMessage:
    """Сообщение, вычисляемое при первом обращении к str()."""

    __slots__ = ("_supplier", "_value")

    def __init__(self, supplier: MessageSupplier) -> None:
        self._supplier = supplier
        self._value: Optional[str] = None

    def __str__(self) -> str:
        if self._value is None:
            self._value = str(self._supplier())
        return self._value


class RoutingHandler(logging.Handler):
    """Handler, превращающий logging.LogRecord в LogRecord и пишущий его в канал."""

    def __init__(self, channel: LogChannel, message_format: Optional[str] = None) -> None:
        """Инициализация RoutingHandler.

        Args:
            channel: Маршрутизирующий канал
            message_format: %-формат предварительного рендеринга сообщения
        """
        super().__init__(level=logging.NOTSET)
        self.channel = channel
        if message_format:
            self.setFormatter(logging.Formatter(message_format))

    def to_log_record(self, record: logging.LogRecord) -> LogRecord:
        """Преобразует запись stdlib logging в LogRecord.

        Args:
            record: Запись stdlib logging

        Returns:
            Нормализованная запись
        """
        level = getattr(record, "log_level", None)
        if not isinstance(level, LogLevel):
            level = level_from_provider(record.levelno)
        record.log_level = level.name

        log_name = getattr(record, "log_name", None) or record.name or UNKNOWN_LOGGER
        record.log_name = log_name

        message = self.format(record) if self.formatter is not None else record.getMessage()

        return LogRecord(
            level=level,
            time_in_millis=record.created * 1000,
            log_name=log_name,
            message=message,
            exception=getattr(record, "log_exception", None),
            args=tuple(getattr(record, "log_args", ())),
        )

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.channel.write(self.to_log_record(record))
        except Exception as error:
            write_diagnostic(f"RoutingHandler: ошибка обработки записи логгера {record.name}", error)


class LogProvider:
    """Провайдер: именованное дерево логгеров stdlib logging с одним каналом.

    Атрибуты:
        name: Имя провайдера (имя корневого логгера)
        level: Глобальный уровень
        groups: Пороги уровней по группам логгеров
    """

    def __init__(
        self,
        name: str,
        level: LogLevel,
        channel: LogChannel,
        groups: Optional[Sequence[ProviderGroupConfig]] = None,
        message_format: Optional[str] = None
    ) -> None:
        """Инициализация LogProvider.

        Повторное создание провайдера с тем же именем заменяет
        маршрутизирующий handler предыдущего.

        Args:
            name: Имя провайдера
            level: Глобальный уровень
            channel: Маршрутизирующий канал
            groups: Пороги уровней по группам логгеров
            message_format: %-формат предварительного рендеринга сообщений
        """
        self.name = name
        self.level = level
        self.groups: List[ProviderGroupConfig] = list(groups or [])
        self.handler = RoutingHandler(channel, message_format)

        self._root = logging.getLogger(name)
        for handler in list(self._root.handlers):
            if isinstance(handler, RoutingHandler):
                self._root.removeHandler(handler)
        self._root.addHandler(self.handler)
        self._root.setLevel(PROVIDER_LEVELS[level])
        self._root.propagate = False

    def get_logger(self, log_name: str) -> logging.Logger:
        """Возвращает логгер провайдера для имени.

        Уровень логгера задаёт первая группа, выражение которой совпало
        с именем; иначе действует глобальный уровень.

        Args:
            log_name: Имя логгера

        Returns:
            Логгер stdlib logging
        """
        logger = logging.getLogger(f"{self.name}.{log_name}")
        group = match_provider_group(self.groups, log_name)
        logger.setLevel(PROVIDER_LEVELS[group.level] if group is not None else logging.NOTSET)
        return logger

    def is_enabled(self, logger: logging.Logger, level: LogLevel) -> bool:
        """Проверяет, пропустит ли провайдер запись данного уровня."""
        if level is LogLevel.OFF:
            return False
        return logger.isEnabledFor(PROVIDER_LEVELS[level])

    def log(
        self,
        logger: logging.Logger,
        log_name: str,
        level: LogLevel,
        message: MessageSupplier,
        exception: Optional[BaseException] = None,
        args: Sequence[Any] = ()
    ) -> None:
        """Передаёт запись провайдеру.

        Сообщение не вычисляется, если уровень выключен.

        Args:
            logger: Логгер провайдера
            log_name: Имя логгера фасада
            level: Уровень записи
            message: Отложенное сообщение
            exception: Исключение (если есть)
            args: Дополнительные аргументы
        """
        if not self.is_enabled(logger, level):
            return
        logger.log(
            PROVIDER_LEVELS[level],
            DeferredMessage(message),
            extra={
                "log_level": level,
                "log_name": log_name,
                "log_exception": exception,
                "log_args": tuple(args),
            },
        )

    def close(self) -> None:
        """Отключает маршрутизирующий handler."""
        self._root.removeHandler(self.handler)
        self.handler.close()
