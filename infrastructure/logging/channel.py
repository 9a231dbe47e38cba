"""Абстрактные интерфейсы каналов логирования."""
import sys
from abc import ABC, abstractmethod
from typing import Callable, Optional, Union

from infrastructure.logging.models import LogRecord


ArgumentFormatter = Callable[[object], str]


class LogChannel(ABC):
    """Простой канал: получает полностью сформированную запись.

    Канал - это место назначения для логов (консоль, память, очередь и т.п.).
    Канал не изменяет полученную запись.
    """

    @abstractmethod
    def write(self, record: LogRecord) -> None:
        """Отправляет запись в канал.

        Args:
            record: Запись для логирования
        """
        pass

    def flush(self) -> None:
        """Сбрасывает буферы (если есть)."""
        pass

    def close(self) -> None:
        """Закрывает канал и освобождает ресурсы."""
        self.flush()

    def __enter__(self) -> 'LogChannel':
        """Поддержка контекстного менеджера."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Автоматическое закрытие при выходе из контекста."""
        self.close()


class RawLogChannel(ABC):
    """Raw канал: дополнительно получает функцию форматирования аргументов.

    Используется, когда приложению нужна собственная сериализация args.
    """

    @abstractmethod
    def write(self, record: LogRecord, format_arg: ArgumentFormatter) -> None:
        """Отправляет запись в канал.

        Args:
            record: Запись для логирования
            format_arg: Преобразует произвольный аргумент в строку
        """
        pass

    def flush(self) -> None:
        """Сбрасывает буферы (если есть)."""
        pass

    def close(self) -> None:
        """Закрывает канал и освобождает ресурсы."""
        self.flush()

    def __enter__(self) -> 'RawLogChannel':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


AnyLogChannel = Union[LogChannel, RawLogChannel]


def write_to_channel(
    channel: AnyLogChannel,
    record: LogRecord,
    format_arg: ArgumentFormatter
) -> None:
    """Записывает запись в канал любого вида.

    Args:
        channel: Простой или raw канал
        record: Запись для логирования
        format_arg: Форматтер аргументов (передаётся только raw каналу)
    """
    if isinstance(channel, RawLogChannel):
        channel.write(record, format_arg)
    else:
        channel.write(record)


def write_diagnostic(message: str, error: Optional[BaseException] = None) -> None:
    """Пишет диагностику самой системы логирования в sys.stderr.

    Система логирования не может логировать свои ошибки через себя,
    поэтому последним получателем всегда остаётся stderr.

    Args:
        message: Описание проблемы
        error: Исключение (если есть)
    """
    try:
        if error is not None:
            sys.stderr.write(f"⚠️ {message}: {type(error).__name__}: {error}\n")
        else:
            sys.stderr.write(f"⚠️ {message}\n")
    except Exception:
        # stderr недоступен - больше сообщить некуда
        pass
