"""Модели данных для системы логирования."""
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict, Optional, Tuple, Union


# Имя логгера, когда его не удалось определить
UNKNOWN_LOGGER = "unknown"


class LogLevel(IntEnum):
    """Уровни логирования (полностью упорядочены)."""
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    FATAL = 5
    OFF = 6

    @classmethod
    def parse(cls, value: Union[str, int, "LogLevel", None]) -> "LogLevel":
        """Преобразует строку или число в LogLevel.

        Имена уровней регистронезависимы, "WARNING" принимается как
        синоним WARN. Нераспознанные значения дают INFO.

        Args:
            value: Имя уровня, его числовое значение или LogLevel

        Returns:
            Соответствующий LogLevel
        """
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                return cls.INFO
        if isinstance(value, str):
            name = value.strip().upper()
            if name == "WARNING":
                return cls.WARN
            return cls.__members__.get(name, cls.INFO)
        return cls.INFO


def now_millis() -> float:
    """Текущее время в миллисекундах (wall-clock)."""
    return time.time() * 1000


@dataclass(frozen=True)
class LogRecord:
    """Неизменяемое описание одного события логирования.

    Атрибуты:
        level: Уровень события
        time_in_millis: Время вызова в миллисекундах с эпохи
        log_name: Имя логгера
        message: Текст сообщения
        exception: Исключение, связанное с событием (если есть)
        args: Дополнительные аргументы (никогда не содержат exception)
        appender_name: Имя appender-а, через который прошла копия записи
        formatted_date: Дата, отформатированная dateFormatter-ом appender-а
    """
    level: LogLevel = LogLevel.INFO
    time_in_millis: float = field(default_factory=now_millis)
    log_name: str = UNKNOWN_LOGGER
    message: str = ""
    exception: Optional[BaseException] = None
    args: Tuple[Any, ...] = ()
    appender_name: Optional[str] = None
    formatted_date: Optional[str] = None

    @property
    def timestamp(self) -> datetime:
        """Время события как datetime в UTC."""
        return datetime.fromtimestamp(self.time_in_millis / 1000, tz=timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Преобразует запись в словарь для сериализации.

        Returns:
            Словарь с данными записи
        """
        result: Dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.name,
            "logger": self.log_name,
            "message": self.message,
        }

        if self.exception is not None:
            result["exception"] = f"{type(self.exception).__name__}: {self.exception}"

        if self.args:
            result["args"] = list(self.args)

        if self.appender_name is not None:
            result["appender"] = self.appender_name

        return result


@dataclass(frozen=True)
class QueueEntry:
    """Элемент очереди асинхронного канала."""
    record: LogRecord
    enqueued_at: float = field(default_factory=now_millis)
