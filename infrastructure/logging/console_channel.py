"""ConsoleLogChannel - текстовый вывод логов в консоль."""
import sys
from typing import Dict, Optional, TextIO

from infrastructure.logging.channel import LogChannel
from infrastructure.logging.formatting import (
    LogFormat,
    LogFormatPreset,
    format_arg,
    interpolate_message,
    recover_preformatted,
    render_record,
)
from infrastructure.logging.models import LogLevel, LogRecord


# Ключи потоков вывода
STANDARD_STREAM = "log"
ERROR_STREAM = "error"
WARN_STREAM = "warn"
DEBUG_STREAM = "debug"


class ConsoleLogChannel(LogChannel):
    """Канал для вывода логов в консоль.

    Особенности:
    - Формат задаётся пресетом, строкой-шаблоном или функцией
    - Поток выбирается по уровню (ERROR/FATAL, WARN, DEBUG/TRACE, остальное)
    - Без явного формата восстанавливает поля из уже отрендеренного
      провайдером сообщения и выводит args и исключение отдельными строками
    """

    def __init__(
        self,
        log_format: Optional[LogFormat] = None,
        streams: Optional[Dict[str, TextIO]] = None
    ) -> None:
        """Инициализация ConsoleLogChannel.

        Args:
            log_format: Формат вывода (None - SIMPLE с выводом деталей)
            streams: Потоки по ключам "log", "error", "warn", "debug"
                (по умолчанию sys.stdout / sys.stderr на момент записи)
        """
        self.log_format = log_format
        self._streams: Dict[str, TextIO] = dict(streams or {})

    def _stream(self, key: str) -> TextIO:
        stream = self._streams.get(key)
        if stream is not None:
            return stream
        if key in (ERROR_STREAM, WARN_STREAM):
            return sys.stderr
        return sys.stdout

    def stream_for_level(self, level: LogLevel) -> TextIO:
        """Возвращает поток вывода для уровня.

        Args:
            level: Уровень записи

        Returns:
            Поток для записи
        """
        if level >= LogLevel.ERROR:
            return self._stream(ERROR_STREAM)
        if level == LogLevel.WARN:
            return self._stream(WARN_STREAM)
        if level <= LogLevel.DEBUG:
            return self._stream(DEBUG_STREAM)
        return self._stream(STANDARD_STREAM)

    def write(self, record: LogRecord) -> None:
        """Выводит запись в консоль.

        Args:
            record: Запись для вывода
        """
        if self.log_format is not None:
            line = render_record(record, self.log_format)
            self.stream_for_level(record.level).write(line + "\n")
            return

        record = recover_preformatted(record)
        line = render_record(record, LogFormatPreset.SIMPLE)
        self.stream_for_level(record.level).write(line + "\n")

        _, remaining = interpolate_message(record.message, record.args)
        if remaining:
            details = ", ".join(format_arg(arg) for arg in remaining)
            self._stream(STANDARD_STREAM).write(f"  └─ Args: {details}\n")
        if record.exception is not None:
            self._stream(ERROR_STREAM).write(f"  └─ Exception: {format_arg(record.exception)}\n")

    def flush(self) -> None:
        """Сбрасывает буферы потоков."""
        for key in (STANDARD_STREAM, ERROR_STREAM, WARN_STREAM, DEBUG_STREAM):
            self._stream(key).flush()
