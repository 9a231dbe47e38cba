"""MessagesLogAdapter - показ записей логов пользователю.

Адаптер регистрируется как потребитель канала "messages"
(LoggerFactory.messages_consumer) и превращает записи в сообщения
UI-компонента уведомлений.
"""
import json
import re
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from infrastructure.logging.channel import write_diagnostic
from infrastructure.logging.formatting import format_arg
from infrastructure.logging.models import LogLevel, LogRecord


# Аргументы длиннее этого не попадают в описание
MAX_DETAILS_LENGTH = 200

EMPTY_DESCRIPTION = "No message details available"


@dataclass(frozen=True)
class MessageOptions:
    """Параметры отображения сообщения."""
    dismissible: bool = True
    auto_hide: bool = True
    auto_hide_delay: Optional[int] = None
    persistent: bool = False


class Messages(Protocol):
    """Компонент пользовательских уведомлений."""

    def show_error(self, title: str, description: str, options: MessageOptions) -> None: ...

    def show_warning(self, title: str, description: str, options: MessageOptions) -> None: ...

    def show_info(self, title: str, description: str, options: MessageOptions) -> None: ...

    def show_success(self, title: str, description: str, options: MessageOptions) -> None: ...


def format_title(log_name: str, level: LogLevel) -> str:
    """Заголовок сообщения из имени логгера ("AuthService" -> "Error in Auth Service")."""
    clean_name = re.sub(r"([A-Z])", r" \1", log_name).lstrip()
    clean_name = re.sub(r"\b\w", lambda m: m.group(0).upper(), clean_name)

    if level >= LogLevel.ERROR:
        return f"Error in {clean_name}"
    if level == LogLevel.WARN:
        return f"Warning from {clean_name}"
    if level == LogLevel.INFO:
        return f"Info: {clean_name}"
    return f"Debug: {clean_name}"


def _format_detail(arg: Any) -> str:
    if isinstance(arg, (dict, list, tuple)):
        try:
            return json.dumps(arg, ensure_ascii=False, indent=2)
        except (TypeError, ValueError):
            return str(arg)
    return str(arg)


def format_description(record: LogRecord) -> str:
    """Текст сообщения: сообщение, детали ошибки и короткие аргументы.

    Args:
        record: Запись лога

    Returns:
        Описание для показа пользователю
    """
    description = record.message or ""

    if record.exception is not None:
        description += f"\n\nError details: {format_arg(record.exception)}"

    if record.args:
        details = ", ".join(_format_detail(arg) for arg in record.args)
        if len(details) < MAX_DETAILS_LENGTH:
            description += f"\n\nDetails: {details}"

    return description or EMPTY_DESCRIPTION


def message_options(level: LogLevel) -> MessageOptions:
    """Параметры отображения по уровню: ошибки и предупреждения не скрываются."""
    if level >= LogLevel.WARN:
        return MessageOptions(auto_hide=False, persistent=True)
    if level == LogLevel.INFO:
        return MessageOptions(auto_hide=True, auto_hide_delay=5000)
    return MessageOptions(auto_hide=True, auto_hide_delay=3000)


class MessagesLogAdapter:
    """Потребитель, показывающий записи логов через Messages.

    Атрибуты:
        messages: Компонент уведомлений
        min_level: Минимальный уровень показываемых записей
    """

    def __init__(self, messages: Messages, min_level: LogLevel = LogLevel.WARN) -> None:
        """Инициализация MessagesLogAdapter.

        Args:
            messages: Компонент уведомлений
            min_level: Записи ниже этого уровня не показываются
        """
        self.messages = messages
        self.min_level = min_level

    async def consume(self, record: LogRecord) -> None:
        """Показывает запись пользователю.

        Args:
            record: Запись лога
        """
        if record.level < self.min_level:
            return

        title = format_title(record.log_name, record.level)
        description = format_description(record)
        options = message_options(record.level)

        if record.level >= LogLevel.ERROR:
            self.messages.show_error(title, description, options)
        elif record.level == LogLevel.WARN:
            self.messages.show_warning(title, description, options)
        else:
            self.messages.show_info(title, description, options)

    def on_error(self, error: Exception, record: LogRecord) -> None:
        """Сообщает об ошибке показа и пытается показать запасное сообщение."""
        write_diagnostic(
            f"MessagesLogAdapter: не удалось показать запись логгера {record.log_name}", error
        )
        try:
            self.messages.show_error(
                "Logging Error",
                "Failed to display a log message. See console for details.",
                MessageOptions(auto_hide=True, auto_hide_delay=3000),
            )
        except Exception as fallback_error:
            write_diagnostic("MessagesLogAdapter: запасное сообщение тоже не показано", fallback_error)
