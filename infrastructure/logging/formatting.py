"""Форматирование записей логов: шаблоны, пресеты, аргументы.

Поддерживаемые плейсхолдеры шаблона:
    {timestamp} - ISO-8601 время (или дата от dateFormatter-а appender-а)
    {time}      - локальное время ЧЧ:ММ:СС.ммм
    {level}     - уровень (INFO, ERROR, ...)
    {logger}    - имя логгера
    {message}   - сообщение с подставленными {} аргументами
    {args}      - оставшиеся аргументы в виде " [a, b]" (пусто, если их нет)
"""
import json
import re
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

from infrastructure.logging.models import LogLevel, LogRecord


class LogFormatPreset(str, Enum):
    """Предустановленные форматы вывода."""
    SIMPLE = "{timestamp} [{level}] {logger}: {message}"
    DETAILED = "{timestamp} [{level}] [{logger}] {message}{args}"
    COMPACT = "{level} {logger}: {message}"
    JSON = "json"


LogFormatter = Callable[[LogRecord], str]
LogFormat = Union[LogFormatPreset, str, LogFormatter]

_PLACEHOLDER_PATTERN = re.compile(r"\{(timestamp|time|level|logger|message|args)\}")

# Форма "2025-10-03 17:47:25,102 INFO  [OpinionApp] текст", которую
# рендерит провайдер при включённом message_format
PREFORMATTED_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2}[,.]\d{3}\s+"
    r"(TRACE|DEBUG|INFO|WARN|ERROR|FATAL)\s+"
    r"\[([^\]]+)\]\s(.*)$",
    re.DOTALL
)


def format_arg(arg: Any) -> str:
    """Преобразует произвольный аргумент в строку для вывода.

    None и скаляры - через str(), строки - как есть, исключения -
    "ИмяТипа: текст", остальное - JSON с откатом на str() при ошибке
    сериализации.

    Args:
        arg: Аргумент

    Returns:
        Строковое представление
    """
    if arg is None:
        return str(arg)
    if isinstance(arg, str):
        return arg
    if isinstance(arg, BaseException):
        return f"{type(arg).__name__}: {arg}"
    if isinstance(arg, (bool, int, float)):
        return str(arg)
    try:
        return json.dumps(arg, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        return str(arg)


def resolve_format(value: Any) -> Optional[LogFormat]:
    """Нормализует значение формата из конфигурации.

    Имя пресета (без учёта регистра) превращается в LogFormatPreset,
    прочие строки считаются шаблонами, функции остаются как есть.

    Raises:
        ValueError: Если значение не строка, не пресет и не функция
    """
    if value is None or isinstance(value, LogFormatPreset):
        return value
    if isinstance(value, str):
        preset = LogFormatPreset.__members__.get(value.strip().upper())
        return preset if preset is not None else value
    if callable(value):
        return value
    raise ValueError(f"Неподдерживаемый формат лога: {value!r}")


def format_timestamp(record: LogRecord) -> str:
    """ISO-8601 время записи в UTC с миллисекундами ("...T14:05:23.123Z")."""
    if record.formatted_date is not None:
        return record.formatted_date
    iso = record.timestamp.isoformat(timespec="milliseconds")
    return iso.replace("+00:00", "Z")


def format_time(record: LogRecord) -> str:
    """Локальное время записи ЧЧ:ММ:СС.ммм."""
    local_time = record.timestamp.astimezone()
    return local_time.strftime("%H:%M:%S.") + f"{local_time.microsecond // 1000:03d}"


def interpolate_message(
    message: str,
    args: Sequence[Any],
    format_arg: Callable[[Any], str] = format_arg
) -> Tuple[str, Tuple[Any, ...]]:
    """Подставляет аргументы на места {} в сообщении.

    Args:
        message: Сообщение с маркерами {}
        args: Аргументы по порядку
        format_arg: Форматтер аргументов

    Returns:
        Сообщение с подстановками и неиспользованные аргументы
    """
    if not args or "{}" not in message:
        return message, tuple(args)

    parts = message.split("{}")
    used = min(len(parts) - 1, len(args))
    rendered = [parts[0]]
    for index, part in enumerate(parts[1:]):
        rendered.append(format_arg(args[index]) if index < used else "{}")
        rendered.append(part)
    return "".join(rendered), tuple(args[used:])


def format_args_suffix(args: Sequence[Any], format_arg: Callable[[Any], str] = format_arg) -> str:
    """Рендерит аргументы как " [a, b]" или пустую строку."""
    if not args:
        return ""
    return " [" + ", ".join(format_arg(arg) for arg in args) + "]"


def render_json(record: LogRecord, format_arg: Callable[[Any], str] = format_arg) -> str:
    """Сериализует запись в компактный JSON объект."""
    payload: Dict[str, Any] = {
        "timestamp": format_timestamp(record),
        "level": record.level.name,
        "logger": record.log_name,
        "message": record.message,
        "args": [format_arg(arg) for arg in record.args],
    }
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)


def render_record(
    record: LogRecord,
    log_format: LogFormat = LogFormatPreset.SIMPLE,
    format_arg: Callable[[Any], str] = format_arg
) -> str:
    """Форматирует запись по шаблону, пресету или функции.

    Args:
        record: Запись
        log_format: Пресет, строка-шаблон или функция форматирования
        format_arg: Форматтер аргументов

    Returns:
        Готовая строка
    """
    if callable(log_format) and not isinstance(log_format, str):
        return log_format(record)

    template = log_format.value if isinstance(log_format, LogFormatPreset) else log_format
    if template == LogFormatPreset.JSON.value:
        return render_json(record, format_arg)

    message, remaining = interpolate_message(record.message, record.args, format_arg)
    values = {
        "timestamp": format_timestamp(record),
        "time": format_time(record),
        "level": record.level.name,
        "logger": record.log_name,
        "message": message,
        "args": format_args_suffix(remaining, format_arg),
    }
    return _PLACEHOLDER_PATTERN.sub(lambda m: values[m.group(1)], template).rstrip()


def recover_preformatted(record: LogRecord) -> LogRecord:
    """Восстанавливает уровень, логгер и текст из предварительно отрендеренного сообщения.

    Если сообщение не похоже на "дата время LEVEL [logger] текст",
    запись возвращается без изменений. Форма зависит от провайдера и
    не является стабильным контрактом.
    """
    match = PREFORMATTED_PATTERN.match(record.message)
    if match is None:
        return record
    return replace(
        record,
        level=LogLevel.parse(match.group(1)),
        log_name=match.group(2).strip(),
        message=match.group(3),
    )
