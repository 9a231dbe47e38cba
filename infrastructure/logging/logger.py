"""Logger - фасад логирования для прикладного кода."""
import logging
from typing import Any, Callable, Optional, Tuple, Union

from infrastructure.logging.models import LogLevel
from infrastructure.logging.provider import LogProvider


Message = Union[str, Callable[[], str]]

# Отличает "исключение не передано" от явного None
_MISSING: Any = object()


def is_log_error_type(value: Any) -> bool:
    """Проверяет, считается ли аргумент ошибкой для error()/fatal().

    Ошибкой считаются строки и исключения, остальное - обычные аргументы.
    """
    return isinstance(value, (str, BaseException))


def split_error_args(args: Tuple[Any, ...]) -> Tuple[Optional[BaseException], Tuple[Any, ...]]:
    """Отделяет ошибку от остальных аргументов error()/fatal().

    Args:
        args: Аргументы вызова

    Returns:
        Исключение (строка превращается в Exception) и оставшиеся аргументы
    """
    if not args or not is_log_error_type(args[0]):
        return None, args
    error = args[0]
    if isinstance(error, str):
        error = Exception(error)
    return error, args[1:]


class Logger:
    """Именованный логгер.

    Сообщение может быть строкой или функцией без аргументов; функция
    вызывается только если уровень включён.

    Пример:
        logger.info("Пользователь {} вошёл", user_id)
        logger.debug(lambda: f"Состояние: {dump_state()}")
        logger.error("Не удалось сохранить", error, record_id)
    """

    def __init__(self, name: str, provider: LogProvider) -> None:
        """Инициализация Logger.

        Args:
            name: Имя логгера
            provider: Провайдер логов
        """
        self.name = name
        self._provider = provider
        self._logger: logging.Logger = provider.get_logger(name)

    def is_enabled(self, level: LogLevel) -> bool:
        """Проверяет, будет ли запись данного уровня принята провайдером."""
        return self._provider.is_enabled(self._logger, level)

    def trace(self, message: Message, *args: Any) -> None:
        self._log(LogLevel.TRACE, message, None, args)

    def debug(self, message: Message, *args: Any) -> None:
        self._log(LogLevel.DEBUG, message, None, args)

    def info(self, message: Message, *args: Any) -> None:
        self._log(LogLevel.INFO, message, None, args)

    def warn(self, message: Message, *args: Any) -> None:
        self._log(LogLevel.WARN, message, None, args)

    warning = warn

    def error(self, message: Message, *args: Any, exception: Any = _MISSING) -> None:
        """Логирует ошибку.

        Первый аргумент-строка или исключение становится ошибкой записи
        (строка превращается в Exception). Вместо этого ошибку можно
        передать явно через exception=, тогда все args остаются аргументами.

        Args:
            message: Сообщение или функция, возвращающая сообщение
            *args: Ошибка и/или дополнительные аргументы
            exception: Явно переданное исключение
        """
        self._log_error(LogLevel.ERROR, message, args, exception)

    def fatal(self, message: Message, *args: Any, exception: Any = _MISSING) -> None:
        """Логирует критическую ошибку (аргументы как у error())."""
        self._log_error(LogLevel.FATAL, message, args, exception)

    def _log_error(
        self,
        level: LogLevel,
        message: Message,
        args: Tuple[Any, ...],
        exception: Any
    ) -> None:
        if exception is _MISSING:
            error, rest = split_error_args(args)
        else:
            error = Exception(exception) if isinstance(exception, str) else exception
            rest = args
        self._log(level, message, error, rest)

    def _log(
        self,
        level: LogLevel,
        message: Message,
        exception: Optional[BaseException],
        args: Tuple[Any, ...]
    ) -> None:
        if not self.is_enabled(level):
            return
        supplier = message if callable(message) else (lambda: message)
        self._provider.log(self._logger, self.name, level, supplier, exception, args)

    def __repr__(self) -> str:
        return f"Logger({self.name!r})"
