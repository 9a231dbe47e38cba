"""MemoryLogChannel - последние записи логов в памяти (панель логов UI, тесты)."""
import threading
from collections import Counter, deque
from typing import Callable, Deque, Dict, List, Optional

from infrastructure.logging.channel import LogChannel, write_diagnostic
from infrastructure.logging.models import LogLevel, LogRecord


RecordCallback = Callable[[LogRecord], None]
Unsubscribe = Callable[[], None]


class MemoryLogChannel(LogChannel):
    """Канал, хранящий последние записи в кольцевом буфере.

    Один канал может стоять за несколькими appender-ами: записи несут
    appender_name, по нему же фильтруются выборки и подписки.

    Атрибуты:
        max_records: Размер буфера (старые записи вытесняются)
    """

    def __init__(self, max_records: int = 1000) -> None:
        self.max_records = max_records
        self._records: Deque[LogRecord] = deque(maxlen=max_records)
        self._lock = threading.Lock()
        # Ключ None - подписка на записи всех appender-ов
        self._subscriptions: Dict[Optional[str], List[RecordCallback]] = {}

    def write(self, record: LogRecord) -> None:
        with self._lock:
            self._records.append(record)
            callbacks = list(self._subscriptions.get(None, []))
            if record.appender_name is not None:
                callbacks.extend(self._subscriptions.get(record.appender_name, []))

        for callback in callbacks:
            try:
                callback(record)
            except Exception as error:
                write_diagnostic("MemoryLogChannel: ошибка в подписчике", error)

    def subscribe(self, callback: RecordCallback, appender_name: Optional[str] = None) -> Unsubscribe:
        """Подписывает callback на новые записи.

        Args:
            callback: Функция, получающая каждую новую запись
            appender_name: Только записи этого appender-а (None - все записи)

        Returns:
            Функция отмены подписки (повторный вызов ничего не делает)
        """
        with self._lock:
            self._subscriptions.setdefault(appender_name, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscriptions.get(appender_name, [])
                if callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscriptions.pop(appender_name, None)

        return unsubscribe

    def get_records(
        self,
        level: Optional[LogLevel] = None,
        log_name: Optional[str] = None,
        appender_name: Optional[str] = None,
        since_millis: Optional[float] = None,
        until_millis: Optional[float] = None,
        limit: Optional[int] = None
    ) -> List[LogRecord]:
        """Выборка записей из буфера в порядке поступления.

        Args:
            level: Минимальный уровень
            log_name: Имя логгера
            appender_name: Имя appender-а
            since_millis: Не раньше этого времени (мс с эпохи, включительно)
            until_millis: Раньше этого времени (мс с эпохи, не включительно)
            limit: Максимальное количество записей (последние limit штук)

        Returns:
            Список записей
        """
        with self._lock:
            records = list(self._records)

        selected = [
            record for record in records
            if (level is None or record.level >= level)
            and (log_name is None or record.log_name == log_name)
            and (appender_name is None or record.appender_name == appender_name)
            and (since_millis is None or record.time_in_millis >= since_millis)
            and (until_millis is None or record.time_in_millis < until_millis)
        ]

        if limit is not None:
            selected = selected[-limit:] if limit > 0 else []
        return selected

    def level_counts(self, appender_name: Optional[str] = None) -> Dict[LogLevel, int]:
        """Количество записей в буфере по уровням (для счётчиков панели логов)."""
        with self._lock:
            levels = [
                record.level for record in self._records
                if appender_name is None or record.appender_name == appender_name
            ]
        return dict(Counter(levels))

    def clear(self) -> None:
        """Очищает буфер записей."""
        with self._lock:
            self._records.clear()

    def close(self) -> None:
        """Отменяет все подписки."""
        with self._lock:
            self._subscriptions.clear()
