"""Адаптер для стриминга записей логов в UI (SSE / WebSocket).

Адаптер регистрируется как потребитель именованного канала LoggerFactory
и отдаёт поток LogRecord через async генератор, не встраивая веб-фреймворк
внутрь логирования.
"""
import asyncio
import json
from typing import AsyncGenerator, Optional

from infrastructure.logging.models import LogLevel, LogRecord


class LogStreamAdapter:
    """Адаптер для стриминга записей логов.

    Адаптер:
    - Реализует AsyncLogConsumer (метод consume)
    - Буферизует записи в ограниченной очереди (при переполнении
      вытесняется самая старая)
    - Предоставляет async генератор для SSE/WebSocket
    - Не зависит от конкретного транспорта

    Пример:
        adapter = LogStreamAdapter()
        remove = factory.add_log_consumer("ui", adapter)
        async for record in adapter.stream_records(level=LogLevel.WARN):
            yield create_sse_event(record)
    """

    def __init__(self, max_queue_size: int = 1000) -> None:
        """Инициализация адаптера.

        Args:
            max_queue_size: Размер очереди записей
        """
        self._queue: "asyncio.Queue[Optional[LogRecord]]" = asyncio.Queue(maxsize=max_queue_size)
        self._is_active = True

    @property
    def is_active(self) -> bool:
        return self._is_active

    async def consume(self, record: LogRecord) -> None:
        """Принимает запись из канала потребителей.

        Args:
            record: Новая запись
        """
        if self._is_active:
            self._put(record)

    def _put(self, item: Optional[LogRecord]) -> None:
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            # Пропускаем самую старую запись
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            self._queue.put_nowait(item)

    async def stream_records(
        self,
        level: Optional[LogLevel] = None,
        log_name: Optional[str] = None
    ) -> AsyncGenerator[LogRecord, None]:
        """Генерирует поток записей с фильтрацией.

        Args:
            level: Минимальный уровень
            log_name: Имя логгера

        Yields:
            Отфильтрованные записи
        """
        while True:
            record = await self._queue.get()

            if record is None:  # Sentinel для остановки
                break

            if level is not None and record.level < level:
                continue
            if log_name is not None and record.log_name != log_name:
                continue

            yield record

    def stop(self) -> None:
        """Останавливает стриминг записей."""
        if not self._is_active:
            return
        self._is_active = False
        self._put(None)

    async def __aenter__(self) -> 'LogStreamAdapter':
        """Поддержка async контекстного менеджера."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Автоматическая остановка при выходе из контекста."""
        self.stop()


def create_sse_event(record: LogRecord) -> str:
    """Преобразует LogRecord в строку SSE события.

    Записи уровня WARN и выше получают тип события log_<уровень>,
    остальные - log.

    Args:
        record: Запись лога

    Returns:
        Строка в формате SSE (text/event-stream)
    """
    event_type = "log"
    if record.level >= LogLevel.WARN:
        event_type = f"log_{record.level.name.lower()}"

    lines = [
        f"event: {event_type}",
        f"data: {json.dumps(record.to_dict(), ensure_ascii=False, default=str)}",
        ""  # Пустая строка для завершения события
    ]

    return "\n".join(lines) + "\n"
