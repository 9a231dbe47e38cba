"""AsyncConsumerLogChannel - именованная очередь асинхронных потребителей логов.

Канал развязывает производителей логов (синхронный вызов, fire-and-forget)
и потребителей, которые могут выполнять I/O (сеть, хранилище):

- write() только кладёт запись в буфер и при необходимости запускает воркер
- у канала не бывает больше одного воркера (asyncio.Task) одновременно
- записи обрабатываются строго по порядку поступления (FIFO)
- для одной записи все потребители вызываются параллельно, следующая
  запись берётся только когда все они завершились (успешно или нет)
"""
import asyncio
import inspect
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Protocol, Union

from infrastructure.logging.channel import LogChannel, write_diagnostic
from infrastructure.logging.models import LogRecord, QueueEntry


RemoveConsumerFunction = Callable[[], None]


class AsyncLogConsumer(Protocol):
    """Потребитель записей логов.

    Может дополнительно определить метод on_error(error, record), который
    вызывается, если consume() завершился исключением.
    """

    def consume(self, record: LogRecord) -> Union[Awaitable[Any], Any]:
        """Обрабатывает запись (обычно coroutine function)."""
        ...


class AsyncConsumerLogChannel(LogChannel):
    """Канал, раздающий записи зарегистрированным асинхронным потребителям.

    Состояния:
    - Idle: воркера нет, буфер пуст
    - Draining: воркер (asyncio.Task) разбирает буфер

    Воркер завершается только обнаружив пустой буфер, поэтому запись,
    пришедшая во время обработки последней записи, тоже будет обработана.
    """

    def __init__(self, name: str, consumer_timeout: Optional[float] = None) -> None:
        """Инициализация канала.

        Args:
            name: Имя канала
            consumer_timeout: Таймаут одного вызова consume() в секундах
                (None - ждать сколько потребуется)
        """
        self.name = name
        self.consumer_timeout = consumer_timeout
        # Ключ - id() потребителя: один и тот же объект не регистрируется дважды
        self._consumers: Dict[int, AsyncLogConsumer] = {}
        self._buffer: Deque[QueueEntry] = deque()
        self._worker: Optional["asyncio.Task[None]"] = None
        # Запись, которую воркер сейчас раздаёт потребителям
        self._in_flight: Optional[QueueEntry] = None

    def add_consumer(self, consumer: AsyncLogConsumer) -> RemoveConsumerFunction:
        """Регистрирует потребителя.

        Args:
            consumer: Потребитель

        Returns:
            Функция отмены регистрации (повторный вызов ничего не делает)
        """
        self._consumers[id(consumer)] = consumer

        def remove() -> None:
            self.remove_consumer(consumer)

        return remove

    def remove_consumer(self, consumer: AsyncLogConsumer) -> bool:
        """Удаляет потребителя.

        Буфер при этом не очищается: уже поставленные записи будут
        разобраны оставшимися потребителями.

        Returns:
            True если потребитель был зарегистрирован
        """
        registered = self._consumers.get(id(consumer))
        if registered is not consumer:
            return False
        del self._consumers[id(consumer)]
        return True

    def has_consumer(self, consumer: AsyncLogConsumer) -> bool:
        """Проверяет, зарегистрирован ли потребитель."""
        return self._consumers.get(id(consumer)) is consumer

    def clear_consumers(self) -> None:
        """Удаляет всех потребителей."""
        self._consumers.clear()

    @property
    def consumer_count(self) -> int:
        """Количество зарегистрированных потребителей."""
        return len(self._consumers)

    @property
    def queue_size(self) -> int:
        """Количество записей, ожидающих обработки."""
        return len(self._buffer)

    @property
    def is_draining(self) -> bool:
        """Работает ли сейчас воркер."""
        return self._worker is not None

    def write(self, record: LogRecord) -> None:
        """Ставит запись в очередь.

        Без потребителей запись отбрасывается сразу.

        Args:
            record: Запись для обработки
        """
        if not self._consumers:
            return

        self._buffer.append(QueueEntry(record=record))
        self._discard_stale_worker()

        if self._worker is not None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Вне event loop разбираем буфер на месте
            asyncio.run(self._drain_inline())
            return

        self._worker = loop.create_task(self._drain(), name=f"log-channel-{self.name}")

    async def join(self) -> None:
        """Ждёт, пока буфер не будет полностью разобран.

        Нельзя вызывать из потребителя этого же канала.
        """
        self._discard_stale_worker()
        if self._worker is None and self._buffer:
            self._worker = asyncio.get_running_loop().create_task(
                self._drain(), name=f"log-channel-{self.name}"
            )
        while self._worker is not None:
            await asyncio.shield(self._worker)
            self._discard_stale_worker()

    async def _drain_inline(self) -> None:
        await self.join()

    def _discard_stale_worker(self) -> None:
        """Забывает воркер, чей event loop уже закрыт или отменил его.

        Такой воркер мог быть отменён ещё до старта, записи в буфере
        остаются на месте и достаются следующему воркеру.
        """
        worker = self._worker
        if worker is None:
            return
        if not worker.done() and not worker.get_loop().is_closed():
            return
        self._worker = None
        self._requeue_in_flight()
        if self._buffer:
            write_diagnostic(
                f"AsyncConsumerLogChannel[{self.name}]: воркер остановлен вместе с event loop, "
                f"записей в буфере: {len(self._buffer)}"
            )

    async def _drain(self) -> None:
        """Воркер: разбирает буфер по одной записи.

        При отмене (например, закрытие event loop) текущая запись
        возвращается в начало буфера. Потребители, уже успевшие её
        обработать, получат её повторно.
        """
        worker = asyncio.current_task()
        try:
            while self._buffer:
                entry = self._buffer.popleft()
                self._in_flight = entry
                consumers: List[AsyncLogConsumer] = list(self._consumers.values())
                if consumers:
                    await asyncio.gather(
                        *(self._dispatch(consumer, entry.record) for consumer in consumers)
                    )
                self._in_flight = None
        except asyncio.CancelledError:
            self._requeue_in_flight()
            if self._buffer:
                write_diagnostic(
                    f"AsyncConsumerLogChannel[{self.name}]: воркер отменён, "
                    f"записей в буфере: {len(self._buffer)}"
                )
            raise
        finally:
            if self._worker is worker:
                self._worker = None

    def _requeue_in_flight(self) -> None:
        if self._in_flight is not None:
            self._buffer.appendleft(self._in_flight)
            self._in_flight = None

    async def _dispatch(self, consumer: AsyncLogConsumer, record: LogRecord) -> None:
        """Передаёт запись одному потребителю, изолируя его ошибки."""
        try:
            result = consumer.consume(record)
            if inspect.isawaitable(result):
                if self.consumer_timeout is not None:
                    await asyncio.wait_for(result, timeout=self.consumer_timeout)
                else:
                    await result
        except Exception as error:
            self._handle_consumer_error(consumer, error, record)

    def _handle_consumer_error(
        self,
        consumer: AsyncLogConsumer,
        error: Exception,
        record: LogRecord
    ) -> None:
        on_error = getattr(consumer, "on_error", None)
        if on_error is None:
            write_diagnostic(f"AsyncConsumerLogChannel[{self.name}]: ошибка потребителя", error)
            return
        try:
            on_error(error, record)
        except Exception as handler_error:
            write_diagnostic(
                f"AsyncConsumerLogChannel[{self.name}]: ошибка в обработчике on_error потребителя",
                handler_error
            )
