"""Unit-тесты для Logger и провайдера на stdlib logging."""
import logging

import pytest

from infrastructure.logging.config import (
    CustomChannelConfig,
    PREFORMATTED_MESSAGE_FORMAT,
    ProviderGroupConfig,
)
from infrastructure.logging.logger import is_log_error_type, split_error_args
from infrastructure.logging.models import LogLevel
from infrastructure.logging.provider import DeferredMessage, LogProvider, RoutingHandler
from tests.factories import RecordingChannel


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def factory(make_factory, channel):
    """Фабрика без appender-ов, пишущая в RecordingChannel."""
    return make_factory(global_level=LogLevel.TRACE, default_channel=CustomChannelConfig(channel=channel))


class TestErrorArguments:
    """Тесты разбора аргументов error()/fatal()."""

    def test_is_log_error_type(self) -> None:
        """Тест узкой проверки типа ошибки."""
        assert is_log_error_type("text")
        assert is_log_error_type(ValueError("x"))
        assert not is_log_error_type(42)
        assert not is_log_error_type({"error": "x"})

    def test_split_string_is_promoted(self) -> None:
        """Тест: строка превращается в Exception."""
        error, rest = split_error_args(("some text", 1))

        assert isinstance(error, Exception)
        assert str(error) == "some text"
        assert rest == (1,)

    def test_split_plain_args(self) -> None:
        """Тест: обычные аргументы остаются аргументами."""
        assert split_error_args((42, "x")) == (None, (42, "x"))
        assert split_error_args(()) == (None, ())


class TestLogger:
    """Тесты для фасада Logger."""

    def test_levels(self, factory, channel) -> None:
        """Тест методов уровней."""
        logger = factory.get_logger("Service")

        logger.trace("t")
        logger.debug("d")
        logger.info("i")
        logger.warn("w")
        logger.error("e")
        logger.fatal("f")

        assert [r.level for r in channel.records] == [
            LogLevel.TRACE, LogLevel.DEBUG, LogLevel.INFO,
            LogLevel.WARN, LogLevel.ERROR, LogLevel.FATAL,
        ]
        assert all(r.log_name == "Service" for r in channel.records)
        assert all(r.appender_name == "default" for r in channel.records)

    def test_error_string_promotion(self, factory, channel) -> None:
        """Тест: logger.error("msg", "some text") создаёт исключение."""
        factory.get_logger("Service").error("msg", "some text")

        record = channel.records[0]
        assert isinstance(record.exception, Exception)
        assert str(record.exception) == "some text"
        assert record.args == ()

    def test_error_non_error_argument(self, factory, channel) -> None:
        """Тест: logger.error("msg", 42) не создаёт исключение."""
        factory.get_logger("Service").error("msg", 42)

        record = channel.records[0]
        assert record.exception is None
        assert record.args == (42,)

    def test_error_exception_and_args(self, factory, channel) -> None:
        """Тест: исключение отделяется от остальных аргументов."""
        error = KeyError("id")
        factory.get_logger("Service").fatal("failed {}", error, "order-1", 3)

        record = channel.records[0]
        assert record.exception is error
        assert record.args == ("order-1", 3)
        assert record.message == "failed {}"

    def test_explicit_exception_keyword(self, factory, channel) -> None:
        """Тест: exception= оставляет все args аргументами."""
        error = RuntimeError("boom")
        factory.get_logger("Service").error("failed", "detail", exception=error)

        record = channel.records[0]
        assert record.exception is error
        assert record.args == ("detail",)

    def test_warn_keeps_string_args(self, factory, channel) -> None:
        """Тест: для не-ошибочных уровней строки остаются аргументами."""
        factory.get_logger("Service").warn("msg", "text")

        assert channel.records[0].exception is None
        assert channel.records[0].args == ("text",)

    def test_lazy_message_evaluated_once(self, factory, channel) -> None:
        """Тест: функция сообщения вычисляется для включённого уровня."""
        calls = []

        def build() -> str:
            calls.append(1)
            return "expensive"

        factory.get_logger("Service").info(build)

        assert channel.records[0].message == "expensive"
        assert len(calls) == 1

    def test_lazy_message_skipped_when_disabled(self, make_factory, channel) -> None:
        """Тест: функция сообщения не вызывается для выключенного уровня."""
        factory = make_factory(global_level="WARN", default_channel=CustomChannelConfig(channel=channel))
        logger = factory.get_logger("Service")

        def build() -> str:
            raise AssertionError("message must not be built")

        logger.debug(build)
        logger.info(build)

        assert channel.records == []
        assert not logger.is_enabled(LogLevel.INFO)
        assert logger.is_enabled(LogLevel.ERROR)

    def test_off_disables_everything(self, make_factory, channel) -> None:
        """Тест: уровень OFF выключает все записи."""
        factory = make_factory(global_level="OFF", default_channel=CustomChannelConfig(channel=channel))

        factory.get_logger("Service").fatal("f")

        assert channel.records == []

    def test_failing_message_builder_does_not_propagate(self, factory, channel, capsys) -> None:
        """Тест: ошибка в функции сообщения не доходит до вызывающего кода."""
        def build() -> str:
            raise ValueError("builder failed")

        factory.get_logger("Service").info(build)

        assert channel.records == []
        assert "builder failed" in capsys.readouterr().err


class TestLogProvider:
    """Тесты для провайдера на stdlib logging."""

    def test_deferred_message_is_cached(self) -> None:
        """Тест: отложенное сообщение вычисляется один раз."""
        calls = []
        message = DeferredMessage(lambda: calls.append(1) or "text")

        assert str(message) == "text"
        assert str(message) == "text"
        assert len(calls) == 1

    def test_provider_owns_single_routing_handler(self, provider_name, channel) -> None:
        """Тест: повторное создание провайдера заменяет handler."""
        first = LogProvider(provider_name, LogLevel.INFO, channel)
        second = LogProvider(provider_name, LogLevel.INFO, channel)

        root = logging.getLogger(provider_name)
        handlers = [h for h in root.handlers if isinstance(h, RoutingHandler)]
        assert handlers == [second.handler]
        assert root.propagate is False

        first.close()
        second.close()

    def test_group_levels(self, make_factory, channel) -> None:
        """Тест: первая совпавшая группа задаёт уровень логгера."""
        factory = make_factory(
            global_level="DEBUG",
            default_channel=CustomChannelConfig(channel=channel),
            groups=[
                ProviderGroupConfig(identifier="http", expression="^Http", level="ERROR"),
                ProviderGroupConfig(identifier="all-http", expression="Http", level="TRACE"),
            ],
        )

        factory.get_logger("HttpClient").warn("hidden")
        factory.get_logger("HttpClient").error("shown")
        factory.get_logger("Service").debug("default level")

        assert [r.message for r in channel.records] == ["shown", "default level"]

    def test_message_format_prerenders_and_is_recovered(self, make_factory, channel) -> None:
        """Тест: предварительно отрендеренное сообщение восстанавливается каналом."""
        factory = make_factory(
            default_channel=CustomChannelConfig(channel=channel),
            message_format=PREFORMATTED_MESSAGE_FORMAT,
        )

        factory.get_logger("Billing").warn("low balance")

        record = channel.records[0]
        assert record.level == LogLevel.WARN
        assert record.log_name == "Billing"
        assert record.message == "low balance"
