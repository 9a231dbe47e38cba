"""Unit-тесты для форматирования записей и ConsoleLogChannel."""
import io
import json

import pytest

from infrastructure.logging.console_channel import ConsoleLogChannel
from infrastructure.logging.formatting import (
    LogFormatPreset,
    format_arg,
    interpolate_message,
    recover_preformatted,
    render_record,
    resolve_format,
)
from infrastructure.logging.models import LogLevel
from tests.factories import make_record


TIMESTAMP = "2025-01-02T03:04:05.678Z"


class Unserializable:
    def __str__(self) -> str:
        return "<unserializable>"


class TestFormatArg:
    """Тесты для format_arg."""

    def test_scalars(self) -> None:
        """Тест: скаляры и None через str(), строки как есть."""
        assert format_arg(None) == "None"
        assert format_arg("text") == "text"
        assert format_arg(42) == "42"
        assert format_arg(True) == "True"

    def test_objects_are_json(self) -> None:
        """Тест: структуры сериализуются в JSON."""
        assert format_arg({"id": 1, "tags": ["a"]}) == '{"id":1,"tags":["a"]}'
        assert format_arg([1, 2]) == "[1,2]"

    def test_serialization_failure_falls_back_to_str(self) -> None:
        """Тест: при ошибке сериализации используется str()."""
        value = {"obj": Unserializable()}

        assert format_arg(Unserializable()) == "<unserializable>"
        assert format_arg(value) == str(value)

    def test_exception(self) -> None:
        """Тест: исключения в виде 'Тип: текст'."""
        assert format_arg(KeyError("missing")) == "KeyError: 'missing'"


class TestInterpolation:
    """Тесты для подстановки {} аргументов."""

    def test_consumes_args_in_order(self) -> None:
        """Тест подстановки аргументов по порядку."""
        text, remaining = interpolate_message("user {} in {}", ("bob", "admin", 3))

        assert text == "user bob in admin"
        assert remaining == (3,)

    def test_more_markers_than_args(self) -> None:
        """Тест: лишние маркеры остаются как есть."""
        text, remaining = interpolate_message("{} and {}", ("one",))

        assert text == "one and {}"
        assert remaining == ()

    def test_no_markers(self) -> None:
        """Тест: без маркеров все аргументы остаются."""
        assert interpolate_message("plain", (1, 2)) == ("plain", (1, 2))


class TestRenderRecord:
    """Тесты для render_record и пресетов."""

    def test_simple(self) -> None:
        """Тест пресета SIMPLE."""
        record = make_record(level=LogLevel.WARN, log_name="Auth", message="hello")

        assert render_record(record) == f"{TIMESTAMP} [WARN] Auth: hello"

    def test_detailed_with_args(self) -> None:
        """Тест пресета DETAILED с оставшимися аргументами."""
        record = make_record(log_name="Auth", message="user {}", args=("bob", {"id": 7}))

        line = render_record(record, LogFormatPreset.DETAILED)

        assert line == f'{TIMESTAMP} [INFO] [Auth] user bob [{{"id":7}}]'

    def test_detailed_without_args_has_no_trailing_space(self) -> None:
        """Тест: DETAILED без аргументов не оставляет пробелов в конце."""
        line = render_record(make_record(log_name="Auth", message="hi"), LogFormatPreset.DETAILED)

        assert line == f"{TIMESTAMP} [INFO] [Auth] hi"

    def test_compact(self) -> None:
        """Тест пресета COMPACT."""
        record = make_record(level=LogLevel.DEBUG, log_name="Db", message="query")

        assert render_record(record, LogFormatPreset.COMPACT) == "DEBUG Db: query"

    def test_json(self) -> None:
        """Тест пресета JSON."""
        record = make_record(level=LogLevel.ERROR, log_name="Api", message="failed", args=(500, None))

        data = json.loads(render_record(record, LogFormatPreset.JSON))

        assert data == {
            "timestamp": TIMESTAMP,
            "level": "ERROR",
            "logger": "Api",
            "message": "failed",
            "args": ["500", "None"],
        }

    def test_custom_template(self) -> None:
        """Тест пользовательского шаблона."""
        record = make_record(log_name="Auth", message="hi", args=(1,))

        assert render_record(record, "<{level}> {logger} | {message}{args}") == "<INFO> Auth | hi [1]"

    def test_template_braces_in_message_are_not_expanded(self) -> None:
        """Тест: плейсхолдеры внутри сообщения не подставляются повторно."""
        record = make_record(message="literal {level}")

        assert render_record(record, "{message}") == "literal {level}"

    def test_formatter_function(self) -> None:
        """Тест функции форматирования."""
        record = make_record(message="hi")

        assert render_record(record, lambda r: r.message.upper()) == "HI"

    def test_formatted_date_replaces_timestamp(self) -> None:
        """Тест: дата от appender-а используется вместо ISO времени."""
        record = make_record(message="hi", formatted_date="02.01.2025")

        assert render_record(record).startswith("02.01.2025 [INFO]")


class TestResolveFormat:
    """Тесты для resolve_format."""

    def test_preset_names(self) -> None:
        """Тест: имена пресетов без учёта регистра."""
        assert resolve_format("detailed") is LogFormatPreset.DETAILED
        assert resolve_format("JSON") is LogFormatPreset.JSON

    def test_template_and_callable(self) -> None:
        """Тест: прочие строки и функции остаются как есть."""
        formatter = lambda record: "x"  # noqa: E731

        assert resolve_format("{level}: {message}") == "{level}: {message}"
        assert resolve_format(formatter) is formatter
        assert resolve_format(None) is None

    def test_invalid(self) -> None:
        """Тест: неподдерживаемое значение."""
        with pytest.raises(ValueError):
            resolve_format(42)


class TestRecoverPreformatted:
    """Тесты восстановления предварительно отрендеренного сообщения."""

    def test_recovers_fields(self) -> None:
        """Тест восстановления уровня, логгера и текста."""
        record = make_record(
            level=LogLevel.INFO,
            log_name="Opinion.Auth",
            message="2025-10-03 17:47:25,102 ERROR [AuthService] login failed",
        )

        recovered = recover_preformatted(record)

        assert recovered.level == LogLevel.ERROR
        assert recovered.log_name == "AuthService"
        assert recovered.message == "login failed"
        assert record.message.startswith("2025-10-03")

    def test_plain_message_unchanged(self) -> None:
        """Тест: обычное сообщение возвращается без изменений."""
        record = make_record(message="just text")

        assert recover_preformatted(record) is record


class TestConsoleLogChannel:
    """Тесты для ConsoleLogChannel."""

    def _streams(self):
        return {key: io.StringIO() for key in ("log", "error", "warn", "debug")}

    @pytest.mark.parametrize("level,stream", [
        (LogLevel.TRACE, "debug"),
        (LogLevel.DEBUG, "debug"),
        (LogLevel.INFO, "log"),
        (LogLevel.WARN, "warn"),
        (LogLevel.ERROR, "error"),
        (LogLevel.FATAL, "error"),
    ])
    def test_stream_by_level(self, level, stream) -> None:
        """Тест выбора потока по уровню."""
        streams = self._streams()
        channel = ConsoleLogChannel(log_format=LogFormatPreset.COMPACT, streams=streams)

        channel.write(make_record(level=level, log_name="X", message="m"))

        assert streams[stream].getvalue() == f"{level.name} X: m\n"
        others = [key for key in streams if key != stream]
        assert all(streams[key].getvalue() == "" for key in others)

    def test_default_format_prints_details(self) -> None:
        """Тест: без формата выводятся аргументы и исключение отдельными строками."""
        streams = self._streams()
        channel = ConsoleLogChannel(streams=streams)

        channel.write(make_record(
            level=LogLevel.WARN,
            log_name="Auth",
            message="retry {}",
            args=(1, {"k": "v"}),
            exception=TimeoutError("slow"),
        ))

        assert streams["warn"].getvalue() == f"{TIMESTAMP} [WARN] Auth: retry 1\n"
        assert streams["log"].getvalue() == '  └─ Args: {"k":"v"}\n'
        assert streams["error"].getvalue() == "  └─ Exception: TimeoutError: slow\n"

    def test_default_format_recovers_preformatted_message(self) -> None:
        """Тест: уже отрендеренное провайдером сообщение не форматируется дважды."""
        streams = self._streams()
        channel = ConsoleLogChannel(streams=streams)

        channel.write(make_record(message="2025-10-03 17:47:25,102 ERROR [Auth] boom"))

        assert streams["error"].getvalue() == f"{TIMESTAMP} [ERROR] Auth: boom\n"

    def test_explicit_format_writes_one_line(self) -> None:
        """Тест: с явным форматом пишется ровно одна строка."""
        streams = self._streams()
        channel = ConsoleLogChannel(log_format="{message}", streams=streams)

        channel.write(make_record(message="m", args=(1,), exception=ValueError("x")))

        assert streams["log"].getvalue() == "m\n"
        assert streams["error"].getvalue() == ""

    def test_default_streams(self, capsys) -> None:
        """Тест: по умолчанию stdout и stderr."""
        channel = ConsoleLogChannel(log_format=LogFormatPreset.COMPACT)

        channel.write(make_record(level=LogLevel.INFO, log_name="A", message="out"))
        channel.write(make_record(level=LogLevel.ERROR, log_name="A", message="err"))

        captured = capsys.readouterr()
        assert captured.out == "INFO A: out\n"
        assert captured.err == "ERROR A: err\n"
