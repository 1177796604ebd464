"""
Tests for logger injection, log filters and handler setup
"""

import logging

import pytest

from conftest import RecordingSink
from tickpy.utils.log_filters import RoutineCycleFilter
from tickpy.utils.logging import SinkLogger, configure_logging, resolve_logger, safe_repr


def make_record(message, level=logging.INFO):
    return logging.LogRecord('tickpy.kernel', level, __file__, 1, message, None, None)


class TestResolveLogger:

    def test_none_gives_named_logger(self):
        assert resolve_logger(None, 'tickpy.example') is logging.getLogger('tickpy.example')

    def test_logger_used_as_is(self):
        log = logging.getLogger('tickpy.other')
        assert resolve_logger(log) is log

    def test_sink_is_adapted(self):
        sink = RecordingSink()
        log = resolve_logger(sink)

        log.info("hello %s", "world")
        log.warning("careful")
        log.error("broken")

        assert isinstance(log, SinkLogger)
        assert sink.logs == ["hello world"]
        assert sink.warnings == ["careful", "broken"]

    def test_sink_missing_methods_is_silent(self):
        class LogOnly:
            def __init__(self):
                self.lines = []

            def log(self, message):
                self.lines.append(message)

        sink = LogOnly()
        log = resolve_logger(sink)
        log.warning("dropped")
        log.info("kept")

        assert sink.lines == ["kept"]

    def test_raising_sink_is_ignored(self):
        class Exploding:
            def log(self, message):
                raise IOError("console gone")

        resolve_logger(Exploding()).info("still fine")

    def test_exception_includes_traceback(self):
        sink = RecordingSink()
        log = resolve_logger(sink)
        try:
            raise KeyError("missing")
        except KeyError:
            log.exception("lookup failed")

        assert sink.warnings[0].startswith("lookup failed\nTraceback")


class TestSafeRepr:

    def test_truncates(self):
        text = safe_repr("x" * 500, max_length=20)
        assert text.endswith('...(truncated)')
        assert len(text) == 20 + len('...(truncated)')

    def test_cyclic_structure(self):
        data = {}
        data['self'] = data
        assert '{...}' in safe_repr(data)

    def test_broken_repr(self):
        class Broken:
            def __repr__(self):
                raise RuntimeError("nope")

        assert safe_repr(Broken()).startswith('<unrepresentable Broken')


class TestRoutineCycleFilter:

    def test_routine_summary_kept_on_interval(self):
        f = RoutineCycleFilter(interval=100)
        assert f.filter(make_record("[Kernel] Tick 200 completed: 3 processes executed successfully"))
        assert not f.filter(make_record("[Kernel] Tick 201 completed: 3 processes executed successfully"))

    def test_other_messages_pass(self):
        f = RoutineCycleFilter(interval=100)
        assert f.filter(make_record("[Migration] Starting migration from v0 to v1"))

    def test_warnings_always_pass(self):
        f = RoutineCycleFilter(interval=100)
        record = make_record("[Kernel] Tick 201 completed: 3 processes executed successfully", logging.WARNING)
        assert f.filter(record)


class TestConfigureLogging:

    @pytest.fixture(autouse=True)
    def restore_root(self):
        yield
        root = logging.getLogger('tickpy')
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.propagate = True
        root.setLevel(logging.NOTSET)

    def test_file_handler_rotates(self, tmp_path):
        log_file = tmp_path / 'tickpy.log'
        root = configure_logging('DEBUG', log_file=str(log_file), max_bytes=1024, backup_count=2)

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        rotating = root.handlers[1]
        assert rotating.maxBytes == 1024
        assert rotating.backupCount == 2

        logging.getLogger('tickpy.kernel').warning("written to file")
        rotating.flush()
        assert "written to file" in log_file.read_text()

    def test_reconfigure_replaces_handlers(self):
        configure_logging('INFO')
        root = configure_logging('WARNING')
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
