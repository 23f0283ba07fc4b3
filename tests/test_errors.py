"""Tests for lazy_publish.errors and lazy_publish.logs."""

from __future__ import annotations

import io
import logging

from lazy_publish.errors import (
    ConstraintBreak,
    LazyPublishError,
    PlanningError,
    PublishFailed,
    RaceDetected,
    UnknownPackage,
)
from lazy_publish.logs import get_logger, setup_logging


class TestErrors:
    def test_details_rendered(self) -> None:
        exc = LazyPublishError("boom", details={"package": "a", "attempts": 3})
        assert str(exc) == "boom (package=a, attempts=3)"
        assert exc.message == "boom"

    def test_without_details(self) -> None:
        assert str(LazyPublishError("boom")) == "boom"

    def test_constraint_break(self) -> None:
        exc = ConstraintBreak("b", "c", requirement="==1.0.0", version="1.0.1")
        assert isinstance(exc, PlanningError)
        assert str(exc).startswith("b requires c==1.0.0 but c would be released as 1.0.1")

    def test_unknown_package_reference(self) -> None:
        exc = UnknownPackage("ghost", referenced_by="a")
        assert exc.referenced_by == "a"
        assert "a depends on workspace package ghost" in str(exc)

    def test_execution_errors(self) -> None:
        race = RaceDetected("a", planned="1.0.1", found="1.0.1")
        assert "already published" in str(race)
        failed = PublishFailed("a", "1.0.1", attempts=5, reason="503")
        assert str(failed) == "Failed to publish a 1.0.1: 503 (attempts=5)"


class TestLogs:
    def test_get_logger_namespacing(self) -> None:
        assert get_logger("lazy_publish.graph").name == "lazy_publish.graph"
        assert get_logger("plugin").name == "lazy_publish.plugin"
        assert get_logger().name == "lazy_publish"

    def test_setup_logging_level_and_format(self) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.WARNING, stream=stream)
        log = get_logger("lazy_publish.test")
        log.info("hidden")
        log.warning("shown")
        assert stream.getvalue() == "shown\n"

    def test_setup_logging_replaces_handlers(self) -> None:
        setup_logging(stream=io.StringIO())
        setup_logging(stream=io.StringIO())
        assert len(logging.getLogger("lazy_publish").handlers) == 1

    def test_verbose_format(self) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.DEBUG, verbose=True, stream=stream)
        get_logger("lazy_publish.test").debug("detail")
        assert "DEBUG   lazy_publish.test: detail" in stream.getvalue()
