"""Tests for pressure._cli — argument parsing, demo source and handler."""

from __future__ import annotations

import json
import time

import pytest

from pressure._cli import DEMO_TEMPLATE, RandomTicker, _build_parser, _make_handler, main
from pressure.core import Pressure
from tests.conftest import FakeConnection


class TestBuildParser:
    """_build_parser — CLI argument parsing."""

    def test_demo_default_args(self) -> None:
        args = _build_parser().parse_args(["demo"])
        assert args.command == "demo"
        assert args.host == "127.0.0.1"
        assert args.port == 8765
        assert args.interval == 5.0
        assert args.no_wrap is False
        assert args.log_level == "WARNING"

    def test_demo_all_flags(self) -> None:
        args = _build_parser().parse_args([
            "--log-level", "DEBUG",
            "demo",
            "--host", "0.0.0.0",
            "--port", "9000",
            "--interval", "0.5",
            "--no-wrap",
        ])
        assert args.log_level == "DEBUG"
        assert args.host == "0.0.0.0"
        assert args.port == 9000
        assert args.interval == 0.5
        assert args.no_wrap is True

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as info:
            _build_parser().parse_args(["--version"])
        assert info.value.code == 0
        assert "pressure" in capsys.readouterr().out

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as info:
            main([])
        assert info.value.code == 0
        assert "demo" in capsys.readouterr().out


class TestRandomTicker:
    """RandomTicker — demo upstream source."""

    def test_value_is_eight_uppercase_letters(self) -> None:
        value = RandomTicker(60.0)()
        assert len(value) == 8
        assert value.isalpha()
        assert value.isupper()

    def test_stable_within_interval(self) -> None:
        ticker = RandomTicker(60.0)
        assert ticker() == ticker() == ticker()

    def test_changes_after_interval(self) -> None:
        ticker = RandomTicker(0.001)
        values = set()
        for _ in range(5):
            values.add(ticker())
            time.sleep(0.002)
        assert len(values) > 1


class EchoSocket(FakeConnection):
    """Fake websocket yielding scripted client messages, then closing."""

    def __init__(self, name: str, incoming: list[str]) -> None:
        super().__init__(name)
        self._incoming = incoming

    def __iter__(self):
        return iter(self._incoming)


class TestHandler:
    """_make_handler — register, relay, unregister."""

    def test_handler_registers_relays_and_removes(self) -> None:
        p = Pressure(lambda: "x", start=False, wrapper_template=DEMO_TEMPLATE)
        watcher = FakeConnection("watcher")
        p.add(watcher)
        socket = EchoSocket("client", ["hello"])

        _make_handler(p)(socket)

        assert socket not in p.connections
        assert watcher.messages == ["{}", "hello"]
        assert socket.messages == ["{}", "hello"]

    def test_greeting_after_data_uses_template(self) -> None:
        p = Pressure(lambda: "ABCDEFGH", wrapper_template=DEMO_TEMPLATE, read_worker_delay=0.005)
        try:
            deadline = time.monotonic() + 2.0
            while p.latest is None and time.monotonic() < deadline:
                time.sleep(0.005)
            socket = EchoSocket("client", [])
            _make_handler(p)(socket)
        finally:
            p.stop()

        greeting = json.loads(socket.messages[0])
        assert greeting["someKey"] == "Some Value"
        assert greeting["anotherKey"] == "Another Value"
        assert greeting["upstream_data"] == "ABCDEFGH"
