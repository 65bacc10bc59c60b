"""
Tests for the campfire-stream command line entry point.
"""

import json

import pytest

import campfire_stream_cli
from campfire_stream_cli import _print_error, _print_message, build_parser, main


class TestMain:

    def test_missing_configuration_exits_with_1(self, clean_env, monkeypatch, tmp_path, capsys):
        monkeypatch.chdir(tmp_path)

        assert main([]) == 1

        captured = capsys.readouterr()
        assert "Not enough parameters provided" in captured.err
        assert captured.out == ""

    def test_runs_client_with_resolved_settings(self, clean_env, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        created = []

        class StubClient:
            def __init__(self, token, rooms, *, host):
                self.token = token
                self.rooms = rooms
                self.host = host
                self.events = []
                self.ran = False
                created.append(self)

            def on(self, name, callback):
                self.events.append(name)
                return callback

            async def run(self):
                self.ran = True

        monkeypatch.setattr(campfire_stream_cli, "CampfireStreamClient", StubClient)

        assert main(["--token", "tok", "--rooms", "1,2", "--host", "example.org"]) == 0

        (client,) = created
        assert client.token == "tok"
        assert client.rooms == ["1", "2"]
        assert client.host == "example.org"
        assert client.events == ["stream", "error"]
        assert client.ran

    def test_version_flag(self, capsys):
        with pytest.raises(SystemExit) as exc:
            build_parser().parse_args(["--version"])

        assert exc.value.code == 0
        assert "campfire-stream" in capsys.readouterr().out


class TestPrinters:

    def test_message_line(self, capsys):
        _print_message(False)(None, {"id": 5, "body": "hello", "room_id": 1})

        assert capsys.readouterr().out == "5: hello\n"

    def test_message_json_event(self, capsys):
        _print_message(True)(None, {"id": 5, "body": "hello", "type": "TextMessage"})

        event = json.loads(capsys.readouterr().out)
        assert event["platform"] == "campfire"
        assert event["type"] == "TextMessage"
        assert event["message_id"] == "5"
        assert event["text"] == "hello"

    def test_non_object_payload_is_printed_as_json(self, capsys):
        _print_message(False)(None, [1, 2])

        assert capsys.readouterr().out == "[1, 2]\n"

    def test_errors_go_to_stderr(self, capsys):
        _print_error(None, 500, "Internal Error")

        captured = capsys.readouterr()
        assert captured.err == "500 Internal Error\n"
        assert captured.out == ""
