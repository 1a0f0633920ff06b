"""Tests for the console driver."""

import io
import json

import pytest

from enchant_agent import cli
from enchant_agent.model import ModelResponse, ToolCall
from enchant_agent.permissions import Permission, PermissionMode
from enchant_agent.session import PermissionRequest, Session
from enchant_agent.tools import ToolRegistry
from enchant_agent.tools.base import Tool, ToolPreview


class ScriptedModel:
    def __init__(self, *responses):
        self.responses = list(responses)

    def complete(self, system, messages, tools):
        if not self.responses:
            return ModelResponse(text="done")
        return self.responses.pop(0)


class GuardedTool(Tool):
    name = "Guarded"

    def __init__(self):
        self.executed = []

    def requires_permission(self, session, arguments):
        return Permission.REQUIRE_APPROVAL

    def execute(self, arguments):
        self.executed.append(arguments)
        return "ran"


def scripted_input(*lines):
    answers = iter(lines)

    def read(prompt):
        try:
            return next(answers)
        except StopIteration:
            raise EOFError from None

    return read


def driver_for(model, *tools, lines=()):
    session = Session(ToolRegistry(tools), model, system_prompt="s")
    out = io.StringIO()
    return cli.ConsoleDriver(session, read=scripted_input(*lines), out=out), out


class TestParser:
    def test_modes(self, tmp_path):
        args = cli.build_parser().parse_args(["--auto", "--config", str(tmp_path / "none.json")])
        _, agent_config = cli.resolve_config(args, tmp_path)
        assert agent_config.mode is PermissionMode.AUTOMATIC

        args = cli.build_parser().parse_args(["--yolo", "--config", str(tmp_path / "none.json")])
        _, agent_config = cli.resolve_config(args, tmp_path)
        assert agent_config.mode is PermissionMode.AGGRESSIVE

    def test_auto_and_yolo_exclusive(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["--auto", "--yolo"])

    def test_model_precedence(self, tmp_path):
        path = tmp_path / "enchant.json"
        path.write_text(json.dumps({"default_model": "from-config"}))
        args = cli.build_parser().parse_args(["--config", str(path)])
        assert cli.resolve_config(args, tmp_path)[1].model == "from-config"
        args = cli.build_parser().parse_args(["--config", str(path), "--model", "flag"])
        assert cli.resolve_config(args, tmp_path)[1].model == "flag"


class TestPrompts:
    def test_format_request_with_preview(self):
        request = PermissionRequest(
            call_id="c1",
            tool_name="Write",
            description="Write file: /a",
            arguments={},
            preview=ToolPreview(kind="write", text="hello\n"),
        )
        assert cli.format_request(request) == "Permission required: Write file: /a\nhello"

    def test_ask_yes_no(self):
        assert cli.ask_yes_no("Allow?", scripted_input("maybe", "Y")) is True
        assert cli.ask_yes_no("Allow?", scripted_input("no")) is False
        assert cli.ask_yes_no("Allow?", scripted_input()) is False


class TestConsoleDriver:
    """Tests for ConsoleDriver."""

    def test_prints_reply(self):
        driver, out = driver_for(ScriptedModel(ModelResponse(text="Hello!")), lines=["hi"])
        driver.run()
        assert "Hello!" in out.getvalue()

    def test_approval_runs_tool(self):
        tool = GuardedTool()
        model = ScriptedModel(
            ModelResponse(tool_calls=[ToolCall("c1", "Guarded", {})]),
            ModelResponse(text="all done"),
        )
        driver, out = driver_for(model, tool, lines=["go", "y"])
        driver.run()
        assert tool.executed == [{}]
        assert "Permission required: Execute Guarded" in out.getvalue()
        assert "all done" in out.getvalue()

    def test_denial_shows_result(self):
        tool = GuardedTool()
        model = ScriptedModel(ModelResponse(tool_calls=[ToolCall("c1", "Guarded", {})]))
        driver, out = driver_for(model, tool, lines=["go", "n"])
        driver.run()
        assert tool.executed == []
        assert "[Guarded] Permission denied by user." in out.getvalue()

    def test_mode_command(self):
        driver, out = driver_for(ScriptedModel(), lines=["/mode", "/exit"])
        driver.run()
        assert driver.session.mode is PermissionMode.AUTOMATIC
        assert "mode: automatic" in out.getvalue()


class TestMain:
    def test_runs_without_servers(self, tmp_path, monkeypatch):
        config = tmp_path / "enchant.json"
        config.write_text("{}")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("builtins.input", scripted_input("hello"))
        code = cli.main(["--config", str(config)], model=ScriptedModel(ModelResponse(text="hi there")))
        assert code == 0

    def test_bad_config(self, tmp_path, capsys):
        config = tmp_path / "enchant.json"
        config.write_text("{broken")
        assert cli.main(["--config", str(config)], model=ScriptedModel()) == 1
        assert "Configuration error" in capsys.readouterr().err

    def test_mcp_config_error(self, tmp_path, capsys):
        config = tmp_path / "enchant.json"
        config.write_text(json.dumps({"mcpServers": {"x": {"args": []}}}))
        assert cli.main(["--config", str(config)], model=ScriptedModel()) == 1
        assert "MCP discovery failed" in capsys.readouterr().err
