"""Tests for the tool dispatcher."""

import asyncio

import pytest

from sf_mcp_server import mcp_executor, mcp_schemas
from sf_mcp_server.mcp_errors import ValidationError
from sf_mcp_server.mcp_models import ExecutionResult
from sf_mcp_server.mcp_tools import (
    build_invocation,
    execute_raw_command,
    execute_tool,
    split_command,
)


def dispatch(name, arguments):
    return asyncio.run(execute_tool(name, arguments))


class TestExecuteTool:
    def test_unknown_tool(self, fake_executor):
        assert dispatch("sf_nonexistent", {}) == {
            "success": False,
            "error": "Unknown tool: sf_nonexistent",
        }
        assert fake_executor.calls == []

    def test_data_query_end_to_end(self, fake_executor):
        fake_executor.result = ExecutionResult(stdout='{"status": 0, "result": {"totalSize": 1}}')

        envelope = dispatch(
            "sf_data_query", {"query": "SELECT Id FROM Account", "bulk": True}
        )

        assert fake_executor.calls == [
            ("sf", "data", "query", "--json", "--query", "SELECT Id FROM Account", "--bulk")
        ]
        assert envelope == {"success": True, "data": {"status": 0, "result": {"totalSize": 1}}}

    def test_org_list_without_arguments(self, fake_executor):
        envelope = dispatch("sf_org_list", None)
        assert envelope["success"] is True
        assert fake_executor.calls == [("sf", "org", "list", "--json")]

    def test_deploy_flags(self, fake_executor):
        dispatch(
            "sf_project_deploy",
            {"targetOrg": "myOrg", "metadata": ["ApexClass", "CustomObject"], "checkOnly": False},
        )
        assert fake_executor.calls == [
            (
                "sf", "project", "deploy", "start", "--json",
                "--metadata", "ApexClass,CustomObject",
                "--target-org", "myOrg",
            )
        ]

    def test_validation_error_is_enveloped(self, fake_executor):
        envelope = dispatch("sf_data_query", {"targetOrg": "dev"})
        assert envelope["success"] is False
        assert "query" in envelope["error"]
        assert fake_executor.calls == []

    def test_unknown_argument_is_enveloped(self, fake_executor):
        envelope = dispatch("sf_org_list", {"verbose": True})
        assert envelope == {
            "success": False,
            "error": "Invalid argument 'verbose': not a parameter of sf_org_list",
        }

    def test_execution_error_is_enveloped(self, fake_executor):
        fake_executor.fail_with("'sf org list --json' exited with status 1\nNo orgs found")
        envelope = dispatch("sf_org_list", {})
        assert envelope["success"] is False
        assert envelope["error"].startswith("Salesforce CLI command failed:")
        assert "No orgs found" in envelope["error"]

    def test_unexpected_exception_is_enveloped(self, monkeypatch):
        async def broken(argv, timeout=None, max_output_bytes=None):
            raise RuntimeError("boom")

        monkeypatch.setattr(mcp_executor, "run_command", broken)
        envelope = dispatch("sf_org_list", {})
        assert envelope == {"success": False, "error": "Internal error: boom"}

    def test_plain_text_output(self, fake_executor):
        fake_executor.result = ExecutionResult(stdout="@salesforce/cli/2.0.0")
        assert dispatch("sf_custom_command", {"command": "--version"}) == {
            "success": True,
            "data": "@salesforce/cli/2.0.0",
        }

    def test_undecodable_json_output_comes_back_as_text(self, fake_executor):
        fake_executor.result = ExecutionResult(stdout="[" * 100000)
        assert dispatch("sf_org_list", {}) == {"success": True, "data": "[" * 100000}

    def test_custom_command_split_without_shell(self, fake_executor):
        dispatch("sf_custom_command", {"command": "org display --target-org 'my org'"})
        assert fake_executor.calls == [("sf", "org", "display", "--target-org", "my org")]

    def test_custom_command_shell_syntax_is_literal(self, fake_executor):
        dispatch("sf_custom_command", {"command": "org list; rm -rf ~"})
        assert fake_executor.calls == [("sf", "org", "list;", "rm", "-rf", "~")]

    @pytest.mark.parametrize("command", ["", "   ", "org display --target-org 'unterminated"])
    def test_custom_command_unusable(self, fake_executor, command):
        envelope = dispatch("sf_custom_command", {"command": command})
        assert envelope["success"] is False
        assert fake_executor.calls == []

    def test_concurrent_dispatches_do_not_interfere(self, monkeypatch):
        async def echo(argv, timeout=None, max_output_bytes=None):
            await asyncio.sleep(0.05 if "first" in argv else 0)
            return ExecutionResult(stdout=f'"{argv[-1]}"')

        monkeypatch.setattr(mcp_executor, "run_command", echo)

        async def both():
            return await asyncio.gather(
                execute_tool("sf_data_query", {"query": "first"}),
                execute_tool("sf_data_query", {"query": "second"}),
            )

        first, second = asyncio.run(both())
        assert first == {"success": True, "data": "first"}
        assert second == {"success": True, "data": "second"}


class TestExecuteRawCommand:
    def test_runs_with_sf_prefix(self, fake_executor):
        envelope = asyncio.run(execute_raw_command("org list --all"))
        assert fake_executor.calls == [("sf", "org", "list", "--all")]
        assert envelope["success"] is True

    def test_failure_is_enveloped(self, fake_executor):
        fake_executor.fail_with("exited with status 2")
        envelope = asyncio.run(execute_raw_command("org list"))
        assert envelope["success"] is False


class TestHelpers:
    def test_build_invocation_display(self):
        tool = mcp_schemas.lookup("sf_data_query")
        invocation = build_invocation(tool, {"query": "SELECT Id FROM Account"})
        assert invocation.display == "sf data query --json --query 'SELECT Id FROM Account'"

    def test_split_command_rejects_non_string(self):
        with pytest.raises(ValidationError):
            split_command(42)
