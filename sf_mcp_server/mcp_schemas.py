"""
mcp_schemas.py - Tool definitions and argument validation

Declares the fixed catalog of sf tools, checks raw caller arguments
against it and renders the catalog for MCP tools/list and the REST API.
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional

from .mcp_errors import UnknownToolError, ValidationError
from .mcp_models import ParamKind, ParameterSpec, ToolDefinition

logger = logging.getLogger(__name__)

TARGET_ORG_DESC = "Username or alias of the target org"

DEPLOY_TEST_LEVELS = ("NoTestRun", "RunSpecifiedTests", "RunLocalTests", "RunAllTestsInOrg")
APEX_TEST_LEVELS = ("RunLocalTests", "RunAllTestsInOrg", "RunSpecifiedTests")
PACKAGE_TYPES = ("Managed", "Unlocked")


def _param(name: str, kind: ParamKind, description: str = "", required: bool = False, choices=()) -> ParameterSpec:
    return ParameterSpec(name=name, kind=kind, description=description, required=required, choices=tuple(choices))


# ============================================================
# Tool definitions
# ============================================================

TOOL_DEFINITIONS: List[ToolDefinition] = [
    ToolDefinition(
        name="sf_org_list",
        description="List all authorized Salesforce orgs",
        command=("org", "list", "--json"),
        params=(
            _param("all", ParamKind.BOOLEAN, "Show all orgs, including expired and deleted ones"),
            _param("clean", ParamKind.BOOLEAN, "Remove all local org authorization files for non-active orgs"),
            _param("skipConnectionStatus", ParamKind.BOOLEAN, "Skip retrieving the connection status of each org"),
        ),
    ),
    ToolDefinition(
        name="sf_data_query",
        description="Execute a SOQL query against a Salesforce org",
        command=("data", "query", "--json"),
        params=(
            _param("query", ParamKind.STRING, "SOQL query to execute", required=True),
            _param("targetOrg", ParamKind.STRING, TARGET_ORG_DESC),
            _param("useToolingApi", ParamKind.BOOLEAN, "Use Tooling API instead of standard API"),
            _param("bulk", ParamKind.BOOLEAN, "Use Bulk API 2.0 for large queries"),
        ),
    ),
    ToolDefinition(
        name="sf_project_deploy",
        description="Deploy metadata to a Salesforce org",
        command=("project", "deploy", "start", "--json"),
        params=(
            _param("sourcePath", ParamKind.STRING, "Path to source files to deploy"),
            _param("metadata", ParamKind.STRING_LIST, "Metadata components to deploy"),
            _param("targetOrg", ParamKind.STRING, TARGET_ORG_DESC),
            _param("checkOnly", ParamKind.BOOLEAN, "Validate deploy but don't save to the org"),
            _param("testLevel", ParamKind.ENUM, choices=DEPLOY_TEST_LEVELS),
            _param("wait", ParamKind.NUMBER, "Wait time for deployment to complete (in minutes)"),
        ),
    ),
    ToolDefinition(
        name="sf_project_retrieve",
        description="Retrieve metadata from a Salesforce org",
        command=("project", "retrieve", "start", "--json"),
        params=(
            _param("targetOrg", ParamKind.STRING, TARGET_ORG_DESC),
            _param("metadata", ParamKind.STRING_LIST, "Metadata components to retrieve"),
            _param("sourcePath", ParamKind.STRING, "Path to save retrieved source files"),
            _param("packageNames", ParamKind.STRING_LIST, "Package names to retrieve"),
            _param("wait", ParamKind.NUMBER, "Wait time for retrieve to complete (in minutes)"),
        ),
    ),
    ToolDefinition(
        name="sf_apex_test_run",
        description="Run Apex tests in a Salesforce org",
        command=("apex", "test", "run", "--json"),
        params=(
            _param("targetOrg", ParamKind.STRING, TARGET_ORG_DESC),
            _param("testLevel", ParamKind.ENUM, choices=APEX_TEST_LEVELS),
            _param("classNames", ParamKind.STRING_LIST, "Apex test class names to run"),
            _param("suiteNames", ParamKind.STRING_LIST, "Apex test suite names to run"),
            _param("outputDir", ParamKind.STRING, "Directory to store test results"),
            _param("wait", ParamKind.NUMBER, "Wait time for tests to complete (in minutes)"),
        ),
    ),
    ToolDefinition(
        name="sf_data_import",
        description="Import data from a CSV file into a Salesforce org",
        command=("data", "import", "tree", "--json"),
        params=(
            _param("file", ParamKind.STRING, "Path to CSV file to import", required=True),
            _param("sobject", ParamKind.STRING, "sObject type for the data", required=True),
            _param("targetOrg", ParamKind.STRING, TARGET_ORG_DESC),
            _param("wait", ParamKind.NUMBER, "Wait time for import to complete (in minutes)"),
        ),
    ),
    ToolDefinition(
        name="sf_package_create",
        description="Create a new Salesforce package",
        command=("package", "create", "--json"),
        params=(
            _param("name", ParamKind.STRING, "Package name", required=True),
            _param("packageType", ParamKind.ENUM, "Package type", required=True, choices=PACKAGE_TYPES),
            _param("path", ParamKind.STRING, "Path to package directory", required=True),
            _param("targetDevHub", ParamKind.STRING, "Username or alias of the Dev Hub org"),
            _param("description", ParamKind.STRING, "Package description"),
        ),
    ),
    # Low-safety escape hatch: any sf subcommand the catalog does not cover.
    ToolDefinition(
        name="sf_custom_command",
        description="Execute a custom Salesforce CLI command",
        raw_command=True,
        params=(
            _param(
                "command",
                ParamKind.STRING,
                "Full Salesforce CLI command to execute (without 'sf' prefix)",
                required=True,
            ),
        ),
    ),
]

# Tool registry (name -> definition)
TOOL_REGISTRY: Dict[str, ToolDefinition] = {tool.name: tool for tool in TOOL_DEFINITIONS}


def lookup(name: str) -> ToolDefinition:
    """Return the tool registered under name, or raise UnknownToolError."""
    tool = TOOL_REGISTRY.get(name)
    if tool is None:
        raise UnknownToolError(name)
    return tool


# ============================================================
# Argument validation
# ============================================================

def _check_value(param: ParameterSpec, value: Any) -> Any:
    kind = param.kind

    if kind is ParamKind.BOOLEAN:
        if not isinstance(value, bool):
            raise ValidationError(param.name, f"expected boolean, got {type(value).__name__}")
        return value

    if kind is ParamKind.NUMBER:
        # bool is an int subclass; JSON true is never a number
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(param.name, f"expected number, got {type(value).__name__}")
        if not math.isfinite(value):
            raise ValidationError(param.name, "expected a finite number")
        return value

    if kind is ParamKind.STRING_LIST:
        if not isinstance(value, (list, tuple)):
            raise ValidationError(param.name, f"expected array of strings, got {type(value).__name__}")
        for index, item in enumerate(value):
            if not isinstance(item, str):
                raise ValidationError(
                    param.name, f"expected string at index {index}, got {type(item).__name__}"
                )
        return list(value)

    if not isinstance(value, str):
        raise ValidationError(param.name, f"expected string, got {type(value).__name__}")

    if kind is ParamKind.ENUM and value not in param.choices:
        raise ValidationError(
            param.name, f"expected one of {', '.join(param.choices)}, got {value!r}"
        )
    return value


def validate_arguments(tool: ToolDefinition, raw_args: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Check raw caller arguments against a tool's parameter specs.

    Args:
        tool: the tool being called
        raw_args: untyped mapping from the caller; None means no arguments

    Returns:
        Dict: validated arguments in the tool's declared parameter order

    Raises:
        ValidationError: naming the offending field and the violated constraint
    """
    if raw_args is None:
        raw_args = {}
    if not isinstance(raw_args, Mapping):
        raise ValidationError("arguments", f"expected an object, got {type(raw_args).__name__}")

    for key in raw_args:
        if tool.get_param(key) is None:
            raise ValidationError(str(key), f"not a parameter of {tool.name}")

    record: Dict[str, Any] = {}
    for param in tool.params:
        value = raw_args.get(param.name)
        if value is None:
            if param.required:
                raise ValidationError(param.name, "required argument is missing")
            continue
        record[param.name] = _check_value(param, value)

    return record


# ============================================================
# Catalog rendering
# ============================================================

def _property_schema(param: ParameterSpec) -> Dict[str, Any]:
    if param.kind is ParamKind.STRING_LIST:
        schema: Dict[str, Any] = {"type": "array", "items": {"type": "string"}}
    elif param.kind is ParamKind.ENUM:
        schema = {"type": "string", "enum": list(param.choices)}
    else:
        schema = {"type": param.kind.value}
    if param.description:
        schema["description"] = param.description
    return schema


def input_schema(tool: ToolDefinition) -> Dict[str, Any]:
    """JSON schema for a tool's arguments, derived 1:1 from its parameter specs."""
    schema: Dict[str, Any] = {
        "type": "object",
        "properties": {param.name: _property_schema(param) for param in tool.params},
    }
    required = [param.name for param in tool.params if param.required]
    if required:
        schema["required"] = required
    return schema


def get_tool_definitions() -> List[Dict[str, Any]]:
    """Tool list in MCP tools/list format."""
    return [
        {"name": tool.name, "description": tool.description, "inputSchema": input_schema(tool)}
        for tool in TOOL_DEFINITIONS
    ]


def get_tool_catalog() -> List[Dict[str, Any]]:
    """Human-readable tool list for GET /api/tools."""
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "parameters": [param.name for param in tool.params],
        }
        for tool in TOOL_DEFINITIONS
    ]
