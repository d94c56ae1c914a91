"""
mcp_models.py - Pydantic model definitions

Tool/parameter declarations, the assembled command, process results and
the REST request body.
"""

import shlex
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator


class ParamKind(str, Enum):
    """Closed set of parameter kinds"""
    BOOLEAN = "boolean"
    STRING = "string"
    NUMBER = "number"
    STRING_LIST = "string_list"
    ENUM = "enum"


class ParameterSpec(BaseModel):
    """Declared shape of one tool argument"""
    model_config = ConfigDict(frozen=True)

    name: str
    kind: ParamKind
    description: str = ""
    required: bool = False
    choices: Tuple[str, ...] = ()

    @model_validator(mode="after")
    def _check_choices(self) -> "ParameterSpec":
        if self.kind is ParamKind.ENUM and not self.choices:
            raise ValueError(f"enum parameter '{self.name}' needs choices")
        if self.kind is not ParamKind.ENUM and self.choices:
            raise ValueError(f"only enum parameters take choices ('{self.name}')")
        return self


class ToolDefinition(BaseModel):
    """One callable tool backed by a fixed sf command prefix"""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    command: Tuple[str, ...] = ()
    params: Tuple[ParameterSpec, ...] = ()
    # The caller's free-text command replaces flag translation (escape hatch)
    raw_command: bool = False

    @model_validator(mode="after")
    def _check_unique_params(self) -> "ToolDefinition":
        seen = set()
        for param in self.params:
            if param.name in seen:
                raise ValueError(f"duplicate parameter '{param.name}' in tool '{self.name}'")
            seen.add(param.name)
        return self

    def get_param(self, name: str) -> Optional[ParameterSpec]:
        for param in self.params:
            if param.name == name:
                return param
        return None


class CommandInvocation(BaseModel):
    """Argument vector handed to the process layer. Never run through a shell."""
    model_config = ConfigDict(frozen=True)

    argv: Tuple[str, ...]

    @property
    def display(self) -> str:
        return shlex.join(self.argv)


class ExecutionResult(BaseModel):
    """Captured output of one finished child process"""
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0


class ExecuteRequest(BaseModel):
    """POST /api/execute body"""
    command: Optional[str] = None
