"""
Tools module - built-in tools and the tool base classes.

This module contains:
- BaseTool / FunctionTool / tool: the tool interface and function adapter
- write_todos, filesystem tools, execute, web tools
- TaskTool / SubAgent: subagent delegation
"""

from deepagent.tools.base import BaseTool, FunctionTool, tool
from deepagent.tools.execute import ExecuteTool
from deepagent.tools.filesystem import (
    EditFileTool,
    GlobTool,
    GrepTool,
    LsTool,
    ReadFileTool,
    WriteFileTool,
    create_filesystem_tools,
)
from deepagent.tools.subagent import GENERAL_PURPOSE_AGENT, SubAgent, SubagentEventRelay, TaskTool
from deepagent.tools.todos import WriteTodosTool
from deepagent.tools.web import FetchUrlTool, HttpRequestTool, WebSearchTool, create_web_tools

__all__ = [
    "BaseTool",
    "EditFileTool",
    "ExecuteTool",
    "FetchUrlTool",
    "FunctionTool",
    "GENERAL_PURPOSE_AGENT",
    "GlobTool",
    "GrepTool",
    "HttpRequestTool",
    "LsTool",
    "ReadFileTool",
    "SubAgent",
    "SubagentEventRelay",
    "TaskTool",
    "WebSearchTool",
    "WriteFileTool",
    "WriteTodosTool",
    "create_filesystem_tools",
    "create_web_tools",
    "tool",
]
