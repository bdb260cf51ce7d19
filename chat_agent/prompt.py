"""Instruction text sent to the model for tool selection."""

import json
from typing import Any

from chat_agent.decision import ToolName
from chat_agent.tools.registry import ToolRegistry

_PREAMBLE = "You are an AI assistant with access to the following tools:"

_OUTPUT_RULES = """When a user asks a question, analyze their request and determine which tool to use.
Respond with a single JSON object and nothing else, containing exactly these fields:
1. "tool": The name of the tool to use
2. "params": The parameters needed for the tool
3. "explanation": A brief explanation of why you chose this tool
4. "agentMessage": A user-friendly message summarizing what action was taken"""

# Parameter naming is taught only through these notes and the examples below.
_TOOL_NOTES: dict[ToolName, list[str]] = {
    ToolName.GET_WEATHER: [
        "For weather requests, you can get weather for multiple cities at once. "
        "Use the 'cities' parameter as an array when multiple cities are requested.",
    ],
    ToolName.ADD_TODO: [
        'For the add_todo tool, use "title" as the parameter name, not "task".',
    ],
    ToolName.GET_TODOS: [
        'For the get_todos tool, use "search" parameter to filter tasks by title.',
    ],
    ToolName.DELETE_TODO: [
        'For the delete_todo tool, you can delete by either "title" or "id". '
        'When deleting by title, use the "title" parameter.',
        'When a user indicates they have completed a task (e.g., "I am done with X", '
        '"I finished X", "X is complete"), use the delete_todo tool to remove that task.',
    ],
    ToolName.GENERATE_UPI_QR: [
        'For generate_upi_qr tool, use "upi_id" and "amount" parameters to generate a QR code.',
    ],
    ToolName.GENERATE_IMAGE: [
        'For generate_image tool, use "prompt" parameter with a detailed description '
        "of the image to generate.",
    ],
}

_EXAMPLES: dict[ToolName, list[dict[str, Any]]] = {
    ToolName.GET_WEATHER: [
        {
            "params": {"cities": "London"},
            "explanation": "The user asked about weather in London",
            "agentMessage": "Here's the current weather in London",
        },
        {
            "params": {"cities": ["Mumbai", "Delhi", "Bangalore"]},
            "explanation": "The user asked about weather in multiple cities",
            "agentMessage": "Here's the current weather for Mumbai, Delhi, and Bangalore",
        },
    ],
    ToolName.ADD_TODO: [
        {
            "params": {"title": "Buy groceries"},
            "explanation": "The user wants a new task on their list",
            "agentMessage": "Added new task: Buy groceries",
        },
    ],
    ToolName.GET_TODOS: [
        {
            "params": {"search": "home"},
            "explanation": (
                "The user asked about tasks related to home, so searching for tasks "
                "containing 'home' in their title"
            ),
            "agentMessage": "Here are your tasks related to home",
        },
        {
            "params": {},
            "explanation": "The user wants to see every task on their list",
            "agentMessage": "Here are your tasks",
        },
    ],
    ToolName.DELETE_TODO: [
        {
            "params": {"title": "Clean desk"},
            "explanation": "The user indicated they completed cleaning their desk, so removing that task",
            "agentMessage": "Task 'Clean desk' has been deleted",
        },
    ],
    ToolName.GENERATE_UPI_QR: [
        {
            "params": {"upi_id": "omkar@ybl", "amount": 200},
            "explanation": "The user wants a payment QR code",
            "agentMessage": "Here's your UPI QR code for ₹200",
        },
    ],
    ToolName.GENERATE_IMAGE: [
        {
            "params": {"prompt": "A beautiful sunset over mountains"},
            "explanation": "The user requested a picture of a sunset",
            "agentMessage": "I'll generate an image of a beautiful sunset over mountains",
        },
    ],
}


def _render_example(tool: ToolName, example: dict[str, Any]) -> str:
    return json.dumps({"tool": tool.value, **example}, indent=2, ensure_ascii=False)


def compose_prompt(registry: ToolRegistry, user_prompt: str) -> str:
    """Build the full tool-selection prompt for one user request."""
    names = [tool.name for tool in registry]

    tool_lines = "\n".join(f"- {tool.name.value}: {tool.description}" for tool in registry)
    notes = "\n".join(f"- {note}" for name in names for note in _TOOL_NOTES.get(name, []))
    examples = "\n".join(
        _render_example(name, example) for name in names for example in _EXAMPLES.get(name, [])
    )

    instructions = (
        f"{_PREAMBLE}\n{tool_lines}\n\n"
        f"{_OUTPUT_RULES}\n\n"
        f"Important:\n{notes}\n\n"
        f"Example responses:\n{examples}"
    )
    return f"{instructions}\n\nUser: {user_prompt}"
