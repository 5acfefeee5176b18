"""Server instructions for guiding LLM usage of contox tools."""

# fmt: off
# ruff: noqa: E501
SERVER_INSTRUCTIONS = """
contox gives you the persistent memory of this project: architecture, conventions,
decisions, known bugs and recent work, maintained by the Contox service across sessions.

## Starting a Session

Call `contox_get_memory()` once at the start of a session. It returns the compact project
brief and how many items the brain holds.

## Focused Context for a Task

Before starting a concrete task, call `contox_context_pack(task)` with a one-line
description of the task. It returns a token-budgeted markdown document:
- `scope="relevant"` (default): the project brief plus memory items semantically related
  to the task, grouped by category
- `scope="full"`: the whole brain document, truncated to the budget
- `scope="minimal"`: only the top few items

Pass `token_budget` to control the size (default 4000 tokens). If semantic search is
unavailable the pack falls back to the brain document and says so in its footer.

## Looking Things Up

Use `contox_search(query)` to find specific memory items: function names, endpoints,
patterns, past decisions. Queries work best as natural language descriptions.
""".strip()
# fmt: on
