# harness.py
# Tool-orchestration loop.
#
# The Agent owns all control flow and conversation state. The model never
# touches the filesystem: it only names tools, and the Agent runs them.
#
# Control flow per turn:
#   user message → model call → (tool calls → run each in order → results)*
#   → plain-text reply, or stop at the iteration cap
#
# All terminal output is delegated to display.py: no formatting here.

import logging
from enum import Enum
from typing import Any

from sandbox_agent import display
from sandbox_agent.base import Tool
from sandbox_agent.client import ModelClient
from sandbox_agent.conversation import Conversation
from sandbox_agent.errors import ConfigError, ModelInvocationError, UnknownTool
from sandbox_agent.models import CatalogEntry, ModelReply, ToolCallRequest, ToolOutcome
from sandbox_agent.tools import catalog as build_catalog

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 1000
INTERRUPTED_MESSAGE = "Interrupted: the user cancelled this tool call"


# ---------------------------------------------------------------------------
# System Prompt
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """\
You are a helpful programming assistant running inside a terminal-based development tool.
You help developers with programming tasks by acting on their working directory.

IMPORTANT: carry the work out with your tools instead of only describing it.

When the user asks you to:
- write a program or create a file → use Write
- change an existing file → use Edit
- run a command → use Bash, Git, Npm or Maven
- look at a file → use Read
- find files or search their contents → use Glob or Grep

Available tools:
- Read: read a file from the filesystem
- Write: create or overwrite a file
- Edit: exact string replacement inside a file
- Glob: find files matching a glob pattern
- Grep: search file contents with a regular expression
- Bash: run a shell command
- Git: run a Git command
- Npm: run an NPM command
- Maven: run a Maven command

All paths must stay inside the working directory. Tool arguments are JSON
objects; each tool's description lists its arguments.

Workflow:
1. Understand the request.
2. Use the tools to do the work.
3. Check the results and fix anything that failed.
4. Reply briefly with what you did.

When writing code, follow the project's existing style, keep it clear and
maintainable, and handle edge cases and errors.\
"""


class AgentState(str, Enum):
    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"


def _cap_notice(limit: int) -> str:
    return f"(Reached the limit of {limit} tool iterations for this turn)"


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------


class Agent:
    """
    Drives one conversation between a model client and the tool registry.

    Example:
        agent = Agent(client=OpenAIModelClient(settings), registry=build_registry(sandbox))
        answer = agent.process("List the Python files under src/")
    """

    def __init__(
        self,
        client: ModelClient,
        registry: dict[str, Tool],
        conversation: Conversation | None = None,
        max_iterations: int = MAX_ITERATIONS,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1.")
        self._client = client
        self._registry = dict(registry)
        self._catalog = build_catalog(self._registry)
        self._max_iterations = max_iterations
        self._state = AgentState.IDLE
        self._iterations = 0
        self.conversation = conversation if conversation is not None else Conversation(SYSTEM_PROMPT)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def iterations(self) -> int:
        """Model calls made in the current (or most recent) turn."""
        return self._iterations

    @property
    def client(self) -> ModelClient:
        return self._client

    @property
    def catalog(self) -> list[CatalogEntry]:
        return list(self._catalog)

    @property
    def tool_names(self) -> list[str]:
        return list(self._registry)

    # ------------------------------------------------------------------
    # Tool dispatch
    # ------------------------------------------------------------------

    def dispatch(self, request: ToolCallRequest) -> ToolOutcome:
        """Run one request against the registry. Never raises."""
        if request.argument_error:
            return ToolOutcome.fail(f"InvalidArgument: {request.argument_error}")
        tool = self._registry.get(request.name)
        if tool is None:
            error = UnknownTool(
                f"unknown tool '{request.name}'. Available tools: {', '.join(self._registry)}"
            )
            logger.warning("Model requested unknown tool %r", request.name)
            return ToolOutcome.fail(f"{error.kind}: {error}")
        return tool.execute(request.arguments)

    def _describe(self, request: ToolCallRequest) -> str:
        tool = self._registry.get(request.name)
        if tool is None:
            return f"Running tool: {request.name}"
        return tool.describe(request.arguments)

    def _execute_requests(self, requests: list[ToolCallRequest], results: list[str]) -> None:
        """Run requests strictly in the order the model issued them."""
        self._state = AgentState.EXECUTING_TOOLS
        for request in requests:
            display.tool_start(self._describe(request))
            outcome = self.dispatch(request)
            if outcome.success:
                display.tool_success()
            else:
                display.tool_failure(outcome.error)
            self.conversation.add_tool_result(request, outcome)
            results.append(outcome.text)

    def _answer_pending(self, error: str) -> None:
        """Close every unanswered request of the latest assistant message."""
        pending = self.conversation.pending_tool_calls
        if pending:
            logger.warning("Closing %d unanswered tool call(s): %s", len(pending), error)
        for request in pending:
            self.conversation.add_tool_result(request, ToolOutcome.fail(error))

    # ------------------------------------------------------------------
    # Turn
    # ------------------------------------------------------------------

    def _step(self, results: list[str]) -> ModelReply:
        """One round: call the model, record its reply, run what it asked for."""
        self._state = AgentState.AWAITING_MODEL
        self._iterations += 1
        reply = self._client.generate(self.conversation.messages, self._catalog)
        self.conversation.add_assistant(reply)
        if reply.has_tool_calls:
            self._execute_requests(reply.tool_calls, results)
        return reply

    def process(self, user_message: str) -> str:
        """
        Run one user turn to completion.

        Returns the model's final text, the accumulated tool-result texts if
        that text is empty, an error message if the model call fails, or
        the accumulated texts plus a notice once the iteration cap is hit.
        """
        logger.info("Processing user message: %s", user_message)
        self.conversation.add_user(user_message)
        self._iterations = 0
        results: list[str] = []

        try:
            while self._iterations < self._max_iterations:
                if self._iterations:
                    display.round_separator()
                try:
                    reply = self._step(results)
                except ModelInvocationError as exc:
                    logger.error("Turn aborted after %d model call(s): %s", self._iterations, exc)
                    display.model_error(str(exc))
                    return f"Error: {exc}"

                if not reply.has_tool_calls:
                    display.turn_complete()
                    if reply.text and reply.text.strip():
                        return reply.text
                    return "\n".join(results)
        except KeyboardInterrupt:
            self._answer_pending(INTERRUPTED_MESSAGE)
            raise
        finally:
            self._state = AgentState.IDLE

        logger.warning("Iteration cap of %d reached", self._max_iterations)
        display.iteration_cap(self._max_iterations)
        return "\n".join([*results, _cap_notice(self._max_iterations)])

    # ------------------------------------------------------------------
    # Session commands
    # ------------------------------------------------------------------

    def reset(self) -> None:
        self.conversation.reset()

    def model_info(self) -> dict[str, Any]:
        describe = getattr(self._client, "info", None)
        return describe() if callable(describe) else {"client": type(self._client).__name__}

    def _reconfigure(self, **changes: Any) -> None:
        reconfigured = getattr(self._client, "reconfigured", None)
        if not callable(reconfigured):
            raise ValueError("The current model client cannot be reconfigured.")
        self._client = reconfigured(**changes)

    def switch_model(self, provider: str | None, model: str | None, api_key: str | None = None) -> str:
        """Replace the model client; the conversation history is kept."""
        try:
            self._reconfigure(provider=provider, model=model, api_key=api_key)
        except (ValueError, ConfigError) as exc:
            logger.error("Model switch failed: %s", exc)
            return f"Failed to switch model: {exc}"
        details = self.model_info()
        return f"Switched to {details.get('provider')} model {details.get('model')}"

    def update_parameters(self, temperature: float | None = None, max_tokens: int | None = None) -> str:
        changes: dict[str, Any] = {}
        if temperature is not None:
            if not 0.0 <= temperature <= 1.0:
                return f"Temperature must be between 0.0 and 1.0, got {temperature}"
            changes["temperature"] = temperature
        if max_tokens is not None:
            if max_tokens <= 0:
                return f"max_tokens must be positive, got {max_tokens}"
            changes["max_tokens"] = max_tokens
        if not changes:
            return "No changes made"
        try:
            self._reconfigure(**changes)
        except (ValueError, ConfigError) as exc:
            logger.error("Parameter update failed: %s", exc)
            return f"Failed to update parameters: {exc}"
        details = self.model_info()
        return (
            "Model parameters updated:\n"
            f"Temperature: {details.get('temperature')}\n"
            f"Max tokens: {details.get('max_tokens')}"
        )
