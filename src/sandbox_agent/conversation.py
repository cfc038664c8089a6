# conversation.py
# Ordered message log for one conversation.
#
# Invariants: exactly one System message, always first; tool results answer
# the requests of the latest assistant message one by one, in issue order,
# so repeated or empty ids stay unambiguous. The log only grows, except for
# reset(), which truncates it to a fresh System message.

import logging

from sandbox_agent.models import (
    AssistantMessage,
    ConversationMessage,
    ModelReply,
    SystemMessage,
    ToolCallRequest,
    ToolOutcome,
    ToolResultMessage,
    UserMessage,
)

logger = logging.getLogger(__name__)


class Conversation:
    def __init__(self, system_prompt: str) -> None:
        self._system_prompt = system_prompt
        self._messages: list[ConversationMessage] = [SystemMessage(content=system_prompt)]

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> tuple[ConversationMessage, ...]:
        """Snapshot of the log; callers cannot mutate it."""
        return tuple(self._messages)

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    @property
    def pending_tool_calls(self) -> list[ToolCallRequest]:
        """Requests from the latest assistant message that have no result yet."""
        answered = 0
        for message in reversed(self._messages):
            if isinstance(message, ToolResultMessage):
                answered += 1
            elif isinstance(message, AssistantMessage):
                return list(message.tool_calls[answered:])
            else:
                break
        return []

    @property
    def pending_tool_call_ids(self) -> list[str]:
        return [call.id for call in self.pending_tool_calls]

    def add_user(self, content: str) -> UserMessage:
        message = UserMessage(content=content)
        self._messages.append(message)
        return message

    def add_assistant(self, reply: ModelReply) -> AssistantMessage:
        message = AssistantMessage(content=reply.text, tool_calls=list(reply.tool_calls))
        self._messages.append(message)
        return message

    def add_tool_result(self, request: ToolCallRequest, outcome: ToolOutcome) -> ToolResultMessage:
        pending = self.pending_tool_calls
        if not pending or pending[0].id != request.id:
            expected = repr(pending[0].id) if pending else "none"
            raise ValueError(
                f"Tool call id {request.id!r} is not the next awaiting a result (expected {expected})."
            )
        message = ToolResultMessage(
            tool_call_id=request.id,
            tool_name=request.name,
            content=outcome.text,
            is_error=not outcome.success,
        )
        self._messages.append(message)
        return message

    def reset(self) -> None:
        self._messages = [SystemMessage(content=self._system_prompt)]
        logger.info("Conversation history cleared")
