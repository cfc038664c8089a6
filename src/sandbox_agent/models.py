# models.py
# Data contracts for the tool-orchestration loop.
# No business logic lives here: pure schema and validation.

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, model_validator


class ToolCallRequest(BaseModel):
    """A single tool invocation requested by the model."""

    id: str = Field(..., description="Opaque round-trip token supplied by the model.")
    name: str = Field(..., description="Tool name: looked up in the registry.")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Tool arguments.")
    argument_error: str | None = Field(
        default=None,
        description="Set when the raw argument text could not be decoded.",
    )


class ToolOutcome(BaseModel):
    """Result of one tool invocation. Output on success, error on failure."""

    success: bool
    output: str | None = None
    error: str | None = None
    data: dict[str, Any] | None = Field(default=None, description="Optional structured payload.")

    @model_validator(mode="after")
    def _check_shape(self) -> "ToolOutcome":
        if self.success and (self.output is None or self.error is not None):
            raise ValueError("A successful outcome carries output and no error.")
        if not self.success and (self.error is None or self.output is not None):
            raise ValueError("A failed outcome carries an error and no output.")
        return self

    @classmethod
    def ok(cls, output: str, data: dict[str, Any] | None = None) -> "ToolOutcome":
        return cls(success=True, output=output, data=data)

    @classmethod
    def fail(cls, error: str, data: dict[str, Any] | None = None) -> "ToolOutcome":
        return cls(success=False, error=error, data=data)

    @property
    def text(self) -> str:
        """The text fed back to the model: output on success, error otherwise."""
        return self.output if self.success else self.error


class CatalogEntry(BaseModel):
    """What the model is told about a tool. No input schema is transmitted."""

    name: str
    description: str


# ---------------------------------------------------------------------------
# Conversation messages
# ---------------------------------------------------------------------------


class SystemMessage(BaseModel):
    role: Literal["system"] = "system"
    content: str


class UserMessage(BaseModel):
    role: Literal["user"] = "user"
    content: str


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str | None = None
    tool_calls: list[ToolCallRequest] = Field(default_factory=list)


class ToolResultMessage(BaseModel):
    """Answers exactly one ToolCallRequest from the preceding assistant message."""

    role: Literal["tool"] = "tool"
    tool_call_id: str
    tool_name: str
    content: str
    is_error: bool = False


ConversationMessage = Annotated[
    Union[SystemMessage, UserMessage, AssistantMessage, ToolResultMessage],
    Field(discriminator="role"),
]


class ModelReply(BaseModel):
    """Either free text or a list of tool-call requests from the model."""

    text: str | None = None
    tool_calls: list[ToolCallRequest] = Field(default_factory=list)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)
