from typing import Any, Literal

from pydantic import BaseModel, Field


class PageEvent(BaseModel):
    """Client -> Server: user or page lifecycle event."""
    type: Literal["event"] = "event"
    name: str  # "start" | "stop" | "key" | "visibility" | "recheck" | "unload"
    code: str | None = None  # KeyboardEvent.code for "key"
    hidden: bool | None = None  # document.hidden for "visibility"


class CommandReply(BaseModel):
    """Client -> Server: result of a page command."""
    type: Literal["reply"] = "reply"
    id: int
    ok: bool
    result: Any = None
    error: str | None = None


class PageCommand(BaseModel):
    """Server -> Client: run a camera or classifier operation in the page."""
    type: Literal["command"] = "command"
    id: int | None = None  # None when no reply is expected
    op: str
    args: dict[str, Any] = Field(default_factory=dict)


class RenderMessage(BaseModel):
    """Server -> Client: current HTML of every display region."""
    type: Literal["render"] = "render"
    status: str
    status_text: str
    status_dot_class: str
    class_count: int
    webcam_html: str
    label_html: str
    button_html: str
    notifications: list[str]
