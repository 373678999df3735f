"""Workspace event types for SSE streaming."""

from enum import Enum


class WorkspaceEventType(str, Enum):
    """Event types streamed to client during a generation round."""

    STAGE = "stage"  # orchestrator stage changed
    STEPS = "steps"  # new step batch parsed
    MOUNT = "mount"  # descriptor handed to runtime
    PREVIEW = "preview"  # runtime reported a listening address
    ERROR = "error"
    DONE = "done"
