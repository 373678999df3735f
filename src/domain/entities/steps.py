"""Build steps - typed units of a generated build plan."""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class StepStatus(str, Enum):
    """Step lifecycle. Only the tree builder moves steps forward."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class _StepBase(BaseModel):
    id: int
    title: str
    description: str = ""
    status: StepStatus = StepStatus.PENDING


class CreateFileStep(_StepBase):
    kind: Literal["CreateFile"] = "CreateFile"
    path: str
    code: str = ""


class CreateFolderStep(_StepBase):
    kind: Literal["CreateFolder"] = "CreateFolder"
    path: str | None = None


class EditFileStep(_StepBase):
    kind: Literal["EditFile"] = "EditFile"
    path: str
    code: str = ""


class DeleteFileStep(_StepBase):
    kind: Literal["DeleteFile"] = "DeleteFile"
    path: str


class RunScriptStep(_StepBase):
    kind: Literal["RunScript"] = "RunScript"
    code: str


Step = Annotated[
    Union[CreateFileStep, CreateFolderStep, EditFileStep, DeleteFileStep, RunScriptStep],
    Field(discriminator="kind"),
]


def next_step_id(steps: list[Step]) -> int:
    """Return the id for the first step of a new batch (after the highest existing id)."""
    return max((s.id for s in steps), default=0) + 1
