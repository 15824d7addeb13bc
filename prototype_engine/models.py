"""
Domain models for prototype projects.

A project record is the persisted unit of work: the prompt and uploaded
files, the chat transcript, the generated file set, the page checklist
and the selected theme.
"""
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from prototype_engine.config import settings


TaskStatus = Literal["pending", "completed"]
ChatRole = Literal["user", "model"]


def now_stamp() -> str:
    """Timestamp used for last_modified."""
    return datetime.now(timezone.utc).isoformat()


class GeneratedFile(BaseModel):
    """One file of a generated prototype"""
    name: str
    content: str


class ProjectFile(BaseModel):
    """Uploaded file with base64 encoded content"""
    name: str
    type: str
    content: str


class PageTask(BaseModel):
    """A page from the checklist derived from the brief"""
    name: str
    status: TaskStatus = "pending"
    file_name: Optional[str] = None


class ChatMessage(BaseModel):
    role: ChatRole
    text: str


class ProjectData(BaseModel):
    """Everything needed to create a project, minus id and timestamp"""
    # Fields this release does not know about are kept and written back on save.
    model_config = ConfigDict(extra="allow")

    name: str
    core_prompt: str
    inspiration_images: List[ProjectFile] = Field(default_factory=list)
    active_inspiration_image_index: int = 0
    prd_document: Optional[ProjectFile] = None
    generated_code: List[GeneratedFile] = Field(default_factory=list)
    chat_history: List[ChatMessage] = Field(default_factory=list)
    tasks: List[PageTask] = Field(default_factory=list)
    theme: str = settings.DEFAULT_THEME


class Project(ProjectData):
    id: str
    last_modified: str

    def active_inspiration_image(self) -> Optional[ProjectFile]:
        if 0 <= self.active_inspiration_image_index < len(self.inspiration_images):
            return self.inspiration_images[self.active_inspiration_image_index]
        return None

    def file_named(self, name: str) -> Optional[GeneratedFile]:
        for generated in self.generated_code:
            if generated.name == name:
                return generated
        return None

    def touch(self) -> "Project":
        self.last_modified = now_stamp()
        return self


class StoredData(BaseModel):
    """Envelope written to the key/value store"""
    version: int
    projects: List[Project]


class LoadResult(BaseModel):
    projects: List[Project] = Field(default_factory=list)
    error_occurred: bool = False
    backup_key: Optional[str] = None
