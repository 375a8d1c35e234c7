from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


Role = Literal["user", "assistant"]


class ConversationTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class OrchestrateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    business_case: str = Field(alias="businessCase")
    messages: List[ConversationTurn] = Field(min_length=1)
    project_id: str = Field(alias="projectId", min_length=1)
    current_file_path: Optional[str] = Field(default=None, alias="currentFilePath")


class FileDescriptor(BaseModel):
    path: str


class CodeFile(BaseModel):
    path: str
    code: str


class OrchestrateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    files_to_modify: List[FileDescriptor] = Field(default_factory=list, alias="filesToModify")
    code: List[CodeFile] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str


class SparringRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    business_case: str = Field(alias="businessCase")
    messages: List[ConversationTurn] = Field(default_factory=list)


class SparringResponse(BaseModel):
    message: str


class ArtifactVersionInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: int
    path: str
    created_at: str = Field(alias="createdAt")
    prompt: str
    decision_message: str = Field(alias="decisionMessage")


# --- decision results ---
@dataclass(frozen=True)
class NoCodeDecision:
    user_response: str

    needs_code = False


@dataclass(frozen=True)
class NeedsCodeDecision:
    user_response: str
    code_instructions: str

    needs_code = True


Decision = Union[NoCodeDecision, NeedsCodeDecision]


@dataclass(frozen=True)
class GeneratedFile:
    path: str
    content: str


@dataclass
class OrchestrationOutcome:
    display_message: str
    touched_files: List[str] = field(default_factory=list)
    generated_files: List[GeneratedFile] = field(default_factory=list)

    def to_response(self) -> OrchestrateResponse:
        return OrchestrateResponse(
            message=self.display_message,
            files_to_modify=[FileDescriptor(path=p) for p in self.touched_files],
            code=[CodeFile(path=f.path, code=f.content) for f in self.generated_files],
        )


# --- artifact store records ---
@dataclass(frozen=True)
class Repository:
    repository_id: str
    project_id: str
    created_at: datetime


@dataclass(frozen=True)
class ArtifactVersion:
    version: int
    repository_id: str
    project_id: str
    path: str
    content: str
    created_at: datetime
    prompt: str = ""
    decision_message: str = ""

    @property
    def version_id(self) -> str:
        return f"{self.repository_id}:{self.path}:{self.version}"
