from typing import Dict, List, Optional
from pydantic import BaseModel, Field

MAX_DEPTH = 1000


class RepoRequest(BaseModel):
    repo_path: str = Field(min_length=1)


class CommitsRequest(RepoRequest):
    branch: str = Field(min_length=1)
    depth: Optional[int] = Field(default=None, ge=1, le=MAX_DEPTH)


class BranchSelectionRequest(RepoRequest):
    branch_names: List[str] = Field(default_factory=list)
    depth: Optional[int] = Field(default=None, ge=1, le=MAX_DEPTH)


class DiffRequest(RepoRequest):
    commit1: str = Field(min_length=1)
    commit2: str = Field(min_length=1)


class CompareBranchesRequest(RepoRequest):
    branch1: str = Field(min_length=1)
    branch2: str = Field(min_length=1)


class CommitDiffRequest(RepoRequest):
    commit_oid: str = Field(min_length=1)


class BranchesResponse(BaseModel):
    branches: List[str]
    current: Optional[str] = None


class SignatureResponse(BaseModel):
    name: str
    email: str
    timestamp: int


class CommitResponse(BaseModel):
    oid: str
    tree_oid: str
    parent_oids: List[str]
    author: SignatureResponse
    committer: SignatureResponse
    message: str


class CommitListResponse(BaseModel):
    commits: List[CommitResponse]


class AnnotatedCommitResponse(CommitResponse):
    branches: List[str]


class AnnotatedCommitListResponse(BaseModel):
    commits: List[AnnotatedCommitResponse]


class DiffResponse(BaseModel):
    diff: str


class GraphCommitResponse(BaseModel):
    oid: str
    message: str
    author: SignatureResponse
    timestamp: int
    # only parents/children inside the fetched window
    parents: List[str]
    children: List[str]
    branches: List[str]
    primary_branch: str


class GraphBranchResponse(BaseModel):
    name: str
    tip: str
    color: str


class GraphResponse(BaseModel):
    version: int
    commits: List[GraphCommitResponse]
    branch_tips: Dict[str, str]
    branches: List[GraphBranchResponse]
    failed_branches: Dict[str, str] = Field(default_factory=dict)
