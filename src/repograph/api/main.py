import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from repograph.api.schemas import (
    AnnotatedCommitListResponse,
    BranchSelectionRequest,
    BranchesResponse,
    CommitDiffRequest,
    CommitListResponse,
    CommitsRequest,
    CompareBranchesRequest,
    DiffRequest,
    DiffResponse,
    GraphResponse,
    RepoRequest,
)
from repograph.api.service import RepoService
from repograph.config import Settings
from repograph.git_objects.errors import InvalidRepository, ObjectReadFailure, RepoGraphError, UnresolvableRef

settings = Settings.from_env()

# Configure Logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Repository Graph Explorer API")

# In production, set ALLOWED_ORIGINS to a comma-separated list of domains
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

service = RepoService(settings)

ERROR_STATUS = {
    InvalidRepository: 400,
    UnresolvableRef: 404,
    ObjectReadFailure: 500,
}


@app.exception_handler(RepoGraphError)
async def repograph_error_handler(request: Request, exc: RepoGraphError):
    status_code = ERROR_STATUS.get(type(exc), 500)
    logger.error(f"{request.url.path} failed ({type(exc).__name__}): {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "error": type(exc).__name__})


@app.post("/api/repo/branches", response_model=BranchesResponse)
def list_branches(req: RepoRequest):
    """List branch names of the repository."""
    return service.list_branches(req.repo_path)


@app.post("/api/repo/commits", response_model=CommitListResponse)
def list_commits(req: CommitsRequest):
    """History of one branch, tip first."""
    return CommitListResponse(commits=service.list_commits(req.repo_path, req.branch, req.depth))


@app.post("/api/repo/all-commits", response_model=AnnotatedCommitListResponse)
def list_all_commits(req: BranchSelectionRequest):
    """Commits of the selected branches, newest first, with the branches containing each."""
    return AnnotatedCommitListResponse(commits=service.list_all_commits(req.repo_path, req.branch_names, req.depth))


@app.post("/api/repo/diff", response_model=DiffResponse)
def get_diff(req: DiffRequest):
    return DiffResponse(diff=service.get_tree_diff(req.repo_path, req.commit1, req.commit2))


@app.post("/api/repo/compare-branches", response_model=DiffResponse)
def compare_branches(req: CompareBranchesRequest):
    return DiffResponse(diff=service.compare_branches(req.repo_path, req.branch1, req.branch2))


@app.post("/api/repo/commit-diff", response_model=DiffResponse)
def get_commit_diff(req: CommitDiffRequest):
    """Diff of a commit against its first parent."""
    return DiffResponse(diff=service.get_commit_diff(req.repo_path, req.commit_oid))


@app.post("/api/repo/graph", response_model=GraphResponse)
def get_graph(req: BranchSelectionRequest):
    """Commit graph of the selected branches in rendering order."""
    return service.get_graph(req.repo_path, req.branch_names, req.depth)


@app.get("/health")
def health_check():
    return {"status": "ok"}
