import pytest
from httpx import ASGITransport, AsyncClient

import pytest_asyncio

from repograph.api.main import app


# Fixture for async client
@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def repo(two_branch_repo):
    builder, commits = two_branch_repo
    return str(builder.root), commits


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_branches(client, repo):
    path, _ = repo
    response = await client.post("/api/repo/branches", json={"repo_path": path})
    assert response.status_code == 200
    assert response.json() == {"branches": ["feature", "main"], "current": "main"}


@pytest.mark.asyncio
async def test_invalid_repository_is_400(client, tmp_path):
    response = await client.post("/api/repo/branches", json={"repo_path": str(tmp_path)})
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidRepository"
    assert "Not a git repository" in response.json()["detail"]


@pytest.mark.asyncio
async def test_commits(client, repo):
    path, commits = repo
    response = await client.post("/api/repo/commits", json={"repo_path": path, "branch": "feature", "depth": 2})
    assert response.status_code == 200
    data = response.json()["commits"]
    assert [c["oid"] for c in data] == [commits["D"], commits["B"]]
    assert data[0]["author"]["name"] == "Tester"


@pytest.mark.asyncio
async def test_unknown_branch_is_404(client, repo):
    path, _ = repo
    response = await client.post("/api/repo/commits", json={"repo_path": path, "branch": "ghost"})
    assert response.status_code == 404
    assert response.json()["error"] == "UnresolvableRef"


@pytest.mark.asyncio
async def test_depth_validation(client, repo):
    path, _ = repo
    response = await client.post("/api/repo/commits", json={"repo_path": path, "branch": "main", "depth": 0})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_all_commits(client, repo):
    path, commits = repo
    response = await client.post("/api/repo/all-commits", json={"repo_path": path, "branch_names": ["main", "feature"]})
    assert response.status_code == 200
    data = response.json()["commits"]
    assert data[0]["oid"] == commits["D"]
    assert data[-1]["branches"] == ["feature", "main"]


@pytest.mark.asyncio
async def test_commit_diff(client, repo):
    path, commits = repo
    response = await client.post("/api/repo/commit-diff", json={"repo_path": path, "commit_oid": commits["D"]})
    assert response.status_code == 200
    assert "+++ b/x.txt\n@@ -0,0 +1,1 @@\n+hello\n" in response.json()["diff"]


@pytest.mark.asyncio
async def test_diff_and_compare_agree(client, repo):
    path, commits = repo
    diff = await client.post("/api/repo/diff", json={"repo_path": path, "commit1": commits["C"], "commit2": commits["D"]})
    compare = await client.post("/api/repo/compare-branches", json={"repo_path": path, "branch1": "main", "branch2": "feature"})
    assert diff.status_code == compare.status_code == 200
    assert diff.json()["diff"] == compare.json()["diff"]


@pytest.mark.asyncio
async def test_graph(client, repo):
    path, commits = repo
    response = await client.post("/api/repo/graph", json={"repo_path": path, "branch_names": ["main", "feature", "ghost"]})
    assert response.status_code == 200
    data = response.json()
    assert data["version"] == 1
    assert [c["oid"] for c in data["commits"]] == [commits["D"], commits["C"], commits["B"], commits["A"]]
    assert data["branch_tips"] == {"main": commits["C"], "feature": commits["D"]}
    assert [b["name"] for b in data["branches"]] == ["main", "feature"]
    assert "ghost" in data["failed_branches"]
