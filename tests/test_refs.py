from repograph.dag.refs import current_branch, get_branches, read_packed_refs, read_shallow, resolve_head, resolve_ref

def test_resolve_head(tmp_path):
    git_dir = tmp_path / ".git"
    git_dir.mkdir(parents=True)

    # Simple HEAD
    (git_dir / "HEAD").write_text("ref: refs/heads/main")
    (git_dir / "refs" / "heads").mkdir(parents=True)
    (git_dir / "refs" / "heads" / "main").write_text("1234"*10)

    assert resolve_head(git_dir) == "1234"*10
    assert current_branch(git_dir) == "main"

def test_resolve_detached_head(tmp_path):
    git_dir = tmp_path / ".git"
    git_dir.mkdir(parents=True)

    # Detached HEAD
    oid = "abcd"*10
    (git_dir / "HEAD").write_text(oid)

    assert resolve_head(git_dir) == oid
    assert current_branch(git_dir) is None

def test_symbolic_ref_loop_does_not_recurse_forever(tmp_path):
    git_dir = tmp_path / ".git"
    (git_dir / "refs" / "heads").mkdir(parents=True)
    (git_dir / "refs" / "heads" / "a").write_text("ref: refs/heads/b")
    (git_dir / "refs" / "heads" / "b").write_text("ref: refs/heads/a")

    assert resolve_ref(git_dir, "refs/heads/a") is None

def test_get_branches(tmp_path):
    git_dir = tmp_path / ".git"
    heads_dir = git_dir / "refs" / "heads"
    heads_dir.mkdir(parents=True)

    (heads_dir / "main").write_text("1111"*10)
    (heads_dir / "feat" / "new-feature").parent.mkdir()
    (heads_dir / "feat" / "new-feature").write_text("2222"*10)

    branches = get_branches(git_dir)
    assert branches["main"] == "1111"*10
    assert branches["feat/new-feature"] == "2222"*10
    assert list(branches) == ["feat/new-feature", "main"]

def test_packed_refs(tmp_path):
    git_dir = tmp_path / ".git"
    (git_dir / "refs" / "heads").mkdir(parents=True)
    (git_dir / "packed-refs").write_text(
        "# pack-refs with: peeled fully-peeled sorted\n"
        f"{'1111'*10} refs/heads/main\n"
        f"{'2222'*10} refs/heads/release\n"
        f"{'3333'*10} refs/tags/v1.0\n"
        f"^{'4444'*10}\n"
    )
    # loose refs take precedence over packed ones
    (git_dir / "refs" / "heads" / "main").write_text("5555"*10)

    assert read_packed_refs(git_dir)["refs/tags/v1.0"] == "3333"*10
    assert get_branches(git_dir) == {"main": "5555"*10, "release": "2222"*10}
    assert resolve_ref(git_dir, "refs/heads/release") == "2222"*10
    assert resolve_ref(git_dir, "refs/heads/missing") is None

def test_read_shallow(tmp_path):
    git_dir = tmp_path / ".git"
    git_dir.mkdir()
    assert read_shallow(git_dir) == set()

    (git_dir / "shallow").write_text(f"{'1111'*10}\n\n{'2222'*10}\n")
    assert read_shallow(git_dir) == {"1111"*10, "2222"*10}


def test_resolve_ref_ignores_binary_files(tmp_path):
    git_dir = tmp_path / ".git"
    git_dir.mkdir()
    (git_dir / "index").write_bytes(b"DIRC\x00\x00\x00\x02\xff\xfe")

    assert resolve_ref(git_dir, "index") is None
