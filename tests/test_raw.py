import subprocess

import pytest

from ledgerrepo.raw import RawRepository
from ledgerrepo.reserved_state import ReservedState
from ledgerrepo.types import (
    InvalidRepositoryError,
    NoDiff,
    NonReservedDiff,
    NotFoundError,
    RawRepositoryError,
    ReservedDiff,
    SemanticCommit,
)

MAIN = "main"
BRANCH_A = "branch_a"
BRANCH_B = "branch_b"
TAG_A = "tag_a"
TAG_B = "tag_b"
EMAIL = "dev@example.com"
TS = 1_700_000_000


def make_repo(path):
    return RawRepository.init(path, "initial", MAIN)


def commit(repo, message):
    return repo.create_commit(message, "name", EMAIL, TS, None)


def test_init(tmp_path):
    repo = make_repo(tmp_path)
    assert repo.list_branches() == [MAIN]
    with pytest.raises(InvalidRepositoryError):
        make_repo(tmp_path)


def test_open(tmp_path):
    init_repo = make_repo(tmp_path)
    opened = RawRepository.open(tmp_path)
    assert init_repo.list_branches() == opened.list_branches()


def test_open_missing(tmp_path):
    with pytest.raises(NotFoundError):
        RawRepository.open(tmp_path / "nothing")


def test_branch(tmp_path):
    repo = make_repo(tmp_path)
    assert repo.list_branches() == [MAIN]
    c1 = repo.get_head()
    repo.create_branch(BRANCH_A, c1)
    assert repo.list_branches() == [BRANCH_A, MAIN]
    assert repo.locate_branch(BRANCH_A) == c1

    c2 = commit(repo, "second")
    assert repo.get_branches(c2) == [MAIN]

    main_hash = repo.locate_branch(MAIN)
    repo.move_branch(BRANCH_A, main_hash)
    assert repo.locate_branch(BRANCH_A) == main_hash
    assert repo.get_branches(c2) == [BRANCH_A, MAIN]
    assert repo.get_branches(c1) == []

    repo.delete_branch(BRANCH_A)
    assert repo.list_branches() == [MAIN]
    with pytest.raises(InvalidRepositoryError):
        repo.delete_branch(MAIN)


def test_create_existing_branch_fails(tmp_path):
    repo = make_repo(tmp_path)
    with pytest.raises(RawRepositoryError):
        repo.create_branch(MAIN, repo.get_head())


def test_tag(tmp_path):
    repo = make_repo(tmp_path)
    assert repo.list_tags() == []
    first = repo.locate_branch(MAIN)
    repo.create_tag(TAG_A, first)
    repo.create_tag(TAG_B, first)
    assert repo.list_tags() == [TAG_A, TAG_B]
    assert repo.locate_tag(TAG_A) == first
    assert repo.locate_tag(TAG_B) == first
    assert repo.get_tag(first) == [TAG_A, TAG_B]
    repo.remove_tag(TAG_A)
    assert repo.list_tags() == [TAG_B]


def test_checkout(tmp_path):
    repo = make_repo(tmp_path)
    repo.create_branch(BRANCH_A, repo.locate_branch(MAIN))
    commit(repo, "second")
    repo.create_branch(BRANCH_B, repo.locate_branch(MAIN))
    commit(repo, "third")
    first = repo.locate_branch(BRANCH_A)
    second = repo.locate_branch(BRANCH_B)
    third = repo.locate_branch(MAIN)

    repo.checkout(BRANCH_A)
    assert repo.get_head() == first
    repo.checkout(BRANCH_B)
    assert repo.get_head() == second
    repo.checkout(MAIN)
    assert repo.get_head() == third


def test_checkout_detach(tmp_path):
    repo = make_repo(tmp_path)
    first = repo.get_head()
    commit(repo, "second")
    repo.checkout_detach(first)
    assert repo.get_head() == first


def test_initial_commit(tmp_path):
    repo = make_repo(tmp_path)
    first = repo.locate_branch(MAIN)
    commit(repo, "second")
    commit(repo, "third")
    assert repo.get_initial_commit() == first


def test_ancestor(tmp_path):
    repo = make_repo(tmp_path)
    first = repo.locate_branch(MAIN)
    second = commit(repo, "second")
    third = commit(repo, "third")
    assert repo.list_ancestors(third, 1) == [second]
    assert repo.list_ancestors(third, 2) == [second, first]
    assert repo.query_commit_path(first, third) == [second, third]
    assert repo.list_ancestors(third, None) == [second, first]
    assert repo.query_commit_path(third, third) == []


def test_merge_base(tmp_path):
    repo = make_repo(tmp_path)
    base = repo.locate_branch(MAIN)
    repo.create_branch(BRANCH_A, base)
    repo.create_branch(BRANCH_B, base)
    repo.checkout(BRANCH_A)
    commit(repo, "branch_a")
    repo.checkout(BRANCH_B)
    commit(repo, "branch_b")
    a = repo.locate_branch(BRANCH_A)
    b = repo.locate_branch(BRANCH_B)
    assert repo.find_merge_base(a, b) == base
    with pytest.raises(InvalidRepositoryError):
        repo.query_commit_path(a, b)


def test_remote(tmp_path):
    repo = make_repo(tmp_path)
    repo.add_remote("alpha", "https://example.com/alpha.git")
    repo.add_remote("beta", "https://example.com/beta.git")
    assert repo.list_remotes() == [
        ("alpha", "https://example.com/alpha.git"),
        ("beta", "https://example.com/beta.git"),
    ]
    repo.remove_remote("alpha")
    assert repo.list_remotes() == [("beta", "https://example.com/beta.git")]


def test_fetch_remote_tracking(tmp_path):
    origin = make_repo(tmp_path / "origin")
    origin_head = origin.get_head()
    local = make_repo(tmp_path / "local")
    local.add_remote("peer", str(tmp_path / "origin"))
    local.fetch_all()
    branches = local.list_remote_tracking_branches()
    assert ("peer", MAIN, origin_head) in branches
    assert local.locate_remote_tracking_branch("peer", MAIN) == origin_head


def test_clone(tmp_path):
    make_repo(tmp_path / "origin")
    repo = RawRepository.clone(tmp_path / "cloned", str(tmp_path / "origin"))
    assert repo.list_branches() == [MAIN]


def test_reserved_state(tmp_path):
    repo = make_repo(tmp_path)
    state = ReservedState(
        genesis_info={"chain_name": "test-chain"},
        members=[{"name": "member-0000"}, {"name": "member-0001"}],
        consensus_leader_order=["member-0000", "member-0001"],
        version="0.1.0",
    )
    repo.checkout(MAIN)
    commit_hash = repo.create_semantic_commit(
        SemanticCommit("test", "test-body", ReservedDiff(state), "doesn't matter", 0)
    )
    assert repo.read_reserved_state() == state
    semantic = repo.read_semantic_commit(commit_hash)
    assert semantic.title == "test"
    assert semantic.body == "test-body"


def test_semantic_commit_no_diff_round_trip(tmp_path):
    repo = make_repo(tmp_path)
    commit_hash = repo.create_semantic_commit(
        SemanticCommit(">agenda: 3", "line one\nline two", NoDiff(), "x", 0)
    )
    semantic = repo.read_semantic_commit(commit_hash)
    assert (semantic.title, semantic.body, semantic.diff, semantic.author) == (
        ">agenda: 3", "line one\nline two", NoDiff(), "name",
    )


def test_semantic_commit_rejects_nonreserved(tmp_path):
    repo = make_repo(tmp_path)
    with pytest.raises(InvalidRepositoryError):
        repo.create_semantic_commit(
            SemanticCommit("t", "b", NonReservedDiff("abc"), "x", 0)
        )


def test_semantic_commit_nonreserved_diff(tmp_path):
    repo = make_repo(tmp_path)
    (tmp_path / "file").write_text("file")
    commit_file = commit(repo, "add a file")
    semantic = repo.read_semantic_commit(commit_file)
    assert isinstance(semantic.diff, NonReservedDiff)
    assert semantic.timestamp == TS * 1000
    again = repo.read_semantic_commit(commit_file)
    assert again.diff == semantic.diff


def test_retrieve_commit_hash(tmp_path):
    repo = make_repo(tmp_path)
    main = repo.locate_branch(MAIN)
    repo.create_branch(BRANCH_A, main)
    repo.create_branch(BRANCH_B, main)
    repo.checkout(BRANCH_A)
    a = commit(repo, BRANCH_A)
    repo.create_tag(TAG_A, a)
    repo.checkout(BRANCH_B)
    b = commit(repo, BRANCH_B)

    assert repo.retrieve_commit_hash(BRANCH_A) == a
    assert repo.retrieve_commit_hash(BRANCH_B) == b
    assert repo.retrieve_commit_hash(MAIN) == main
    assert repo.retrieve_commit_hash("HEAD") == b
    assert repo.retrieve_commit_hash("HEAD^1") == main
    assert repo.retrieve_commit_hash("HEAD~1") == main
    with pytest.raises(NotFoundError):
        repo.retrieve_commit_hash("HEAD^2")
    assert repo.retrieve_commit_hash(TAG_A) == a


def test_patch(tmp_path):
    repo = make_repo(tmp_path / "one")
    (tmp_path / "one" / "patch_file").write_text("patch test")
    original = repo.create_commit("apply patch", "name", EMAIL, TS, None)

    repo2 = make_repo(tmp_path / "two")
    patch = repo.get_patch(repo.get_head())
    applied = repo2.create_commit("apply patch", "name", EMAIL, TS, patch)

    assert repo2.get_patch(applied) == repo.get_patch(original)
    assert "patch_file" in repo2.get_patch(applied)
    assert (tmp_path / "two" / "patch_file").read_text() == "patch test"


def test_push_option_to_bare_remote(tmp_path):
    bare = tmp_path / "bare.git"
    subprocess.run(["git", "init", "--bare", "--quiet", str(bare)], check=True)
    repo = make_repo(tmp_path / "work")
    repo.add_remote("origin", str(bare))
    repo.push_option("origin", MAIN, None)
    pushed = RawRepository.open(bare).locate_branch(MAIN)
    assert pushed == repo.get_head()