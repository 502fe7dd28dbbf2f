# ledgerrepo

`ledgerrepo` keeps ledger data in an ordinary Git repository. It drives the
`git` command-line tool through `subprocess`, so `git` must be installed and on
`PATH`. It has no third-party dependencies.

## Modules

- `ledgerrepo.raw` – `RawRepository`, the operations on one working tree:
  - construction: `RawRepository.init(directory, init_commit_message, init_commit_branch)`
    (fails with `InvalidRepositoryError` if a repository already exists),
    `RawRepository.open(directory)`, `RawRepository.clone(directory, url)`;
  - branches: `list_branches` (alphabetical), `create_branch`, `locate_branch`,
    `get_branches`, `move_branch`, `delete_branch` (refuses the checked-out branch);
  - tags: `list_tags`, `create_tag` (lightweight, overwrites), `locate_tag`,
    `get_tag`, `remove_tag`;
  - commits: `create_commit` (stages every change, optionally after applying a
    patch, author and committer set to the given name, e-mail and timestamp),
    `create_semantic_commit` (accepts only `NoDiff` or `ReservedDiff`),
    `read_semantic_commit`;
  - working tree: `checkout`, `checkout_detach`, `checkout_clean` (does nothing);
  - queries: `retrieve_commit_hash` (any revision selection such as `HEAD~1`),
    `get_head`, `get_initial_commit`, `get_patch`, `show_commit` (the commit as
    an e-mail patch), `list_ancestors` (direct parent first; fails on merge
    commits), `query_commit_path`, `find_merge_base`, `read_reserved_state`;
  - remotes: `add_remote`, `remove_remote`, `fetch_all`, `push_option`,
    `list_remotes`, `list_remote_tracking_branches`,
    `locate_remote_tracking_branch`.
- `ledgerrepo.types` – `CommitHash` (a 20-byte object id with `to_hex` and
  `from_hex`), `SemanticCommit` with its diff kinds `NoDiff`, `ReservedDiff`,
  `NonReservedDiff` and `GeneralDiff`, and the errors `RawRepositoryError`,
  `NotFoundError`, `InvalidRepositoryError` and `UnknownError`.
- `ledgerrepo.reserved_state` – `ReservedState` and `read_reserved_state` /
  `write_reserved_state`, which store it as JSON files under a `reserved/`
  directory (`genesis_info.json`, `consensus_leader_order.json`, `version` and
  one file per member in `members/`). Members are read back sorted by name.
- `ledgerrepo.gitcmd` – `Git`, a small runner for `git` in one directory
  (`run`, `try_run`, `rev_parse`, `parents`, `workdir`), and `run_command`,
  which runs a shell command and raises `UnknownError` if it fails.
- `ledgerrepo.server` – `run_server_legacy(path, port)` starts a read-only
  `git daemon` serving every repository under `path`, waits until it accepts
  connections and returns a `GitServer`. Stop it with `stop()` or use it as a
  context manager.
- `ledgerrepo.testing` – helpers for tests: `run_checked`,
  `setup_pre_genesis_repository`, `copy_repository`, `create_temp_dir` and
  `dispense_port` (distinct ports from 37000 to 37999).

## Installing

```
pip install .
```

## Example

```python
from ledgerrepo.raw import RawRepository

repo = RawRepository.init("/tmp/ledger", "initial", "main")
first = repo.get_head()
repo.create_branch("branch_a", first)
second = repo.create_commit("second", "name", "someone@example.com", 0, None)

assert repo.list_branches() == ["branch_a", "main"]
assert repo.list_ancestors(second, 1) == [first]
assert repo.find_merge_base(first, second) == first
```

Serving a repository over the git protocol:

```python
from ledgerrepo.server import run_server_legacy

with run_server_legacy("/tmp", 37123):
    ...  # git clone git://127.0.0.1:37123/ledger
```

## What it does not do

- It stores and reads commits but does not check them: there is no
  verification of commit sequences, no handling of agenda, block or
  finalization-proof commits, and no management of `finalized`, `work` or `fp`
  branches.
- The git daemon helper serves repositories read-only; there is no server that
  accepts pushes or runs a hook on them.
- There is no command-line tool; the package is used as a library.

## Running the tests

```
pip install .[test]
pytest
```