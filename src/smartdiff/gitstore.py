"""git object access through the git executable.

Wraps the git CLI via subprocess to read trees and blobs from a repository's
object database without touching the working copy. Only the handful of
plumbing commands needed for read-only tree walking are used:

    git rev-parse --verify <ref>^{tree}     reference -> tree id
    git ls-tree --full-tree -z <tree>       tree entries
    git cat-file blob <oid>                 blob content
    git diff --name-only -z <ref> --        paths changed since <ref>
"""

import os
import shutil
import subprocess
from typing import NamedTuple

from .errors import GitError, ReferenceNotFound

# Tree entry modes as stored by git
MODE_TREE = 0o040000
MODE_BLOB = 0o100644
MODE_EXECUTABLE = 0o100755
MODE_SYMLINK = 0o120000
MODE_GITLINK = 0o160000


class TreeEntry(NamedTuple):
    """One named entry of a git tree object."""
    mode: int
    kind: str       # 'tree', 'blob' or 'commit'
    oid: str
    name: str

    @property
    def is_tree(self) -> bool:
        return self.kind == 'tree'

    @property
    def is_blob(self) -> bool:
        return self.kind == 'blob'

    @property
    def is_symlink(self) -> bool:
        return self.mode == MODE_SYMLINK


def find_git() -> str | None:
    """Locate the git executable.

    Search order:
    1. SMARTDIFF_GIT environment variable
    2. System PATH
    """
    env_path = os.environ.get('SMARTDIFF_GIT')
    if env_path and os.path.isfile(env_path):
        return env_path
    return shutil.which('git')


def _run_git(args: list[str], repo_dir: str,
             git_path: str | None = None) -> subprocess.CompletedProcess:
    """Run a git command inside repo_dir and return the raw (bytes) result."""
    exe = git_path or find_git()
    if not exe:
        raise GitError("git not found. Set SMARTDIFF_GIT or add git to PATH.")
    cmd = [exe, '-C', repo_dir] + args
    return subprocess.run(cmd, capture_output=True)


def parse_ls_tree(output: bytes) -> dict[str, TreeEntry]:
    """Parse `git ls-tree -z` output into a name -> TreeEntry mapping.

    Each record is "<mode> SP <type> SP <oid> TAB <name>" terminated by NUL.
    """
    entries = {}
    for record in output.split(b'\x00'):
        if not record:
            continue
        meta, _, raw_name = record.partition(b'\t')
        parts = meta.split()
        if len(parts) != 3 or not raw_name:
            raise GitError(f"Unexpected ls-tree record: {record!r}")
        mode, kind, oid = parts
        name = raw_name.decode('utf-8', errors='surrogateescape')
        entries[name] = TreeEntry(int(mode, 8), kind.decode('ascii'),
                                  oid.decode('ascii'), name)
    return entries


class GitObjectStore:
    """Read-only view of a repository's object database.

    Usage:
        store = GitObjectStore('.')
        tree_id = store.resolve_tree('HEAD~3')
        entries = store.read_tree(tree_id)
        data = store.read_blob(entries['README'].oid)
    """

    def __init__(self, repo_dir: str = '.', git_path: str | None = None):
        self.repo_dir = os.fspath(repo_dir)
        self.git_path = git_path

    def _git(self, args: list[str]) -> bytes:
        result = _run_git(args, self.repo_dir, self.git_path)
        if result.returncode != 0:
            stderr = result.stderr.decode('utf-8', errors='replace').strip()
            raise GitError(f"git {' '.join(args)} failed: {stderr}")
        return result.stdout

    def toplevel(self) -> str:
        """Absolute path of the working copy root."""
        return self._git(['rev-parse', '--show-toplevel']).decode('utf-8').strip()

    def resolve_tree(self, reference: str) -> str:
        """Resolve a human-supplied reference (branch, tag, sha, HEAD~n) to a tree id."""
        result = _run_git(['rev-parse', '--verify', '--quiet', f'{reference}^{{tree}}'],
                          self.repo_dir, self.git_path)
        if result.returncode != 0:
            raise ReferenceNotFound(f"Unknown git reference: {reference}")
        return result.stdout.decode('ascii').strip()

    def read_tree(self, tree_id: str) -> dict[str, TreeEntry]:
        return parse_ls_tree(self._git(['ls-tree', '--full-tree', '-z', tree_id]))

    def read_blob(self, oid: str) -> bytes:
        return self._git(['cat-file', 'blob', oid])

    def changed_paths(self, reference: str) -> list[str]:
        """Repository-relative paths that differ between reference and the working copy.

        Covers both staged and unstaged changes; untracked files are not listed.
        """
        self.resolve_tree(reference)
        output = self._git(['diff', '--name-only', '--no-ext-diff', '-z', reference, '--'])
        return [p.decode('utf-8', errors='surrogateescape')
                for p in output.split(b'\x00') if p]
