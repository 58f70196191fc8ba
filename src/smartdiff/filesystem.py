"""Byte-loading providers for the working copy and for git history.

Both providers expose load(path) -> bytes. The renderer never knows which
snapshot it reads from:

  LocalFileSystem     the live directory tree (working copy)
  GitTreeFileSystem   a tree object at some reference, walked by hand so
                      that symbolic links and '..' resolve the way a
                      checkout of that tree would resolve them
"""

import os
from pathlib import PurePosixPath

from .errors import (
    AssetNotFoundError, NotABlobError, NotATreeError, OutOfRootTraversal,
    SmartDiffError, SymlinkCycle,
)
from .gitstore import MODE_TREE, GitObjectStore, TreeEntry

# Maximum symbolic link resolutions per load (same budget as Linux MAXSYMLINKS)
SYMLINK_LIMIT = 40


class FileSystem:
    """Uniform read-only access to project files."""

    def load(self, path) -> bytes:
        raise NotImplementedError


class LocalFileSystem(FileSystem):
    """Working-copy provider. OS errors propagate unchanged."""

    def __init__(self, root: str | None = None):
        self.root = root

    def load(self, path) -> bytes:
        full_path = os.path.join(self.root, path) if self.root else path
        with open(full_path, 'rb') as f:
            return f.read()


def split_path(path) -> list[str]:
    """Split a logical path into components, leaf first (ready to pop()).

    '.' and empty components are dropped; absolute paths are refused because
    a tree has no notion of the host root.
    """
    text = os.fspath(path)
    if isinstance(text, bytes):
        text = text.decode('utf-8')
    posix = PurePosixPath(text.replace('\\', '/'))
    if posix.is_absolute():
        raise OutOfRootTraversal(f"Absolute path not allowed inside repository: {text}")
    components = [c for c in posix.parts if c != '.']
    components.reverse()
    return components


class GitTreeFileSystem(FileSystem):
    """Historical-tree provider over any object store with read_tree/read_blob.

    Paths are relative to the root tree. The store is normally a
    GitObjectStore; tests substitute an in-memory one.
    """

    def __init__(self, store, tree_id: str, symlink_limit: int = SYMLINK_LIMIT):
        self.store = store
        self.tree_id = tree_id
        self.symlink_limit = symlink_limit

    def load(self, path) -> bytes:
        components = split_path(path)
        current = TreeEntry(MODE_TREE, 'tree', self.tree_id, '')
        parents: list[TreeEntry] = []
        links_left = self.symlink_limit

        while components:
            name = components.pop()
            if name == '..':
                if not parents:
                    raise OutOfRootTraversal(
                        f"Invalid reference to parent directory outside of "
                        f"repository in '{path}'")
                current = parents.pop()
                continue

            if not current.is_tree:
                raise NotATreeError(
                    f"Parent of component '{name}' is not a tree in '{path}'")
            entry = self.store.read_tree(current.oid).get(name)
            if entry is None:
                raise AssetNotFoundError(f"No entry '{name}' while resolving '{path}'")

            if entry.is_symlink:
                if links_left == 0:
                    raise SymlinkCycle(
                        f"Symlink limit reached at '{name}' in '{path}' "
                        f"(possibly a cyclic reference)")
                links_left -= 1
                try:
                    target = self.store.read_blob(entry.oid).decode('utf-8')
                except UnicodeDecodeError as e:
                    raise SmartDiffError(
                        f"Symbolic link '{name}' in '{path}' has a non UTF-8 target") from e
                components.extend(split_path(target))
            else:
                parents.append(current)
                current = entry

        if not current.is_blob:
            raise NotABlobError(f"Object exists but is not a blob: '{path}'")
        return self.store.read_blob(current.oid)


def open_reference(repo_dir: str, reference: str,
                   git_path: str | None = None) -> GitTreeFileSystem:
    """Resolve a git reference in repo_dir and return a provider for its tree."""
    store = GitObjectStore(repo_dir, git_path)
    return GitTreeFileSystem(store, store.resolve_tree(reference))
