"""Exception types raised by the smartdiff core.

Every error derives from SmartDiffError. Where a built-in exception already
names the condition (missing file, bad value, index out of range) the error
derives from it as well, so callers can catch either.
"""


class SmartDiffError(Exception):
    """Base class for all smartdiff failures."""


# ============================================================================
# Filesystem / git tree resolution
# ============================================================================

class AssetNotFoundError(SmartDiffError, FileNotFoundError):
    """A path component does not exist in the historical tree."""


class OutOfRootTraversal(SmartDiffError, ValueError):
    """A path escapes the root of the historical tree."""


class SymlinkCycle(SmartDiffError):
    """The symbolic link budget ran out while resolving a path."""


class NotATreeError(SmartDiffError, NotADirectoryError):
    """A path component was looked up inside an object that is not a tree."""


class NotABlobError(SmartDiffError):
    """A path resolved to an object that is not a blob."""


class GitError(SmartDiffError):
    """The git executable failed or could not be found."""


class ReferenceNotFound(GitError):
    """A git reference does not name a commit or tree."""


# ============================================================================
# Room documents and binary assets
# ============================================================================

class MalformedDocument(SmartDiffError, ValueError):
    """A room document is not well-formed or lacks a required element."""


class MalformedNumericField(SmartDiffError, ValueError):
    """A hex field or hex word list could not be parsed."""


class EmptyRoomStateList(MalformedDocument):
    """A room document declares no states."""


class UnsupportedAssetShape(SmartDiffError, ValueError):
    """A binary asset's length does not match its record size."""


class DanglingReferenceError(SmartDiffError, IndexError):
    """A tile, graphics or palette index points past the merged tileset."""


# ============================================================================
# Diff engine
# ============================================================================

class ImageShapeMismatch(SmartDiffError, ValueError):
    """Two images being compared do not share the same dimensions."""
