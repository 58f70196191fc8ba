"""SMART project and room discovery.

A SMART project is any directory containing project.xml; its rooms are the
XML files under Export/Rooms. Projects are located relative to the current
directory, while git paths are relative to the repository root, so
repo_relative() converts between the two.
"""

import glob
import os
import posixpath
from typing import NamedTuple

from .errors import OutOfRootTraversal
from .render import ROOMS_DIR

PROJECT_FILE = 'project.xml'


class ModifiedRoom(NamedTuple):
    project: str
    room_name: str

    def __str__(self):
        short_name = os.path.basename(os.path.normpath(self.project))
        return f'{short_name}/{self.room_name}'


def find_projects(root: str = '.') -> list[str]:
    """Directories under root that hold a project.xml, sorted."""
    pattern = os.path.join(root, '**', PROJECT_FILE)
    return sorted(os.path.dirname(p) or '.' for p in glob.glob(pattern, recursive=True))


def list_rooms(project_dir: str) -> list[str]:
    """Room names (file stems) found in a project's working copy, sorted."""
    pattern = os.path.join(project_dir, ROOMS_DIR, '*.xml')
    return sorted(os.path.splitext(os.path.basename(p))[0] for p in glob.glob(pattern))


def repo_relative(path: str, toplevel: str) -> str:
    """Express a host path as a slash-separated path relative to the repository root."""
    # git reports the toplevel with symlinks resolved
    rel = os.path.relpath(os.path.realpath(path), os.path.realpath(toplevel))
    rel = rel.replace(os.sep, '/')
    if rel == '..' or rel.startswith('../'):
        raise OutOfRootTraversal(f"{path} is outside the repository at {toplevel}")
    return rel


def modified_rooms(store, reference: str, projects: list[str]) -> list[ModifiedRoom]:
    """Rooms whose document differs between reference and the working copy."""
    toplevel = store.toplevel()
    changed = set(store.changed_paths(reference))
    found = []
    for project in projects:
        rel_project = repo_relative(project, toplevel)
        for room_name in list_rooms(project):
            rel_room = posixpath.normpath(
                posixpath.join(rel_project, ROOMS_DIR, f'{room_name}.xml'))
            if rel_room in changed:
                found.append(ModifiedRoom(project, room_name))
    return sorted(found)
