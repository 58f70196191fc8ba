"""Shared fixtures: synthesized tile assets, room documents and object stores."""

import os
import shutil
import struct
import subprocess

import pytest

from smartdiff.filesystem import GitTreeFileSystem
from smartdiff.gfx import Tile8x8, encode_4bpp_tile, encode_tile_word
from smartdiff.gitstore import (
    MODE_BLOB, MODE_GITLINK, MODE_SYMLINK, MODE_TREE, TreeEntry,
)


# ============================================================================
# In-memory object store
# ============================================================================

class MemoryObjectStore:
    """Object store built from nested layouts.

    dict -> tree, bytes -> blob, ('symlink', target) -> symbolic link,
    ('submodule',) -> gitlink entry (never readable).
    """

    def __init__(self):
        self.objects = {}

    def _add(self, obj) -> str:
        oid = f'{len(self.objects):040x}'
        self.objects[oid] = obj
        return oid

    def add_tree(self, layout: dict) -> str:
        entries = {}
        for name, value in layout.items():
            if isinstance(value, dict):
                entries[name] = TreeEntry(MODE_TREE, 'tree', self.add_tree(value), name)
            elif isinstance(value, tuple) and value[0] == 'symlink':
                oid = self._add(value[1].encode('utf-8'))
                entries[name] = TreeEntry(MODE_SYMLINK, 'blob', oid, name)
            elif isinstance(value, tuple) and value[0] == 'submodule':
                entries[name] = TreeEntry(MODE_GITLINK, 'commit', 'c' * 40, name)
            else:
                entries[name] = TreeEntry(MODE_BLOB, 'blob', self._add(bytes(value)), name)
        return self._add(entries)

    def read_tree(self, oid: str) -> dict:
        obj = self.objects[oid]
        assert isinstance(obj, dict), f'{oid} is not a tree'
        return obj

    def read_blob(self, oid: str) -> bytes:
        obj = self.objects[oid]
        assert isinstance(obj, bytes), f'{oid} is not a blob'
        return obj


def nest_files(files: dict) -> dict:
    """Turn {'a/b/c': data} into a nested tree layout."""
    root = {}
    for path, data in files.items():
        node = root
        parts = path.split('/')
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = data
    return root


@pytest.fixture
def tree_fs():
    """Factory: nested layout -> GitTreeFileSystem over a MemoryObjectStore."""
    def _make(layout, **kwargs):
        store = MemoryObjectStore()
        return GitTreeFileSystem(store, store.add_tree(layout), **kwargs)
    return _make


@pytest.fixture
def files_fs(tree_fs):
    """Factory: flat {path: bytes} -> GitTreeFileSystem."""
    def _make(files, **kwargs):
        return tree_fs(nest_files(files), **kwargs)
    return _make


# ============================================================================
# Tile assets
# ============================================================================

def solid_tile(color: int) -> bytes:
    return encode_4bpp_tile([[color] * 8 for _ in range(8)])


def corner_tile(color: int) -> bytes:
    """Tile with only its top-left pixel set."""
    pixels = [[0] * 8 for _ in range(8)]
    pixels[0][0] = color
    return encode_4bpp_tile(pixels)


def tile_record(*quadrants: Tile8x8) -> bytes:
    return struct.pack('<4H', *(encode_tile_word(q) for q in quadrants))


def ramp_palette(count: int = 128) -> bytes:
    """Palette whose RGB555 word equals the slot number."""
    return struct.pack(f'<{count}H', *range(count))


@pytest.fixture
def assets():
    """Builders for binary tile assets."""
    class Assets:
        solid = staticmethod(solid_tile)
        corner = staticmethod(corner_tile)
        record = staticmethod(tile_record)
        palette = staticmethod(ramp_palette)
    return Assets


# ============================================================================
# Room documents and projects
# ============================================================================

def _words(words) -> str:
    return ' '.join(f'{w:04X}' for w in words)


def build_room_xml(width=1, height=1, states=None) -> str:
    """Render a room document.

    Each state is a dict with keys condition, arg, gfx_set, layer1, layer2,
    bg. layer1/layer2 are lists of (x, y, words); bg is a list of
    (type, words).
    """
    if states is None:
        states = [{}]
    parts = ['<?xml version="1.0" encoding="utf-8"?>',
             f'<Room><width>{width:X}</width><height>{height:X}</height><States>']
    for s in states:
        parts.append(f'<State condition="{s.get("condition", "Default")}">')
        parts.append(f'<Arg>{s.get("arg", 0):X}</Arg>')
        parts.append(f'<GFXset>{s.get("gfx_set", 1):02X}</GFXset>')
        parts.append('<LevelData><Layer1>')
        for x, y, words in s.get('layer1', []):
            parts.append(f'<Screen X="{x:02X}" Y="{y:02X}">{_words(words)}</Screen>')
        parts.append('</Layer1>')
        if 'layer2' in s:
            parts.append('<Layer2>')
            for x, y, words in s['layer2']:
                parts.append(f'<Screen X="{x:02X}" Y="{y:02X}">{_words(words)}</Screen>')
            parts.append('</Layer2>')
        parts.append('</LevelData><BGData>')
        for bg_type, words in s.get('bg', []):
            parts.append(f'<Data Type="{bg_type}"><SOURCE>{_words(words)}</SOURCE>'
                         f'<DEST>7E2000</DEST></Data>')
        parts.append('</BGData></State>')
    parts.append('</States></Room>')
    return '\n'.join(parts)


@pytest.fixture
def room_xml():
    return build_room_xml


def build_project_files(rooms: dict, sce_sets=(1,), project='Proj',
                        cre_gfx=None, cre_tiles=None,
                        sce_gfx=None, sce_tiles=None, palette=None) -> dict:
    """Flat {path: bytes} for a SMART project with default tile assets.

    Default merged layout for every SCE set (4 SCE gfx, 2 CRE gfx):
      gfx 0 blank, 1 solid 3, 2 solid 5, 3 corner 1 | 4 blank, 5 solid 7 (CRE)
      tiles 0: CRE all-blank | 1: SCE solid 3, palette 0 | 2: SCE solid 5, palette 2
    """
    blank = Tile8x8(0, 0)
    if cre_gfx is None:
        cre_gfx = solid_tile(0) + solid_tile(7)
    if cre_tiles is None:
        cre_tiles = tile_record(blank, blank, blank, blank)
    if sce_gfx is None:
        sce_gfx = solid_tile(0) + solid_tile(3) + solid_tile(5) + corner_tile(1)
    if sce_tiles is None:
        q1 = Tile8x8(1, 0)
        q2 = Tile8x8(2, 2)
        sce_tiles = tile_record(q1, q1, q1, q1) + tile_record(q2, q2, q2, q2)
    if palette is None:
        palette = ramp_palette()

    prefix = f'{project}/' if project else ''
    files = {
        f'{prefix}project.xml': b'<Project/>',
        f'{prefix}Export/Tileset/CRE/00/8x8tiles.gfx': cre_gfx,
        f'{prefix}Export/Tileset/CRE/00/16x16tiles.ttb': cre_tiles,
    }
    for gfx_set in sce_sets:
        base = f'{prefix}Export/Tileset/SCE/{gfx_set:02X}'
        files[f'{base}/8x8tiles.gfx'] = sce_gfx
        files[f'{base}/16x16tiles.ttb'] = sce_tiles
        files[f'{base}/palette.snes'] = palette
    for name, xml in rooms.items():
        files[f'{prefix}Export/Rooms/{name}.xml'] = xml.encode('utf-8')
    return files


@pytest.fixture
def project_files():
    return build_project_files


def write_files(root, files: dict) -> None:
    for path, data in files.items():
        full = os.path.join(str(root), *path.split('/'))
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, 'wb') as f:
            f.write(data)


@pytest.fixture
def write_project(tmp_path):
    """Factory: write flat project files under tmp_path and return tmp_path."""
    def _write(files, root=None):
        root = root or tmp_path
        write_files(root, files)
        return root
    return _write


# ============================================================================
# Real git repositories
# ============================================================================

class GitRepo:
    """Scratch repository driven through the git executable."""

    def __init__(self, path):
        self.path = str(path)

    def git(self, *args) -> str:
        result = subprocess.run(['git', '-C', self.path, *args],
                                check=True, capture_output=True, text=True)
        return result.stdout

    def commit(self, message='commit') -> str:
        self.git('add', '-A')
        self.git('-c', 'user.name=Test', '-c', 'user.email=test@example.com',
                 'commit', '-q', '--no-gpg-sign', '-m', message)
        return self.git('rev-parse', 'HEAD').strip()


@pytest.fixture
def git_repo(tmp_path):
    if shutil.which('git') is None:
        pytest.skip('git not installed')
    repo = GitRepo(tmp_path / 'repo')
    os.makedirs(repo.path)
    repo.git('init', '-q')
    return repo
