"""Command line front end for smartdiff.

    smartdiff projects [ROOT]
    smartdiff rooms PROJECT
    smartdiff modified [--ref REF]
    smartdiff states PROJECT ROOM [--ref REF]
    smartdiff render PROJECT ROOM [--ref REF] -o DIR
    smartdiff diff PROJECT ROOM [--ref REF] [--baseline F] -o DIR

Without --ref, render and states read the working copy. modified and diff
compare the working copy against --ref (HEAD when omitted).
"""

import argparse
import os
import sys

from . import __version__
from .diff import DEFAULT_BASELINE, count_changed_pixels, diff_room_images
from .errors import SmartDiffError
from .filesystem import GitTreeFileSystem, LocalFileSystem
from .gitstore import GitObjectStore
from .image import BLACK, HIGHLIGHT_PINK, RoomImages, flatten, write_png
from .json_export import export_json
from .project import find_projects, list_rooms, modified_rooms, repo_relative
from .render import load_room, render_room

DEFAULT_REFERENCE = 'HEAD'
MIN_SCALE = 1
MAX_SCALE = 8


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _default_reference(args) -> str:
    if args.ref:
        return args.ref
    print(f"Git reference not supplied, defaulting to {DEFAULT_REFERENCE}.",
          file=sys.stderr)
    return DEFAULT_REFERENCE


def _open_reference(repo_dir: str, reference: str, project: str):
    """Provider for a git reference plus the project path as seen from the repo root."""
    store = GitObjectStore(repo_dir)
    file_system = GitTreeFileSystem(store, store.resolve_tree(reference))
    return file_system, repo_relative(project, store.toplevel())


def _render(args, reference: str | None) -> RoomImages:
    if reference:
        file_system, project = _open_reference(args.repo, reference, args.project)
    else:
        file_system, project = LocalFileSystem(), args.project
    return render_room(project, args.room, file_system)


def _check_project(args) -> None:
    if not os.path.isdir(args.project):
        _fail(f"Project directory not found: {args.project}")


def _check_scale(args) -> None:
    if not MIN_SCALE <= args.scale <= MAX_SCALE:
        _fail(f"--scale must be between {MIN_SCALE} and {MAX_SCALE}")


def _selected_states(images: RoomImages, state: int | None) -> list[int]:
    if state is None:
        return list(range(len(images.room_state_names)))
    if not 0 <= state < len(images.room_state_names):
        _fail(f"State {state} out of range (room has "
              f"{len(images.room_state_names)} states)")
    return [state]


def _export_images(images: RoomImages, args, prefix: str) -> None:
    """Write layer PNGs (or one flattened PNG) per selected state."""
    output_dir = args.output or '.'
    os.makedirs(output_dir, exist_ok=True)
    background = HIGHLIGHT_PINK if getattr(args, 'highlight_transparency', False) else BLACK

    for i in _selected_states(images, getattr(args, 'state', None)):
        label = images.room_state_names[i]
        if args.flatten:
            outputs = {'': flatten([images.layer2[i], images.layer1[i]], background)}
        else:
            outputs = {'_layer1': images.layer1[i], '_layer2': images.layer2[i]}
        for suffix, image in outputs.items():
            if args.scale > 1:
                image = image.scaled(args.scale)
            out_path = os.path.join(output_dir, f'{prefix}_state{i}{suffix}.png')
            write_png(out_path, image)
            print(f"  Exported [{i}] {label}: {image.width}x{image.height} -> {out_path}")


# ============================================================================
# Commands
# ============================================================================

def cmd_projects(args) -> None:
    projects = find_projects(args.root)
    if args.json:
        export_json({'projects': projects}, args.output)
        return
    if not projects:
        _fail(f"No SMART projects found under {args.root}")
    print(f"\n=== SMART projects ({len(projects)}) ===\n")
    for project in projects:
        print(f"  {project}")
    print()


def cmd_rooms(args) -> None:
    _check_project(args)
    rooms = list_rooms(args.project)
    if args.json:
        export_json({'project': args.project, 'rooms': rooms}, args.output)
        return
    if not rooms:
        _fail(f"No rooms found in project {args.project}")
    print(f"\n=== Rooms in {args.project} ({len(rooms)}) ===\n")
    for room in rooms:
        print(f"  {room}")
    print()


def cmd_modified(args) -> None:
    reference = _default_reference(args)
    store = GitObjectStore(args.repo)
    projects = find_projects(args.root)
    rooms = modified_rooms(store, reference, projects)
    if args.json:
        export_json({
            'reference': reference,
            'rooms': [{'project': r.project, 'room': r.room_name} for r in rooms],
        }, args.output)
        return
    print(f"\n=== Rooms modified since {reference} ({len(rooms)}) ===\n")
    for room in rooms:
        print(f"  {room}")
    print()


def cmd_states(args) -> None:
    if args.ref:
        file_system, project = _open_reference(args.repo, args.ref, args.project)
    else:
        _check_project(args)
        file_system, project = LocalFileSystem(), args.project
    room = load_room(project, args.room, file_system)
    if args.json:
        export_json({
            'room': args.room,
            'width': room.width,
            'height': room.height,
            'states': [{'index': i, 'label': s.label, 'gfx_set': s.gfx_set}
                       for i, s in enumerate(room.states)],
        }, None)
        return
    print(f"\n=== {args.room}: {room.width}x{room.height} screens, "
          f"{len(room.states)} states ===\n")
    for i, state in enumerate(room.states):
        print(f"  [{i:2d}] {state.label}  (GFXset ${state.gfx_set:02X})")
    print()


def cmd_render(args) -> None:
    if not args.ref:
        _check_project(args)
    _check_scale(args)
    images = _render(args, args.ref)
    source = args.ref or 'working copy'
    print(f"=== {args.room} ({source}): {images.width}x{images.height}, "
          f"{len(images.room_state_names)} states ===")
    _export_images(images, args, args.room)


def cmd_diff(args) -> None:
    _check_project(args)
    _check_scale(args)
    if not 0.0 <= args.baseline <= 1.0:
        _fail("--baseline must be between 0 and 1")
    reference = _default_reference(args)

    working = _render(args, None)
    other = _render(args, reference)
    diff = diff_room_images(working, other, args.baseline)

    summary = []
    for i, label in enumerate(diff.room_state_names):
        summary.append({
            'index': i,
            'label': label,
            'layer1_changed': count_changed_pixels(working.layer1[i], other.layer1[i]),
            'layer2_changed': count_changed_pixels(working.layer2[i], other.layer2[i]),
        })

    if args.json:
        export_json({'room': args.room, 'reference': reference, 'states': summary}, None)
    else:
        print(f"=== {args.room}: working copy vs {reference} ===")
        for s in summary:
            print(f"  [{s['index']:2d}] {s['label']}: layer 1 {s['layer1_changed']} px, "
                  f"layer 2 {s['layer2_changed']} px changed")
    if args.output:
        _export_images(diff, args, f'{args.room}_diff')


# ============================================================================
# CLI registration
# ============================================================================

def _add_source_args(p) -> None:
    p.add_argument('--ref', help='git reference to read instead of the working copy')
    p.add_argument('--repo', default='.', help='git repository (default: .)')


def _add_export_args(p) -> None:
    p.add_argument('-o', '--output', help='Output directory for PNG files')
    p.add_argument('--scale', type=int, default=1,
                   help=f'Pixel scale factor {MIN_SCALE}-{MAX_SCALE} (default: 1)')
    p.add_argument('--state', type=int, help='Export a single state index')
    p.add_argument('--flatten', action='store_true',
                   help='Write one image per state (layer 2 under layer 1)')
    p.add_argument('--highlight-transparency', action='store_true',
                   help='Flatten over pink instead of black')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='smartdiff',
        description='Render SMART rooms and compare them against a git reference',
    )
    parser.add_argument('--version', action='version', version=f'smartdiff {__version__}')
    sub = parser.add_subparsers(dest='command', help='Command')

    p = sub.add_parser('projects', help='List SMART projects')
    p.add_argument('root', nargs='?', default='.', help='Search root (default: .)')
    p.add_argument('--json', action='store_true', help='Output as JSON')
    p.add_argument('--output', '-o', help='Output file (for --json)')

    p = sub.add_parser('rooms', help='List rooms in a project')
    p.add_argument('project', help='Project directory')
    p.add_argument('--json', action='store_true', help='Output as JSON')
    p.add_argument('--output', '-o', help='Output file (for --json)')

    p = sub.add_parser('modified', help='List rooms changed since a git reference')
    p.add_argument('--ref', help=f'git reference (default: {DEFAULT_REFERENCE})')
    p.add_argument('--repo', default='.', help='git repository (default: .)')
    p.add_argument('--root', default='.', help='Project search root (default: .)')
    p.add_argument('--json', action='store_true', help='Output as JSON')
    p.add_argument('--output', '-o', help='Output file (for --json)')

    p = sub.add_parser('states', help='List the states of a room')
    p.add_argument('project', help='Project directory')
    p.add_argument('room', help='Room name (file stem under Export/Rooms)')
    _add_source_args(p)
    p.add_argument('--json', action='store_true', help='Output as JSON')

    p = sub.add_parser('render', help='Render room layers to PNG')
    p.add_argument('project', help='Project directory')
    p.add_argument('room', help='Room name (file stem under Export/Rooms)')
    _add_source_args(p)
    _add_export_args(p)

    p = sub.add_parser('diff', help='Compare the working copy against a git reference')
    p.add_argument('project', help='Project directory')
    p.add_argument('room', help='Room name (file stem under Export/Rooms)')
    p.add_argument('--ref', help=f'git reference (default: {DEFAULT_REFERENCE})')
    p.add_argument('--repo', default='.', help='git repository (default: .)')
    p.add_argument('--baseline', type=float, default=DEFAULT_BASELINE,
                   help=f'Brightness of unchanged pixels 0-1 (default: {DEFAULT_BASELINE})')
    p.add_argument('--json', action='store_true', help='Print the summary as JSON')
    _add_export_args(p)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    dispatchers = {
        'projects': cmd_projects,
        'rooms': cmd_rooms,
        'modified': cmd_modified,
        'states': cmd_states,
        'render': cmd_render,
        'diff': cmd_diff,
    }
    try:
        dispatchers[args.command](args)
    except (SmartDiffError, OSError) as e:
        _fail(str(e))


if __name__ == '__main__':
    main()
