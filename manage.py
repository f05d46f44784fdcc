"""
InDesign Layout MCP – CLI Management Tool.

Commands:
  position  [--x --y --width --height --margin]   Resolve a partial rectangle
  validate  --x --y --width --height               Check a rectangle against the page
  anchor    --width --height [--align --margin]    Place a box at a page anchor
  space     --x --y                                Room right of x / below y
  inspect   --snapshot <file>                      Show a saved session snapshot
  serve                                            Start MCP server

Geometry commands take the page from --page-width/--page-height or from a
session snapshot (--snapshot, as written by INDESIGN_SESSION_FILE).
"""

import argparse
import json
import sys

from positioning import ANCHORS
from session import SessionManager, config_from_env, load_snapshot


def _print_json(obj):
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _session_from_args(args) -> SessionManager | None:
    """Build a session from --snapshot or --page-width/--page-height.

    Prints the problem and returns None when the page cannot be set up.
    """
    session = SessionManager(config_from_env())

    if args.snapshot:
        if not load_snapshot(session, args.snapshot):
            print(f"Error: Could not load session snapshot: {args.snapshot}")
            return None
        return session

    if args.page_width is None and args.page_height is None:
        return session
    if args.page_width is None or args.page_height is None:
        print("Error: --page-width and --page-height must be given together")
        return None
    try:
        session.set_page_dimensions({"width": args.page_width, "height": args.page_height})
    except (TypeError, ValueError) as e:
        print(f"Error: {e}")
        return None
    return session


def cmd_position(args):
    """Resolve a partial rectangle against the page."""
    session = _session_from_args(args)
    if session is None:
        return 1
    _print_json(session.get_calculated_positioning(
        x=args.x, y=args.y, width=args.width, height=args.height, margin=args.margin,
    ))
    return 0


def cmd_validate(args):
    """Validate a rectangle; exit code 1 when it is out of bounds."""
    session = _session_from_args(args)
    if session is None:
        return 1
    result = session.validate_positioning(args.x, args.y, args.width, args.height)
    _print_json(result)
    return 0 if result["valid"] else 1


def cmd_anchor(args):
    """Place a box at one of the nine page anchors."""
    session = _session_from_args(args)
    if session is None:
        return 1
    result = session.find_optimal_position(args.width, args.height, align=args.align, margin=args.margin)
    if result is None:
        print("Error: No page dimensions. Use --page-width/--page-height or --snapshot.")
        return 1
    _print_json(result)
    return 0


def cmd_space(args):
    """Show the space available from a point to the margins."""
    session = _session_from_args(args)
    if session is None:
        return 1
    result = session.get_available_space(args.x, args.y)
    if result is None:
        print("Error: No page dimensions. Use --page-width/--page-height or --snapshot.")
        return 1
    _print_json(result)
    return 0


def cmd_inspect(args):
    """Print a summary of a saved session snapshot."""
    session = SessionManager(config_from_env())
    if not load_snapshot(session, args.snapshot):
        print(f"Error: Could not load session snapshot: {args.snapshot}")
        return 1

    summary = session.get_session_summary()
    sep = "=" * 55
    print(sep)
    print("  InDesign Layout Session")
    print(sep)
    dims = summary["page_dimensions"]
    document = summary["active_document"] or {}
    page = summary["active_page"] or {}
    item = summary["last_created_item"] or {}
    page_size = f"{dims['width']} x {dims['height']} mm" if dims else "-"
    print(f"  Page size:      {page_size}")
    print(f"  Document:       {document.get('name', '-')}")
    print(f"  Page:           {page.get('name', '-')}")
    print(f"  Last item:      {item.get('type', '-')}")
    print(f"  Created:        {summary['timestamps']['created_at']}")
    print(f"  Last modified:  {summary['timestamps']['last_modified'] or '-'}")
    print(sep)
    if summary["bounds"]:
        safe = summary["bounds"]["safe_area"]
        print(f"  Safe area:      {safe['x']}, {safe['y']}  {safe['width']} x {safe['height']} mm")
        print(sep)
    return 0


def cmd_serve(args):
    """Start the MCP server."""
    print("Starting InDesign Layout MCP Server ...", file=sys.stderr)

    import server
    server.main()
    return 0


def _add_page_args(p):
    p.add_argument("--page-width", type=float, help="Page width in mm")
    p.add_argument("--page-height", type=float, help="Page height in mm")
    p.add_argument("--snapshot", help="Session snapshot file to take the page from")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="InDesign Layout MCP – Management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  position  [--x --y --width --height --margin]   Resolve a partial rectangle
  validate  --x --y --width --height               Check a rectangle against the page
  anchor    --width --height [--align --margin]    Place a box at a page anchor
  space     --x --y                                Room right of x / below y
  inspect   --snapshot <file>                      Show a saved session snapshot
  serve                                            Start MCP server
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # position
    p_position = subparsers.add_parser("position", help="Resolve a partial rectangle")
    _add_page_args(p_position)
    p_position.add_argument("--x", type=float)
    p_position.add_argument("--y", type=float)
    p_position.add_argument("--width", type=float)
    p_position.add_argument("--height", type=float)
    p_position.add_argument("--margin", type=float, help="Margin for inferred values")

    # validate
    p_validate = subparsers.add_parser("validate", help="Validate a rectangle against the page")
    _add_page_args(p_validate)
    p_validate.add_argument("--x", type=float, required=True)
    p_validate.add_argument("--y", type=float, required=True)
    p_validate.add_argument("--width", type=float, required=True)
    p_validate.add_argument("--height", type=float, required=True)

    # anchor
    p_anchor = subparsers.add_parser("anchor", help="Place a box at a page anchor")
    _add_page_args(p_anchor)
    p_anchor.add_argument("--width", type=float, required=True)
    p_anchor.add_argument("--height", type=float, required=True)
    p_anchor.add_argument("--align", default="top-left", choices=ANCHORS)
    p_anchor.add_argument("--margin", type=float)

    # space
    p_space = subparsers.add_parser("space", help="Space available from a point")
    _add_page_args(p_space)
    p_space.add_argument("--x", type=float, required=True)
    p_space.add_argument("--y", type=float, required=True)

    # inspect
    p_inspect = subparsers.add_parser("inspect", help="Show a saved session snapshot")
    p_inspect.add_argument("--snapshot", required=True, help="Session snapshot file")

    # serve
    subparsers.add_parser("serve", help="Start MCP server")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    commands = {
        "position": cmd_position,
        "validate": cmd_validate,
        "anchor": cmd_anchor,
        "space": cmd_space,
        "inspect": cmd_inspect,
        "serve": cmd_serve,
    }

    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main() or 0)
