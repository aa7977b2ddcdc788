#!/usr/bin/env python3
"""
browser_viz.py - Browser visualization tool for agent-browser

Subcommands:
    annotate <image>     Highlight, point at, label or zoom into an element
    capture              Take a screenshot and optionally annotate it
    record start         Record the session as a GIF (screenshot polling)
    refs                 List interactive elements in the current snapshot
    box <ref>            Print an element's bounding box

Usage:
    browser-viz annotate shot.png --highlight @e5 -o out.png
    browser-viz annotate shot.png --highlight-box 100,100,200,50 --arrow left --label "Click"
    browser-viz capture --auto-focus --last-action "click @e3"
    browser-viz record start -d 3000 --fps 5 -o demo.gif
    browser-viz box @e5 --json

Environment:
    BROWSER_VIZ_SESSION     Default session name (default: "default")
    BROWSER_VIZ_STREAM_URL  Screencast websocket URL
    AGENT_BROWSER_BIN       agent-browser executable
    FFMPEG_BIN              ffmpeg executable

Dependencies:
    - Pillow
    - agent-browser and ffmpeg on PATH

Exit codes:
    0: Success
    1: Any error (message printed to stderr)
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from browserviz.browser import (
    AgentBrowserConfig,
    BoundingBox,
    BrowserVizError,
    add_annotations,
    annotation_overlay,
    add_highlight,
    calculate_optimal_zoom_region,
    get_ref_bounding_box,
    get_screenshot,
    get_snapshot,
    load_image,
    overlay_to_svg,
    parse_snapshot,
    record_with_screenshots,
    save_image,
    suggest_focus_element,
    zoom_to_area,
)

logger = logging.getLogger(__name__)


def _annotation_options(args) -> dict:
    options = {}
    if args.highlight or args.highlight_box:
        options["highlight"] = {
            "border_color": args.color,
            "border_width": args.border_width,
            "padding": args.padding,
        }
    if args.arrow:
        options["arrow"] = {"color": args.color, "direction": args.arrow}
    if args.label:
        options["label"] = {"text": args.label}
    return options


def cmd_annotate(args, config: AgentBrowserConfig) -> int:
    ref = args.highlight or args.zoom
    if ref:
        box = get_ref_bounding_box(ref, args.session, config)
    elif args.highlight_box or args.zoom_box:
        box = BoundingBox.parse(args.highlight_box or args.zoom_box)
    else:
        print(
            "Error: Must specify --highlight, --zoom, --highlight-box, or --zoom-box",
            file=sys.stderr,
        )
        return 1

    annotations = _annotation_options(args)
    zooming = bool(args.zoom or args.zoom_box)

    result = add_annotations(args.image, box, annotations) if annotations else args.image
    if zooming:
        result = zoom_to_area(result, box, {"scale": args.scale, "padding": args.padding})

    if args.svg and annotations:
        size = load_image(args.image).size
        args.svg.parent.mkdir(parents=True, exist_ok=True)
        args.svg.write_text(overlay_to_svg(size, annotation_overlay(size, box, annotations)))
        print(f"Overlay saved to: {args.svg}")

    save_image(result, args.output)
    print(f"Saved to: {args.output}")
    return 0


def cmd_capture(args, config: AgentBrowserConfig) -> int:
    screenshot = get_screenshot(args.session, config=config)

    ref = args.highlight or args.zoom
    if not ref and args.auto_focus:
        suggested = suggest_focus_element(get_snapshot(args.session, config=config), args.last_action)
        if suggested:
            ref = suggested.ref
            logger.info("Auto-focus picked %s", ref)
            print(f"Auto-focused on: {ref} ({suggested.role}: {suggested.name or ''})")

    if not ref:
        save_image(screenshot, args.output)
        print(f"Screenshot saved to: {args.output}")
        return 0

    box = get_ref_bounding_box(ref, args.session, config)
    result = screenshot
    if args.highlight or (args.auto_focus and not args.zoom):
        result = add_highlight(result, box)
    if args.zoom:
        width, height = load_image(screenshot).size
        region = calculate_optimal_zoom_region(box, width, height)
        result = zoom_to_area(result, region, {"scale": args.scale})

    save_image(result, args.output)
    print(f"Annotated screenshot saved to: {args.output}")
    return 0


def cmd_record_start(args, config: AgentBrowserConfig) -> int:
    path = record_with_screenshots(
        args.duration,
        args.output,
        {"frame_rate": args.fps},
        args.session,
        config,
    )
    print(f"Recording saved to: {path}")
    return 0


def cmd_refs(args, config: AgentBrowserConfig) -> int:
    elements = parse_snapshot(get_snapshot(args.session, config=config))
    if not elements:
        print("No interactive elements found")
        return 0

    print("Interactive elements:")
    for element in elements:
        print(f"  {element.describe()}")
    return 0


def cmd_box(args, config: AgentBrowserConfig) -> int:
    box = get_ref_bounding_box(args.ref, args.session, config)
    if args.json:
        print(json.dumps(box.to_dict(), indent=2))
    else:
        print(f"{args.ref}: x={box.x}, y={box.y}, width={box.width}, height={box.height}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='browser-viz',
        description='Browser visualization tool for agent-browser'
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    session_parent = argparse.ArgumentParser(add_help=False)
    session_parent.add_argument(
        '-s', '--session',
        default=None,
        help='agent-browser session (default: $BROWSER_VIZ_SESSION or "default")'
    )

    annotate = subparsers.add_parser(
        'annotate', parents=[session_parent], help='Add annotations to a screenshot'
    )
    annotate.add_argument('image', type=Path, help='Input image path')
    annotate.add_argument('-o', '--output', type=Path, default=Path('annotated.png'), help='Output path')
    annotate.add_argument('--highlight', metavar='REF', help='Highlight element by ref (e.g., @e5)')
    annotate.add_argument('--highlight-box', metavar='BOX', help='Highlight by box: x,y,width,height')
    annotate.add_argument('--zoom', metavar='REF', help='Zoom to element by ref')
    annotate.add_argument('--zoom-box', metavar='BOX', help='Zoom to box: x,y,width,height')
    annotate.add_argument('--scale', type=float, default=2.0, help='Zoom scale factor (default: 2)')
    annotate.add_argument('--color', default='#FF0000', help='Annotation color: hex or palette name (default: #FF0000)')
    annotate.add_argument('--border-width', type=int, default=3, help='Highlight border width (default: 3)')
    annotate.add_argument('--padding', type=float, default=10, help='Padding around element (default: 10)')
    annotate.add_argument('--arrow', metavar='DIRECTION', help='Add an arrow coming from DIRECTION (e.g., top, bottom-left)')
    annotate.add_argument('--label', metavar='TEXT', help='Add a text label next to the element')
    annotate.add_argument('--svg', type=Path, help='Also write the annotation overlay as SVG')
    annotate.set_defaults(func=cmd_annotate)

    capture = subparsers.add_parser(
        'capture', parents=[session_parent], help='Take screenshot and optionally annotate'
    )
    capture.add_argument('-o', '--output', type=Path, default=Path('capture.png'), help='Output path')
    capture.add_argument('--highlight', metavar='REF', help='Highlight element by ref')
    capture.add_argument('--zoom', metavar='REF', help='Zoom to element by ref')
    capture.add_argument('--scale', type=float, default=2.0, help='Zoom scale factor (default: 2)')
    capture.add_argument('--auto-focus', action='store_true', help='Pick the element to focus from the snapshot')
    capture.add_argument('--last-action', help='Last action performed (e.g., "click @e3"), used by --auto-focus')
    capture.set_defaults(func=cmd_capture)

    record = subparsers.add_parser('record', help='Record browser session as GIF')
    record_sub = record.add_subparsers(dest='record_command', required=True)
    start = record_sub.add_parser(
        'start', parents=[session_parent], help='Record by polling screenshots'
    )
    start.add_argument('-d', '--duration', type=int, default=5000, help='Recording duration in milliseconds (default: 5000)')
    start.add_argument('-o', '--output', type=Path, default=Path('recording.gif'), help='Output GIF path')
    start.add_argument('--fps', type=int, default=5, help='Frame rate (default: 5)')
    start.set_defaults(func=cmd_record_start)

    refs = subparsers.add_parser(
        'refs', parents=[session_parent], help='List ref elements from current page snapshot'
    )
    refs.set_defaults(func=cmd_refs)

    box = subparsers.add_parser(
        'box', parents=[session_parent], help='Get bounding box for a ref element'
    )
    box.add_argument('ref', help='Element ref (e.g., @e5)')
    box.add_argument('--json', action='store_true', help='Output as JSON')
    box.set_defaults(func=cmd_box)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    config = AgentBrowserConfig.from_env()
    try:
        return args.func(args, config)
    except (BrowserVizError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
