#!/usr/bin/env python3
"""
Command-line entry point.

Usage:
    # Capture the screen, crop, translate, print pairs
    mangalens translate

    # Translate an existing image instead of the screen
    mangalens translate --image page.jpg

    # Capture 20 pages into ./captures (navigation is up to you/your reader)
    mangalens capture-book 20 --out-dir captures

    # Batch-translate a directory, then read the results back
    mangalens translate-dir ./chapter1
    mangalens show ./chapter1 page3.jpg

    # Session settings
    mangalens config set gemini_api_key AIza...
    mangalens config show

    # Web viewer
    mangalens serve --port 5173

Environment:
    GEMINI_API_KEY: Default key for batch runs and the web service
    GEMINI_MODEL_NAME: Override the default model
    MANGALENS_CONFIG: Path to a YAML config file
    MANGALENS_SETTINGS: Path to the interactive settings JSON file
"""
from __future__ import annotations

import argparse
import logging
import sys

from PIL import Image, UnidentifiedImageError

from .capture import capture_book, save_screenshot, translate_image, translate_screen
from .config import SettingsStore, get_config
from .errors import MangaLensError
from .models import JobStatus
from .orchestrator import load_outcome, translate_directory
from .render import render_outcome
from .storage import list_artifacts

logger = logging.getLogger(__name__)


def _mask(key: str) -> str:
    if not key:
        return "(not set)"
    return key[:4] + "..." + key[-2:] if len(key) > 8 else "****"


def cmd_translate(args) -> int:
    settings = SettingsStore(args.settings).load()
    if args.image:
        try:
            image = Image.open(args.image)
            image.load()
        except (OSError, UnidentifiedImageError) as e:
            print(f"Error: cannot read image {args.image}: {e}", file=sys.stderr)
            return 1
        outcome = translate_image(image, settings, prompt=args.prompt, model=args.model)
    else:
        outcome = translate_screen(settings, prompt=args.prompt, model=args.model)
    print(outcome.status_message, file=sys.stderr)
    print(render_outcome(outcome))
    return 0


def cmd_save_screenshot(args) -> int:
    settings = SettingsStore(args.settings).load()
    path = save_screenshot(settings, out_dir=args.out_dir)
    print(f"Screenshot saved: {path}")
    return 0


def cmd_capture_book(args) -> int:
    settings = SettingsStore(args.settings).load()
    try:
        saved = capture_book(args.pages, settings, out_dir=args.out_dir, delay=args.delay)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Capture sequence completed: {len(saved)} of {args.pages} page(s) saved.")
    return 0 if len(saved) == args.pages else 1


def cmd_translate_dir(args) -> int:
    summary = translate_directory(
        args.dir,
        overwrite=args.overwrite,
        api_key=args.api_key,
        model_name=args.model,
        prompt=args.prompt,
    )
    for result in summary.results:
        line = f"{result.status.value:8s} {result.file}"
        if result.message:
            line += f"  ({result.message})"
        print(line)
    print(
        f"Done. ok={summary.count(JobStatus.OK)}, "
        f"skipped={summary.count(JobStatus.SKIPPED)}, failed={summary.failed}"
    )
    return 1 if summary.failed else 0


def cmd_list(args) -> int:
    for artifact in list_artifacts(args.dir):
        print(f"{'*' if artifact.has_text else ' '} {artifact.file}")
    return 0


def cmd_show(args) -> int:
    try:
        outcome = load_outcome(args.dir, args.file)
    except FileNotFoundError:
        print("(No text found)", file=sys.stderr)
        return 1
    print(render_outcome(outcome))
    return 0


def cmd_config(args) -> int:
    store = SettingsStore(args.settings)
    if args.action == "set":
        if not args.key or args.value is None:
            print("Error: config set requires KEY and VALUE", file=sys.stderr)
            return 1
        try:
            store.update(args.key, args.value)
        except (KeyError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print("Configuration saved!")
        return 0

    settings = store.load()
    print(f"settings file:   {store.path}")
    print(f"gemini_api_key:  {_mask(settings.gemini_api_key)}")
    print(f"image_base_name: {settings.image_base_name}")
    print(f"jpeg_quality:    {settings.jpeg_quality}")
    print(f"color_threshold: {settings.color_threshold}")
    return 0


def cmd_serve(args) -> int:
    from app import create_app

    app = create_app()
    port = args.port or get_config()["server"]["port"]
    logger.info("Web app running at http://%s:%s", args.host, port)
    app.run(host=args.host, port=port, debug=args.debug)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mangalens",
        description="Capture, crop and translate manga pages with Gemini",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--settings", help="Settings JSON file (default from config)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("translate", help="Translate the screen (or --image) and print pairs")
    p.add_argument("--image", help="Translate this file instead of capturing the screen")
    p.add_argument("--prompt", help="Override the instruction prompt")
    p.add_argument("--model", help="Gemini model name")
    p.set_defaults(func=cmd_translate)

    p = sub.add_parser("save-screenshot", help="Capture, crop and save <prefix>.jpeg")
    p.add_argument("--out-dir", default=".", help="Output directory (default: .)")
    p.set_defaults(func=cmd_save_screenshot)

    p = sub.add_parser("capture-book", help="Capture N pages as <prefix><i>.jpeg")
    p.add_argument("pages", type=int, help="Number of pages to capture")
    p.add_argument("--out-dir", default=".", help="Output directory (default: .)")
    p.add_argument(
        "--delay",
        type=float,
        default=0.8,
        help="Seconds to wait between pages (default: 0.8)",
    )
    p.set_defaults(func=cmd_capture_book)

    p = sub.add_parser("translate-dir", help="Batch-translate every image in a directory")
    p.add_argument("dir", help="Directory of page images")
    p.add_argument("--overwrite", action="store_true", help="Reprocess pages that already have text")
    p.add_argument("--api-key", dest="api_key", help="Gemini API key (default: GEMINI_API_KEY)")
    p.add_argument("--model", help="Gemini model name")
    p.add_argument("--prompt", help="Override the instruction prompt")
    p.set_defaults(func=cmd_translate_dir)

    p = sub.add_parser("list", help="List images in natural order (* = has text)")
    p.add_argument("dir")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("show", help="Render the stored translation for one image")
    p.add_argument("dir")
    p.add_argument("file")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("config", help="Show or change interactive settings")
    p.add_argument("action", choices=["show", "set"])
    p.add_argument("key", nargs="?")
    p.add_argument("value", nargs="?")
    p.set_defaults(func=cmd_config)

    p = sub.add_parser("serve", help="Run the batch web viewer")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int)
    p.add_argument("--debug", action="store_true")
    p.set_defaults(func=cmd_serve)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        return args.func(args)
    except MangaLensError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
