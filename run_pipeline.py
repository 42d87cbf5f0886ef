"""
ankiportal: multi-profile Anki spelling notes
----------------------------------------------

Command-line entry point. Adds words (or a photographed worksheet) to the
home profile, enriches them, and distributes them to the other profiles.

Examples:
    python run_pipeline.py creature habitat "came down with"
    python run_pipeline.py --file words.txt
    python run_pipeline.py --worksheet page1.jpg page2.jpg
    python run_pipeline.py --switch Mia
    python run_pipeline.py --sync
"""

import argparse
import asyncio
import base64
import json
import logging
import mimetypes
import sys
from pathlib import Path

import aiofiles

from ankiportal import Config, build_app
from ankiportal.config import get_language
from ankiportal.pipeline import ConsoleProgress, format_summary
from ankiportal.services import AnkiConnectError, ImageInput
from ankiportal.utils import TextParser, setup_logger


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Add and enrich Anki spelling notes across profiles.")
    parser.add_argument("words", nargs="*", help="Words or phrases to add")
    parser.add_argument("--file", help="Text file with words (newline, comma or semicolon separated)")
    parser.add_argument("--worksheet", nargs="+", metavar="IMAGE", help="Worksheet photos or PDFs to extract")
    parser.add_argument("--language", choices=["english", "chinese"], help="Override language detection")
    parser.add_argument("--profiles", action="store_true", help="List Anki profiles and exit")
    parser.add_argument("--switch", metavar="PROFILE", help="Switch the home profile and exit")
    parser.add_argument("--health", action="store_true", help="Check AnkiConnect, decks and note types")
    parser.add_argument("--sync", action="store_true", help="Sync the home profile with AnkiWeb and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


async def read_worksheet(paths) -> list:
    """Load worksheet files as base64 inputs for the vision model."""
    images = []
    for path in paths:
        media_type = mimetypes.guess_type(path)[0] or "image/jpeg"
        async with aiofiles.open(path, "rb") as f:
            content = await f.read()
        images.append(ImageInput(base64.b64encode(content).decode("ascii"), media_type))
    return images


async def read_words(args: argparse.Namespace) -> list:
    words = []
    if args.file:
        async with aiofiles.open(args.file, "r", encoding="utf-8") as f:
            words.extend(TextParser.parse_word_list(await f.read()))
    if args.words:
        words.extend(TextParser.parse_word_list("\n".join(args.words)))
    return words


async def main(args: argparse.Namespace) -> bool:
    """Main entry point."""
    app = build_app()
    language = get_language(args.language) if args.language else None

    async with app:
        if not await app.client.ping():
            print("[ERROR] Anki is not reachable. Make sure Anki is running with AnkiConnect.")
            return False

        if args.profiles:
            print(json.dumps(await app.profiles.list_profiles(), indent=2, ensure_ascii=False))
            return True

        if args.switch:
            confirmed = await app.profiles.switch_profile(args.switch)
            print(f"Home profile: {args.switch}" + ("" if confirmed else " (switch not confirmed)"))
            return True

        if args.sync:
            await app.profiles.sync()
            print("Sync complete.")
            return True

        if args.health:
            health = await app.profiles.health()
            print(json.dumps(health, indent=2))
            return health["ok"]

        progress = ConsoleProgress()

        if args.worksheet:
            if not app.ai.is_configured:
                print("[ERROR] No AI API key configured.")
                return False
            await progress.update("Extracting words from worksheet...")
            pages = await app.ai.extract_worksheet(await read_worksheet(args.worksheet))
            if not pages:
                await progress.send("Could not extract any words from the worksheet.")
                return False
            total = sum(len(p.sentences) for p in pages)
            await progress.update(f"Extracted {total} words from {len(pages)} page(s). Processing...")
            result = await app.pipeline.run_extracted(pages, progress, language)
        else:
            words = await read_words(args)
            if not words:
                print("Nothing to add. Pass words, --file or --worksheet.")
                return False
            await progress.update(f"Adding {len(words)} word(s)...")
            result = await app.pipeline.run(words, progress, language)

        await progress.send(format_summary(result))
        return not result.errors


if __name__ == "__main__":
    args = parse_args()
    setup_logger(logging.DEBUG if args.verbose else logging.WARNING, Config.LOG_FILE)
    try:
        success = asyncio.run(main(args))
        sys.exit(0 if success else 1)
    except AnkiConnectError as e:
        print(f"[ERROR] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n[!] Aborted by user.")
        sys.exit(1)
