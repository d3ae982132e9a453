"""
Import prompt categories (with their inline options) from a JSON file.

Each entry is written as a new `promptCategories` document; the `id` key in
the file is ignored so Firestore assigns one.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cms.content import ContentError, create_prompt_category
from cms.dependencies import get_document_store
from cms.store import DocumentStore, StoreError
from shared.types import PromptCategory, from_document

logger = logging.getLogger(__name__)

DEFAULT_FILE = Path(__file__).resolve().parent / "data" / "prompt_categories.sample.json"


def load_categories(path: Path) -> list[PromptCategory]:
    entries = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(entries, list):
        raise ValueError(f"{path} must contain a JSON list")
    categories = []
    for entry in entries:
        entry = {key: value for key, value in entry.items() if key != "id"}
        entry.setdefault("options", [])
        categories.append(from_document(PromptCategory, entry))
    return categories


def import_categories(
    store: DocumentStore, categories: list[PromptCategory], *, dry_run: bool
) -> int:
    imported = 0
    for category in categories:
        logger.info(
            "Importing category: %s (%d options)", category.name, len(category.options)
        )
        if dry_run:
            continue
        doc_id = create_prompt_category(store, category)
        logger.info("Imported %s as %s", category.name, doc_id)
        imported += 1
    return imported


def main() -> int:
    parser = argparse.ArgumentParser(description="Import prompt categories")
    parser.add_argument(
        "--file",
        type=Path,
        default=DEFAULT_FILE,
        help="JSON file with a list of prompt categories",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be imported without writing",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")

    try:
        categories = load_categories(args.file)
    except (OSError, ValueError) as e:
        logger.error("Could not read %s: %s", args.file, e)
        return 1

    try:
        imported = import_categories(
            get_document_store(), categories, dry_run=args.dry_run
        )
    except (ContentError, StoreError):
        logger.exception("Error importing prompt categories")
        return 1

    logger.info("Imported %d of %d categories", imported, len(categories))
    return 0


if __name__ == "__main__":
    sys.exit(main())
