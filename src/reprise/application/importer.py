"""
Reading generated card drafts from files, and exporting decks.

Supported inputs:
    .md         YAML frontmatter with a `cards:` list
    .yaml/.yml  a list of cards, or a mapping with a `cards:` list
    .tsv/.txt   one `front<TAB>back[<TAB>hint]` per line
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from reprise.application.utils.text import load_yaml, parse_frontmatter, single_line
from reprise.domain.errors import ImportFormatError
from reprise.domain.models import Card, CardDraft

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES = {".md", ".markdown"}
YAML_SUFFIXES = {".yaml", ".yml"}
TSV_SUFFIXES = {".tsv", ".txt"}


@dataclass
class ImportResult:
    """Drafts that passed validation, plus one message per rejected item."""

    drafts: list[CardDraft] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "card"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def _validate(labelled: Iterable[tuple[str, Any]]) -> ImportResult:
    result = ImportResult()
    for label, item in labelled:
        if not isinstance(item, dict):
            result.errors.append(f"{label}: expected a mapping with front/back")
            continue
        try:
            result.drafts.append(CardDraft.model_validate(item))
        except ValidationError as e:
            result.errors.append(f"{label}: {_describe(e)}")
    return result


def parse_drafts(items: Iterable[Any]) -> ImportResult:
    """
    Validate raw card mappings.

    Malformed items are reported in `errors` (numbered from 1) and skipped;
    the rest are still returned.
    """
    return _validate((f"Card {i}", item) for i, item in enumerate(items, start=1))


def parse_tsv(text: str) -> ImportResult:
    labelled: list[tuple[str, Any]] = []
    malformed: list[str] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        cols = line.split("\t")
        if len(cols) < 2:
            malformed.append(f"Line {lineno}: expected front<TAB>back")
            continue
        item = {"front": cols[0], "back": cols[1]}
        if len(cols) > 2:
            item["hint"] = cols[2]
        labelled.append((f"Line {lineno}", item))

    result = _validate(labelled)
    result.errors = malformed + result.errors
    return result


def _cards_from_document(doc: Any, path: Path) -> list[Any]:
    if doc is None:
        return []
    if isinstance(doc, list):
        return doc
    if isinstance(doc, dict):
        cards = doc.get("cards", [])
        if not isinstance(cards, list):
            raise ImportFormatError(f"{path}: 'cards' must be a list")
        return cards
    raise ImportFormatError(f"{path}: expected a list of cards")


def load_drafts(path: Path) -> ImportResult:
    """
    Read drafts from a file, choosing the format by suffix.

    Raises:
        ImportFormatError: Unknown suffix, unreadable file or malformed YAML.
    """
    suffix = path.suffix.lower()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ImportFormatError(f"Cannot read {path}: {e}") from e

    if suffix in TSV_SUFFIXES:
        result = parse_tsv(text)
    elif suffix in MARKDOWN_SUFFIXES or suffix in YAML_SUFFIXES:
        try:
            if suffix in MARKDOWN_SUFFIXES:
                doc, _ = parse_frontmatter(text)
            else:
                doc = load_yaml(text)
        except yaml.YAMLError as e:
            raise ImportFormatError(f"{path}: invalid YAML: {e}") from e
        result = parse_drafts(_cards_from_document(doc, path))
    else:
        raise ImportFormatError(f"Unsupported file type '{suffix}' for {path}")

    logger.debug(f"[import] {path.name}: {len(result.drafts)} drafts, {len(result.errors)} errors")
    return result


def export_tsv(cards: Iterable[Card]) -> str:
    """Render cards as `front<TAB>back` lines, one per card."""
    lines = [f"{single_line(card.front)}\t{single_line(card.back)}" for card in cards]
    return "\n".join(lines) + "\n" if lines else ""
