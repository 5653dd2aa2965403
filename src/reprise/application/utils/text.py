from typing import Any

import yaml  # type: ignore
import yaml.constructor

FRONTMATTER_FENCE = "---"


class UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that refuses mappings with a repeated key."""

    def construct_mapping(self, node, deep=False):
        keys = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in keys:
                raise yaml.constructor.ConstructorError(
                    "while constructing a card mapping",
                    node.start_mark,
                    f"duplicate key '{key}'",
                    key_node.start_mark,
                )
            keys.add(key)
        return super().construct_mapping(node, deep)


def load_yaml(raw: str) -> Any:
    """Load a YAML document, rejecting duplicate keys. Raises yaml.YAMLError."""
    # YAML forbids tab indentation; generators emit it anyway.
    return yaml.load(raw.replace("\t", "  "), Loader=UniqueKeyLoader)


def split_frontmatter(md_text: str) -> tuple[str | None, str]:
    """
    Split markdown into (raw frontmatter, body).

    Returns (None, text) unless the first line is a fence and a closing
    fence follows.
    """
    text = md_text.removeprefix("\ufeff")
    lines = text.split("\n")
    if lines[0].strip() != FRONTMATTER_FENCE:
        return None, text

    try:
        end = next(
            i for i, line in enumerate(lines[1:], start=1) if line.strip() == FRONTMATTER_FENCE
        )
    except StopIteration:
        return None, text
    return "\n".join(lines[1:end]), "\n".join(lines[end + 1 :])


def parse_frontmatter(md_text: str) -> tuple[dict[str, Any], str]:
    """
    Returns ({}, text) when there is no frontmatter. Raises yaml.YAMLError
    on malformed YAML.
    """
    raw, body = split_frontmatter(md_text)
    if raw is None:
        return {}, body
    meta = load_yaml(raw) or {}
    if not isinstance(meta, dict):
        raise yaml.YAMLError("frontmatter must be a mapping")
    return meta, body


def single_line(text: str) -> str:
    """Collapse tabs and newlines so a value fits in one TSV cell."""
    return " ".join(text.split())
