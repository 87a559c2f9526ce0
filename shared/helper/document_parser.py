"""Split raw document files into a metadata block and body text.

File layout::

    title: Getting started
    source: handbook
    ---
    Body text that gets embedded.

Everything before the first line consisting of ``---`` is the metadata block.
Files without such a separator are all body.
"""

import re

from shared.models.document import ParsedDocument

_META_SEPARATOR = re.compile(r"^(.*?)\n---\n(.*)$", re.DOTALL)


def _parse_metadata_block(block: str) -> dict[str, str]:
    metadata: dict[str, str] = {}
    for line in block.split("\n"):
        if not line.strip() or ":" not in line:
            continue
        key, _, value = line.partition(":")
        key = key.strip()
        if key:
            metadata[key] = value.strip()
    return metadata


def parse_document(content: str) -> ParsedDocument:
    """Parse a document into metadata and trimmed body text.

    Args:
        content (str): The raw file content.

    Returns:
        ParsedDocument: metadata (possibly empty) and the trimmed body.
    """
    match = _META_SEPARATOR.match(content)
    if match:
        return ParsedDocument(
            metadata=_parse_metadata_block(match.group(1)),
            text=match.group(2).strip(),
        )
    return ParsedDocument(metadata={}, text=content.strip())
