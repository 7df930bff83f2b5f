"""Content hashing for research entry fingerprints.

A document fingerprint is a two-level hash: variable-length sub-collections
(asset hashes, infobox pairs) are each hashed once, and those digests are
concatenated with the scalar fields into the final digest::

    sha256(title | content | tags_string | assets_hash | infobox_hash)

All digests are SHA-256 over UTF-8 bytes, hex-encoded in lowercase.

Functions here are pure. Tag names are used exactly as given; normalizing
and de-duplicating them is the caller's job.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterable, Sequence

NO_ASSETS = "no-assets"
NO_INFOBOX = "no-infobox"

FIELD_SEPARATOR = "|"
TAG_SEPARATOR = ","

_CHUNK_SIZE = 64 * 1024


def hash_bytes(data: bytes) -> str:
    """Return the SHA-256 hex digest of *data*."""
    return hashlib.sha256(data).hexdigest()


def hash_string(text: str) -> str:
    """Return the SHA-256 hex digest of the UTF-8 encoding of *text*."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_file(path: str | Path) -> str:
    """Return the SHA-256 hex digest of a file, read in chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def tags_string(tag_names: Iterable[str]) -> str:
    """Join tag names in lexicographic order; input order does not matter."""
    return TAG_SEPARATOR.join(sorted(tag_names))


def assets_hash(asset_hashes: Sequence[str]) -> str:
    """Hash the asset content hashes in stored order.

    Asset order is significant: reordering assets changes the result.
    """
    if not asset_hashes:
        return NO_ASSETS
    return hash_string(FIELD_SEPARATOR.join(asset_hashes))


def infobox_hash(infobox_pairs: Iterable[tuple[str, str]]) -> str:
    """Hash infobox ``key:value`` entries independently of their order."""
    rendered = sorted(f"{key}:{value}" for key, value in infobox_pairs)
    if not rendered:
        return NO_INFOBOX
    return hash_string(FIELD_SEPARATOR.join(rendered))


def compute_fingerprint(
    title: str,
    content: str,
    tag_names: Iterable[str] = (),
    asset_hashes: Sequence[str] = (),
    infobox_pairs: Iterable[tuple[str, str]] = (),
) -> str:
    """
    Compute the integrity fingerprint of a research entry.

    Args:
        title: Entry title
        content: Entry body
        tag_names: Tag names, any order
        asset_hashes: Per-asset content hashes in stored order
        infobox_pairs: (key, value) pairs, any order

    Returns:
        64-character lowercase hex digest
    """
    parts = [
        title,
        content,
        tags_string(tag_names),
        assets_hash(list(asset_hashes)),
        infobox_hash(infobox_pairs),
    ]
    return hash_string(FIELD_SEPARATOR.join(parts))
