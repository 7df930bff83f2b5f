"""Tests for the content hasher."""

import hashlib

import pytest

pytestmark = pytest.mark.unit

from researchvault.hashing import (
    NO_ASSETS,
    NO_INFOBOX,
    assets_hash,
    compute_fingerprint,
    hash_bytes,
    hash_file,
    hash_string,
    infobox_hash,
    tags_string,
)


def sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class TestPrimitives:
    """Tests for the byte, string and file digests."""

    def test_hash_string_is_utf8_sha256(self):
        """Test strings are hashed as UTF-8."""
        assert hash_string("Überfall") == hashlib.sha256("Überfall".encode("utf-8")).hexdigest()

    def test_hash_is_lowercase_hex(self):
        """Test digests are 64 lowercase hex characters."""
        digest = hash_bytes(b"abc")
        assert len(digest) == 64
        assert digest == digest.lower()
        assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_hash_file_matches_hash_bytes(self, tmp_path):
        """Test chunked file hashing agrees with in-memory hashing."""
        data = b"x" * (200 * 1024 + 7)
        path = tmp_path / "big.bin"
        path.write_bytes(data)
        assert hash_file(path) == hash_bytes(data)


class TestSubHashes:
    """Tests for tag, asset and infobox aggregation."""

    def test_tags_sorted_lexicographically(self):
        assert tags_string(["WW2", "1944", "Invasion"]) == "1944,Invasion,WW2"

    def test_tags_empty(self):
        assert tags_string([]) == ""

    def test_assets_placeholder_when_empty(self):
        """Test an entry without assets uses the literal placeholder."""
        assert assets_hash([]) == NO_ASSETS == "no-assets"

    def test_assets_hash_joins_in_order(self):
        assert assets_hash(["aa", "bb"]) == sha256("aa|bb")

    def test_infobox_placeholder_when_empty(self):
        assert infobox_hash([]) == NO_INFOBOX == "no-infobox"

    def test_infobox_hash_sorts_rendered_pairs(self):
        """Test infobox pairs are rendered as key:value and sorted."""
        pairs = [("Location", "Normandy"), ("Date", "1944")]
        assert infobox_hash(pairs) == sha256("Date:1944|Location:Normandy")


class TestComputeFingerprint:
    """Tests for the document fingerprint."""

    def test_end_to_end_example(self):
        """Test the fingerprint is the hash of the pipe-joined fields."""
        fingerprint = compute_fingerprint("Operation Overlord", "D-Day...", ["WW2", "1944"])
        assert fingerprint == sha256("Operation Overlord|D-Day...|1944,WW2|no-assets|no-infobox")

    def test_deterministic(self):
        """Test identical inputs always produce the same fingerprint."""
        args = ("Title", "Body", ["b", "a"], ["h1", "h2"], [("k", "v")])
        assert compute_fingerprint(*args) == compute_fingerprint(*args)

    def test_tag_order_does_not_matter(self):
        first = compute_fingerprint("T", "C", ["b", "a", "c"])
        second = compute_fingerprint("T", "C", ["c", "b", "a"])
        assert first == second

    def test_infobox_order_does_not_matter(self):
        first = compute_fingerprint("T", "C", infobox_pairs=[("a", "1"), ("b", "2")])
        second = compute_fingerprint("T", "C", infobox_pairs=[("b", "2"), ("a", "1")])
        assert first == second

    def test_infobox_value_change_changes_fingerprint(self):
        first = compute_fingerprint("T", "C", infobox_pairs=[("a", "1")])
        second = compute_fingerprint("T", "C", infobox_pairs=[("a", "2")])
        assert first != second

    def test_asset_order_matters(self):
        """Test reordering assets changes the fingerprint."""
        first = compute_fingerprint("T", "C", asset_hashes=["h1", "h2"])
        second = compute_fingerprint("T", "C", asset_hashes=["h2", "h1"])
        assert first != second

    def test_adding_a_tag_changes_fingerprint(self):
        before = compute_fingerprint("Operation Overlord", "D-Day...", ["WW2", "1944"])
        after = compute_fingerprint("Operation Overlord", "D-Day...", ["1944", "WW2", "Invasion"])
        assert after == sha256("Operation Overlord|D-Day...|1944,Invasion,WW2|no-assets|no-infobox")
        assert before != after

    @pytest.mark.parametrize(
        "changed",
        [
            {"title": "Other"},
            {"content": "Other"},
            {"tag_names": ["x", "z"]},
            {"asset_hashes": ["h3"]},
            {"infobox_pairs": [("k", "other")]},
        ],
    )
    def test_every_hashed_field_affects_fingerprint(self, changed):
        base = {
            "title": "T",
            "content": "C",
            "tag_names": ["x", "y"],
            "asset_hashes": ["h1"],
            "infobox_pairs": [("k", "v")],
        }
        assert compute_fingerprint(**base) != compute_fingerprint(**{**base, **changed})
