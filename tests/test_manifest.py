"""Tests for manifest.yaml parsing, helpers and the signature block format."""

from __future__ import annotations

import sys
import zipfile
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from conftest import BUNDLE_ID, MANIFEST_YAML

from ricecake import api
from ricecake.core.errors import ArchiveError, ManifestError
from ricecake.protocol.manifest import AudioFormat, Track, format_size, parse_manifest_bytes
from ricecake.protocol.signature import SignatureRecord, format_signature_record, parse_signature_record


class TestParse:
    def test_full_manifest(self) -> None:
        m = parse_manifest_bytes(MANIFEST_YAML.encode("utf-8"))
        assert m.manifest_version == 1
        assert m.release.title == "Night Market"
        assert m.release.release_date == "2024-01-15"
        assert [t.number for t in m.tracks] == [1, 2]
        assert m.tracks[0].composers == ("Jane Doe",)
        assert m.images.cover.width == 3000
        assert m.images.back is None
        assert m.rights.copyright_year == 2024
        assert m.bundle.bundle_id == BUNDLE_ID

    def test_unquoted_duration_kept_as_clock_time(self) -> None:
        m = parse_manifest_bytes(b"tracks:\n  - number: 1\n    duration: 3:45\n  - number: 2\n    duration: 1:02:03\n")
        assert [t.duration for t in m.tracks] == ["3:45", "1:02:03"]

    def test_missing_sections_default_empty(self) -> None:
        m = parse_manifest_bytes(b"manifest_version: 1\n")
        assert m.release.title == ""
        assert m.tracks == ()
        assert m.images.cover.filename == ""

    @pytest.mark.parametrize(
        "text",
        [
            b"",
            b"- just\n- a list\n",
            b"release: not-a-mapping\n",
            b"tracks:\n  - number: one\n",
            b"key: [unterminated\n",
            b"\xff\xfe not utf-8",
        ],
    )
    def test_parse_failures(self, text: bytes) -> None:
        with pytest.raises(ManifestError):
            parse_manifest_bytes(text)


class TestHelpers:
    def test_duration_seconds(self) -> None:
        assert Track(duration="3:45").duration_seconds() == 225
        assert Track(duration="1:00:01").duration_seconds() == 3601
        assert Track(duration="3:75").duration_seconds() is None
        assert Track().duration_seconds() is None

    def test_total_duration(self) -> None:
        m = parse_manifest_bytes(MANIFEST_YAML.encode("utf-8"))
        assert m.total_duration() == "7:55"

    def test_describe_format(self) -> None:
        assert AudioFormat(format="mp3", bitrate=320).describe() == "MP3 (320 kbps)"
        assert AudioFormat(format="flac", bit_depth=24, sample_rate=96000).describe() == "FLAC (24-bit/96000Hz)"
        assert AudioFormat(format="wav").describe() == "WAV"

    def test_format_size(self) -> None:
        assert format_size(512) == "512 bytes"
        assert format_size(2048) == "2.00 KB"
        assert format_size(5 * 1024 * 1024) == "5.00 MB"
        assert format_size(3 * 1024 ** 3) == "3.00 GB"


class TestReadManifest:
    def test_from_directory(self, bundle_dir: Path) -> None:
        assert api.read_manifest(bundle_dir).bundle.bundle_id == BUNDLE_ID

    def test_from_archive(self, archive: Path) -> None:
        assert api.read_manifest(archive).release.artist == "The Rice Cookers"

    def test_archive_member_name_must_be_exact(self, tmp_path: Path) -> None:
        bundle = tmp_path / "dotted.ricecake"
        with zipfile.ZipFile(bundle, "w") as zf:
            zf.writestr("./manifest.yaml", MANIFEST_YAML)
        with pytest.raises(ManifestError, match="not found"):
            api.read_manifest(bundle)

    def test_not_an_archive(self, tmp_path: Path) -> None:
        bogus = tmp_path / "bogus.ricecake"
        bogus.write_bytes(b"nope")
        with pytest.raises(ArchiveError):
            api.read_manifest(bogus)


class TestSignatureRecord:
    RECORD = SignatureRecord(
        bundle_id=BUNDLE_ID,
        hash_algorithm="SHA-256",
        content_hash_b64="q83vEjRWeJA=",
        signature_b64="3q2+7w==",
        tool_version="ricecake 1.0.0",
        created_at="2024-01-15T10:00:00Z",
    )

    def test_format_then_parse(self) -> None:
        text = format_signature_record(self.RECORD)
        assert text.splitlines()[0] == "-----BEGIN RICECAKE SIGNATURE-----"
        assert parse_signature_record(text) == self.RECORD

    def test_crlf_tolerated(self) -> None:
        text = format_signature_record(self.RECORD).replace("\n", "\r\n")
        assert parse_signature_record(text) == self.RECORD

    def test_missing_header_rejected(self) -> None:
        text = format_signature_record(self.RECORD).replace("Bundle-ID: " + BUNDLE_ID + "\n", "")
        with pytest.raises(ValueError, match="Bundle-ID"):
            parse_signature_record(text)

    def test_bad_base64_rejected(self) -> None:
        text = format_signature_record(self.RECORD).replace("3q2+7w==", "not base64!")
        with pytest.raises(ValueError):
            parse_signature_record(text)
