"""Tests for the rice CLI exit codes and output."""

from __future__ import annotations

import base64
import json
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from conftest import BUNDLE_ID

from ricecake.bundle.keys import private_key_raw
from ricecake.cli import main


class TestValidateCommand:
    def test_valid_tree_exits_zero(self, bundle_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["validate", str(bundle_dir)]) == 0
        out = capsys.readouterr().out
        assert "[PASS] Structure checks (5/5)" in out
        assert "Bundle is valid for building." in out

    def test_errors_exit_one(self, bundle_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (bundle_dir / "copyright.txt").unlink()
        assert main(["validate", str(bundle_dir)]) == 1
        out = capsys.readouterr().out
        assert "[FAIL] Structure checks (4/5)" in out
        assert "  - [ERROR] copyright.txt exists: copyright.txt not found" in out

    def test_strict_warning_exits_one(self, bundle_dir: Path) -> None:
        p = bundle_dir / "manifest.yaml"
        p.write_text(p.read_text(encoding="utf-8").replace("  genre: Electronic\n", ""), encoding="utf-8")
        assert main(["validate", str(bundle_dir)]) == 0
        assert main(["validate", "--strict", str(bundle_dir)]) == 1

    def test_json_output(self, bundle_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["validate", "--json", str(bundle_dir)]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["valid"] is True
        assert data["errors"] == 0

    def test_missing_path_exits_three(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["validate", str(tmp_path / "nope")]) == 3
        assert capsys.readouterr().err.startswith("[rice validate] ERROR:")


class TestBuildCommand:
    def test_build_default_output(self, bundle_dir: Path) -> None:
        assert main(["build", str(bundle_dir)]) == 0
        assert (bundle_dir.parent / "night-market.ricecake").is_file()

    def test_build_refuses_invalid_tree(self, tmp_path: Path, bundle_dir: Path) -> None:
        (bundle_dir / "images" / "cover.jpg").unlink()
        out = tmp_path / "out.ricecake"
        assert main(["build", str(bundle_dir), "--output", str(out)]) == 1
        assert not out.exists()

    def test_no_validate_builds_anyway(self, tmp_path: Path, bundle_dir: Path) -> None:
        (bundle_dir / "images" / "cover.jpg").unlink()
        out = tmp_path / "out.ricecake"
        assert main(["build", str(bundle_dir), "--output", str(out), "--no-validate"]) == 0
        assert out.is_file()

    def test_existing_output_needs_force(self, tmp_path: Path, bundle_dir: Path) -> None:
        out = tmp_path / "out.ricecake"
        out.write_bytes(b"old")
        assert main(["build", str(bundle_dir), "--output", str(out)]) == 3
        assert out.read_bytes() == b"old"
        assert main(["build", str(bundle_dir), "--output", str(out), "--force"]) == 0
        assert out.read_bytes() != b"old"


class TestSignVerifyCommands:
    def test_keygen_sign_verify(self, tmp_path: Path, archive: Path, capsys: pytest.CaptureFixture[str]) -> None:
        keys = tmp_path / "keys"
        assert main(["keygen", "--output", str(keys)]) == 0
        assert main(["keygen", "--output", str(keys)]) == 3

        pubkey = str(keys / "public.key")
        assert main(["verify", str(archive), "--pubkey", pubkey]) == 1
        assert main(["sign", str(archive), "--key", str(keys / "private.key")]) == 0
        capsys.readouterr()

        assert main(["verify", "--json", str(archive), "--pubkey", pubkey]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["status"] == "pass"
        assert data["bundle_id"] == BUNDLE_ID

    def test_sign_from_environment(self, monkeypatch, archive: Path, private_key) -> None:
        monkeypatch.setenv("RICE_SIGNING_KEY", base64.b64encode(private_key_raw(private_key)).decode("ascii"))
        assert main(["sign", str(archive)]) == 0

    def test_sign_without_key_exits_three(self, monkeypatch, archive: Path, capsys: pytest.CaptureFixture[str]) -> None:
        monkeypatch.delenv("RICE_SIGNING_KEY", raising=False)
        before = archive.read_bytes()
        assert main(["sign", str(archive)]) == 3
        assert "(missing)" in capsys.readouterr().err
        assert archive.read_bytes() == before


class TestInspectCommands:
    def test_info_text(self, archive: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["info", "--tracks", str(archive)]) == 0
        out = capsys.readouterr().out
        assert "Title:    Night Market" in out
        assert "Genre:    Electronic / Downtempo" in out
        assert "Total Duration: 7:55" in out
        assert "  - MP3 (320 kbps)" in out
        assert "Signed: No" in out
        assert "   1. Steam [3:45]" in out

    def test_info_json(self, bundle_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["info", "--json", str(bundle_dir)]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["manifest"]["bundle"]["bundle_id"] == BUNDLE_ID
        assert data["signed"] is False

    def test_describe_archive(self, archive: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["describe", "--raw", str(archive)]) == 0
        assert capsys.readouterr().out == (archive.parent / "night-market" / "manifest.yaml").read_text(encoding="utf-8")

    def test_about(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["about"]) == 0
        assert "ricecake" in capsys.readouterr().out

    def test_no_command_exits_three(self) -> None:
        assert main([]) == 3
