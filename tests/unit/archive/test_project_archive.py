"""Tests for project (.phproject) export and import."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import zipfile

import pytest

from powerhour.core.archive import PROJECT_EXTENSION, ProjectArchiver
from powerhour.core.clips import Clip, ClipStore
from powerhour.core.errors import InvalidArchiveError, NotFoundError
from powerhour.core.mixes import Mix, MixStore, SourceProjectData
from powerhour.core.utils.json import read_json


@dataclass
class Workspace:
    """One local data directory with its stores."""

    root: Path
    mixes: MixStore
    clips: ClipStore
    archiver: ProjectArchiver

    @classmethod
    def create(cls, root: Path) -> Workspace:
        mixes = MixStore(root / "mixes", root / "backups")
        clips = ClipStore(root / "clips", root / "temp_clips")
        return cls(root, mixes, clips, ProjectArchiver(mixes, clips, root / "projects"))


@pytest.fixture
def source(tmp_path: Path) -> Workspace:
    """Workspace holding one mix with two clips, an interstitial and a backed-up original."""
    ws = Workspace.create(tmp_path / "source")
    refs = []
    for clip_id, audio in (("c1", b"RIFF-one"), ("c2", b"RIFF-two")):
        refs.append(ws.clips.save_clip(Clip(id=clip_id, name=f"Song {clip_id}", duration=60, audio_bytes=audio)))

    ding = tmp_path / "sounds" / "ding.wav"
    ding.parent.mkdir()
    ding.write_bytes(b"RIFF-ding")
    original = tmp_path / "Queen - Song.mp3"
    original.write_bytes(b"ID3-song")

    mix = Mix(
        id="mix_1",
        name="Friday Night",
        clips=refs,
        has_interstitial=True,
        source_project_data=SourceProjectData(interstitial_path=str(ding)),
    )
    ws.mixes.save_mix(mix, b"RIFF-mix")
    ws.mixes.backup_original_files("mix_1", [(original, "songs/Queen - Song.mp3")])
    return ws


class TestExportProject:
    """Tests for ProjectArchiver.export_project."""

    def test_archive_layout(self, source: Workspace):
        """The archive holds manifest, mix pair, clips, originals and the interstitial."""
        result = source.archiver.export_project("mix_1")

        assert result.path == source.root / "projects" / f"Friday Night{PROJECT_EXTENSION}"
        with zipfile.ZipFile(result.path) as zf:
            names = set(zf.namelist())
            manifest = zf.read("manifest.json")
        assert names == {
            "manifest.json",
            "mix.json",
            "mix.wav",
            "clips/c1.wav",
            "clips/c2.wav",
            "drinking/ding.wav",
            "original_files/songs/Queen - Song.mp3",
        }
        assert b'"type": "power-hour-project"' in manifest
        assert result.valid_clips == 2

    def test_manifest_fields(self, source: Workspace, tmp_path: Path):
        """The manifest describes the packaged mix."""
        result = source.archiver.export_project("mix_1", tmp_path / "out.phproject")
        with zipfile.ZipFile(result.path) as zf:
            zf.extract("manifest.json", tmp_path / "x")

        manifest = read_json(tmp_path / "x" / "manifest.json")

        assert manifest["mixId"] == "mix_1"
        assert manifest["mixName"] == "Friday Night"
        assert manifest["clipCount"] == 2
        assert manifest["hasOriginalFiles"] is True
        assert manifest["hasDrinkingSound"] is True
        assert manifest["version"] == "1.0"

    def test_missing_clip_left_out(self, source: Workspace, tmp_path: Path):
        """Clips that cannot be found are skipped and reported."""
        source.clips.delete_clip("c2")

        result = source.archiver.export_project("mix_1", tmp_path / "out.phproject")

        assert result.valid_clips == 1
        assert result.total_clips == 2
        assert "1 of 2" in result.message

    def test_missing_mix(self, source: Workspace):
        """Exporting an unknown mix fails."""
        with pytest.raises(NotFoundError):
            source.archiver.export_project("nope")

    def test_missing_audio(self, source: Workspace):
        """A mix without its WAV cannot be exported."""
        (source.mixes.mixes_dir / "mix_1.wav").unlink()

        with pytest.raises(NotFoundError, match="Audio file"):
            source.archiver.export_project("mix_1")


class TestImportProject:
    """Tests for ProjectArchiver.import_project."""

    def test_round_trip_into_fresh_workspace(self, source: Workspace, tmp_path: Path):
        """Importing yields a new mix id with the same clips in the same order."""
        archive = source.archiver.export_project("mix_1").path
        target = Workspace.create(tmp_path / "target")

        result = target.archiver.import_project(archive)

        mix = result.mix
        assert mix.id.startswith("import-")
        assert mix.id != "mix_1"
        assert mix.name == "Friday Night"
        assert [c.id for c in mix.clips] == ["c1", "c2"]
        assert result.renamed_clips == {}
        assert Path(mix.clips[0].clip_path) == target.clips.temp_wav("c1")
        assert target.clips.temp_wav("c2").read_bytes() == b"RIFF-two"
        assert Path(mix.local_file_path).read_bytes() == b"RIFF-mix"

    def test_interstitial_and_originals_restored(self, source: Workspace, tmp_path: Path):
        """The interstitial and originals land in the new mix's backup folder."""
        archive = source.archiver.export_project("mix_1").path
        target = Workspace.create(tmp_path / "target")

        mix = target.archiver.import_project(archive).mix

        backup = target.mixes.backup_dir(mix.id)
        assert mix.has_interstitial
        assert mix.source_project_data.interstitial_path == str(backup / "drinking" / "ding.wav")
        assert (backup / "songs" / "Queen - Song.mp3").read_bytes() == b"ID3-song"

    def test_reimport_into_same_workspace(self, source: Workspace):
        """Importing next to the original keeps identical clips and adds a second mix."""
        archive = source.archiver.export_project("mix_1").path

        result = source.archiver.import_project(archive)

        assert result.renamed_clips == {}
        assert {m.id for m in source.mixes.list_mixes()} == {"mix_1", result.mix.id}

    def test_colliding_clip_gets_new_id(self, source: Workspace, tmp_path: Path):
        """A local clip with the same id but different audio forces a rename."""
        archive = source.archiver.export_project("mix_1").path
        target = Workspace.create(tmp_path / "target")
        target.clips.save_clip(Clip(id="c1", name="Unrelated", audio_bytes=b"RIFF-other"))

        result = target.archiver.import_project(archive)

        new_id = result.renamed_clips["c1"]
        assert new_id != "c1"
        assert [c.id for c in result.mix.clips] == [new_id, "c2"]
        assert target.clips.temp_wav(new_id).read_bytes() == b"RIFF-one"
        assert target.clips.get_clip("c1").name == "Unrelated"

    def test_missing_manifest_leaves_nothing_behind(self, source: Workspace, tmp_path: Path):
        """Archives without a manifest are rejected without creating records."""
        archive = tmp_path / "broken.phproject"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("mix.json", '{"id": "mix_1", "name": "X"}')
            zf.writestr("mix.wav", b"RIFF")
        target = Workspace.create(tmp_path / "target")

        with pytest.raises(InvalidArchiveError, match="manifest"):
            target.archiver.import_project(archive)

        assert target.mixes.list_mixes() == []
        assert not target.mixes.backups_dir.exists()

    def test_missing_mix_json(self, tmp_path: Path):
        """Archives without mix.json are rejected."""
        archive = tmp_path / "broken.phproject"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("manifest.json", '{"type": "power-hour-project", "created": "x", "mixId": "m", "mixName": "M"}')
        target = Workspace.create(tmp_path / "target")

        with pytest.raises(InvalidArchiveError, match="mix.json"):
            target.archiver.import_project(archive)

    def test_wrong_type(self, tmp_path: Path):
        """Manifests of another archive type are rejected."""
        archive = tmp_path / "other.phproject"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("manifest.json", '{"type": "something-else", "created": "x", "mixId": "m", "mixName": "M"}')
            zf.writestr("mix.json", '{"id": "m", "name": "M"}')

        with pytest.raises(InvalidArchiveError, match="unexpected type"):
            Workspace.create(tmp_path / "target").archiver.import_project(archive)

    def test_manifest_without_type(self, tmp_path: Path):
        """A manifest must name its archive type."""
        archive = tmp_path / "untyped.phproject"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("manifest.json", '{"created": "x", "mixId": "m", "mixName": "M"}')
            zf.writestr("mix.json", '{"id": "m", "name": "M"}')
            zf.writestr("mix.wav", b"RIFF")
        target = Workspace.create(tmp_path / "target")

        with pytest.raises(InvalidArchiveError, match="manifest"):
            target.archiver.import_project(archive)

        assert target.mixes.list_mixes() == []

    def test_unsafe_clip_name_skipped(self, source: Workspace, tmp_path: Path):
        """Archived clips whose names are not safe ids are not installed."""
        archive = source.archiver.export_project("mix_1").path
        with zipfile.ZipFile(archive, "a") as zf:
            zf.writestr("clips/...wav", b"RIFF-dots")
        target = Workspace.create(tmp_path / "target")

        result = target.archiver.import_project(archive)

        assert sorted(c.id for c in target.clips.list_clips()) == ["c1", "c2"]
        assert [c.id for c in result.mix.clips] == ["c1", "c2"]

    def test_not_a_zip(self, tmp_path: Path):
        """Files without the ZIP signature are rejected."""
        archive = tmp_path / "notes.phproject"
        archive.write_text("just text", encoding="utf-8")

        with pytest.raises(InvalidArchiveError, match="ZIP signature"):
            Workspace.create(tmp_path / "target").archiver.import_project(archive)

    def test_missing_archive(self, tmp_path: Path):
        """Importing a nonexistent file fails with NotFoundError."""
        with pytest.raises(NotFoundError):
            Workspace.create(tmp_path / "target").archiver.import_project(tmp_path / "gone.phproject")

    def test_failure_during_install_rolls_back(
        self, source: Workspace, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        """An error while installing removes everything written so far."""
        archive = source.archiver.export_project("mix_1").path
        target = Workspace.create(tmp_path / "target")

        def fail_save(*_args, **_kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(target.mixes, "save_mix", fail_save)

        with pytest.raises(OSError):
            target.archiver.import_project(archive)

        assert target.clips.list_clips() == []
        assert not any(target.mixes.backups_dir.iterdir())
