"""Tests for mix storage, lookup and backups."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from powerhour.core.clips import ClipRef
from powerhour.core.errors import NotFoundError
from powerhour.core.mixes import (
    ByCaseInsensitiveName,
    ByContentScan,
    ByExactPath,
    Mix,
    MixRef,
    MixStore,
    default_mix_resolver,
)


@pytest.fixture
def store(tmp_path: Path) -> MixStore:
    return MixStore(tmp_path / "mixes", tmp_path / "backups")


def mix(mix_id: str = "mix_1", name: str = "Friday Night", **fields) -> Mix:
    return Mix(id=mix_id, name=name, clips=[ClipRef(id="c1"), ClipRef(id="c2")], **fields)


def write_legacy(folder: Path, stem: str, data: dict, wav_stem: str | None = None) -> None:
    folder.mkdir(parents=True, exist_ok=True)
    (folder / f"{stem}.json").write_text(json.dumps(data), encoding="utf-8")
    (folder / f"{wav_stem or stem}.wav").write_bytes(b"RIFF")


class TestResolverChain:
    """Tests for the mix resolver strategies."""

    def test_exact_id(self, tmp_path: Path):
        """Id-keyed files are found by the first strategy."""
        write_legacy(tmp_path, "mix_1", {"id": "mix_1", "name": "A"})

        hit = default_mix_resolver().resolve(tmp_path, MixRef(id="mix_1"))

        assert hit.strategy == ByExactPath.name
        assert hit.wav_path == tmp_path / "mix_1.wav"

    def test_legacy_name_keyed(self, tmp_path: Path):
        """Name-keyed legacy files are found by name."""
        write_legacy(tmp_path, "Friday Night", {"name": "Friday Night"})

        hit = default_mix_resolver().resolve(tmp_path, MixRef(name="Friday Night"))

        assert hit.json_path.name == "Friday Night.json"

    def test_case_insensitive_fallback(self, tmp_path: Path):
        """Files differing in case are found by the second strategy, with a case-mismatched WAV."""
        write_legacy(tmp_path, "FRIDAY NIGHT", {"name": "Friday Night"}, wav_stem="friday night")

        hit = default_mix_resolver().resolve(tmp_path, MixRef(name="Friday Night"))

        assert hit.strategy == ByCaseInsensitiveName.name
        assert hit.wav_path == tmp_path / "friday night.wav"

    def test_content_scan_fallback(self, tmp_path: Path):
        """Files with unrelated names are matched by their JSON id."""
        write_legacy(tmp_path, "export (3)", {"id": "mix_9", "name": "Saturday"})
        (tmp_path / "broken.json").write_text("{", encoding="utf-8")

        hit = default_mix_resolver().resolve(tmp_path, MixRef(id="mix_9"))

        assert hit.strategy == ByContentScan.name
        assert hit.json_path.name == "export (3).json"

    def test_no_match(self, tmp_path: Path):
        """Unknown mixes and missing folders resolve to None."""
        assert default_mix_resolver().resolve(tmp_path, MixRef(id="nope")) is None
        assert default_mix_resolver().resolve(tmp_path / "missing", MixRef(id="nope")) is None


class TestSaveAndLoad:
    """Tests for saving and reading mixes."""

    def test_save_writes_pair(self, store: MixStore):
        """A mix is stored as {id}.wav plus {id}.json."""
        saved = store.save_mix(mix(), b"RIFF-mix")

        assert (store.mixes_dir / "mix_1.wav").read_bytes() == b"RIFF-mix"
        data = json.loads((store.mixes_dir / "mix_1.json").read_text())
        assert data["name"] == "Friday Night"
        assert "localFilePath" not in data
        assert saved.local_file_path == str(store.mixes_dir / "mix_1.wav")

    def test_get_mix_by_id_or_name(self, store: MixStore):
        """A bare string matches either the id or the name."""
        store.save_mix(mix(), b"RIFF")

        assert store.get_mix("mix_1").name == "Friday Night"
        assert store.get_mix("Friday Night").id == "mix_1"

    def test_get_missing(self, store: MixStore):
        """Unknown mixes raise NotFoundError."""
        with pytest.raises(NotFoundError):
            store.get_mix("nope")

    def test_legacy_aliases_load(self, store: MixStore):
        """Older field names still load."""
        write_legacy(store.mixes_dir, "Old Mix", {"name": "Old Mix", "id": "", "date": "2020-01-01", "hasDrinkingSound": True})

        loaded = store.get_mix(MixRef(name="Old Mix"))

        assert loaded.created_at == "2020-01-01"
        assert loaded.has_interstitial

    def test_list_newest_first_skipping_broken(self, store: MixStore):
        """Mixes are listed newest first; unreadable sidecars are skipped."""
        store.save_mix(mix("a", "A", created_at="2024-01-01T00:00:00+00:00"), b"RIFF")
        store.save_mix(mix("b", "B", created_at="2024-06-01T00:00:00+00:00"), b"RIFF")
        (store.mixes_dir / "junk.json").write_text("[1, 2]", encoding="utf-8")

        assert [m.id for m in store.list_mixes()] == ["b", "a"]


class TestUpdates:
    """Tests for renaming, metadata updates and replacement."""

    def test_rename_id_keyed_mix(self, store: MixStore):
        """Id-keyed files keep their names; only the JSON changes."""
        store.save_mix(mix(), b"RIFF")

        renamed = store.rename_mix("mix_1", "Saturday")

        assert renamed.name == "Saturday"
        assert store.get_mix("mix_1").name == "Saturday"

    def test_rename_legacy_mix_moves_files(self, store: MixStore):
        """Name-keyed files are renamed on disk."""
        write_legacy(store.mixes_dir, "Old Mix", {"name": "Old Mix", "id": ""})

        store.rename_mix(MixRef(name="Old Mix"), "New Mix")

        assert (store.mixes_dir / "New Mix.json").is_file()
        assert (store.mixes_dir / "New Mix.wav").is_file()
        assert not (store.mixes_dir / "Old Mix.json").exists()

    def test_update_metadata(self, store: MixStore):
        """Sidecars are rewritten in place."""
        saved = store.save_mix(mix(), b"RIFF")

        store.update_mix_metadata(saved.model_copy(update={"song_list": ["One", "Two"]}))

        assert store.get_mix("mix_1").song_list == ["One", "Two"]

    def test_replace_moves_backups(self, store: MixStore, tmp_path: Path):
        """Re-saving under a new id removes old files and carries backups over."""
        source = tmp_path / "song.mp3"
        source.write_bytes(b"ID3")
        store.save_mix(mix("old"), b"RIFF")
        store.backup_original_files("old", [(source, "songs/song.mp3")])

        store.replace_mix("old", mix("new"), b"RIFF2")

        assert store.resolve(MixRef(id="old")) is None
        assert (store.backup_dir("new") / "songs" / "song.mp3").read_bytes() == b"ID3"
        assert not store.backup_dir("old").exists()


class TestDeleteAndBackups:
    """Tests for deletion and original-file backups."""

    def test_delete_removes_files_and_backups(self, store: MixStore, tmp_path: Path):
        """Deleting removes the pair and the backup folder."""
        source = tmp_path / "song.mp3"
        source.write_bytes(b"ID3")
        store.save_mix(mix(), b"RIFF")
        store.backup_original_files("mix_1", [(source, "song.mp3")])

        assert store.delete_mix("mix_1")

        assert list(store.mixes_dir.iterdir()) == []
        assert not store.backup_dir("mix_1").exists()

    def test_delete_missing(self, store: MixStore):
        """Deleting an unknown mix reports False."""
        assert not store.delete_mix("nope")

    def test_path_like_name_stays_in_store(self, store: MixStore, tmp_path: Path):
        """Names containing separators never address files outside the mix folder."""
        write_legacy(tmp_path, "outside", {"name": "Outside"})
        store.mixes_dir.mkdir(parents=True, exist_ok=True)

        assert store.resolve(MixRef(name="../outside")) is None
        assert not store.delete_mix("../outside")

        assert (tmp_path / "outside.json").is_file()
        assert (tmp_path / "outside.wav").is_file()

    def test_backup_skips_escaping_and_missing(self, store: MixStore, tmp_path: Path):
        """Backups refuse paths outside the mix folder and skip missing sources."""
        source = tmp_path / "song.mp3"
        source.write_bytes(b"ID3")

        copied = store.backup_original_files(
            "mix_1", [(source, "ok/song.mp3"), (source, "../../evil.mp3"), (tmp_path / "gone.mp3", "gone.mp3")]
        )

        assert copied == 1
        originals = store.load_original_files("mix_1")
        assert [o.relative_path for o in originals] == ["ok/song.mp3"]

    def test_new_mix_ids_unique(self):
        """Generated ids do not repeat."""
        assert len({MixStore.new_mix_id() for _ in range(50)}) == 50
