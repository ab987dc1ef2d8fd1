"""Tests for SKAgents Skill Store — save, load, list, delete."""

from pathlib import Path

import pytest

from skagents.errors import InvalidSkillNameError, SkillNotFoundError, StoreIOError
from skagents.store import SkillStore, read_markdown


@pytest.fixture
def store(tmp_path: Path) -> SkillStore:
    """Create a store with a temp root."""
    return SkillStore(tmp_path / "skills")


class TestSave:
    """Test writing skills."""

    def test_save_creates_directories(self, store: SkillStore):
        """Saving into a missing root should create root/name/SKILL.md."""
        path = store.save("alpha", "Alpha instructions\n")
        assert path == store.root / "alpha" / "SKILL.md"
        assert path.read_text() == "Alpha instructions\n"

    def test_save_overwrites(self, store: SkillStore):
        """A second save should replace the first."""
        store.save("alpha", "v1\n")
        store.save("alpha", "v2\n")
        assert store.load("alpha") == "v2\n"

    def test_save_rejects_traversal(self, store: SkillStore, tmp_path: Path):
        """A name with '..' must never reach the filesystem."""
        with pytest.raises(InvalidSkillNameError):
            store.save("../outside", "x")
        assert not (tmp_path / "outside").exists()

    def test_save_into_file_root_fails(self, tmp_path: Path):
        """A skills root that is a regular file should fail with the path named."""
        root = tmp_path / "skills"
        root.write_text("not a directory")
        with pytest.raises(StoreIOError, match="alpha") as excinfo:
            SkillStore(root).save("alpha", "A\n")
        assert str(root / "alpha" / "SKILL.md") in str(excinfo.value)

    def test_write_error_is_os_error(self, tmp_path: Path):
        """Callers catching OSError should still see write failures."""
        root = tmp_path / "skills"
        root.write_text("not a directory")
        with pytest.raises(OSError):
            SkillStore(root).save("alpha", "A\n")


class TestLoad:
    """Test reading skills."""

    def test_load_missing_raises(self, store: SkillStore):
        """Loading an unknown name should name the skill."""
        with pytest.raises(SkillNotFoundError, match="alpha"):
            store.load("alpha")

    def test_load_missing_is_file_not_found(self, store: SkillStore):
        """Callers catching FileNotFoundError should still see missing skills."""
        with pytest.raises(FileNotFoundError):
            store.load("alpha")

    def test_get_returns_model(self, store: SkillStore):
        """get() should wrap the content in a Skill model."""
        store.save("alpha", "A\n")
        skill = store.get("alpha")
        assert skill.name == "alpha"
        assert skill.content == "A\n"

    def test_exists(self, store: SkillStore):
        """exists() should flip once the skill is saved."""
        assert store.exists("alpha") is False
        store.save("alpha", "A\n")
        assert store.exists("alpha") is True

    def test_load_invalid_utf8(self, store: SkillStore):
        """A SKILL.md that is not UTF-8 should fail as a store error naming the file."""
        path = store.save("alpha", "A\n")
        path.write_bytes(b"\xff bad\n")
        with pytest.raises(StoreIOError) as excinfo:
            store.load("alpha")
        assert str(path) in str(excinfo.value)

    def test_read_markdown_invalid_utf8(self, tmp_path: Path):
        """read_markdown should turn decode errors into StoreIOError."""
        path = tmp_path / "notes.md"
        path.write_bytes(b"# Notes \xff\xfe\n")
        with pytest.raises(StoreIOError, match="Failed to read"):
            read_markdown(path)

    def test_read_markdown_directory(self, tmp_path: Path):
        """Reading a directory should fail as a store error."""
        with pytest.raises(StoreIOError):
            read_markdown(tmp_path)


class TestListNames:
    """Test skill listing."""

    def test_list_empty_root(self, store: SkillStore):
        """A missing root lists nothing rather than failing."""
        assert store.list_names() == []

    def test_list_sorted(self, store: SkillStore):
        """Names should come back in lexicographic order."""
        for name in ("gamma", "alpha", "beta"):
            store.save(name, f"{name}\n")
        assert store.list_names() == ["alpha", "beta", "gamma"]

    def test_list_skips_invalid_entries(self, store: SkillStore):
        """Hidden dirs, stray files and dirs without SKILL.md are ignored."""
        store.save("alpha", "A\n")
        (store.root / ".git").mkdir()
        (store.root / ".git" / "SKILL.md").write_text("not a skill")
        (store.root / "README.md").write_text("readme")
        (store.root / "empty").mkdir()
        assert store.list_names() == ["alpha"]

    def test_list_with_fragment(self, store: SkillStore):
        """A fragment should keep only names containing it."""
        for name in ("zephyr-a", "zephyr-b", "other"):
            store.save(name, "x\n")
        assert store.list_names("zephyr") == ["zephyr-a", "zephyr-b"]
        assert store.list_names("nothing") == []


class TestDelete:
    """Test skill removal."""

    def test_delete_existing(self, store: SkillStore):
        """Deleting should remove the whole skill directory."""
        store.save("alpha", "A\n")
        assert store.delete("alpha") is True
        assert not (store.root / "alpha").exists()
        assert store.exists("alpha") is False

    def test_delete_missing_is_noop(self, store: SkillStore):
        """Deleting an absent skill should return False."""
        assert store.delete("alpha") is False

    def test_delete_validates_name(self, store: SkillStore):
        """Deleting '..' must be refused before touching the filesystem."""
        with pytest.raises(InvalidSkillNameError):
            store.delete("..")

    def test_delete_failure_names_path(self, store: SkillStore):
        """A skill entry that cannot be removed as a directory should fail with its path."""
        store.root.mkdir(parents=True)
        (store.root / "alpha").write_text("a stray file, not a skill dir")
        with pytest.raises(StoreIOError) as excinfo:
            store.delete("alpha")
        assert str(store.root / "alpha") in str(excinfo.value)
