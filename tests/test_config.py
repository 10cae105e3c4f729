"""Option loading/validation and change hook tests."""

import json
from pathlib import Path

import pytest

from scriptfence.config import (
    DEFAULT_CONFIG,
    ConfigError,
    OptionStore,
    get_config_path,
    load_config,
    save_config,
    validate_config,
)
from scriptfence.utils import deep_merge, load_json, save_json


class TestDefaultConfig:
    def test_has_blacklist(self) -> None:
        assert DEFAULT_CONFIG["blacklist"] == ""

    def test_blacklist_cache_budget(self) -> None:
        assert DEFAULT_CONFIG["blacklist_cache_max_length"] == 100_000

    def test_validates_clean(self) -> None:
        assert validate_config(DEFAULT_CONFIG) == []


class TestValidation:
    def test_blacklist_wrong_type(self) -> None:
        errors = validate_config({**DEFAULT_CONFIG, "blacklist": 42})
        assert any("blacklist" in e for e in errors)

    def test_legacy_blacklist_list(self) -> None:
        assert validate_config({**DEFAULT_CONFIG, "blacklist": ["a.com", "b.com"]}) == []

    def test_legacy_blacklist_list_with_non_strings(self) -> None:
        errors = validate_config({**DEFAULT_CONFIG, "blacklist": ["a.com", 3]})
        assert len(errors) == 1

    @pytest.mark.parametrize("value", [0, -5, "100", True, None])
    def test_cache_sizes_must_be_positive_ints(self, value) -> None:
        errors = validate_config({**DEFAULT_CONFIG, "pattern_cache_size": value})
        assert any("pattern_cache_size" in e for e in errors)

    def test_malformed_regex_rejected(self) -> None:
        errors = validate_config({**DEFAULT_CONFIG, "blacklist": "a.com\n@exclude /[a-/"})
        assert len(errors) == 1
        assert errors[0].startswith("Blacklist:")
        assert "/[a-/" in errors[0]

    def test_malformed_match_pattern_accepted(self) -> None:
        assert validate_config({**DEFAULT_CONFIG, "blacklist": "@match not-a-pattern"}) == []


class TestLoadSave:
    def test_load_missing_returns_defaults(self, tmp_path: Path) -> None:
        assert load_config(tmp_path) == DEFAULT_CONFIG

    def test_roundtrip(self, tmp_path: Path) -> None:
        config = deep_merge(DEFAULT_CONFIG, {"blacklist": "a.com"})
        path = save_config(config, tmp_path)
        assert path == tmp_path / ".scriptfence" / "options.json"
        assert load_config(tmp_path)["blacklist"] == "a.com"

    def test_partial_file_merged_with_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / ".scriptfence" / "options.json"
        path.parent.mkdir()
        path.write_text(json.dumps({"blacklist": "b.com"}), encoding="utf-8")
        config = load_config(tmp_path)
        assert config["blacklist"] == "b.com"
        assert config["pattern_cache_size"] == DEFAULT_CONFIG["pattern_cache_size"]

    def test_corrupt_file_falls_back(self, tmp_path: Path, caplog) -> None:
        path = tmp_path / ".scriptfence" / "options.json"
        path.parent.mkdir()
        path.write_text("{not json", encoding="utf-8")
        with caplog.at_level("WARNING", logger="scriptfence.config"):
            config = load_config(tmp_path)
        assert config == DEFAULT_CONFIG
        assert "could not be loaded" in caplog.text

    def test_found_from_subdirectory(self, tmp_path: Path) -> None:
        save_config(DEFAULT_CONFIG, tmp_path)
        sub = tmp_path / "a" / "b"
        sub.mkdir(parents=True)
        assert get_config_path(sub) == tmp_path / ".scriptfence" / "options.json"


class TestOptionStore:
    def test_get_option(self) -> None:
        options = OptionStore({"blacklist": "a.com"})
        assert options.get_option("blacklist") == "a.com"
        assert options.get_option("pattern_cache_size") == 2000
        assert options.get_option("missing", "x") == "x"

    def test_hook_receives_changed_keys_only(self) -> None:
        options = OptionStore({"blacklist": "a.com"})
        seen = []
        options.hook_options(seen.append)
        options.set_options({"blacklist": "b.com", "pattern_cache_size": 2000})
        assert seen == [{"blacklist": "b.com"}]

    def test_no_change_no_notification(self) -> None:
        options = OptionStore({"blacklist": "a.com"})
        seen = []
        options.hook_options(seen.append)
        assert options.set_options({"blacklist": "a.com"}) == {}
        assert seen == []

    def test_unhook(self) -> None:
        options = OptionStore()
        seen = []
        unhook = options.hook_options(seen.append)
        unhook()
        unhook()
        options.set_options({"blacklist": "a.com"})
        assert seen == []

    def test_invalid_change_rejected(self) -> None:
        options = OptionStore({"blacklist": "a.com"})
        seen = []
        options.hook_options(seen.append)
        with pytest.raises(ConfigError) as info:
            options.set_options({"blacklist": "@include /(/"})
        assert info.value.errors
        assert options.get_option("blacklist") == "a.com"
        assert seen == []

    def test_persists_when_bound_to_directory(self, tmp_path: Path) -> None:
        options = OptionStore.load(tmp_path)
        options.set_options({"blacklist": "c.com"})
        assert load_config(tmp_path)["blacklist"] == "c.com"

    def test_unbound_store_writes_nothing(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        OptionStore().set_options({"blacklist": "c.com"})
        assert not (tmp_path / ".scriptfence").exists()

    def test_load_reads_existing_file(self, tmp_path: Path) -> None:
        save_config(deep_merge(DEFAULT_CONFIG, {"blacklist": "d.com"}), tmp_path)
        assert OptionStore.load(tmp_path).get_option("blacklist") == "d.com"


class TestDeepMerge:
    def test_nested(self) -> None:
        assert deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}}) == {"a": {"b": 1, "c": 3}}

    def test_does_not_mutate_base(self) -> None:
        base = {"a": 1}
        deep_merge(base, {"a": 2})
        assert base == {"a": 1}


class TestOptionsFile:
    def test_non_object_file_reads_as_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "options.json"
        path.write_text(json.dumps(["a.com"]), encoding="utf-8")
        assert load_json(path) == {}

    def test_save_creates_options_dir(self, tmp_path: Path) -> None:
        path = tmp_path / ".scriptfence" / "options.json"
        save_json(path, {"blacklist": "a.com"})
        assert load_json(path) == {"blacklist": "a.com"}
