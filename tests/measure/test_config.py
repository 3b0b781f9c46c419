"""Tests for measurement configuration."""

import json

import pytest

from measure.config import ContentRule, MeasurementConfig, StrategyType, load_config
from measure.errors import ConfigurationError
from measure.models import ContentMetric, ExtensionMetric


class TestMeasurementConfig:
    """Tests for MeasurementConfig validation."""

    def test_defaults(self, tmp_path):
        config = MeasurementConfig(repository_path=tmp_path)
        assert config.strategy == StrategyType.DIFFERENTIAL
        assert config.archive_format == "tar"
        assert config.ignore_modified_only_commits is False
        assert config.tolerate_lookup_errors is False
        assert config.metrics == []

    def test_strategy_from_string(self, tmp_path):
        config = MeasurementConfig(repository_path=tmp_path, strategy="Full-Snapshot")
        assert config.strategy == StrategyType.FULL_SNAPSHOT

    def test_unknown_strategy(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Unsupported strategy"):
            MeasurementConfig(repository_path=tmp_path, strategy="sampling")

    def test_unknown_archive_format(self, tmp_path):
        with pytest.raises(ConfigurationError, match="archive format"):
            MeasurementConfig(repository_path=tmp_path, archive_format="rar")

    def test_empty_repository_path(self):
        with pytest.raises(ConfigurationError, match="repository_path"):
            MeasurementConfig(repository_path="")

    @pytest.mark.parametrize(
        "field_name", ["max_commits_count", "subprocess_timeout", "max_concurrency"]
    )
    def test_non_positive_limits(self, tmp_path, field_name):
        with pytest.raises(ConfigurationError, match=field_name):
            MeasurementConfig(repository_path=tmp_path, **{field_name: 0})

    def test_content_rules_from_mappings(self, tmp_path):
        config = MeasurementConfig(
            repository_path=tmp_path,
            track_by_file_content={"todo": {"globs": ["**.ts"], "phrase": "TODO"}},
        )
        assert config.track_by_file_content["todo"] == ContentRule(globs=["**.ts"], phrase="TODO")

    def test_content_rule_missing_phrase(self, tmp_path):
        with pytest.raises(ConfigurationError, match="'todo'"):
            MeasurementConfig(
                repository_path=tmp_path,
                track_by_file_content={"todo": {"globs": ["**.ts"]}},
            )

    def test_empty_phrase_rejected(self, tmp_path):
        with pytest.raises(ConfigurationError, match="non-empty phrase"):
            MeasurementConfig(
                repository_path=tmp_path,
                track_by_file_content={"todo": {"globs": ["**.ts"], "phrase": ""}},
            )

    def test_duplicate_metric_names(self, tmp_path):
        with pytest.raises(ConfigurationError, match="unique"):
            MeasurementConfig(
                repository_path=tmp_path,
                track_by_file_extension={"ts": ["**.ts"]},
                track_by_file_content={"ts": {"globs": ["**.ts"], "phrase": "x"}},
            )

    def test_metrics_order(self, tmp_path):
        config = MeasurementConfig(
            repository_path=tmp_path,
            track_by_file_extension={"txt": ["**.txt"], "ts": ["**.ts", "**.tsx"]},
            track_by_file_content={"todo": {"globs": ["**.ts"], "phrase": "TODO"}},
        )
        assert config.metrics == [
            ExtensionMetric("txt", ("**.txt",)),
            ExtensionMetric("ts", ("**.ts", "**.tsx")),
            ContentMetric("todo", ("**.ts",), "TODO"),
        ]
        assert config.tracked_globs == ["**.txt", "**.ts", "**.tsx"]
        assert config.has_content_metrics

    def test_scratch_layout(self, tmp_path):
        repo = tmp_path / "my-repo"
        config = MeasurementConfig(repository_path=repo, scratch_root=tmp_path / "scratch")
        assert config.repository_name == "my-repo"
        assert config.scratch_dir.parent == (tmp_path / "scratch").resolve()
        assert config.scratch_dir.name.startswith("my-repo-")
        assert config.archives_dir == config.scratch_dir / "archives"
        assert config.snapshots_dir == config.scratch_dir / "snapshots"

    def test_same_named_repositories_get_separate_scratch(self, tmp_path):
        first = MeasurementConfig(repository_path=tmp_path / "a" / "repo", scratch_root=tmp_path)
        second = MeasurementConfig(repository_path=tmp_path / "b" / "repo", scratch_root=tmp_path)

        assert first.archives_dir != second.archives_dir
        assert first.scratch_dir.name.startswith("repo-")
        assert first.scratch_dir == MeasurementConfig(
            repository_path=tmp_path / "a" / "repo", scratch_root=tmp_path
        ).scratch_dir


class TestFromDict:
    """Tests for the camelCase configuration surface."""

    def test_camel_case_keys(self, tmp_path):
        config = MeasurementConfig.from_dict(
            {
                "repositoryPath": str(tmp_path),
                "maxCommitsCount": 10,
                "commitsSince": "2024-01-01",
                "trackByFileExtension": {"ts": ["**.ts"]},
                "trackByFileContent": {"aaa": {"globs": ["**.ts"], "phrase": "aaa"}},
                "strategy": "tree-query",
                "ignoreModifiedFiles": True,
            }
        )
        assert config.repository_path == tmp_path.resolve()
        assert config.max_commits_count == 10
        assert config.commits_since == "2024-01-01"
        assert config.strategy == StrategyType.TREE_QUERY
        assert config.ignore_modified_only_commits is True

    def test_defaults_fill_missing_values(self, tmp_path):
        config = MeasurementConfig.from_dict(
            {"repositoryPath": str(tmp_path)}, archive_format="zip", max_concurrency=2
        )
        assert config.archive_format == "zip"
        assert config.max_concurrency == 2

    def test_mapping_wins_over_defaults(self, tmp_path):
        config = MeasurementConfig.from_dict(
            {"repositoryPath": str(tmp_path), "archiveFormat": "tar"}, archive_format="zip"
        )
        assert config.archive_format == "tar"

    def test_unknown_key(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Unknown configuration key"):
            MeasurementConfig.from_dict({"repositoryPath": str(tmp_path), "colour": "blue"})

    def test_missing_repository(self):
        with pytest.raises(ConfigurationError, match="repositoryPath"):
            MeasurementConfig.from_dict({"strategy": "differential"})


class TestLoadConfig:
    """Tests for loading JSON configuration files."""

    def test_load_with_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MEASURE_ARCHIVE_FORMAT", "zip")
        path = tmp_path / "measure.json"
        path.write_text(
            json.dumps(
                {
                    "repositoryPath": str(tmp_path),
                    "strategy": "differential",
                    "trackByFileExtension": {"ts": ["**.ts"]},
                }
            )
        )

        config = load_config(path, strategy="full-snapshot", commits_until=None)

        assert config.strategy == StrategyType.FULL_SNAPSHOT
        assert config.commits_until is None
        assert config.archive_format == "zip"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_config(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_config(path)

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[]")
        with pytest.raises(ConfigurationError, match="JSON object"):
            load_config(path)
