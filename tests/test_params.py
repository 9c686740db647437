"""
Tests for parameter documents and the hot-reload watcher.
"""
import json
import os

import pytest

from armor_vision.config import BlobParams, OreCubeConfig, SnipeConfig, TrackerConfig
from armor_vision.params import RuntimeParamWatcher, from_dict, load_config


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")


class TestFromDict:
    def test_camel_case_keys(self):
        p = from_dict(BlobParams, {"minArea": 50.0, "filterByColor": False, "blobColor": 255})
        assert p.min_area == 50.0
        assert p.filter_by_color is False
        assert p.blob_color == 255
        assert p.max_area == BlobParams().max_area

    def test_nested_sections(self):
        cfg = from_dict(
            SnipeConfig,
            {"enemyTeam": "red", "lightBar": {"binaryThreshold": 80}, "match": {"maxLengthRatio": 2.0}},
        )
        assert cfg.enemy_team == "red"
        assert cfg.light_bar.binary_threshold == 80
        assert cfg.light_bar.min_area == 20.0
        assert cfg.match.max_length_ratio == 2.0

    def test_list_becomes_tuple(self):
        cfg = from_dict(OreCubeConfig, {"input_size": [416, 416], "class_names": ["a", "b"]})
        assert cfg.input_size == (416, 416)
        assert cfg.class_names == ["a", "b"]

    def test_unknown_keys_ignored(self, caplog):
        cfg = from_dict(TrackerConfig, {"no_such_field": 1, "max_coast_frames": 5})
        assert cfg.max_coast_frames == 5
        assert "no_such_field" in caplog.text


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "nope.json", BlobParams) == BlobParams()

    def test_bad_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(path, BlobParams)

    def test_non_object_document(self, tmp_path):
        path = tmp_path / "list.json"
        write_json(path, [1, 2, 3])
        with pytest.raises(ValueError):
            load_config(path, BlobParams)

    def test_reads_file(self, tmp_path):
        path = tmp_path / "blob.json"
        write_json(path, {"thresholdStep": 5.0})
        assert load_config(path, BlobParams).threshold_step == 5.0


class TestRuntimeParamWatcher:
    def test_initial_load(self, tmp_path):
        path = tmp_path / "tracker.json"
        write_json(path, {"predict_lead_time_s": 0.25})
        watcher = RuntimeParamWatcher(path, TrackerConfig)
        assert watcher.config.predict_lead_time_s == 0.25
        assert watcher.maybe_reload() is None

    def test_reload_on_change(self, tmp_path):
        path = tmp_path / "tracker.json"
        write_json(path, {"predict_lead_time_s": 0.25})
        watcher = RuntimeParamWatcher(path, TrackerConfig)

        write_json(path, {"predict_lead_time_s": 0.125, "max_coast_frames": 12})
        st = path.stat()
        os.utime(path, (st.st_atime, st.st_mtime + 5))

        new_cfg = watcher.maybe_reload()
        assert new_cfg is not None
        assert new_cfg.predict_lead_time_s == 0.125
        assert new_cfg.max_coast_frames == 12
        assert watcher.maybe_reload() is None

    def test_missing_file_keeps_defaults(self, tmp_path):
        watcher = RuntimeParamWatcher(tmp_path / "absent.json", TrackerConfig)
        assert watcher.config == TrackerConfig()
        assert watcher.maybe_reload() is None

    def test_bad_edit_keeps_old_config(self, tmp_path):
        path = tmp_path / "tracker.json"
        write_json(path, {"max_coast_frames": 7})
        watcher = RuntimeParamWatcher(path, TrackerConfig)

        path.write_text("{broken", encoding="utf-8")
        st = path.stat()
        os.utime(path, (st.st_atime, st.st_mtime + 5))

        assert watcher.maybe_reload() is None
        assert watcher.config.max_coast_frames == 7
