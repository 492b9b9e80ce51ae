import pytest
import yaml

from easeprobe.merge import MergeError, merge_documents, merge_yaml_files

HOOK_A = "https://hooks.example.com/a"
HOOK_B = "https://hooks.example.com/b"


def _write(directory, name, document):
    (directory / name).write_text(yaml.safe_dump(document, sort_keys=False))


def _merged(tmp_path, first, second):
    _write(tmp_path, "config1.yaml", first)
    _write(tmp_path, "config2.yaml", second)
    return yaml.safe_load(merge_yaml_files(tmp_path))


def _probe(name, **fields):
    return {"name": name, **fields}


def test_section_merge(tmp_path):
    web = [_probe("first", url="http://localhost:8080", method="GET")]
    sockets = [_probe("second", host="localhost:8080")]
    alerts = {"slack": [_probe("slack", webhook=HOOK_A)]}
    result = _merged(tmp_path, {"http": web, "tcp": sockets}, {"notify": alerts})
    assert result == {"http": web, "tcp": sockets, "notify": alerts}


def test_same_probe_merge(tmp_path):
    one = _probe("first", url="http://localhost:8080", method="GET")
    two = _probe("second", url="http://localhost:8181", method="GET")
    result = _merged(tmp_path, {"http": [one]}, {"http": [two]})
    assert result == {"http": [one, two]}


def test_notify_merge(tmp_path):
    slack = [_probe("slack", webhook=HOOK_A)]
    discord = [_probe("discord", webhook=HOOK_B)]
    result = _merged(tmp_path, {"notify": {"slack": slack}}, {"notify": {"discord": discord}})
    assert result == {"notify": {"slack": slack, "discord": discord}}


def test_notify_array_merge(tmp_path):
    first = _probe("slack1", webhook=HOOK_A)
    second = _probe("slack2", webhook=HOOK_A)
    result = _merged(tmp_path, {"notify": {"slack": [first]}}, {"notify": {"slack": [second]}})
    assert result == {"notify": {"slack": [first, second]}}


def test_settings_merge(tmp_path):
    retry = {"retry": {"times": 5, "interval": 10}}
    base = {
        "settings": {
            "name": "base",
            "sla": {"schedule": "daily", "time": "00:00"},
            "notify": retry,
        }
    }
    override = {
        "settings": {
            "name": "override",
            "probe": {"timeout": "10s", "interval": "30s"},
            "sla": {"schedule": "weekly"},
        }
    }
    result = _merged(tmp_path, base, override)
    assert result == {
        "settings": {
            "name": "override",
            "probe": {"timeout": "10s", "interval": "30s"},
            "notify": retry,
            "sla": {"schedule": "weekly", "time": "00:00"},
        }
    }


def test_failed(tmp_path):
    with pytest.raises(MergeError):
        merge_yaml_files("[]")

    (tmp_path / "config.yaml").write_text("wrong yaml")
    with pytest.raises(MergeError):
        merge_yaml_files(tmp_path)


def test_empty_directory_fails(tmp_path):
    with pytest.raises(MergeError, match="yaml files not found"):
        merge_yaml_files(tmp_path)


def test_invalid_yaml_syntax_fails(tmp_path):
    (tmp_path / "config.yaml").write_text("key: [unclosed")
    with pytest.raises(MergeError):
        merge_yaml_files(tmp_path)


def test_merge_documents_rules():
    into = {"a": 1, "b": {"c": [1]}, "d": "x"}
    source = {"a": 2, "b": {"c": [2], "e": True}}
    assert merge_documents(into, source) == {"a": 2, "b": {"c": [1, 2], "e": True}, "d": "x"}
    assert into == {"a": 1, "b": {"c": [1]}, "d": "x"}


def test_merge_documents_mismatch():
    with pytest.raises(MergeError):
        merge_documents({"a": [1]}, {"a": {"b": 1}})
    assert merge_documents({"a": {"b": 1}}, {"a": 5}) == {"a": 5}
    assert merge_documents({}, {"a": [1]}) == {"a": [1]}