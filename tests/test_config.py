import pytest

from config import AppConfig, CONFIG_PATH_ENV, load_config


def test_missing_file_means_defaults(tmp_path):
    cfg = load_config(str(tmp_path / "nope.yaml"))
    assert cfg == AppConfig()
    assert cfg.secret_name == "my-secret"
    assert cfg.secret_key == "time"
    assert cfg.pod_name == "my-pod"
    assert cfg.poll_interval_sec == 1.0
    assert cfg.cycle_http is None


def test_loads_yaml(tmp_path):
    p = tmp_path / "config.yaml"
    p.write_text(
        "secret_name: s1\n"
        "pod_name: p1\n"
        "namespace: probes\n"
        "mount_path: /mnt/secret/\n"
        "poll_interval_sec: 0.5\n"
        "write_retries: 5\n"
        "max_cycles: 10\n"
        "cycle_http:\n"
        "  enabled: true\n"
        "  url: http://collector/cycles\n"
        "  max_retries: 1\n",
        encoding="utf-8",
    )
    cfg = load_config(str(p))

    assert cfg.secret_name == "s1"
    assert cfg.pod_name == "p1"
    assert cfg.namespace == "probes"
    assert cfg.mount_path == "/mnt/secret"
    assert cfg.poll_interval_sec == 0.5
    assert cfg.write_retries == 5
    assert cfg.max_cycles == 10
    assert cfg.cycle_http.url == "http://collector/cycles"
    assert cfg.cycle_http.max_retries == 1
    assert cfg.cycle_http.drop_on_full is True


def test_env_var_selects_file(tmp_path, monkeypatch):
    p = tmp_path / "probe.yaml"
    p.write_text("pod_name: from-env\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_PATH_ENV, str(p))
    assert load_config().pod_name == "from-env"


def test_empty_file_means_defaults(tmp_path):
    p = tmp_path / "config.yaml"
    p.write_text("", encoding="utf-8")
    assert load_config(str(p)) == AppConfig()


def test_disabled_cycle_http_is_ignored(tmp_path):
    p = tmp_path / "config.yaml"
    p.write_text("cycle_http:\n  enabled: false\n", encoding="utf-8")
    assert load_config(str(p)).cycle_http is None


@pytest.mark.parametrize(
    "body, field",
    [
        ("poll_interval_sec: 0\n", "poll_interval_sec"),
        ("write_retries: -1\n", "write_retries"),
        ("inbox_size: 0\n", "inbox_size"),
        ("max_cycles: -2\n", "max_cycles"),
        ("pod_name: '  '\n", "pod_name"),
        ("cycle_http:\n  enabled: true\n", "cycle_http.url"),
        ("- a\n- b\n", "mapa"),
    ],
)
def test_invalid_values(tmp_path, body, field):
    p = tmp_path / "config.yaml"
    p.write_text(body, encoding="utf-8")
    with pytest.raises(ValueError, match=field):
        load_config(str(p))
