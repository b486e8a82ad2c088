import pytest

from rsyncuptime.config import Settings, load_settings


def test_defaults_when_environment_is_empty():
    settings = load_settings({})
    assert settings.rsync_url == "rsync://sagres.c3sl.ufpr.br/"
    assert settings.polling_interval == 300.0
    assert settings.port == "8080"


def test_defaults_match_dataclass_defaults():
    assert load_settings({}) == Settings()


def test_rsync_url_override():
    settings = load_settings({"RSYNC_URL": "rsync://mirror.example.com/"})
    assert settings.rsync_url == "rsync://mirror.example.com/"
    assert settings.port == Settings().port


def test_port_override():
    assert load_settings({"PORT": "9191"}).port == "9191"


def test_valid_interval_override():
    settings = load_settings({"POLLING_INTERVAL_SECONDS": "60"})
    assert settings.polling_interval == 60.0


def test_interval_with_plus_sign_is_accepted():
    assert load_settings({"POLLING_INTERVAL_SECONDS": "+45"}).polling_interval == 45.0


@pytest.mark.parametrize("value", ["abc", "0", "-5", "1.5", " 10", "1_0"])
def test_invalid_interval_keeps_default(value):
    settings = load_settings({"POLLING_INTERVAL_SECONDS": value})
    assert settings.polling_interval == Settings().polling_interval


def test_empty_values_are_ignored():
    settings = load_settings({"RSYNC_URL": "", "PORT": "", "POLLING_INTERVAL_SECONDS": ""})
    assert settings == Settings()