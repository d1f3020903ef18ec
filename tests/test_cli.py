import pytest

from scripts import run_scenarios


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch):
    monkeypatch.setattr(run_scenarios, "setup_logging", lambda **kwargs: None)
    monkeypatch.setattr(run_scenarios, "load_dotenv", lambda *a, **kw: False)


def test_list_prints_every_suite(capsys):
    assert run_scenarios.main(["--list"]) == 0
    out = capsys.readouterr().out
    for suite in ("[login]", "[user]", "[orders]"):
        assert suite in out
    assert "order_missing_physician_npi" in out


def test_missing_base_uri_exits_with_configuration_code(monkeypatch):
    monkeypatch.delenv("HARNESS_BASE_URI", raising=False)
    monkeypatch.chdir("/")
    assert run_scenarios.main(["-s", "login_valid"]) == 2


def test_unknown_scenario_exits_with_configuration_code(monkeypatch):
    monkeypatch.setenv("HARNESS_BASE_URI", "https://api.test.local/api")
    assert run_scenarios.main(["-s", "not_a_scenario"]) == 2


def test_out_of_range_workers_is_rejected(monkeypatch):
    monkeypatch.setenv("HARNESS_BASE_URI", "https://api.test.local/api")
    assert run_scenarios.main(["--workers", "500"]) == 2
