import pytest

from fingerpress import main as cli
from fingerpress.core.config import DEFAULT_PRESET, QUICK_PRESET, STRICT_PRESET
from fingerpress.runtime import run_loop


@pytest.fixture
def runs(monkeypatch):
    calls = []
    monkeypatch.setattr(run_loop, "run", lambda **kw: calls.append(kw))
    return calls


def test_no_command_runs_quick_demo(runs):
    assert cli.main([]) == 0
    assert runs[0]["preset"] is QUICK_PRESET


def test_no_command_honours_preset(runs):
    cli.main(["--preset", "Strict"])
    assert runs[0]["preset"] is STRICT_PRESET


def test_demo_defaults_to_default_preset(runs, tmp_path):
    cli.main(["demo", "--exercises", "2", "--profile", str(tmp_path / "p.json")])
    kw = runs[0]
    assert kw["preset"] is DEFAULT_PRESET
    assert kw["exercises"] == 2
    assert kw["profile_path"] == tmp_path / "p.json"
