"""Tests for the click command line."""

import pytest
from click.testing import CliRunner

from lumina.cli import cli


@pytest.fixture
def run(isolated_db):
    runner = CliRunner()
    config_path = str(isolated_db / "config.yaml")

    def _run(*args, **kwargs):
        return runner.invoke(cli, ["--config", config_path, *args], **kwargs)

    return _run


def test_version(run):
    result = run("version")
    assert result.exit_code == 0
    assert "lumina-guard v" in result.output


def test_status_is_default_command(run):
    result = run()
    assert result.exit_code == 0
    assert "Lockout state:       open" in result.output
    assert "Signed in as:        -" in result.output


def test_login_whoami_logout(run):
    result = run("login", "MWTINC", "--secret", "JC222@Vemous$24")
    assert result.exit_code == 0, result.output
    assert "Welcome, MWTINC" in result.output

    result = run("whoami")
    assert "MWTINC  role=admin  department=Executive" in result.output

    run("logout")
    assert "Not signed in." in run("whoami").output


def test_login_prompts_for_secret(run):
    result = run("login", "LuminaAdmin", input="Lumina#2024!\n")
    assert result.exit_code == 0, result.output
    assert "Welcome, LuminaAdmin" in result.output


def test_failed_logins_report_remaining_then_lock(run):
    result = run("login", "LuminaAdmin", "--secret", "bad")
    assert result.exit_code == 1
    assert "You have 2 attempts remaining" in result.output
    run("login", "LuminaAdmin", "--secret", "bad")
    result = run("login", "LuminaAdmin", "--secret", "bad")
    assert "locked for 5 minutes" in result.output

    result = run("login", "LuminaAdmin", "--secret", "Lumina#2024!")
    assert result.exit_code == 1
    assert "SYSTEM LOCKED" in result.output
    assert "Lockout state:       locked" in run("status").output


def test_search_and_history(run):
    result = run("search", "quantum", "computing")
    assert result.exit_code == 0, result.output
    assert "quantum computing - Wikipedia, The Free Encyclopedia" in result.output

    result = run("search", "phishing", "kits")
    assert "No results found." in result.output

    result = run("history")
    assert " 1. phishing kits" in result.output
    assert " 2. quantum computing" in result.output

    run("history", "--clear")
    assert "No search history." in run("history").output


def test_firewall_edits_require_login(run):
    result = run("firewall", "set", "--level", "high")
    assert result.exit_code == 1
    assert "require an authenticated administrator" in result.output

    run("login", "SecurityTeam", "--secret", "Secure@Lumina789")
    result = run("firewall", "set", "--level", "high", "--no-malware")
    assert result.exit_code == 0, result.output
    assert "Security level:        high" in result.output
    assert "Intrusion detection:   False" in result.output

    result = run("firewall", "add-word", "Casino")
    assert "casino" in result.output
    result = run("firewall", "update-definitions")
    assert result.exit_code == 1
    assert "malware protection" in result.output


def test_firewall_set_needs_an_option(run):
    run("login", "SecurityTeam", "--secret", "Secure@Lumina789")
    result = run("firewall", "set")
    assert result.exit_code == 2
    assert "Nothing to change." in result.output


def test_firewall_show(run):
    result = run("firewall", "show")
    assert result.exit_code == 0
    assert "*.google.com, *.bing.com, *.duckduckgo.com" in result.output
    assert "malware, phishing, exploit" in result.output


def test_reset_only_for_distinguished_principal(run):
    run("login", "LuminaAdmin", "--secret", "Lumina#2024!")
    run("firewall", "set", "--level", "low")
    result = run("reset", "--yes")
    assert result.exit_code == 1
    assert "distinguished principal" in result.output

    run("login", "MWTINC", "--secret", "JC222@Vemous$24")
    result = run("reset", "--yes")
    assert result.exit_code == 0, result.output
    assert "System reset successful" in result.output
    assert "Security level:        medium" in run("firewall", "show").output


def test_init_copies_template(run, tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    result = run("init")
    assert result.exit_code == 0, result.output
    config_file = tmp_path / "home" / ".lumina" / "config.yaml"
    assert config_file.exists()
    assert "distinguished_principal: MWTINC" in config_file.read_text()

    result = run("init")
    assert "Config already exists" in result.output
