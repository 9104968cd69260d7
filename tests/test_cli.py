"""Tests for the docvault command line."""

import json
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from conftest import ACME_ID, company
from docvault.cli import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def invoke(runner: CliRunner, root: Path, *args: str):
    return runner.invoke(cli, ["--root", str(root), *args])


def test_init_creates_config_once(runner: CliRunner, tmp_path: Path):
    target = tmp_path / "new"
    result = runner.invoke(cli, ["init", str(target)])
    assert result.exit_code == 0, result.output
    config = yaml.safe_load((target / "docvault.yaml").read_text(encoding="utf-8"))
    assert len(config["repository_id"]) == 26

    result = runner.invoke(cli, ["init", str(target)])
    assert result.exit_code == 1
    assert "already initialized" in result.output


def test_missing_root_and_uninitialized_directory(runner: CliRunner, tmp_path: Path):
    result = invoke(runner, tmp_path / "nope", "list")
    assert result.exit_code == 2

    result = invoke(runner, tmp_path, "list")
    assert result.exit_code == 1
    assert "not initialized" in result.output


def test_open_assigns_repository_id(runner: CliRunner, repo_root: Path):
    assert invoke(runner, repo_root, "stats").exit_code == 0
    config = yaml.safe_load((repo_root / "docvault.yaml").read_text(encoding="utf-8"))
    assert len(config["repository_id"]) == 26
    assert config["aliases"] == {"co": "companies"}


def test_list_formats(runner: CliRunner, repo_root: Path):
    result = invoke(runner, repo_root, "list", "--format", "json")
    assert result.exit_code == 0, result.output
    [row] = json.loads(result.output)
    assert row["path"] == "companies/acme-corp-9g5fav.md"
    assert row["id"] == ACME_ID
    assert row["name"] == "Acme Corp"
    assert row["metadata"]["name"] == "Acme Corp"

    result = invoke(runner, repo_root, "list", "-c", "co", "--format", "csv")
    assert result.output.splitlines() == [
        '"path","collection","id","name"',
        f'"companies/acme-corp-9g5fav.md","companies","{ACME_ID}","Acme Corp"',
    ]

    result = invoke(runner, repo_root, "list", "--query", "name=nobody", "--format", "json")
    assert json.loads(result.output) == []

    result = invoke(runner, repo_root, "list")
    assert result.exit_code == 0
    assert "Documents (1)" in result.output


def test_show(runner: CliRunner, repo_root: Path):
    result = invoke(runner, repo_root, "show", "9g5fav")
    assert result.exit_code == 0
    assert result.output.startswith("---\n")
    assert "name: Acme Corp" in result.output

    result = invoke(runner, repo_root, "show", "zzzzzz")
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_search_top(runner: CliRunner, repo_root: Path):
    result = invoke(runner, repo_root, "search", "--top", "Acme Corp")
    assert result.exit_code == 0
    assert result.output.strip() == f"{ACME_ID}\tcompanies/acme-corp-9g5fav.md\tAcme Corp"

    assert invoke(runner, repo_root, "search", "--top", "zebra").exit_code == 1
    assert invoke(runner, repo_root, "search", "zebra").exit_code == 0


def test_create_prints_new_id(runner: CliRunner, repo_root: Path):
    result = invoke(runner, repo_root, "create", "co", "Beta Corp", "--field", "country=de")
    assert result.exit_code == 0, result.output
    new_id = result.output.strip().splitlines()[-1]
    path = repo_root / "companies" / f"beta-corp-{new_id[-6:]}.md"
    assert "country: DE" in path.read_text(encoding="utf-8")

    shown = invoke(runner, repo_root, "show", new_id)
    assert "name: Beta Corp" in shown.output


def test_create_rejects_bad_input(runner: CliRunner, repo_root: Path):
    assert invoke(runner, repo_root, "create", "co", "A", "B").exit_code == 1
    assert invoke(runner, repo_root, "create", "co", "A", "--field", "novalue").exit_code == 1
    assert invoke(runner, repo_root, "create", "co", "A", "--template", "missing").exit_code == 1
    assert invoke(runner, repo_root, "create", "invoices", "A").exit_code == 1


def test_check_and_fix(runner: CliRunner, repo_root: Path):
    (repo_root / "companies" / "wrong.md").write_text(
        company("01hq3k5m7n9p2r4s6t8wgamma1", "Gamma"), encoding="utf-8"
    )

    result = invoke(runner, repo_root, "check")
    assert result.exit_code == 1
    assert "filename.mismatch" in result.output

    result = invoke(runner, repo_root, "check", "--fix", "--json")
    assert result.exit_code == 0, result.output
    report = json.loads(result.output)
    assert report["fixed"] == 1
    assert report["issues"] == []
    assert (repo_root / "companies" / "gamma-gamma1.md").is_file()
    assert (repo_root / ".docvault" / "audit.log").is_file()

    assert invoke(runner, repo_root, "check", "-c", "co").exit_code == 0


def test_prune_requires_fix(runner: CliRunner, repo_root: Path):
    result = invoke(runner, repo_root, "check", "--prune-attachments")
    assert result.exit_code == 2
    assert "--prune-attachments requires --fix" in result.output


def test_graph_and_relationships(runner: CliRunner, repo_root: Path, tmp_path: Path):
    (repo_root / "companies" / "beta-corp-bx2kq7.md").write_text(
        company("01hq3k5m7n9p2r4s6t8wbx2kq7", "Beta Corp") + "Partner of [[9g5fav]].\n",
        encoding="utf-8",
    )

    result = invoke(runner, repo_root, "graph", "--format", "mermaid")
    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "graph TD",
        f'  n_{ACME_ID}["{ACME_ID}"]',
        '  n_01hq3k5m7n9p2r4s6t8wbx2kq7["01hq3k5m7n9p2r4s6t8wbx2kq7"]',
        f"  n_01hq3k5m7n9p2r4s6t8wbx2kq7 --> n_{ACME_ID}",
    ]

    out = tmp_path / "graph.dot"
    assert invoke(runner, repo_root, "graph", "--scope", "co", "--out", str(out)).exit_code == 0
    text = out.read_text(encoding="utf-8")
    assert text.startswith("digraph docvault {")
    assert 'label="docvault: companies";' in text

    result = invoke(runner, repo_root, "relationships", "9g5fav")
    assert result.exit_code == 0
    assert "Incoming (1)" in result.output

    result = invoke(runner, repo_root, "stats")
    assert result.exit_code == 0
    assert "companies" in result.output
