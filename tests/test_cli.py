"""Tests for the command-line interface."""

import importlib
import json
import os

import pytest

from git_worktree_keeper.cli.args import parse_args

# The package re-exports main(), which shadows the submodule of the same name
cli_main = importlib.import_module("git_worktree_keeper.cli.main")


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    """Keep pytest's log capture handlers in place."""
    monkeypatch.setattr(cli_main, "setup_logging", lambda **kwargs: None)


def output(capsys) -> str:
    """Captured stdout with rich's line wrapping undone."""
    return " ".join(capsys.readouterr().out.split())


class TestArgs:
    def test_default_command_is_list(self):
        parsed = parse_args([])
        assert parsed.command == "list"
        assert parsed.legend is False

    def test_create_modes_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["create", "feat", "-b", "--orphan"])

    def test_branch_type_choices(self):
        assert parse_args(["branches", "--type", "local"]).branch_type == "local"
        with pytest.raises(SystemExit):
            parse_args(["branches", "--type", "tags"])


class TestCommands:
    """Test commands end to end against a real repository."""

    def test_list(self, git_repo_with_branches, capsys):
        repo = git_repo_with_branches.working_dir

        assert cli_main.main(["-C", repo, "list", "--legend"]) == 0

        text = output(capsys)
        assert "test_repo" in text
        assert "Main repository" in text

    def test_no_command(self, git_repo_with_branches):
        assert cli_main.main(["-C", git_repo_with_branches.working_dir]) == 0

    def test_branches(self, git_repo_with_branches, capsys):
        assert cli_main.main(["-C", git_repo_with_branches.working_dir, "branches"]) == 0

        text = output(capsys)
        assert "bugfix/crash" in text
        assert "feature/login" in text

    def test_create_and_remove(self, git_repo_with_branches, temp_dir, capsys):
        repo = git_repo_with_branches.working_dir
        target = temp_dir / "bugfix-crash"

        assert cli_main.main(["-C", repo, "create", "bugfix/crash"]) == 0
        assert os.path.isdir(target)

        assert cli_main.main(["-C", repo, "remove", str(target), "-y"]) == 0
        assert not os.path.exists(target)

    def test_remove_declined(self, git_repo_with_branches, temp_dir, monkeypatch):
        repo = git_repo_with_branches.working_dir
        git_repo_with_branches.git.worktree("add", str(temp_dir / "crash"), "bugfix/crash")
        monkeypatch.setattr(cli_main.console, "input", lambda prompt: "n")

        assert cli_main.main(["-C", repo, "remove", str(temp_dir / "crash")]) == 0
        assert os.path.isdir(temp_dir / "crash")

    def test_remove_main_repository_fails(self, git_repo_with_branches, capsys):
        repo = git_repo_with_branches.working_dir

        assert cli_main.main(["-C", repo, "remove", repo, "-y"]) == 1

        assert "cannot be removed" in output(capsys)
        assert os.path.isdir(repo)

    def test_create_all(self, git_repo_with_branches, temp_dir, capsys):
        repo = git_repo_with_branches.working_dir

        assert cli_main.main(["-C", repo, "create-all", "-y"]) == 0

        assert os.path.isdir(temp_dir / "bugfix-crash")
        assert os.path.isdir(temp_dir / "feature-login")
        assert "Created 2 worktrees" in output(capsys)

    def test_discard_requires_path_or_all(self, git_repo_with_branches):
        assert cli_main.main(["-C", git_repo_with_branches.working_dir, "discard"]) == 2

    def test_clean_all(self, git_repo_with_branches):
        repo = git_repo_with_branches.working_dir
        with open(os.path.join(repo, "junk.txt"), "w") as f:
            f.write("junk\n")

        assert cli_main.main(["-C", repo, "clean", "--all", "-y"]) == 0
        assert not os.path.exists(os.path.join(repo, "junk.txt"))

    def test_not_a_repository(self, temp_dir, capsys):
        plain = temp_dir / "plain"
        plain.mkdir()

        assert cli_main.main(["-C", str(plain), "list"]) == 1
        assert "Not a git repository" in output(capsys)

    def test_config_file(self, git_repo_with_branches, temp_dir, capsys):
        config_path = temp_dir / "keeper.json"
        config_path.write_text(json.dumps({"exclude_branches": ["bugfix/*"]}))

        assert cli_main.main(
            ["--config", str(config_path), "-C", git_repo_with_branches.working_dir, "branches"]
        ) == 0

        text = output(capsys)
        assert "feature/login" in text
        assert "bugfix/crash" not in text

    def test_invalid_config_file(self, git_repo_with_branches, temp_dir, capsys):
        config_path = temp_dir / "keeper.json"
        config_path.write_text(json.dumps({"sort_by": "size"}))

        assert cli_main.main(["--config", str(config_path), "-C", git_repo_with_branches.working_dir]) == 1
        assert "sort_by" in output(capsys)
