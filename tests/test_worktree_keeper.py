"""Integration tests for WorktreeKeeper against real repositories."""

import os
import shutil

import git
import pytest

from git_worktree_keeper.config import Config
from git_worktree_keeper.core import WorktreeKeeper
from git_worktree_keeper.exceptions import NotARepository
from git_worktree_keeper.models.branch import BranchType


class TestKeeperSetup:
    """Test construction and repository discovery."""

    def test_dict_config(self, git_repo):
        with WorktreeKeeper(git_repo.working_dir, {"remote_name": "upstream", "settle_delay": 0}) as keeper:
            assert isinstance(keeper.config, Config)
            assert keeper.config.remote_name == "upstream"

    def test_not_a_repository(self, temp_dir):
        plain = temp_dir / "plain"
        plain.mkdir()

        with pytest.raises(NotARepository):
            WorktreeKeeper(str(plain))

    def test_opened_from_linked_worktree(self, git_repo_with_branches, temp_dir, config):
        """Test that a keeper opened inside a linked worktree manages the main repository."""
        linked = temp_dir / "login"
        git_repo_with_branches.git.worktree("add", str(linked), "feature/login")
        main_root = os.path.normpath(git_repo_with_branches.working_dir)

        with WorktreeKeeper(str(linked), config) as keeper:
            assert keeper.repo_root == main_root
            assert keeper.context_path == str(linked)

            records = keeper.list_worktrees()
            active = [record for record in records if record.is_active]
            assert [record.path for record in active] == [str(linked)]
            assert keeper.resolve_main_worktree().path == main_root

    def test_git_version(self, keeper):
        assert keeper.git_version()


class TestListWorktrees:
    def test_main_worktree(self, keeper, git_repo_with_branches):
        records = keeper.list_worktrees()

        assert len(records) == 1
        main = records[0]
        assert main.is_main is True
        assert main.is_active is True
        assert main.branch == "main"
        assert main.head_commit == git_repo_with_branches.head.commit.hexsha
        assert main.status.clean is True

    def test_on_change_notified(self, keeper):
        notified = []
        keeper.on_change(notified.append)

        keeper.create_worktree("bugfix/crash")

        assert len(notified) == 1
        assert len(notified[0]) == 2

    def test_refresh_skipped_while_operation_runs(self, keeper):
        """Test that a refresh requested mid-operation is skipped rather than run alongside it."""
        nested = []
        keeper.on_change(lambda records: nested.append(keeper.refresh()))

        keeper.create_worktree("bugfix/crash")

        assert nested == [False]
        assert len(keeper.state_cache.snapshot()) == 2

    def test_refresh_blocked_by_held_lock(self, keeper):
        with keeper._operation_lock:
            assert keeper.refresh() is False
        assert keeper.refresh() is True

    def test_default_locations(self, keeper, temp_dir):
        assert keeper.default_worktree_location() == str(temp_dir)
        assert keeper.worktree_path_for("origin/feature/x") == str(temp_dir / "feature-x")


class TestProvisionEverything:
    """Test bulk provisioning end to end."""

    def test_create_for_all_branches(self, git_repo_with_remote, temp_dir, config):
        with WorktreeKeeper(git_repo_with_remote.working_dir, config) as keeper:
            outcome = keeper.create_for_all_branches(BranchType.BOTH)

            assert outcome.created == ["bugfix/crash", "feature/login", "origin/feature/search"]
            assert outcome.errors == []
            assert keeper.branches_without_worktrees() == []

            branches = sorted(record.branch for record in keeper.list_worktrees())
            assert branches == ["bugfix/crash", "feature/login", "feature/search", "main"]

        search = git.Repo(temp_dir / "feature-search")
        assert search.active_branch.tracking_branch().name == "origin/feature/search"

    def test_second_run_skips_everything(self, keeper, temp_dir):
        first = keeper.create_for_all_branches()
        shutil.rmtree(temp_dir / "bugfix-crash")
        (temp_dir / "bugfix-crash").mkdir()

        second = keeper.create_for_all_branches()

        assert first.created == ["bugfix/crash", "feature/login"]
        assert second.skipped == ["bugfix/crash"]
        assert second.created == []

    def test_discover_remote_branches(self, git_repo_with_remote, config):
        repo = git_repo_with_remote
        repo.git.push("origin", "main:refs/heads/feature/fresh")
        repo.git.update_ref("-d", "refs/remotes/origin/feature/fresh")

        with WorktreeKeeper(repo.working_dir, config) as keeper:
            discovered = keeper.discover_remote_branches()
            again = keeper.discover_remote_branches()

        assert discovered == ["origin/feature/fresh"]
        assert again == []


class TestMaintenance:
    """Test discard and clean operations."""

    def test_discard_changes(self, keeper):
        path = keeper.create_worktree("bugfix/crash")
        with open(os.path.join(path, "README.md"), "a") as f:
            f.write("edit\n")
        with open(os.path.join(path, "scratch.txt"), "w") as f:
            f.write("scratch\n")
        assert keeper.state_cache.find(path).status.clean is True
        keeper.refresh()
        assert keeper.state_cache.find(path).status.clean is False

        keeper.discard_changes(path)

        assert not os.path.exists(os.path.join(path, "scratch.txt"))
        with open(os.path.join(path, "README.md")) as f:
            assert f.read() == "# Test Repository\n"
        assert keeper.state_cache.find(path).status.clean is True

    def test_clean_keeps_tracked_edits(self, keeper):
        path = keeper.create_worktree("bugfix/crash")
        with open(os.path.join(path, "README.md"), "a") as f:
            f.write("edit\n")
        os.makedirs(os.path.join(path, "build", "out"))

        keeper.clean_worktree(path)

        assert not os.path.exists(os.path.join(path, "build"))
        record = keeper.state_cache.find(path)
        assert record.status.unstaged_count == 1
        assert record.status.untracked_count == 0

    def test_discard_all_and_summary(self, keeper):
        login = keeper.create_worktree("feature/login")
        crash = keeper.create_worktree("bugfix/crash")
        for path in (login, crash):
            with open(os.path.join(path, "new.txt"), "w") as f:
                f.write("new\n")
        keeper.refresh()

        summary = keeper.status_summary()
        assert summary == {"total": 3, "clean": 1, "dirty": 2, "locked": 0, "prunable": 0}

        progress = []
        result = keeper.discard_all_changes(on_progress=lambda index, total, name: progress.append(index))

        assert sorted(result.completed) == sorted([login, crash])
        assert result.failed == []
        assert progress == [1, 2]
        assert keeper.status_summary()["dirty"] == 0

    def test_clean_all(self, keeper):
        path = keeper.create_worktree("bugfix/crash")
        with open(os.path.join(path, "junk.txt"), "w") as f:
            f.write("junk\n")

        result = keeper.clean_all()

        assert result.total == 2
        assert not os.path.exists(os.path.join(path, "junk.txt"))

    def test_prune_worktrees(self, keeper):
        path = keeper.create_worktree("bugfix/crash")
        shutil.rmtree(path)

        assert keeper.prune_worktrees() is True
        assert keeper.state_cache.find(path) is None
