"""Tests for worktree removal and the switch-away protocol."""

import os

import pytest

from git_worktree_keeper.config import Config
from git_worktree_keeper.exceptions import (
    CommandFailed,
    ContextSwitchFailed,
    ErrorKind,
    InternalError,
    MainRepositoryProtected,
)
from git_worktree_keeper.models.worktree import WorktreeRecord
from tests.conftest import porcelain


@pytest.fixture
def linked_path(temp_dir):
    path = temp_dir / "feat-x"
    path.mkdir()
    return str(path)


def remove_calls(fake_runner):
    return fake_runner.commands("worktree", "remove")


class TestMainRepositoryProtection:
    """Test that the main repository is never removed."""

    @pytest.mark.parametrize("force", [False, True])
    def test_main_root_rejected_without_git(self, fake_root, fake_runner, make_fake_keeper, force):
        keeper = make_fake_keeper(context_path=fake_root)
        calls_before = len(fake_runner.calls)

        with pytest.raises(MainRepositoryProtected) as exc_info:
            keeper.remove_worktree(fake_root, force=force)

        assert exc_info.value.kind is ErrorKind.MAIN_REPOSITORY_PROTECTED
        assert len(fake_runner.calls) == calls_before

    def test_main_root_with_trailing_separator(self, fake_root, fake_runner, make_fake_keeper):
        keeper = make_fake_keeper()

        with pytest.raises(MainRepositoryProtected):
            keeper.remove_worktree(fake_root + os.sep)

        assert remove_calls(fake_runner) == []

    def test_git_main_working_tree_refusal_translated(self, linked_path, fake_runner, make_fake_keeper):
        """Test that git's own refusal surfaces as MainRepositoryProtected."""
        fake_runner.on(
            "worktree", "remove",
            error=CommandFailed("git worktree remove", stderr=f"fatal: '{linked_path}' is a main working tree"),
        )
        keeper = make_fake_keeper()

        with pytest.raises(MainRepositoryProtected):
            keeper.remove_worktree(linked_path)

    def test_other_failures_propagate(self, linked_path, fake_runner, make_fake_keeper):
        fake_runner.on(
            "worktree", "remove",
            error=CommandFailed("git worktree remove", stderr="fatal: contains modified or untracked files"),
        )
        keeper = make_fake_keeper()

        with pytest.raises(CommandFailed) as exc_info:
            keeper.remove_worktree(linked_path)

        assert not isinstance(exc_info.value, MainRepositoryProtected)


class TestRemoveActiveWorktree:
    """Test removal of the worktree the caller is currently in."""

    def test_switch_and_settle_before_remove(self, fake_root, linked_path, fake_runner, make_fake_keeper):
        log = fake_runner.log
        fake_runner.on("worktree", "list", stdout=porcelain((fake_root, "main"), (linked_path, "feat-x")))
        keeper = make_fake_keeper(
            config=Config(settle_delay=2.0),
            context_path=linked_path,
            sleep=lambda seconds: log.append(("sleep", seconds)),
        )
        keeper.refresh()

        def switch_context(path, same_session):
            log.append(("switch", path, same_session))

        keeper.remove_worktree(linked_path, switch_context=switch_context)

        switch_index = log.index(("switch", fake_root, True))
        sleep_index = log.index(("sleep", 2.0))
        remove_index = log.index(("git", "worktree", "remove", linked_path))
        assert switch_index < sleep_index < remove_index
        assert keeper.context_path == fake_root

    def test_switch_target_synthesized_when_not_listed(self, fake_root, linked_path, fake_runner, make_fake_keeper):
        """Test that an empty snapshot still yields the main worktree to switch to."""
        keeper = make_fake_keeper(context_path=linked_path)
        targets = []

        keeper.remove_worktree(linked_path, switch_context=lambda path, same: targets.append(path))

        assert targets == [fake_root]
        assert len(remove_calls(fake_runner)) == 1

    def test_no_switch_callback(self, linked_path, fake_runner, make_fake_keeper):
        keeper = make_fake_keeper(context_path=linked_path)

        with pytest.raises(ContextSwitchFailed):
            keeper.remove_worktree(linked_path)

        assert remove_calls(fake_runner) == []
        assert keeper.context_path == linked_path

    def test_switch_rejected(self, linked_path, fake_runner, make_fake_keeper):
        keeper = make_fake_keeper(context_path=linked_path)

        with pytest.raises(ContextSwitchFailed) as exc_info:
            keeper.remove_worktree(linked_path, switch_context=lambda path, same: False)

        assert exc_info.value.kind is ErrorKind.CONTEXT_SWITCH_FAILED
        assert remove_calls(fake_runner) == []

    def test_main_resolving_to_target_is_internal_error(self, linked_path, fake_runner, make_fake_keeper, monkeypatch):
        keeper = make_fake_keeper(context_path=linked_path)
        monkeypatch.setattr(
            keeper.locator, "resolve_main_worktree",
            lambda *args, **kwargs: WorktreeRecord(path=linked_path, is_main=True),
        )
        switched = []

        with pytest.raises(InternalError):
            keeper.remove_worktree(linked_path, switch_context=lambda path, same: switched.append(path))

        assert switched == []
        assert remove_calls(fake_runner) == []

    def test_inactive_worktree_does_not_switch(self, fake_root, linked_path, fake_runner, make_fake_keeper):
        sleeps = []
        keeper = make_fake_keeper(context_path=fake_root, sleep=sleeps.append)
        switched = []

        keeper.remove_worktree(linked_path, force=True, switch_context=lambda path, same: switched.append(path))

        assert switched == []
        assert sleeps == []
        assert remove_calls(fake_runner)[0].args == ("worktree", "remove", "--force", linked_path)


class TestRemoveRealWorktree:
    """Test removal against a real repository."""

    def test_remove_refreshes_snapshot(self, keeper):
        path = keeper.create_worktree("bugfix/crash")
        assert keeper.state_cache.find(path) is not None

        keeper.remove_worktree(path)

        assert not os.path.exists(path)
        assert keeper.state_cache.find(path) is None

    def test_dirty_worktree_needs_force(self, keeper):
        path = keeper.create_worktree("bugfix/crash")
        with open(os.path.join(path, "scratch.txt"), "w") as f:
            f.write("work in progress\n")

        with pytest.raises(CommandFailed):
            keeper.remove_worktree(path)
        assert os.path.exists(path)

        keeper.remove_worktree(path, force=True)
        assert not os.path.exists(path)

    def test_remove_active_worktree(self, keeper, git_repo_with_branches):
        path = keeper.create_worktree("feature/login")
        keeper.set_context(path)
        switched = []

        keeper.remove_worktree(path, switch_context=lambda target, same: switched.append((target, same)))

        main_root = os.path.normpath(git_repo_with_branches.working_dir)
        assert switched == [(main_root, True)]
        assert keeper.sleeps == [0]
        assert not os.path.exists(path)
        main = keeper.state_cache.find(main_root)
        assert main.is_active is True
        assert main.is_main is True
