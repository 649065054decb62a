"""Tests for running many accounts."""

import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

from popfetch.config import resolve_account
from popfetch.errors import TransportError
from popfetch.fetch.lock import AccountLock
from popfetch.fetch.models import AccountStatus, AccountSummary
from popfetch.fetch.orchestrator import Orchestrator
from popfetch.fetch.runner import AccountRunner


def _config(maildir: Path, *names: str, **extra) -> dict:
    accounts = {
        name: {
            "username": f"user-{name}",
            "password": "pw",
            "tlsdomain": f"pop.{name}.example",
            "maildir": str(maildir),
        }
        for name in names
    }
    for name, values in extra.items():
        accounts.setdefault(name, {}).update(values)
    return {"accounts": accounts}


class TestOrchestrator:
    """Tests for Orchestrator class."""

    def test_runs_every_account(self, maildir, lock_dir, make_server):
        """All configured accounts are fetched and reported sorted by name."""
        servers = {
            "pop.zeta.example": make_server(messages=[b"z"]),
            "pop.alpha.example": make_server(messages=[b"a1", b"a2"]),
            "pop.mid.example": make_server(messages=[]),
        }
        orchestrator = Orchestrator(
            _config(maildir, "zeta", "alpha", "mid"),
            lock_dir=lock_dir,
            transport_factory=lambda s, dialer: servers[s.dial_host],
        )

        report = orchestrator.run()

        assert [s.name for s in report.summaries] == ["alpha", "mid", "zeta"]
        assert [s.message_count for s in report.summaries] == [2, 0, 1]
        assert all(s.status is AccountStatus.ok for s in report.summaries)
        assert len(list((maildir / "new").iterdir())) == 3
        assert report.has_errors is False
        assert report.elapsed >= 0

    def test_sequential_mode(self, maildir, lock_dir, make_server):
        """Sequential mode runs accounts one after another, in name order."""
        order = []

        def transport(settings, dialer):
            order.append(settings.name)
            return make_server(messages=[b"m"])

        orchestrator = Orchestrator(
            _config(maildir, "b", "a", "c"),
            lock_dir=lock_dir,
            transport_factory=transport,
        )

        with patch("popfetch.fetch.orchestrator.ThreadPoolExecutor") as mock_pool:
            report = orchestrator.run(sequential=True)

        mock_pool.assert_not_called()
        assert order == ["a", "b", "c"]
        assert [s.status for s in report.summaries] == [AccountStatus.ok] * 3

    def test_selected_accounts_only(self, maildir, lock_dir, make_server):
        """Passing names restricts the run; duplicates run once."""
        transport = MagicMock(side_effect=lambda s, d: make_server())
        orchestrator = Orchestrator(
            _config(maildir, "a", "b", "c"),
            lock_dir=lock_dir,
            transport_factory=transport,
        )

        report = orchestrator.run(["c", "a", "c"])

        assert [s.name for s in report.summaries] == ["a", "c"]
        assert transport.call_count == 2

    def test_failures_are_isolated(self, maildir, lock_dir, make_server):
        """One account failing does not affect the others."""

        def transport(settings, dialer):
            if settings.name == "broken":
                raise TransportError("no route to host")
            return make_server(messages=[b"m"])

        orchestrator = Orchestrator(
            _config(maildir, "broken", "good", "other"),
            lock_dir=lock_dir,
            transport_factory=transport,
        )

        report = orchestrator.run()
        by_name = {s.name: s for s in report.summaries}

        assert by_name["broken"].status is AccountStatus.connection_error
        assert by_name["good"].status is AccountStatus.ok
        assert by_name["other"].status is AccountStatus.ok
        assert report.has_errors is True

    def test_configuration_error_per_account(self, maildir, lock_dir, make_server):
        """An account with invalid config is reported, the rest still run."""
        config = _config(maildir, "good", "bad", bad={"port": "not-a-number"})
        orchestrator = Orchestrator(
            config,
            lock_dir=lock_dir,
            transport_factory=lambda s, d: make_server(),
        )

        report = orchestrator.run()
        by_name = {s.name: s for s in report.summaries}

        assert by_name["bad"].status is AccountStatus.configuration_error
        assert "port" in by_name["bad"].error
        assert by_name["good"].status is AccountStatus.ok

    def test_account_that_is_not_a_table(self, maildir, lock_dir, make_server):
        """A non-table account entry is a configuration error for it alone."""
        config = _config(maildir, "good")
        config["accounts"]["bad"] = "not-a-table"
        config["accounts"]["listed"] = ["x", "y"]
        orchestrator = Orchestrator(
            config,
            lock_dir=lock_dir,
            transport_factory=lambda s, d: make_server(messages=[b"m"]),
        )

        report = orchestrator.run()
        by_name = {s.name: s for s in report.summaries}

        assert sorted(by_name) == ["bad", "good", "listed"]
        assert by_name["bad"].status is AccountStatus.configuration_error
        assert by_name["listed"].status is AccountStatus.configuration_error
        assert by_name["good"].status is AccountStatus.ok
        assert by_name["good"].delivered == 1

    def test_defaults_that_are_not_a_table(self, maildir, lock_dir):
        """A malformed [defaults] fails every account without stopping the run."""
        config = _config(maildir, "a", "b")
        config["defaults"] = 1
        transport = MagicMock()
        orchestrator = Orchestrator(
            config, lock_dir=lock_dir, transport_factory=transport
        )

        report = orchestrator.run()

        assert [s.name for s in report.summaries] == ["a", "b"]
        assert all(
            s.status is AccountStatus.configuration_error for s in report.summaries
        )
        transport.assert_not_called()

    def test_account_name_with_path_separator(self, maildir, lock_dir, make_server):
        """An account name cannot place its lock outside the lock directory."""
        config = _config(maildir, "../escape", "good")
        orchestrator = Orchestrator(
            config,
            lock_dir=lock_dir,
            transport_factory=lambda s, d: make_server(),
        )

        report = orchestrator.run()
        by_name = {s.name: s for s in report.summaries}

        assert by_name["../escape"].status is AccountStatus.configuration_error
        assert by_name["good"].status is AccountStatus.ok
        assert not (lock_dir.parent / "escape.lock").exists()

    def test_resolution_crash_is_contained(self, maildir, lock_dir, make_server):
        """An unexpected error while resolving an account yields internal-error."""
        real_resolve = resolve_account

        def resolve(config, name):
            if name == "crash":
                raise TypeError("unexpected value")
            return real_resolve(config, name)

        orchestrator = Orchestrator(
            _config(maildir, "crash", "fine"),
            lock_dir=lock_dir,
            transport_factory=lambda s, d: make_server(),
        )

        with patch("popfetch.fetch.orchestrator.resolve_account", side_effect=resolve):
            report = orchestrator.run()
        by_name = {s.name: s for s in report.summaries}

        assert by_name["crash"].status is AccountStatus.internal_error
        assert by_name["crash"].error == "unexpected value"
        assert by_name["fine"].status is AccountStatus.ok

    def test_unexpected_exception_is_contained(self, maildir, lock_dir, make_server):
        """A crashing runner yields internal-error for that account only."""
        real_run = AccountRunner.run

        def run(self):
            if self.name == "crash":
                raise RuntimeError("boom")
            return real_run(self)

        orchestrator = Orchestrator(
            _config(maildir, "crash", "fine"),
            lock_dir=lock_dir,
            transport_factory=lambda s, d: make_server(),
        )

        with patch.object(AccountRunner, "run", run):
            report = orchestrator.run()
        by_name = {s.name: s for s in report.summaries}

        assert by_name["crash"].status is AccountStatus.internal_error
        assert by_name["crash"].error == "boom"
        assert by_name["fine"].status is AccountStatus.ok

    def test_locks_are_released(self, maildir, lock_dir, make_server, eof):
        """No lock file survives the run, whatever the outcome."""
        servers = {
            "pop.ok.example": make_server(messages=[b"m"]),
            "pop.dropped.example": make_server(messages=[b"m"], replies={"RETR 1": eof}),
        }
        orchestrator = Orchestrator(
            _config(maildir, "ok", "dropped"),
            lock_dir=lock_dir,
            transport_factory=lambda s, d: servers[s.dial_host],
        )

        orchestrator.run()

        assert list(lock_dir.iterdir()) == []

    def test_no_accounts(self, lock_dir):
        """An empty config produces an empty report."""
        report = Orchestrator({}, lock_dir=lock_dir).run()

        assert report.summaries == []
        assert report.has_errors is False


class TestConcurrentInvocations:
    """Two runs on the same account at the same time."""

    def test_second_run_skips_locked_account(self, settings, lock_dir, make_server):
        """While one run holds the account, another skips it without connecting."""
        connected = threading.Event()
        proceed = threading.Event()

        def slow_transport(s, dialer):
            connected.set()
            assert proceed.wait(timeout=10)
            return make_server(messages=[b"m"])

        first = AccountRunner(
            settings,
            lock=AccountLock("work", lock_dir),
            transport_factory=slow_transport,
        )
        results: list[AccountSummary] = []
        thread = threading.Thread(target=lambda: results.append(first.run()))
        thread.start()
        assert connected.wait(timeout=10)

        second_transport = MagicMock()
        second = AccountRunner(
            settings,
            lock=AccountLock("work", lock_dir),
            transport_factory=second_transport,
        )
        second_summary = second.run()

        proceed.set()
        thread.join(timeout=10)

        assert second_summary.status is AccountStatus.skipped_locked
        second_transport.assert_not_called()
        assert results[0].status is AccountStatus.ok
        assert not (lock_dir / "work.lock").exists()
