"""Run the fetch workflow for many accounts.

Each account runs as an independent task, in a thread pool by default or
one after the other in sequential mode. Tasks share nothing: each returns
its AccountSummary and only the orchestrating thread collects them, so no
shared structure is written concurrently. A failing account never affects
the others.
"""

import logging
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from popfetch.config import get_account_names, resolve_account
from popfetch.config.schema import PopfetchConfig
from popfetch.errors import ConfigurationError
from popfetch.fetch.lock import AccountLock
from popfetch.fetch.models import AccountStatus, AccountSummary, FetchReport
from popfetch.fetch.runner import AccountRunner, DeliverFunc, TransportFactory
from popfetch.pop3.transport import open_transport
from popfetch.storage.maildir import deliver

logger = logging.getLogger(__name__)


class Orchestrator:
    """Dispatches account runs and aggregates their summaries.

    Example:
        config = load_config()
        report = Orchestrator(config).run()
        for summary in report.summaries:
            print(summary.name, summary.status.value)
    """

    def __init__(
        self,
        config: PopfetchConfig,
        lock_dir: Path | None = None,
        transport_factory: TransportFactory = open_transport,
        deliver_func: DeliverFunc = deliver,
        max_workers: int | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            config: Loaded configuration holding the accounts.
            lock_dir: Directory for account lock files. Defaults to LOCK_DIR.
            transport_factory: Opens connections; passed to every runner.
            deliver_func: Stores messages; passed to every runner.
            max_workers: Upper bound on concurrently running accounts.
                         Defaults to one thread per account.
        """
        self._config = config
        self._lock_dir = lock_dir
        self._transport_factory = transport_factory
        self._deliver = deliver_func
        self._max_workers = max_workers

    def run(
        self, names: Sequence[str] | None = None, sequential: bool = False
    ) -> FetchReport:
        """Fetch the given accounts and wait for all of them.

        Args:
            names: Accounts to fetch. Defaults to every configured account.
            sequential: Run accounts one at a time instead of concurrently.

        Returns:
            FetchReport with one summary per account, sorted by name.
        """
        if names is None:
            names = get_account_names(self._config)
        # Drop duplicates, keep order
        names = list(dict.fromkeys(names))

        start = time.monotonic()
        results: dict[str, AccountSummary] = {}

        if sequential or len(names) <= 1:
            for name in names:
                results[name] = self._run_account(name)
        else:
            workers = min(len(names), self._max_workers or len(names))
            with ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="popfetch"
            ) as executor:
                future_map = {
                    executor.submit(self._run_account, name): name for name in names
                }
                for future in as_completed(future_map):
                    results[future_map[future]] = future.result()

        return FetchReport(
            summaries=[results[name] for name in sorted(results)],
            elapsed=time.monotonic() - start,
        )

    def _run_account(self, name: str) -> AccountSummary:
        """Resolve and run one account; never raises."""
        try:
            try:
                settings = resolve_account(self._config, name)
            except ConfigurationError as e:
                logger.error("[%s] configuration-error: %s", name, e)
                return AccountSummary(
                    name=name,
                    status=AccountStatus.configuration_error,
                    error=str(e),
                )

            runner = AccountRunner(
                settings,
                lock=AccountLock(name, self._lock_dir),
                transport_factory=self._transport_factory,
                deliver_func=self._deliver,
            )
            return runner.run()
        except Exception as e:
            logger.exception("[%s] Unexpected error", name)
            return AccountSummary(
                name=name,
                status=AccountStatus.internal_error,
                error=str(e),
            )
