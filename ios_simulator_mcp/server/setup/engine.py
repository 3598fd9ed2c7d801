"""
Reconciliation Engine

Analyze -> summarize -> gate -> apply -> verify. Side effects only happen
after every gate passes: not a dry run, no blocking requirement, something
to do, and explicit auto_confirm.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from ..exceptions import RemoteExecutionError, SetupActionError
from ..interfaces import IRemoteShell
from ..models import (
    ActionOutcome,
    ActionStatus,
    CheckResult,
    PlannedAction,
    ReconcileOutcome,
    ReconciliationReport,
)
from .actions import DEFAULT_GRACE_PERIOD, RemediationAction, default_actions
from .checks import HostAnalyzer
from .report import render_report

logger = logging.getLogger(__name__)

NO_TARGETS = "No targets (may be normal if no simulators booted)"


class ReconciliationEngine:
    def __init__(
        self,
        shell: IRemoteShell,
        actions: Optional[Dict[str, RemediationAction]] = None,
        daemon_grace_period: float = DEFAULT_GRACE_PERIOD,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.shell = shell
        self.actions = actions if actions is not None else default_actions(daemon_grace_period, sleep)

    async def reconcile(
        self, host: str, username: str, dry_run: bool = False, auto_confirm: bool = False
    ) -> ReconciliationReport:
        """Bring the host into compliance (or just report, per the gates)"""
        mode = "dry run" if dry_run else "apply"
        logger.info(f"Reconciling {username}@{host} ({mode}) via {self.shell.description}")

        report = ReconciliationReport(
            host=host, username=username, dry_run=dry_run, auto_confirm=auto_confirm
        )
        report.checks = await HostAnalyzer(self.shell, host, username).analyze()
        report.planned = self.plan(report.needed_actions)

        if dry_run:
            report.outcome = ReconcileOutcome.DRY_RUN
        elif report.missing_requirements:
            report.outcome = ReconcileOutcome.BLOCKED
        elif not report.planned:
            report.outcome = ReconcileOutcome.ALREADY_CONFIGURED
        elif not auto_confirm:
            report.outcome = ReconcileOutcome.AWAITING_CONFIRMATION
        else:
            await self.apply(report)
            if report.outcome == ReconcileOutcome.APPLIED:
                report.verification = await self.verify()

        logger.info(f"Reconciliation of {host} finished: {report.outcome.value}")
        return report

    def plan(self, checks: List[CheckResult]) -> List[PlannedAction]:
        """Distinct requested actions, in dependency order"""
        planned: Dict[str, PlannedAction] = {}
        for check in checks:
            if check.action is None or check.action in planned:
                continue
            action = self.actions.get(check.action)
            if action is None:
                raise KeyError(f"Check '{check.name}' requests unknown action '{check.action}'")
            planned[action.key] = PlannedAction(key=action.key, title=action.title, rank=action.rank)
        return sorted(planned.values(), key=lambda p: p.rank)

    async def apply(self, report: ReconciliationReport) -> None:
        """Run planned actions in rank order; the first failure stops the rest"""
        failed = False
        for planned in report.planned:
            action = self.actions[planned.key]
            if failed:
                report.outcomes.append(
                    ActionOutcome(key=action.key, title=action.title, status=ActionStatus.NOT_RUN)
                )
                continue
            outcome = await self._apply_one(action)
            report.outcomes.append(outcome)
            failed = outcome.status == ActionStatus.FAILED

        report.outcome = ReconcileOutcome.PARTIAL if failed else ReconcileOutcome.APPLIED

    async def _apply_one(self, action: RemediationAction) -> ActionOutcome:
        try:
            if await action.is_satisfied(self.shell):
                logger.info(f"Skipping {action.key}: already satisfied")
                return ActionOutcome(
                    key=action.key, title=action.title, status=ActionStatus.SKIPPED,
                    detail="Already satisfied",
                )

            logger.info(f"Applying {action.key}: {action.title}")
            detail = await action.apply(self.shell)
        except SetupActionError as e:
            logger.error(f"Action {action.key} failed: {e.message}")
            return ActionOutcome(
                key=action.key, title=action.title, status=ActionStatus.FAILED,
                detail=e.message, log_tail=e.log_tail,
            )
        except RemoteExecutionError as e:
            logger.error(f"Action {action.key} failed: {e.message}")
            return ActionOutcome(
                key=action.key, title=action.title, status=ActionStatus.FAILED, detail=e.message
            )
        finally:
            for tool in action.invalidates:
                self.shell.invalidate_tool(tool)

        return ActionOutcome(
            key=action.key, title=action.title, status=ActionStatus.COMPLETED, detail=detail
        )

    async def verify(self) -> List[str]:
        if not (
            await self.shell.check("idb list-targets")
            or await self.shell.check("python3 -c 'import idb'")
        ):
            return ["idb test inconclusive, but installation completed"]

        targets = await self.shell.output("idb list-targets 2>/dev/null", default="")
        return ["idb working correctly", "Available targets:", (targets or "").strip() or NO_TARGETS]


async def reconcile(
    shell: IRemoteShell,
    host: str,
    username: str,
    dry_run: bool = False,
    auto_confirm: bool = False,
    **engine_options,
) -> str:
    """Run reconciliation and render the report as text"""
    engine = ReconciliationEngine(shell, **engine_options)
    report = await engine.reconcile(host, username, dry_run=dry_run, auto_confirm=auto_confirm)
    return render_report(report)
