"""Plain-text rendering of a ReconciliationReport for the MCP client"""

from typing import List

from ..models import ActionStatus, CheckStatus, ReconcileOutcome, ReconciliationReport

STATUS_LABELS = {
    CheckStatus.SATISFIED: "OK",
    CheckStatus.MISSING: "MISSING",
    CheckStatus.BLOCKING: "BLOCKING",
}

OUTCOME_LABELS = {
    ActionStatus.COMPLETED: "done",
    ActionStatus.SKIPPED: "skipped (already satisfied)",
    ActionStatus.FAILED: "FAILED",
    ActionStatus.NOT_RUN: "not run",
}


def render_report(report: ReconciliationReport) -> str:
    lines: List[str] = []
    log = lines.append

    if report.dry_run:
        log("DRY RUN: Analyzing macOS host configuration...")
    else:
        log("Setting up macOS host for iOS Simulator MCP...")
    log(f"Host: {report.host}")
    log(f"User: {report.username}")
    log("")

    log("Analyzing current system state...")
    for check in report.checks:
        log(f"  [{STATUS_LABELS[check.status]}] {check.detail}")
        for info in check.info:
            log(f"      {info}")

    log("")
    log("Analysis Summary:")
    log("==================")

    if report.missing_requirements:
        log("")
        log("MISSING REQUIREMENTS (must be resolved manually):")
        for check in report.missing_requirements:
            log(f"  • {check.detail}")

    if report.planned:
        log("")
        log("ACTIONS NEEDED:")
        for action in report.planned:
            log(f"  • {action.title}")
    else:
        log("")
        log("No actions needed - system is already configured!")

    log("")
    _render_outcome(report, log)
    return "\n".join(lines).rstrip() + "\n"


def _render_outcome(report: ReconciliationReport, log) -> None:
    outcome = report.outcome
    host = report.host

    if outcome == ReconcileOutcome.DRY_RUN:
        log("Dry run complete. To apply changes, run this tool again without dry_run option.")
        return

    if outcome == ReconcileOutcome.BLOCKED:
        log("Cannot proceed due to missing requirements.")
        log("Please resolve the issues above and run this tool again.")
        return

    if outcome == ReconcileOutcome.ALREADY_CONFIGURED:
        log("System is already properly configured!")
        log("")
        log(f"Your macOS host ({host}) is ready for iOS Simulator MCP!")
        return

    if outcome == ReconcileOutcome.AWAITING_CONFIRMATION:
        log(f"Would apply {len(report.planned)} changes to {host}.")
        log("To proceed automatically, set auto_confirm to true.")
        return

    log("Applying changes...")
    for result in report.outcomes:
        log(f"  {result.title}: {OUTCOME_LABELS[result.status]}")
        if result.status == ActionStatus.FAILED and result.detail:
            log(f"      {result.detail}")
        if result.log_tail:
            log("      Log:")
            for line in result.log_tail.splitlines():
                log(f"        {line}")

    if outcome == ReconcileOutcome.PARTIAL:
        completed = sum(1 for r in report.outcomes if r.status == ActionStatus.COMPLETED)
        log("")
        log(f"Setup stopped after a failed action ({completed} of {len(report.outcomes)} completed).")
        log("Completed changes were kept. Fix the error above and run this tool again.")
        return

    log("")
    log("Final verification...")
    for line in report.verification:
        log(line)

    log("")
    log("Setup completed successfully!")
    log("")
    log(f"Your macOS host ({host}) is ready for iOS Simulator MCP!")
    log("")
    log("Next steps:")
    log("1. Configure the IOS_SIMULATOR_SSH_* environment variables for this MCP server")
    log("2. Test with: 'Take a screenshot of the iOS simulator'")
    log("3. Try UI interactions: 'Tap on the Settings app'")
