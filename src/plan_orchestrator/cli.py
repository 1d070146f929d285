"""Command-line interface for the plan orchestrator."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import AppConfig, load_config
from .orchestrator import (
    DeploymentPlanOrchestrator,
    GeneratePlanStream,
    PlanStatus,
    load_actions,
    load_journal,
    replay,
    state_to_dict,
)
from .paths import JOURNAL_DIR, list_journals
from .utils.logging import get_logger

logger = logging.getLogger(__name__)

_STATUS_EMOJI = {
    "completed": "✅",
    "failed": "❌",
    "execution_failed": "❌",
    "awaiting_approval": "⏸️",
    "running": "🔄",
    "generating": "🧠",
    "idle": "•",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="plan-orchestrator",
        description="Analyze a code change with an LLM, gate it by policy and execute its deployment plan.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file overriding defaults.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    plan_parser = subparsers.add_parser(
        "plan", help="Generate, approve and execute a deployment plan for a change"
    )
    plan_parser.add_argument("--change", required=True, help="Description of the proposed change")
    plan_parser.add_argument("--diff-file", type=str, default=None, help="Unified diff of the change")
    plan_parser.add_argument("--target", type=str, default="production", help="Deployment target")
    plan_parser.add_argument(
        "--mode", choices=["dry-run", "local", "ssh"], default=None,
        help="Step execution mode (overrides config)",
    )
    plan_parser.add_argument(
        "--yes", "-y", action="store_true",
        help="Approve the plan without prompting",
    )
    plan_parser.add_argument(
        "--no-journal", action="store_true",
        help="Do not write an action journal",
    )

    # replay 子命令 - 从动作日志重建状态
    replay_parser = subparsers.add_parser(
        "replay", help="Rebuild a plan state from an action journal"
    )
    replay_parser.add_argument("--file", "-f", type=str, default=None, help="Journal file to replay")
    replay_parser.add_argument(
        "--until", type=int, default=None, metavar="N",
        help="Replay only the first N actions",
    )

    # logs 子命令 - 查看动作日志
    logs_parser = subparsers.add_parser("logs", help="List recorded action journals")
    logs_parser.add_argument("--dir", type=str, default=None, help="Journal directory")
    logs_group = logs_parser.add_mutually_exclusive_group()
    logs_group.add_argument("--latest", action="store_true", help="Show the most recent journal")
    logs_group.add_argument("--file", "-f", type=str, default=None, help="Show a specific journal file")

    return parser


def handle_plan_command(args: argparse.Namespace, config: AppConfig) -> int:
    """Handle the plan subcommand."""
    from .interaction import AutoApprovalHandler
    from .llm import ChangeRequest

    if args.mode:
        config.execution.mode = args.mode

    diff = None
    if args.diff_file:
        diff_path = Path(args.diff_file)
        if not diff_path.is_file():
            print(f"❌ Diff file not found: {args.diff_file}")
            return 1
        diff = diff_path.read_text(encoding="utf-8")

    approval_handler = AutoApprovalHandler(approve=True) if args.yes else None
    orchestrator = DeploymentPlanOrchestrator(
        config,
        approval_handler=approval_handler,
        journal_enabled=not args.no_journal,
    )

    # 实时输出流式分析文本
    def _echo_stream(state, action) -> None:
        if isinstance(action, GeneratePlanStream) and state.status == PlanStatus.GENERATING:
            sys.stdout.write(action.explanations_chunk)
            sys.stdout.flush()

    orchestrator.subscribe(_echo_stream)
    final_state = orchestrator.run(ChangeRequest(summary=args.change, target=args.target, diff=diff))
    print()
    print_state_summary(state_to_dict(final_state))
    return 0 if final_state.status == PlanStatus.COMPLETED else 1


def handle_replay_command(args: argparse.Namespace) -> int:
    """Handle the replay subcommand."""
    if args.file:
        journal_file = Path(args.file)
    else:
        journals = list_journals()
        if not journals:
            print("📁 No action journals found. Run a plan first.")
            return 1
        journal_file = journals[0]

    if not journal_file.exists():
        print(f"❌ Journal not found: {journal_file}")
        return 1

    try:
        actions = load_actions(journal_file)
    except (ValueError, json.JSONDecodeError) as exc:
        print(f"❌ Could not read journal {journal_file}: {exc}")
        return 1

    if args.until is not None:
        actions = actions[:args.until]
    state = replay(actions)
    print(json.dumps(state_to_dict(state), indent=2, ensure_ascii=False))
    return 0


def handle_logs_command(args: argparse.Namespace) -> int:
    """Handle the logs subcommand."""
    log_dir = Path(args.dir) if args.dir else JOURNAL_DIR
    if args.file:
        return show_journal(Path(args.file))

    journals = list_journals(log_dir)
    if not journals:
        print("📁 No action journals found.")
        return 0
    if args.latest:
        return show_journal(journals[0])

    print(f"📁 Action journals in: {log_dir}\n")
    print(f"{'#':<4} {'Status':<20} {'Actions':<8} {'Time':<20} {'File'}")
    print("-" * 90)
    for i, journal_file in enumerate(journals, 1):
        try:
            data = load_journal(journal_file)
        except (OSError, json.JSONDecodeError):
            print(f"{i:<4} ❓ {'error':<18} {'?':<8} {'?':<20} {journal_file.name}")
            continue
        status = data.get("status", "unknown")
        start_time = (data.get("start_time") or "")[:19].replace("T", " ")
        emoji = _STATUS_EMOJI.get(status, "❓")
        count = len(data.get("actions", []))
        print(f"{i:<4} {emoji} {status:<18} {count:<8} {start_time:<20} {journal_file.name}")
    return 0


def show_journal(journal_file: Path) -> int:
    """Print one journal: metadata, the action sequence and the final state."""
    if not journal_file.exists():
        print(f"❌ Journal not found: {journal_file}")
        return 1
    try:
        data = load_journal(journal_file)
    except json.JSONDecodeError as exc:
        print(f"❌ Could not read journal {journal_file}: {exc}")
        return 1

    print(f"📄 {journal_file.name}")
    print(f"   Started:  {data.get('start_time')}")
    print(f"   Finished: {data.get('end_time') or '(incomplete)'}")
    for key, value in data.get("metadata", {}).items():
        print(f"   {key}: {value}")
    print()
    for i, entry in enumerate(data.get("actions", []), 1):
        print(f"   {i:>3}. {entry.get('type', '?'):<24} -> {entry.get('status_after', '?')}")
    print()
    if data.get("final_state"):
        print_state_summary(data["final_state"])
    return 0


def print_state_summary(snapshot: dict) -> None:
    status = snapshot["status"]
    print("=" * 60)
    print(f"{_STATUS_EMOJI.get(status, '❓')} Status: {status}")
    if snapshot.get("error"):
        print(f"   Error: {snapshot['error']}")
    for note in snapshot.get("policy_notes", []):
        print(f"   Policy: {note}")
    for i, step in enumerate(snapshot.get("steps", []), 1):
        duration = f" ({step['duration']:.2f}s)" if step.get("duration") is not None else ""
        print(f"   {i}. [{step['status']}] {step['title']}{duration}")
    print("=" * 60)


def run_cli(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    get_logger("plan_orchestrator", level=logging.DEBUG if args.verbose else logging.INFO)

    if args.command == "replay":
        return handle_replay_command(args)
    if args.command == "logs":
        return handle_logs_command(args)

    try:
        config = load_config(args.config)
    except FileNotFoundError as exc:
        print(f"❌ {exc}")
        return 1

    if args.command == "plan":
        try:
            return handle_plan_command(args, config)
        except ValueError as exc:
            print(f"❌ {exc}")
            return 1

    parser.error(f"Unknown command: {args.command}")
    return 2
