"""Unified path constants for the plan orchestrator.

All data is stored under the .plan-orchestrator directory:
- .plan-orchestrator/journals/   # Action journals (one JSON file per plan run)
"""

from pathlib import Path

# 基础目录（在当前工作目录下）
BASE_DIR = Path(".plan-orchestrator")

JOURNAL_DIR = BASE_DIR / "journals"    # 动作日志，可用于重放
JOURNAL_PATTERN = "plan_*.json"


def get_journal_dir(base: Path | None = None) -> Path:
    """获取 journal 目录路径（不存在时创建）."""
    journal_dir = Path(base) if base else JOURNAL_DIR
    journal_dir.mkdir(parents=True, exist_ok=True)
    return journal_dir


def list_journals(base: Path | None = None) -> list[Path]:
    """Return journal files, newest first."""
    journal_dir = Path(base) if base else JOURNAL_DIR
    if not journal_dir.exists():
        return []
    return sorted(journal_dir.glob(JOURNAL_PATTERN), key=lambda p: p.stat().st_mtime, reverse=True)
