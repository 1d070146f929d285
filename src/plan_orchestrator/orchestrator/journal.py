"""Action journal: records every dispatched action to a JSON file for replay."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .actions import DeploymentPlanAction, GeneratePlanStream, action_from_dict, action_to_dict
from .models import DeploymentPlanState, state_to_dict
from .store import PlanStore

logger = logging.getLogger(__name__)


class ActionJournal:
    """
    动作日志

    订阅 PlanStore，每应用一个动作就追加一条记录。状态迁移类动作立即写盘；
    流式文本块只在累计 ``flush_every`` 条后写盘，避免长流反复重写整个文件。
    finalize() 总会写出完整记录。
    """

    VERSION = "1.0"
    FLUSH_EVERY = 50

    def __init__(
        self,
        path: Path,
        metadata: Optional[Dict[str, Any]] = None,
        flush_every: int = FLUSH_EVERY,
    ) -> None:
        self.path = Path(path)
        self.flush_every = max(1, flush_every)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.data: Dict[str, Any] = {
            "version": self.VERSION,
            "start_time": datetime.now().isoformat(),
            "end_time": None,
            "status": "idle",
            "metadata": dict(metadata or {}),
            "actions": [],
            "final_state": None,
        }
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._state: Optional[DeploymentPlanState] = None
        self._pending = 0

    @classmethod
    def create(cls, log_dir: Path, metadata: Optional[Dict[str, Any]] = None) -> "ActionJournal":
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        return cls(Path(log_dir) / f"plan_{timestamp}.json", metadata)

    def attach(self, store: PlanStore) -> None:
        self._unsubscribe = store.subscribe(self.record)
        logger.info("📝 Journaling actions to: %s", self.path)

    def detach(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def record(self, state: DeploymentPlanState, action: DeploymentPlanAction) -> None:
        entry = action_to_dict(action)
        entry["timestamp"] = datetime.now().isoformat()
        entry["status_after"] = state.status.value
        self.data["actions"].append(entry)
        self.data["status"] = state.status.value
        self._state = state
        self._pending += 1
        if not isinstance(action, GeneratePlanStream) or self._pending >= self.flush_every:
            self.save()

    def annotate(self, **metadata: Any) -> None:
        self.data["metadata"].update(metadata)
        self.save()

    def finalize(self) -> None:
        self.data["end_time"] = datetime.now().isoformat()
        self.save()
        self.detach()
        logger.info("📄 Journal saved to: %s", self.path)

    def save(self) -> None:
        if self._state is not None:
            self.data["final_state"] = state_to_dict(self._state)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.data, f, indent=2, ensure_ascii=False)
        self._pending = 0


def load_journal(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_actions(path: Path) -> List[DeploymentPlanAction]:
    """Read the recorded actions of a journal, in dispatch order.

    Raises:
        ValueError: If an entry cannot be decoded
    """
    data = load_journal(path)
    return [action_from_dict(entry) for entry in data.get("actions", [])]
