"""Plan store: owns the canonical plan state and is its only writer."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, List, Optional

from .actions import DeploymentPlanAction, GeneratePlanStart, Reset
from .models import IDLE, DeploymentPlanState
from .reducer import reduce

logger = logging.getLogger(__name__)

Listener = Callable[[DeploymentPlanState, DeploymentPlanAction], None]


class PlanStore:
    """
    计划状态存储

    - ``dispatch`` 是唯一的写入口；动作严格按派发顺序应用
    - 订阅者在处理期间再次派发的动作会进入队列，待当前动作处理完再依次应用
    - ``epoch`` 在每次 GENERATE_PLAN_START / RESET 生效时递增，
      后台任务据此判断自己是否已被取消
    """

    def __init__(
        self,
        initial: Optional[DeploymentPlanState] = None,
        reducer: Callable[[DeploymentPlanState, DeploymentPlanAction], DeploymentPlanState] = reduce,
    ) -> None:
        self._state: DeploymentPlanState = IDLE if initial is None else initial
        self._reducer = reducer
        self._listeners: List[Listener] = []
        self._queue: Deque[DeploymentPlanAction] = deque()
        self._dispatching = False
        self._epoch = 0
        self.history: List[DeploymentPlanAction] = []

    @property
    def state(self) -> DeploymentPlanState:
        """Current state. States are immutable, so this is a safe snapshot."""
        return self._state

    @property
    def epoch(self) -> int:
        return self._epoch

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; it is called after every applied action.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def dispatch(self, action: DeploymentPlanAction) -> DeploymentPlanState:
        """Apply ``action`` (or queue it when called from a listener)."""
        self._queue.append(action)
        if self._dispatching:
            return self._state

        self._dispatching = True
        try:
            while self._queue:
                self._apply(self._queue.popleft())
        finally:
            self._dispatching = False
        return self._state

    def _apply(self, action: DeploymentPlanAction) -> None:
        previous = self._state
        self._state = self._reducer(previous, action)
        self.history.append(action)

        if self._state is previous:
            logger.debug("Ignored %s in state %s", action.type.value, previous.status.value)
        elif isinstance(action, (GeneratePlanStart, Reset)):
            self._epoch += 1

        for listener in list(self._listeners):
            listener(self._state, action)
