from __future__ import annotations

from wgpanel.services.task_scheduler import TaskScheduler
from wgpanel.ui.app_state import (
    MenuActivated,
    PanelEvent,
    PanelState,
    PanelStore,
    TaskCompleted,
    TaskRejected,
    TaskRequest,
)


class PanelController:
    """Feeds input events and finished tasks through the store, one at a time.

    The render loop calls `handle()` for every input event and `tick()` on a
    fixed interval. Each tick consumes at most one task result.
    """

    def __init__(self, store: PanelStore, scheduler: TaskScheduler) -> None:
        self.store = store
        self.scheduler = scheduler

    @property
    def state(self) -> PanelState:
        return self.store.snapshot()

    def start(self) -> None:
        self.handle(MenuActivated("refresh"))

    def handle(self, event: PanelEvent) -> None:
        self._submit(self.store.dispatch(event))

    def tick(self) -> bool:
        result = self.scheduler.poll()
        if result is None:
            return False
        self._submit(self.store.dispatch(TaskCompleted(result)))
        return True

    def _submit(self, request: TaskRequest | None) -> None:
        if request is None:
            return
        if not self.scheduler.dispatch(request.kind, request.payload):
            self.store.dispatch(TaskRejected(request.kind))
