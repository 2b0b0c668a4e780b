"""
Hierarchy reconciliation engine.

Keeps the stack of open meta-step items in line with the meta-step chain
of the step currently executing. For each new step, the common prefix of
the open stack and the new chain is reused as is, the rest of the stack
is closed innermost first, and the rest of the chain is opened outermost
first.

    open stack:  A > B > C
    new chain:   A > B > D
    calls:       finish(C), start(D, parent=B)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from .models import ItemKind, ReportItem
from .operations import close_item, open_item

if TYPE_CHECKING:
    from ..client import BaseReportingClient
    from ..events import MetaStepKey

logger = logging.getLogger(__name__)


class HierarchyReconciler:
    """
    Owns the open-item stack of the current test.

    `stack[0]` is the outermost open meta-step (child of the test) and
    `stack[-1]` directly encloses the step being executed. Each entry's
    parent is the previous entry, or the test for the first one.
    """

    def __init__(self, client: BaseReportingClient):
        self.client = client
        self.stack: list[ReportItem] = []

    @property
    def keys(self) -> list[MetaStepKey]:
        return [item.key for item in self.stack]

    def reset(self) -> None:
        """Forget the open items without any remote call (new test)."""
        self.stack = []

    def divergence_index(self, chain: Sequence[MetaStepKey]) -> int:
        """Length of the common prefix of the open stack and a chain."""
        index = 0
        for key, item in zip(chain, self.stack):
            if key != item.key:
                break
            index += 1
        return index

    def depth_of(self, item: ReportItem | None) -> int:
        """Stack index of an item, -1 if it is not open here."""
        for index, open_item_ in enumerate(self.stack):
            if open_item_ is item:
                return index
        return -1

    async def reconcile(
        self,
        chain: Sequence[MetaStepKey],
        test: ReportItem,
        titles: Sequence[str] | None = None,
    ) -> ReportItem:
        """
        Transform the open stack into `chain`.

        Args:
            chain: Meta-step keys, root ancestor first
            test: Item of the running test, parent of the outermost meta-step
            titles: Display names for the chain entries (defaults to the method name)

        Returns:
            The item to use as parent for the current step: the innermost
            open meta-step, or the test when the chain is empty
        """
        divergence = self.divergence_index(chain)
        if divergence == len(chain) == len(self.stack):
            return self.stack[-1] if self.stack else test

        await self._close_from(divergence)

        parent = self.stack[-1] if self.stack else test
        for index in range(divergence, len(chain)):
            key = chain[index]
            title = titles[index] if titles else key.name
            item = ReportItem(
                kind=ItemKind.META_STEP,
                title=title,
                parent=parent,
                key=key,
            )
            await open_item(self.client, item)
            logger.debug(f"Opened meta-step '{title}' at depth {index} (nested: {parent is not test})")
            self.stack.append(item)
            parent = item

        return parent

    async def _close_from(self, index: int) -> None:
        """Close stack entries from `index` to the end, innermost first."""
        while len(self.stack) > index:
            item = self.stack.pop()
            await close_item(self.client, item)

    async def close_all(self) -> None:
        """Flush every open item, innermost first."""
        if self.stack:
            logger.debug(f"Closing {len(self.stack)} open meta-step(s)")
        await self._close_from(0)
