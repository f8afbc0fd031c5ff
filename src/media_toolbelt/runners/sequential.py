"""Sequential batch runner - processes items one at a time."""

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

from ..errors import DelegatedFailure
from .base import BatchCallbacks, BatchResult, ItemOutcome

logger = logging.getLogger(__name__)


class SequentialBatch:
    """
    Apply an action to each item in order.

    A failed item (DelegatedFailure) is recorded and the batch moves on to
    the next one. Any other exception, including InterruptedBySignal, stops
    the batch and propagates.
    """

    def run(
        self,
        items: Sequence[Path],
        action: Callable[[Path], Path | None],
        callbacks: BatchCallbacks | None = None,
    ) -> BatchResult:
        """
        Execute the action for every item.

        Args:
            items: Items to process, in order
            action: Called with each item; returns the output path written, if any
            callbacks: Optional callbacks for progress reporting

        Returns:
            BatchResult with one outcome per item
        """
        cb = callbacks or BatchCallbacks()
        result = BatchResult()
        total = len(items)

        for idx, item in enumerate(items, start=1):
            if cb.on_item_start:
                cb.on_item_start(item, idx, total)

            try:
                output = action(item)
                outcome = ItemOutcome(item=item, success=True, output=output)
            except DelegatedFailure as e:
                logger.debug("Item %s failed: %s", item, e)
                outcome = ItemOutcome(item=item, success=False, error=e.message)

            result.outcomes.append(outcome)
            if cb.on_item_complete:
                cb.on_item_complete(outcome, idx, total)

        if cb.on_batch_complete:
            cb.on_batch_complete(result)

        return result
