"""
Optimistic outline mutations.

Each mutation is a command value: a local change applied at once, the
remote call that makes it durable, and what to do if that call fails.
MutationDispatcher runs every command the same way:

1. apply the local change synchronously
2. await the remote call
3. on success, reconcile local state with the server result
4. on failure, either undo the local change (UNDO) or reload the whole
   outline from the server (RESYNC)

A 404 from the server means local state is stale, so it always resyncs.
Nothing is retried.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from plotline.client.api_client import PlotlineClient, PlotlineClientError
from plotline.client.drag import ReorderPlan
from plotline.client.tree_state import OutlineTreeState, TreeSnapshot
from plotline.models.plot_element import (
    PlotElementCreate,
    PlotElementResponse,
    PlotElementUpdate,
    PlotStatus,
)
from plotline.services.word_count import live_word_count

logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "temp-"


class FailurePolicy(str, Enum):
    """What the dispatcher does when a remote call fails."""

    UNDO = "undo"
    RESYNC = "resync"


@dataclass
class Mutation:
    name: str
    apply: Callable[[OutlineTreeState], None]
    remote: Callable[[], Awaitable[Any]]
    undo: Optional[Callable[[OutlineTreeState], None]] = None
    on_success: Optional[Callable[[OutlineTreeState, Any], None]] = None
    policy: FailurePolicy = FailurePolicy.UNDO


@dataclass
class MutationResult:
    name: str
    ok: bool
    result: Any = None
    error: Optional[PlotlineClientError] = None
    rolled_back: bool = False
    resynced: bool = False


class MutationDispatcher:
    """
    Runs mutations against one outline state.

    Args:
        state: Local outline state.
        reload: Coroutine function that refetches the outline into ``state``.
    """

    def __init__(self, state: OutlineTreeState, reload: Callable[[], Awaitable[None]]):
        self.state = state
        self.reload = reload
        self.errors: list[str] = []

    @property
    def last_error(self) -> Optional[str]:
        return self.errors[-1] if self.errors else None

    async def dispatch(self, mutation: Mutation) -> MutationResult:
        mutation.apply(self.state)

        try:
            result = await mutation.remote()
        except PlotlineClientError as e:
            logger.warning(f"{mutation.name} failed ({e.status_code}): {e.message}")
            self.errors.append(f"{mutation.name}: {e.message}")
            return await self._recover(mutation, e)

        if mutation.on_success:
            mutation.on_success(self.state, result)
        return MutationResult(name=mutation.name, ok=True, result=result)

    async def _recover(self, mutation: Mutation, error: PlotlineClientError) -> MutationResult:
        resync = (
            mutation.policy == FailurePolicy.RESYNC
            or error.status_code == 404
            or mutation.undo is None
        )

        if resync:
            try:
                await self.reload()
                logger.info(f"Resynced outline after failed {mutation.name}")
                return MutationResult(name=mutation.name, ok=False, error=error, resynced=True)
            except PlotlineClientError as reload_error:
                logger.error(f"Resync after {mutation.name} failed: {reload_error.message}")
                self.errors.append(f"reload: {reload_error.message}")
                if mutation.undo is None:
                    return MutationResult(name=mutation.name, ok=False, error=error)

        mutation.undo(self.state)
        logger.info(f"Rolled back {mutation.name}")
        return MutationResult(name=mutation.name, ok=False, error=error, rolled_back=True)


# =============================================================================
# Commands
# =============================================================================

def is_temporary(node_id: str) -> bool:
    return node_id.startswith(TEMP_ID_PREFIX)


def create_element(client: PlotlineClient, payload: PlotElementCreate) -> Mutation:
    """
    Insert a temporary node, then swap in the server's node.

    The temporary node carries every field the request knows and no
    children. Its parent is expanded so the new node is visible.
    """
    temp_id = f"{TEMP_ID_PREFIX}{uuid.uuid4().hex[:12]}"
    parent_id = payload.parent_id or None

    def apply(state: OutlineTreeState) -> None:
        order = payload.order if payload.order is not None else state.next_order(parent_id)
        content = payload.content or ""
        state.insert(PlotElementResponse(
            id=temp_id,
            project_id=payload.project_id,
            parent_id=parent_id,
            title=(payload.title or "").strip(),
            type=payload.type,
            order=order,
            status=payload.status or PlotStatus.PLANNED,
            summary=payload.summary,
            content=content,
            notes=payload.notes,
            word_count=live_word_count(content),
            target_words=payload.target_words,
            mood=payload.mood,
            pov=payload.pov,
        ))
        if parent_id:
            state.expanded.add(parent_id)

    def undo(state: OutlineTreeState) -> None:
        state.remove([temp_id])

    def on_success(state: OutlineTreeState, created: PlotElementResponse) -> None:
        if temp_id in state:
            state.replace(temp_id, created)
        elif created.id not in state and (created.parent_id is None or created.parent_id in state):
            # Temporary node went away while the request was in flight
            state.insert(created)

    return Mutation(
        name="create",
        apply=apply,
        remote=lambda: client.create_plot_element(payload),
        undo=undo,
        on_success=on_success,
        policy=FailurePolicy.UNDO,
    )


def delete_element(client: PlotlineClient, element_id: str) -> Mutation:
    """
    Remove a node and everything below it.

    The server is asked to cascade exactly when descendants were removed
    locally. A failure restores the whole pre-delete state.
    """
    captured: dict[str, Any] = {}

    def apply(state: OutlineTreeState) -> None:
        captured["snapshot"] = state.snapshot()
        captured["removed"] = [element_id, *state.descendants(element_id)]
        state.remove(captured["removed"])

    def remote() -> Awaitable[None]:
        return client.delete_plot_element(element_id, cascade=len(captured["removed"]) > 1)

    def undo(state: OutlineTreeState) -> None:
        snapshot: TreeSnapshot = captured["snapshot"]
        state.restore(snapshot)

    return Mutation(name="delete", apply=apply, remote=remote, undo=undo, policy=FailurePolicy.UNDO)


def reorder_siblings(client: PlotlineClient, plan: ReorderPlan) -> Mutation:
    """
    Renumber siblings 1..n after an array move.

    One order update is sent per sibling whose order changed, all at
    once. Any failure reloads the outline.
    """
    orders = plan.new_orders()
    changed: dict[str, int] = {}

    def apply(state: OutlineTreeState) -> None:
        changed.clear()
        for node_id, order in orders.items():
            node = state.get(node_id)
            if node is not None and node.order != order:
                changed[node_id] = order
        state.apply_orders(orders)

    async def remote() -> list[PlotElementResponse]:
        results = await asyncio.gather(
            *(
                client.update_plot_element(node_id, PlotElementUpdate(order=order))
                for node_id, order in changed.items()
            ),
            return_exceptions=True,
        )
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            first = failures[0]
            if isinstance(first, PlotlineClientError):
                raise first
            raise PlotlineClientError(f"Order update failed: {first}")
        return results

    return Mutation(name="reorder", apply=apply, remote=remote, policy=FailurePolicy.RESYNC)


def update_element(client: PlotlineClient, element_id: str, payload: PlotElementUpdate) -> Mutation:
    """
    Apply field changes locally, then persist them.

    Changed content gets a live word count estimate until the server's
    count arrives.
    """
    fields = payload.model_dump(exclude_unset=True)
    if "parent_id" in fields:
        fields["parent_id"] = fields["parent_id"] or None
    if fields.get("content") is not None:
        fields["word_count"] = live_word_count(fields["content"])
    captured: dict[str, Any] = {}

    def apply(state: OutlineTreeState) -> None:
        captured["previous"] = state.update(element_id, **fields)

    def undo(state: OutlineTreeState) -> None:
        previous = captured.get("previous")
        if previous is not None:
            state.replace(element_id, previous)

    def on_success(state: OutlineTreeState, updated: PlotElementResponse) -> None:
        state.replace(element_id, updated)

    return Mutation(
        name="update",
        apply=apply,
        remote=lambda: client.update_plot_element(element_id, payload),
        undo=undo,
        on_success=on_success,
        policy=FailurePolicy.UNDO,
    )
