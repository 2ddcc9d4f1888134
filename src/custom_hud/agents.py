"""Fixed-capacity table of tracked agents."""

from datetime import datetime
from typing import Iterator, Optional

from .core import Agent


class AgentTable:
    """Insertion-ordered agents keyed by id, never holding more than ``capacity``.

    Agents live in a fixed array of slots; ``_index`` maps ids to slots and a
    per-slot sequence number records insertion order. When the table is full,
    inserting a new id evicts the completed agent with the oldest start time,
    or the oldest agent overall if none has completed yet.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._slots: list[Optional[Agent]] = [None] * capacity
        self._order: list[int] = [0] * capacity
        self._index: dict[str, int] = {}
        self._free: list[int] = list(range(capacity - 1, -1, -1))
        self._seq = 0

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._index

    def __iter__(self) -> Iterator[Agent]:
        """Yield agents in insertion order."""
        slots = sorted(self._index.values(), key=lambda slot: self._order[slot])
        for slot in slots:
            yield self._slots[slot]

    def get(self, agent_id: str) -> Optional[Agent]:
        slot = self._index.get(agent_id)
        return self._slots[slot] if slot is not None else None

    def insert(self, agent: Agent) -> Optional[Agent]:
        """Add or replace ``agent``; return the evicted agent, if any.

        Re-inserting a known id overwrites it in place and keeps its position.
        """
        slot = self._index.get(agent.id)
        if slot is not None:
            self._slots[slot] = agent
            return None

        evicted = None
        if not self._free:
            evicted = self._evict()

        slot = self._free.pop()
        self._seq += 1
        self._slots[slot] = agent
        self._order[slot] = self._seq
        self._index[agent.id] = slot
        return evicted

    def remove(self, agent_id: str) -> Optional[Agent]:
        slot = self._index.pop(agent_id, None)
        if slot is None:
            return None
        agent = self._slots[slot]
        self._slots[slot] = None
        self._free.append(slot)
        return agent

    def _evict(self) -> Agent:
        victim = self._oldest(completed_only=True) or self._oldest(completed_only=False)
        return self.remove(victim.id)

    def _oldest(self, completed_only: bool) -> Optional[Agent]:
        oldest: Optional[Agent] = None
        oldest_start: Optional[datetime] = None
        for agent in self:
            if completed_only and agent.running:
                continue
            if oldest_start is None or agent.start_time < oldest_start:
                oldest, oldest_start = agent, agent.start_time
        return oldest
