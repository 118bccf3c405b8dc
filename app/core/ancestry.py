"""
Reachability over a tree's parent edges.

The graph is read straight from the store on every call; nothing is
cached between queries. Edges point child -> parent (father_id,
mother_id), so "ancestors" is a walk along edges and "descendants" a
walk against them.
"""

from typing import Iterator, Optional

from app.core.tenant_scope import PersonStore


class AncestryGraph:
    def __init__(self, store: PersonStore):
        self.store = store

    # ------------------------------------------------------------
    # Adjacency
    # ------------------------------------------------------------

    def parents_of(self, person_id: int) -> list[int]:
        person = self.store.get(person_id)
        if not person:
            return []
        return [pid for pid in (person.father_id, person.mother_id) if pid is not None]

    def children_of(self, person_id: int) -> list[int]:
        return [child.id for child in self.store.find_children(person_id)]

    # ------------------------------------------------------------
    # Walks
    # ------------------------------------------------------------

    def _walk(self, start_id: int, step) -> Iterator[int]:
        # Explicit stack; the visited set bounds work on malformed data
        visited: set[int] = set()
        stack = list(step(start_id))
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            yield current
            stack.extend(n for n in step(current) if n not in visited)

    def ancestors(self, person_id: int) -> Iterator[int]:
        return self._walk(person_id, self.parents_of)

    def descendants(self, person_id: int) -> Iterator[int]:
        return self._walk(person_id, self.children_of)

    def is_ancestor(self, candidate_id: Optional[int], subject_id: Optional[int]) -> bool:
        """True iff candidate_id is reachable walking up from subject_id."""
        if candidate_id is None or subject_id is None:
            return False
        return any(pid == candidate_id for pid in self.ancestors(subject_id))

    def would_create_cycle(self, parent_id: Optional[int], child_id: Optional[int]) -> bool:
        """
        Assigning parent_id as a parent of child_id closes a loop when the
        child is the parent itself or already one of the parent's ancestors.
        """
        if parent_id is None or child_id is None:
            return False
        if parent_id == child_id:
            return True
        return self.is_ancestor(child_id, parent_id)
