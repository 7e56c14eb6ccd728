"""
Subtask Dependency Graph
========================

Holds the subtasks of one task in a NetworkX DAG.

Enables:
- Readiness checks (all dependencies COMPLETED)
- Topological ordering with a per-type priority tie-break
- Cycle and dangling-reference detection at plan-build time
"""

from typing import Dict, List, Optional, Sequence

import networkx as nx  # type: ignore

from quarry.core.task import Subtask, SubtaskStatus
from quarry.exceptions import DanglingDependencyError, DependencyCycleError


class SubtaskGraph:
    """
    Dependency graph for the subtasks of a single task.

    Edges point from a dependency to the subtask that waits on it.
    A dependency reference names either a subtask id or the target item
    of another subtask in the same task.
    """

    def __init__(self, task_id: str = "") -> None:
        """Initialize empty DAG."""
        self.task_id = task_id
        self.graph = nx.DiGraph()
        self._insertion: Dict[str, int] = {}

    @classmethod
    def from_subtasks(cls, subtasks: Sequence[Subtask], task_id: str = "") -> "SubtaskGraph":
        graph = cls(task_id)
        for subtask in subtasks:
            graph.add_subtask(subtask)
        graph.link()
        return graph

    def add_subtask(self, subtask: Subtask) -> None:
        """Add subtask as a node. Call ``link`` once every node is in."""
        self._insertion.setdefault(subtask.id, len(self._insertion))
        self.graph.add_node(subtask.id, subtask=subtask)

    def link(self) -> None:
        """(Re)build dependency edges from the subtasks' references."""
        self.graph.remove_edges_from(list(self.graph.edges()))
        for node_id in self.graph.nodes():
            subtask = self.get_subtask(node_id)
            for reference in subtask.dependencies:
                for dep in self.resolve(reference):
                    # a subtask never waits on its own target, only on its own id (a cycle)
                    if dep.id != subtask.id or reference == subtask.id:
                        self.graph.add_edge(dep.id, subtask.id)

    def resolve(self, reference: str) -> List[Subtask]:
        """Subtasks a dependency reference points at (by id, else by target)."""
        if reference in self.graph:
            return [self.get_subtask(reference)]
        return [st for st in self.get_all_subtasks() if st.target == reference]

    def validate(self) -> None:
        """
        Reject plans that cannot be executed.

        Raises:
            DanglingDependencyError: A reference resolves to nothing
            DependencyCycleError: The dependency graph is not a DAG
        """
        for subtask in self.get_all_subtasks():
            for reference in subtask.dependencies:
                if not self.resolve(reference):
                    raise DanglingDependencyError(self.task_id, subtask.id, reference)

        if self.is_cyclic():
            try:
                cycle = [edge[0] for edge in nx.find_cycle(self.graph)]
            except nx.NetworkXNoCycle:
                cycle = []
            raise DependencyCycleError(self.task_id, cycle)

    def is_cyclic(self) -> bool:
        """Check for circular dependencies."""
        return not nx.is_directed_acyclic_graph(self.graph)

    def ordered(self) -> List[Subtask]:
        """
        Dependency-respecting order.

        Among subtasks that are ready at the same point, higher type
        priority goes first, then insertion order.
        """
        self.validate()

        def sort_key(node_id: str):
            subtask = self.get_subtask(node_id)
            return (-subtask.priority, self._insertion[node_id])

        return [
            self.get_subtask(node_id)
            for node_id in nx.lexicographical_topological_sort(self.graph, key=sort_key)
        ]

    def is_ready(self, subtask: Subtask) -> bool:
        """True iff every dependency has COMPLETED."""
        return all(
            self.get_subtask(dep_id).status == SubtaskStatus.COMPLETED
            for dep_id in self.graph.predecessors(subtask.id)
        )

    def get_ready_subtasks(self) -> List[Subtask]:
        """Pending subtasks whose dependencies are all done."""
        return [
            st
            for st in self.get_all_subtasks()
            if st.status == SubtaskStatus.PENDING and self.is_ready(st)
        ]

    def dependencies_of(self, subtask_id: str) -> List[Subtask]:
        return [self.get_subtask(dep_id) for dep_id in self.graph.predecessors(subtask_id)]

    def get_all_subtasks(self) -> List[Subtask]:
        """Get all subtasks in insertion order."""
        return [
            self.graph.nodes[node_id]["subtask"]
            for node_id in sorted(self.graph.nodes(), key=self._insertion.__getitem__)
        ]

    def get_subtask(self, subtask_id: str) -> Optional[Subtask]:
        """Get a specific subtask by ID."""
        if subtask_id in self.graph:
            return self.graph.nodes[subtask_id]["subtask"]  # type: ignore
        return None

    def __len__(self) -> int:
        return self.graph.number_of_nodes()
