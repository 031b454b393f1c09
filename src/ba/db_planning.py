"""PlanningMixin — blocking dependencies, readiness, and the ready queue.

The dependency graph is a derived view over each issue's ``blocked_by``
list. It holds no state of record; ``BaDB`` drops the cached graph whenever
the materialized issues change.

An issue is *ready* when it is ``open`` and every blocker is ``closed``.
The ready queue is ordered by ascending priority, then creation order.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from ba.db_base import DBMixinProtocol
from ba.errors import CycleError, NotFoundError

if TYPE_CHECKING:
    from ba.core import Issue
    from ba.types.core import TreeNodeDict

logger = logging.getLogger(__name__)


@dataclass
class TreeNode:
    issue: Issue
    ready: bool
    blockers: list[TreeNode] = field(default_factory=list)
    # Set when this issue was already expanded elsewhere in the tree.
    repeated: bool = False

    def _shell(self) -> TreeNodeDict:
        result: TreeNodeDict = {"issue": self.issue.to_dict(), "ready": self.ready, "blockers": []}
        if self.repeated:
            result["repeated"] = True
        return result

    def to_dict(self) -> TreeNodeDict:
        # Iterative: blocker chains can be deeper than the recursion limit.
        result = self._shell()
        stack = [(self, result)]
        while stack:
            node, out = stack.pop()
            for child in node.blockers:
                child_dict = child._shell()
                out["blockers"].append(child_dict)
                stack.append((child, child_dict))
        return result


class DependencyGraph:
    """Blocking relationships over one materialization of the store."""

    def __init__(self, issues: Mapping[str, Issue]) -> None:
        self._issues = issues
        self._dependents: dict[str, list[str]] | None = None

    def blockers(self, issue_id: str) -> list[str]:
        issue = self._issues.get(issue_id)
        return sorted(issue.blocked_by) if issue else []

    def dependents(self, issue_id: str) -> list[str]:
        """Issues that list *issue_id* as a blocker."""
        if self._dependents is None:
            index: dict[str, list[str]] = {}
            for issue in self._issues.values():
                for blocker_id in issue.blocked_by:
                    index.setdefault(blocker_id, []).append(issue.id)
            self._dependents = index
        return sorted(self._dependents.get(issue_id, []))

    def open_blockers(self, issue: Issue) -> list[str]:
        """Blockers of *issue* that are not closed. Unknown ids count as open."""
        result = []
        for blocker_id in issue.blocked_by:
            blocker = self._issues.get(blocker_id)
            if blocker is None or blocker.status != "closed":
                result.append(blocker_id)
        return sorted(result)

    def is_ready(self, issue: Issue) -> bool:
        return issue.status == "open" and not self.open_blockers(issue)

    def would_cycle(self, issue_id: str, blocker_id: str) -> bool:
        """Check if blocking issue_id on blocker_id would close a cycle.

        Walks blocked_by edges from blocker_id. If issue_id is reachable, the
        new edge would make the graph cyclic. Self-blocking is a cycle.
        """
        visited: set[str] = set()
        stack = [blocker_id]
        while stack:
            current = stack.pop()
            if current == issue_id:
                return True
            if current in visited:
                continue
            visited.add(current)
            node = self._issues.get(current)
            if node is not None:
                stack.extend(node.blocked_by)
        return False

    def find_cycle(self) -> list[str] | None:
        """Return one cycle as a list of ids (first id repeated at the end), or None."""
        done: set[str] = set()
        for root in sorted(self._issues):
            if root in done:
                continue
            path: list[str] = []
            on_path: set[str] = set()
            stack: list[tuple[str, int]] = [(root, 0)]
            while stack:
                current, index = stack.pop()
                if index == 0:
                    path.append(current)
                    on_path.add(current)
                node = self._issues.get(current)
                edges = sorted(node.blocked_by) if node else []
                if index < len(edges):
                    stack.append((current, index + 1))
                    nxt = edges[index]
                    if nxt in on_path:
                        return [*path[path.index(nxt) :], nxt]
                    if nxt not in done:
                        stack.append((nxt, 0))
                else:
                    path.pop()
                    on_path.discard(current)
                    done.add(current)
        return None

    def ready(self) -> list[Issue]:
        return sorted((i for i in self._issues.values() if self.is_ready(i)), key=lambda i: i.sort_key)

    def blocked(self) -> list[tuple[Issue, list[str]]]:
        """Open issues waiting on at least one unclosed blocker, with those blockers."""
        result = []
        for issue in sorted(self._issues.values(), key=lambda i: i.sort_key):
            if issue.status != "open":
                continue
            waiting_on = self.open_blockers(issue)
            if waiting_on:
                result.append((issue, waiting_on))
        return result

    def tree(self, issue_id: str) -> TreeNode:
        """Nested view of everything (transitively) blocking *issue_id*.

        Each issue is expanded once; later occurrences are marked ``repeated``.
        """
        root = self._issues.get(issue_id)
        if root is None:
            raise NotFoundError(issue_id)
        top = TreeNode(issue=root, ready=self.is_ready(root))
        expanded: set[str] = set()
        # Pre-order walk; children are pushed reversed so they pop in id order.
        stack: list[tuple[Issue, TreeNode]] = [(root, top)]
        while stack:
            issue, node = stack.pop()
            if issue.id in expanded:
                node.repeated = True
                continue
            expanded.add(issue.id)
            children = []
            for blocker_id in sorted(issue.blocked_by):
                blocker = self._issues.get(blocker_id)
                if blocker is None:
                    logger.warning("tree: dangling blocker %s on %s", blocker_id, issue.id)
                    continue
                child = TreeNode(issue=blocker, ready=self.is_ready(blocker))
                node.blockers.append(child)
                children.append((blocker, child))
            stack.extend(reversed(children))
        return top


class PlanningMixin(DBMixinProtocol):
    """Dependency and readiness operations for BaDB.

    Inherits ``DBMixinProtocol`` for type-safe access to ``self.issues`` and
    ``self.update_issue()``. Implementations are provided by ``BaDB`` at
    composition time via MRO.
    """

    _graph: DependencyGraph | None

    @property
    def graph(self) -> DependencyGraph:
        """Lazily built over the current materialization."""
        if self._graph is None:
            self._graph = DependencyGraph(self.issues)
        return self._graph

    # -- Dependencies --------------------------------------------------------

    def add_blocker(self, issue_id: str, blocker_id: str) -> Issue:
        """Record that *issue_id* cannot start until *blocker_id* is closed.

        Adding an existing edge is a no-op. Status is unchanged.
        """

        def mutation(current: Issue, issues: Mapping[str, Issue]) -> Issue | None:
            if blocker_id not in issues:
                raise NotFoundError(blocker_id)
            if blocker_id in current.blocked_by:
                return None
            # Re-checked against the fresh store: another writer may have
            # added the reverse edge since this process last read.
            if DependencyGraph(issues).would_cycle(current.id, blocker_id):
                raise CycleError(current.id, blocker_id)
            return replace(current, blocked_by=sorted({*current.blocked_by, blocker_id}))

        issue = self.update_issue(issue_id, mutation)
        logger.info("Blocked %s on %s", issue_id, blocker_id, extra={"command": "block", "issue_id": issue_id})
        return issue

    def remove_blocker(self, issue_id: str, blocker_id: str) -> Issue:
        """Drop the edge. Removing an absent edge is a no-op."""

        def mutation(current: Issue, _issues: Mapping[str, Issue]) -> Issue | None:
            if blocker_id not in current.blocked_by:
                return None
            return replace(current, blocked_by=[b for b in current.blocked_by if b != blocker_id])

        issue = self.update_issue(issue_id, mutation)
        logger.info("Unblocked %s from %s", issue_id, blocker_id, extra={"command": "unblock", "issue_id": issue_id})
        return issue

    # -- Queries -------------------------------------------------------------

    def get_ready(self) -> list[Issue]:
        """Open issues with every blocker closed, by priority then creation order."""
        return self.graph.ready()

    def get_blocked(self) -> list[tuple[Issue, list[str]]]:
        return self.graph.blocked()

    def is_ready(self, issue_id: str) -> bool:
        return self.graph.is_ready(self.get_issue(issue_id))

    def get_tree(self, issue_id: str) -> TreeNode:
        return self.graph.tree(issue_id)
