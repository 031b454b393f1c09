#!/usr/bin/env python3
"""Multi-agent coordination with ba.

Three simulated agents run concurrently in threads, each with its own BaDB
instance on one shared project, competing for work from the ready queue.

Key concepts shown:
  - Blocking dependencies gate the ready queue
  - Claims are validated against fresh state under the writer lock, so two
    agents racing for the same issue get exactly one winner and one
    ConflictError
  - Finishing a blocker makes its dependents ready for the next agent
  - Comments as an audit trail

How to run:
    python docs/examples/multi_agent.py
"""

from __future__ import annotations

import tempfile
import threading
import time
from pathlib import Path

from ba.core import BaDB, init_project
from ba.errors import ConflictError


def create_work_items(db: BaDB) -> None:
    """Create a small plan: docs and release wait on the code work."""
    ci = db.create_issue("Set up CI pipeline", priority=0)
    tests = db.create_issue("Write unit tests", priority=1)
    docs = db.create_issue("Update documentation", priority=2)
    release = db.create_issue("Cut release", priority=1)
    db.create_issue("Refactor logging module", type="refactor", priority=3)

    db.add_blocker(docs.id, tests.id)
    db.add_blocker(release.id, ci.id)
    db.add_blocker(release.id, docs.id)

    for issue in db.list_issues():
        waiting = ", ".join(issue.blocked_by) or "-"
        print(f"  [{issue.id}] P{issue.priority} {issue.title:<26} blocked by: {waiting}")


def agent_loop(ba_dir: Path, agent_name: str) -> None:
    """Claim the best ready issue, do the work, finish it; stop when nothing is left."""
    db = BaDB(ba_dir, prefix="demo")
    while True:
        db.refresh()
        ready = db.get_ready()
        if not ready:
            if not db.list_issues(status="open"):
                print(f"  [{agent_name}] Nothing left. Shutting down.")
                return
            # Remaining work is blocked on someone else's claim.
            time.sleep(0.02)
            continue

        issue = ready[0]
        try:
            db.claim_issue(issue.id, session=agent_name)
        except ConflictError:
            print(f"  [{agent_name}] Lost the race for {issue.id}, retrying")
            continue

        print(f"  [{agent_name}] Claimed [{issue.id}] {issue.title}")
        time.sleep(0.05)
        db.add_comment(issue.id, f"Completed by {agent_name}.", author=agent_name)
        db.finish_issue(issue.id, session=agent_name)
        print(f"  [{agent_name}] Finished [{issue.id}]")


def main() -> None:
    with tempfile.TemporaryDirectory(prefix="ba_demo_") as tmpdir:
        ba_dir = init_project(Path(tmpdir), prefix="demo").ba_dir

        print("=== Multi-Agent Coordination Demo ===\n")
        print("Creating work items:")
        create_work_items(BaDB(ba_dir, prefix="demo"))

        print("\nStarting agents:")
        agents = [threading.Thread(target=agent_loop, args=(ba_dir, f"agent-{name}")) for name in ("alpha", "beta", "gamma")]
        for agent in agents:
            agent.start()
        for agent in agents:
            agent.join()

        print("\n--- Final State ---")
        db = BaDB(ba_dir, prefix="demo")
        for issue in db.list_issues(include_closed=True):
            author = issue.comments[-1].author if issue.comments else "n/a"
            print(f"  [{issue.id}] {issue.status:<8} P{issue.priority}  {issue.title:<26} (completed by: {author})")

        report = db.check()
        print(f"\nStore check: {'ok' if report.ok else report.violations}")

    print("\nDemo complete. Temp project cleaned up.")


if __name__ == "__main__":
    main()
