"""latch-agent.

A local assistant that lets an untrusted planner *propose* filesystem and
command actions while a deterministic policy decides what actually runs.

High-level architecture
-----------------------

- ``latch_agent.agent_core``:

  - Domain schemas (messages, tool calls, plans, results).
  - The policy engine and its JSON configuration.
  - Capability handlers (file search, bounded file read, allowlisted command
    execution) and the sandboxed executor.
  - A LangGraph-based turn orchestrator with approval gating.
  - The redacted, rotating JSONL audit log.

- ``latch_agent.core``:

  - Settings (``LATCH_*`` environment variables) and logging setup.

- ``latch_agent.harness``: a scripted demo that exercises the whole turn,
  including a command the policy must refuse.

Turn workflow
-------------

1. The user message is recorded.
2. The planner proposes actions; questions end the turn.
3. Every action is checked by policy; one denial denies the turn.
4. Medium-risk actions wait for human approval.
5. Approved and low-risk actions run in order inside the workspace root.
6. A single reply summarizes the outcome.
"""
