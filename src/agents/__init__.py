"""Agents.

- query_orchestrator: decompose a request, fan out typed sub-tasks,
  aggregate their results into one answer
"""
