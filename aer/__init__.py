"""Agent Env Reconciler (AER).

Keeps the environment of a per-node agent workload (e.g. the aws-node
DaemonSet) in line with a list of user overrides:
 - merge overrides into the container's existing env (last override wins)
 - write the whole workload object back through a gateway
 - record every pass in a small SQLite event log

The core (merge + one reconcile pass) is pure and has no global state.
"""
