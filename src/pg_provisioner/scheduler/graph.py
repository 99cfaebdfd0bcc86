from __future__ import annotations

from pg_provisioner.provisioning.sequencer import DependencyGraph
from pg_provisioner.scheduler.executor import Executor
from pg_provisioner.scheduler.nodes import task_node
from pg_provisioner.scheduler.state import RunState


def node_names(graph: DependencyGraph) -> dict[str, str]:
    # Task ids may contain characters LangGraph reserves (':' and '|').
    return {tid: f"task_{i:04d}" for i, tid in enumerate(graph.order)}


def build_run_graph(graph: DependencyGraph, *, executor: Executor):
    """
    Returns a compiled LangGraph runnable with one node per task.
    """

    try:
        from langgraph.graph import END, START, StateGraph  # type: ignore[import-not-found]
    except Exception as e:  # pragma: no cover
        raise RuntimeError("LangGraph is not available. Install the package dependencies.") from e

    if not graph.order:
        raise ValueError("cannot build a run graph without tasks")

    names = node_names(graph)
    sg = StateGraph(RunState)

    for tid in graph.order:
        sg.add_node(
            names[tid],
            task_node(
                graph.tasks[tid],
                hard_requirements=graph.hard_requirements[tid],
                executor=executor,
            ),
        )

    for tid in graph.order:
        preds = sorted(graph.predecessors[tid])
        if not preds:
            sg.add_edge(START, names[tid])
        elif len(preds) == 1:
            sg.add_edge(names[preds[0]], names[tid])
        else:
            # Join edge: waits for every predecessor, across supersteps.
            sg.add_edge([names[p] for p in preds], names[tid])

    for tid in graph.leaves():
        sg.add_edge(names[tid], END)

    return sg.compile()
