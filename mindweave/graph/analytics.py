"""
Graph metrics over an undirected weighted graph given as an edge list.

Nodes are indexed 0..n-1; edges are (i, j, weight) tuples.
"""

from __future__ import annotations

import numpy as np

PAGERANK_DAMPING = 0.85
PAGERANK_MAX_ITERATIONS = 100
PAGERANK_TOLERANCE = 1e-6
LABEL_PROPAGATION_MAX_ROUNDS = 20


def adjacency_matrix(num_nodes: int, edges: list[tuple[int, int, float]]) -> np.ndarray:
    matrix = np.zeros((num_nodes, num_nodes))
    for i, j, weight in edges:
        if i == j:
            continue
        matrix[i, j] = weight
        matrix[j, i] = weight
    return matrix


def pagerank(
    adjacency: np.ndarray,
    damping: float = PAGERANK_DAMPING,
    max_iterations: int = PAGERANK_MAX_ITERATIONS,
    tolerance: float = PAGERANK_TOLERANCE,
) -> np.ndarray:
    """
    Weighted PageRank by power iteration.

    Nodes without edges spread their rank evenly. Scores sum to 1.
    """
    n = adjacency.shape[0]
    if n == 0:
        return np.zeros(0)

    out_weight = adjacency.sum(axis=1)
    dangling = out_weight == 0
    transition = np.divide(
        adjacency, out_weight[:, None], out=np.zeros_like(adjacency), where=~dangling[:, None]
    )

    ranks = np.full(n, 1.0 / n)
    for _ in range(max_iterations):
        dangling_share = ranks[dangling].sum() / n
        updated = (1 - damping) / n + damping * (ranks @ transition + dangling_share)
        converged = np.abs(updated - ranks).sum() < tolerance
        ranks = updated
        if converged:
            break
    return ranks / ranks.sum()


def label_propagation(
    adjacency: np.ndarray,
    max_rounds: int = LABEL_PROPAGATION_MAX_ROUNDS,
    rng: np.random.Generator | None = None,
) -> list[int]:
    """
    Community labels by weighted label propagation.

    Every node starts in its own community and repeatedly adopts the label
    with the largest total edge weight among its neighbours (ties go to the
    smallest label). Labels are renumbered 0..k-1 in node order.
    """
    n = adjacency.shape[0]
    labels = np.arange(n)
    rng = rng or np.random.default_rng(0)

    for _ in range(max_rounds):
        changed = False
        for node in rng.permutation(n):
            neighbours = np.nonzero(adjacency[node])[0]
            if neighbours.size == 0:
                continue
            scores: dict[int, float] = {}
            for neighbour in neighbours:
                label = int(labels[neighbour])
                scores[label] = scores.get(label, 0.0) + adjacency[node, neighbour]
            best = max(scores.values())
            chosen = min(label for label, score in scores.items() if np.isclose(score, best))
            if chosen != labels[node]:
                labels[node] = chosen
                changed = True
        if not changed:
            break

    renumbered: dict[int, int] = {}
    return [renumbered.setdefault(int(label), len(renumbered)) for label in labels]
