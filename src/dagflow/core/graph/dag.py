# src/dagflow/core/graph/dag.py
"""
Validação de aciclicidade por tempos de partida em busca em profundidade.

Algoritmo:
    1. Monta a lista de adjacência a partir das arestas (src, dest).
    2. Percorre em profundidade a partir de cada nó ainda não descoberto,
       atribuindo a cada nó um tempo de partida estritamente crescente
       quando todos os seus filhos já foram visitados.
    3. O conjunto é um DAG se e somente se nenhuma aresta (src, dest)
       tem `departure[src] <= departure[dest]`.

Complexidade O(V+E). Auto-laços sempre falham. Subgrafos desconexos são
percorridos uma única vez cada. A travessia é iterativa, sem depender do
limite de recursão do interpretador.
"""

from __future__ import annotations

from typing import Dict, Hashable, Iterable, List, Sequence, Tuple

Edge = Tuple[Hashable, Hashable]


def to_adjacency_list(edges: Iterable[Sequence[Hashable]]) -> Dict[Hashable, List[Hashable]]:
    adjacency: Dict[Hashable, List[Hashable]] = {}
    for src, dest in (tuple(edge)[:2] for edge in edges):
        adjacency.setdefault(src, []).append(dest)
        adjacency.setdefault(dest, [])
    return adjacency


def departure_times(adjacency: Dict[Hashable, List[Hashable]]) -> Dict[Hashable, int]:
    departure: Dict[Hashable, int] = {}
    discovered = set()
    time = 0

    for start in adjacency:
        if start in discovered:
            continue
        discovered.add(start)
        stack = [(start, iter(adjacency[start]))]
        while stack:
            node, children = stack[-1]
            for child in children:
                if child not in discovered:
                    discovered.add(child)
                    stack.append((child, iter(adjacency[child])))
                    break
            else:
                stack.pop()
                departure[node] = time
                time += 1

    return departure


def is_dag(edges: Iterable[Sequence[Hashable]]) -> bool:
    """
    Indica se as arestas formam um grafo dirigido acíclico.

    >>> is_dag([(1, 2), (2, 3)])
    True
    >>> is_dag([(1, 2), (2, 3), (3, 1)])
    False
    >>> is_dag([(1, 1)])
    False
    """
    edge_list = [tuple(edge)[:2] for edge in edges]
    departure = departure_times(to_adjacency_list(edge_list))
    for src, dest in edge_list:
        if departure[src] <= departure[dest]:
            return False
    return True
