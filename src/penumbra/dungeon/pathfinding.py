from __future__ import annotations

from collections import deque
from typing import Callable, Dict, List, Optional

from .tiles import DIRECTIONS, Position

Passable = Callable[[Position], bool]


def bfs_distances(start: Position, passable: Passable) -> Dict[Position, int]:
    """Breadth-first distances from start over tiles accepted by passable.

    Uses 4-directional movement in the fixed N, S, W, E order. start is always
    included at distance 0 even if passable rejects it.
    """
    dist = {start: 0}
    q = deque([start])
    while q:
        cur = q.popleft()
        for d in DIRECTIONS:
            nxt = d.step(cur)
            if nxt not in dist and passable(nxt):
                dist[nxt] = dist[cur] + 1
                q.append(nxt)
    return dist


def find_path(start: Position, goal: Position, passable: Passable) -> Optional[List[Position]]:
    """Shortest path from start to goal, excluding start and including goal.

    The goal itself does not need to be passable, so callers can path toward an
    occupied tile. Returns None when unreachable and [] when start == goal.
    """
    if start == goal:
        return []
    prev: Dict[Position, Position] = {}
    seen = {start}
    q = deque([start])
    while q:
        cur = q.popleft()
        for d in DIRECTIONS:
            nxt = d.step(cur)
            if nxt in seen:
                continue
            if nxt == goal:
                path = [goal]
                node = cur
                while node != start:
                    path.append(node)
                    node = prev[node]
                path.reverse()
                return path
            if passable(nxt):
                seen.add(nxt)
                prev[nxt] = cur
                q.append(nxt)
    return None


def farthest_tile(start: Position, candidates: List[Position], passable: Passable) -> Optional[Position]:
    """Candidate with the greatest BFS distance from start; ties go to the first in candidates order.

    Unreachable candidates are ignored. Returns None if none are reachable.
    """
    dist = bfs_distances(start, passable)
    best: Optional[Position] = None
    best_d = -1
    for pos in candidates:
        d = dist.get(pos)
        if d is not None and d > best_d:
            best, best_d = pos, d
    return best
