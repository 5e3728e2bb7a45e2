# app/services/road_graph.py
from time import perf_counter
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import networkx as nx

from app.core.errors import NoConnectingPath
from app.core.logger import logger
from app.data.road_network import HUALIEN_EDGES, HUALIEN_NODES
from app.models.routing import (
    AccessibilityAssessment,
    LonLat,
    RouteGeometry,
    RouteParameters,
    RouteResult,
)
from app.services.accessibility import accessible_duration_s
from app.services.geo import haversine_m, planar_distance_m, polyline_length_m

NodeTable = Dict[int, Tuple[float, float, str]]
EdgeTable = Iterable[Tuple[int, int, str, str]]


def build_graph(nodes: NodeTable, edges: EdgeTable) -> nx.Graph:
    """
    Build an undirected road graph from a node table and an edge table.

    Each node keeps x (lon), y (lat) and its label; each edge gets
    weight = haversine distance between its endpoints, in metres.
    """
    G = nx.Graph()

    for node_id, (lon, lat, label) in nodes.items():
        G.add_node(node_id, x=lon, y=lat, label=label)

    for u, v, road, road_class in edges:
        if u not in nodes or v not in nodes:
            logger.warning("Skipping edge {}-{} ({}): unknown endpoint", u, v, road)
            continue
        weight = haversine_m(nodes[u][:2], nodes[v][:2])
        G.add_edge(u, v, weight=weight, road=road, road_class=road_class)

    return G


def shortest_path(G: nx.Graph, start_id: Any, end_id: Any) -> Optional[List[Any]]:
    """
    Dijkstra shortest path by 'weight' (metres).

    Returns None when either node is unknown or the two nodes lie in
    different components.
    """
    try:
        return nx.dijkstra_path(G, source=start_id, target=end_id, weight="weight")
    except (nx.NetworkXNoPath, nx.NodeNotFound):
        return None


class RoadGraph:
    """
    Small fixed road network used as a deterministic fallback router.

    The graph is built once on construction; lookups and path searches are
    read-only, so one instance can be shared across requests.
    """

    ROUTE_NOTES = "road network route"

    def __init__(
        self,
        nodes: Optional[NodeTable] = None,
        edges: Optional[EdgeTable] = None,
    ) -> None:
        self.nodes: NodeTable = dict(HUALIEN_NODES if nodes is None else nodes)
        self.graph: nx.Graph = build_graph(
            self.nodes, HUALIEN_EDGES if edges is None else edges
        )
        logger.info(
            "RoadGraph ready: {} nodes, {} edges",
            self.graph.number_of_nodes(),
            self.graph.number_of_edges(),
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def nearest_node(self, point: Sequence[float]) -> Optional[int]:
        """
        Snap a (lon, lat) point to the closest graph node.

        Linear scan with the scaled-degree distance; the table is tiny.
        Returns None only when there are no nodes at all.
        """
        nearest = None
        best_dist = float("inf")

        for node_id, (lon, lat, _label) in self.nodes.items():
            d = planar_distance_m(point, (lon, lat))
            if d < best_dist:
                best_dist = d
                nearest = node_id

        return nearest

    def node_coordinate(self, node_id: int) -> LonLat:
        lon, lat, _label = self.nodes[node_id]
        return (lon, lat)

    def road_types(self, path: Sequence[int]) -> List[str]:
        """
        Distinct road classes along a node path, in first-seen order.
        """
        seen: List[str] = []
        for u, v in zip(path[:-1], path[1:]):
            data = self.graph.get_edge_data(u, v)
            if data and data["road_class"] not in seen:
                seen.append(data["road_class"])
        return seen

    def compose_route(
        self,
        start: Sequence[float],
        end: Sequence[float],
        params: RouteParameters,
    ) -> RouteResult:
        """
        Route between two arbitrary points over the fixed network.

        1. Snap start and end to their nearest nodes.
        2. Run Dijkstra between them.
        3. Geometry = [start, *node coordinates, end].
        4. Distance from the polyline, duration from the speed policy.

        Raises NoConnectingPath if either end cannot be snapped or the nodes
        are not connected.
        """
        t0 = perf_counter()

        start_node = self.nearest_node(start)
        end_node = self.nearest_node(end)
        if start_node is None or end_node is None:
            raise NoConnectingPath("Road graph has no nodes to snap to")

        path = shortest_path(self.graph, start_node, end_node)
        if not path:
            raise NoConnectingPath(
                f"No road connects node {start_node} and node {end_node}"
            )

        coords: List[List[float]] = [list(start)]
        coords.extend(list(self.node_coordinate(n)) for n in path)
        coords.append(list(end))

        distance_m = polyline_length_m(coords)
        duration_s = accessible_duration_s(distance_m, params)

        logger.info(
            "Graph route {} -> {}: {} nodes, distance={:.0f} m, time={:.2f} ms",
            start_node,
            end_node,
            len(path),
            distance_m,
            (perf_counter() - t0) * 1000.0,
        )

        return RouteResult(
            geometry=RouteGeometry(coordinates=coords),
            distance_m=distance_m,
            duration_s=duration_s,
            duration_min=round(duration_s / 60),
            accessibility=AccessibilityAssessment(
                level="medium",
                score=100.0,
                notes=self.ROUTE_NOTES,
            ),
            source="graph-fallback",
            road_types=self.road_types(path),
            parameters=params,
        )
