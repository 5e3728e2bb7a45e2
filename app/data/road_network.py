# app/data/road_network.py
"""
Fixed road network of central Hualien used by the fallback router.

Node ids are small ints; edges are undirected and carry the road name and a
road class ("main" or "side"). Weights are not stored here: the graph
builder computes them from the node coordinates.
"""

from typing import Dict, List, Tuple

# id -> (lon, lat, label)
HUALIEN_NODES: Dict[int, Tuple[float, float, str]] = {
    1: (121.602, 23.974, "Zhongshan Rd start"),
    2: (121.603, 23.975, "Zhongshan Rd middle"),
    3: (121.604, 23.976, "Zhongshan Rd end"),
    4: (121.605, 23.977, "Zhongshan / Zhongzheng junction"),
    5: (121.606, 23.978, "Zhongzheng Rd start"),
    6: (121.607, 23.976, "Zhongzheng Rd middle"),
    7: (121.608, 23.977, "Zhongzheng Rd end"),
    8: (121.609, 23.978, "Zhongzheng / Guolian 1st junction"),
    9: (121.610, 23.979, "Guolian 1st Rd start"),
    10: (121.604, 23.980, "Guolian 1st Rd middle"),
    11: (121.605, 23.981, "Guolian 1st Rd end"),
    12: (121.606, 23.982, "Linsen Rd start"),
    13: (121.607, 23.983, "Linsen Rd middle"),
    14: (121.608, 23.973, "Near Hualien Station"),
    15: (121.609, 23.974, "Old Railway Cultural Park"),
}

# (from, to, road name, road class)
HUALIEN_EDGES: List[Tuple[int, int, str, str]] = [
    (1, 2, "Zhongshan Rd", "main"),
    (2, 3, "Zhongshan Rd", "main"),
    (3, 4, "Zhongshan Rd", "main"),
    (4, 5, "Zhongshan Rd", "main"),
    (5, 6, "Zhongzheng Rd", "main"),
    (6, 7, "Zhongzheng Rd", "main"),
    (7, 8, "Zhongzheng Rd", "main"),
    (8, 9, "Zhongzheng Rd", "main"),
    (9, 10, "Guolian 1st Rd", "main"),
    (10, 11, "Guolian 1st Rd", "main"),
    (11, 12, "Guolian 1st Rd", "main"),
    (12, 13, "Linsen Rd", "main"),
    (14, 15, "Guolian 1st Rd", "main"),
    (4, 6, "Connector", "side"),
    (8, 10, "Connector", "side"),
]
