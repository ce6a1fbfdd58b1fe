"""
Default limits of the route resolution lab.

The values match the reference four-router network used in class.  A topology
file can override them through its ``limits`` section.
"""

MAX_NETWORKS_PER_ROUTER = 4
MAX_ROUTE_HISTORY = 20
MAX_ADDRESS_LEN = 15       # dotted-quad IPv4

# 1 = direct link, row/column order R1..R4
REFERENCE_ADJACENCY = (
    (1, 1, 0, 1),
    (1, 1, 1, 0),
    (0, 1, 1, 1),
    (1, 0, 1, 1),
)

FINALIZE_HOP = 0           # hop value that asks to close the path
INVALID_HOP = -1           # sentinel for unparsable hop input

TRACE_LEVEL = 5            # custom logging level below DEBUG
