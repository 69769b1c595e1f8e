from map_assistant.tools.buffer import BufferAgent
from map_assistant.tools.elevation import ElevationAgent
from map_assistant.tools.isochrone import IsochroneAgent
from map_assistant.tools.line import LineAgent
from map_assistant.tools.point import PointAgent
from map_assistant.tools.polygon import PolygonAgent

__all__ = [
    "BufferAgent",
    "ElevationAgent",
    "IsochroneAgent",
    "LineAgent",
    "PointAgent",
    "PolygonAgent",
]
