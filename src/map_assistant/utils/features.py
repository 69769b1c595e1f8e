"""In-memory map surface: rendered geometries, selection and export."""

import logging
from itertools import count

import geopandas as gpd
from geojson_pydantic import FeatureCollection

from map_assistant.agent.state import (
    SelectedBuffer,
    SelectedFeature,
    SelectedIsochrone,
    SelectedLine,
    SelectedMarker,
    SelectedPolygon,
    SessionContext,
)
from map_assistant.schemas.geometry import (
    Buffer,
    ElevationProfile,
    Geometry,
    GeometryKind,
    IsochroneSet,
    Line,
    Marker,
    Polygon,
)

logger = logging.getLogger(__name__)


def as_selected(geometry: Geometry, name: str) -> SelectedFeature:
    """Selection view of a rendered geometry."""
    if isinstance(geometry, Marker):
        return SelectedMarker(name=name, coordinates=[geometry.coordinate.position])
    if isinstance(geometry, (Line, ElevationProfile)):
        return SelectedLine(name=name, coordinates=list(geometry.coordinates))
    if isinstance(geometry, Polygon):
        return SelectedPolygon(name=name, coordinates=list(geometry.ring))
    if isinstance(geometry, Buffer):
        return SelectedBuffer(name=name, coordinates=geometry.center.position)
    if isinstance(geometry, IsochroneSet):
        return SelectedIsochrone(name=name, coordinates=geometry.center.position)
    raise TypeError(f"Cannot select {type(geometry).__name__}")


class FeatureRegistry:
    """Keeps every rendered geometry under a stable id such as ``buffer-3``."""

    def __init__(self):
        self._geometries: dict[str, Geometry] = {}
        self._ids = count(1)

    def render(self, geometry: Geometry) -> None:
        feature_id = f"{geometry.kind}-{next(self._ids)}"
        self._geometries[feature_id] = geometry
        logger.info("Rendered %s", feature_id)

    def __len__(self) -> int:
        return len(self._geometries)

    def features(self) -> dict[str, Geometry]:
        return dict(self._geometries)

    def select(self, feature_id: str) -> SelectedFeature:
        try:
            geometry = self._geometries[feature_id]
        except KeyError:
            raise KeyError(f"Unknown feature {feature_id!r}") from None
        return as_selected(geometry, feature_id)

    def with_selection(self, context: SessionContext, feature_id: str | None) -> SessionContext:
        """Copy of ``context`` with the given feature selected, or nothing when None."""
        selected = self.select(feature_id) if feature_id is not None else None
        return context.model_copy(update={"selected_feature": selected})

    def clear(self, kind: GeometryKind | None = None) -> int:
        """Remove every geometry, or only those of one kind."""
        doomed = [
            feature_id for feature_id, geometry in self._geometries.items() if kind in (None, geometry.kind)
        ]
        for feature_id in doomed:
            del self._geometries[feature_id]
        logger.info("Cleared %d features (%s)", len(doomed), kind or "all")
        return len(doomed)

    def to_feature_collection(self) -> FeatureCollection:
        features = []
        for feature_id, geometry in self._geometries.items():
            for feature in geometry.to_features():
                features.append(feature.model_copy(update={"id": feature_id}))
        return FeatureCollection(type="FeatureCollection", features=features)

    def to_geodataframe(self) -> gpd.GeoDataFrame:
        collection = self.to_feature_collection().model_dump(mode="json")
        if not collection["features"]:
            return gpd.GeoDataFrame({"feature_id": []}, geometry=[], crs="EPSG:4326")
        gdf = gpd.GeoDataFrame.from_features(collection, crs="EPSG:4326")
        gdf["feature_id"] = [feature["id"] for feature in collection["features"]]
        return gdf
