"""Integration tests for the zone enrichment workflow."""

import numpy as np
import pandas as pd
import pytest

from zonesmith.config import EnrichmentConfig, EnrichmentOptions
from zonesmith.objects import PointSet, PolygonSet
from zonesmith.utils.errors import ConfigurationError, KeyMismatchError
from zonesmith.workflows.enrichment import ZoneEnrichmentWorkflow, run_from_config

pytestmark = pytest.mark.integration


def _box(x0, y0, x1, y1):
    return np.array([[x0, y0], [x1, y0], [x1, y1], [x0, y1]], dtype=float)


@pytest.fixture
def boroughs():
    """Three adjacent boroughs on a 1 km grid."""
    return PolygonSet(
        rings=[
            [_box(0, 0, 1000, 1000)],
            [_box(1000, 0, 2000, 1000)],
            [_box(2000, 0, 3000, 1000)],
        ],
        attributes=pd.DataFrame(
            {"name": ["City of London", "Camden", "Hackney"], "Partic_Per": [9.1, 17.2, 21.0]}
        ),
        crs="EPSG:27700",
    )


@pytest.fixture
def stations():
    np.random.seed(42)
    coords = np.column_stack(
        [np.random.uniform(-500, 3500, 300), np.random.uniform(-200, 1200, 300)]
    )
    return PointSet(coordinates=coords, crs="EPSG:27700")


@pytest.fixture
def crime():
    return pd.DataFrame(
        {
            "Borough": ["Corp of London", "Camden", "Hackney", "Camden"],
            "CrimeCount": [120, 3400, 2800, 100],
        }
    )


class TestZoneEnrichmentWorkflow:
    """Tests for ZoneEnrichmentWorkflow."""

    def test_full_pipeline(self, boroughs, stations, crime):
        """Test clip, count, inspect and join run end to end."""
        result = ZoneEnrichmentWorkflow().run(
            boroughs,
            key="name",
            points=stations,
            table=crime,
            table_key="Borough",
            value_column="CrimeCount",
            relabel={"Corp of London": "City of London"},
        )

        zones = result.zones
        assert zones["name"].tolist() == ["City of London", "Camden", "Hackney"]
        assert zones["CrimeCount"].tolist() == [120, 3500, 2800]
        assert zones["count"].sum() == len(result.clipped_points)
        assert zones["count"].sum() <= len(stations)
        assert result.unmatched_keys == ["Corp of London"]
        assert result.counts["count"].tolist() == zones["count"].tolist()

        x = stations.coordinates[:, 0]
        y = stations.coordinates[:, 1]
        inside = (x >= 0) & (x <= 3000) & (y >= 0) & (y <= 1000)
        assert len(result.clipped_points) == inside.sum()

    def test_pipeline_fails_without_relabel(self, boroughs, stations, crime):
        """Test the misspelled borough aborts the join."""
        with pytest.raises(KeyMismatchError) as excinfo:
            ZoneEnrichmentWorkflow().run(
                boroughs,
                key="name",
                points=stations,
                table=crime,
                table_key="Borough",
                value_column="CrimeCount",
            )
        assert excinfo.value.unmatched == ["Corp of London"]

    def test_crs_mismatch_aborts(self, boroughs):
        """Test points in another CRS are rejected without a target CRS."""
        points = PointSet(coordinates=[[-0.1, 51.5]], crs="EPSG:4326")
        with pytest.raises(ConfigurationError):
            ZoneEnrichmentWorkflow().run(boroughs, key="name", points=points)

    def test_target_crs_alignment(self):
        """Test both layers are reprojected to the configured CRS."""
        zones = PolygonSet(
            rings=[[_box(-1, -1, 1, 1)], [_box(1, -1, 3, 1)]],
            attributes=pd.DataFrame({"name": ["West", "East"]}),
            crs="EPSG:4326",
        )
        points = PointSet(
            coordinates=[[0.0, 0.0], [0.5, 0.5], [2.0, 0.0], [10.0, 10.0]],
            crs="EPSG:4326",
        )
        workflow = ZoneEnrichmentWorkflow(EnrichmentOptions(target_crs=3857))

        result = workflow.run(zones, key="name", points=points)

        assert result.zones["count"].tolist() == [2, 1]
        assert result.clipped_points.crs == 3857
        assert abs(result.clipped_points.coordinates[2, 0] - 222638.98) < 0.01

    def test_shared_edge_counts(self, boroughs):
        """Test a point on a shared edge is counted once under 'first'."""
        points = PointSet(coordinates=[[1000.0, 500.0]], crs="EPSG:27700")
        result = ZoneEnrichmentWorkflow().run(boroughs, key="name", points=points)
        assert result.zones["count"].tolist() == [1, 0, 0]
        assert result.multi_match_count == 1

    def test_vertex_point_counted_inside(self, boroughs):
        """Test a point exactly on a polygon vertex counts as inside."""
        points = PointSet(coordinates=[[0.0, 0.0]], crs="EPSG:27700")
        counts = [
            ZoneEnrichmentWorkflow().run(boroughs, key="name", points=points)
            .zones["count"]
            .tolist()
            for _ in range(5)
        ]
        assert all(c == [1, 0, 0] for c in counts)

    def test_table_only(self, boroughs, crime):
        """Test the workflow runs without points."""
        result = ZoneEnrichmentWorkflow().run(
            boroughs,
            key="name",
            table=crime,
            table_key="Borough",
            value_column="CrimeCount",
            relabel={"Corp of London": "City of London"},
        )
        assert result.counts is None
        assert "count" not in result.zones.columns
        assert result.zones["CrimeCount"].tolist() == [120, 3500, 2800]


class TestRunFromConfig:
    """Tests for running the workflow from a configuration."""

    def test_run_from_config(self, tmp_path, crime):
        """Test loading layers and a latin1 table named in a config."""
        gpd = pytest.importorskip("geopandas")
        shapely = pytest.importorskip("shapely.geometry")

        gpd.GeoDataFrame(
            {"name": ["City of London", "Camden", "Hackney"]},
            geometry=[
                shapely.box(0, 0, 1000, 1000),
                shapely.box(1000, 0, 2000, 1000),
                shapely.box(2000, 0, 3000, 1000),
            ],
            crs="EPSG:27700",
        ).to_file(tmp_path / "zones.geojson", driver="GeoJSON")
        gpd.GeoDataFrame(
            {"station": ["a", "b", "c"]},
            geometry=[
                shapely.Point(500, 500),
                shapely.Point(1500, 500),
                shapely.Point(9000, 9000),
            ],
            crs="EPSG:27700",
        ).to_file(tmp_path / "stations.geojson", driver="GeoJSON")
        crime.to_csv(tmp_path / "crime.csv", index=False, encoding="latin1")

        config = EnrichmentConfig.from_dict(
            {
                "zones": {"path": "zones.geojson", "key": "name"},
                "points": {"path": "stations.geojson"},
                "table": {
                    "path": "crime.csv",
                    "encoding": "latin1",
                    "key": "Borough",
                    "value_column": "CrimeCount",
                    "relabel": {"Corp of London": "City of London"},
                },
            },
            base_dir=tmp_path,
        )

        result = run_from_config(config)

        assert result.zones["count"].tolist() == [1, 1, 0]
        assert result.zones["CrimeCount"].tolist() == [120, 3500, 2800]
        assert len(result.clipped_points) == 2
