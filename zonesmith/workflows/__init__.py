"""Layer 4: Workflows - Public entry points.

Workflows provide the public entry points users call. File loading lives
here; geopandas is imported only by the vector loader.
"""

from zonesmith.workflows.enrichment import (
    EnrichmentResult,
    ZoneEnrichmentWorkflow,
    run_from_config,
)
from zonesmith.workflows.io import (
    GEOPANDAS_AVAILABLE,
    geodataframe_to_geometry,
    read_table,
    read_vector,
)

__all__ = [
    "EnrichmentResult",
    "GEOPANDAS_AVAILABLE",
    "ZoneEnrichmentWorkflow",
    "geodataframe_to_geometry",
    "read_table",
    "read_vector",
    "run_from_config",
]
