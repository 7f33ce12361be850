"""Coverage Bounded Context.

Responsible for discovering where a transmitter is received:
- Value Objects: GeoPoint, SpatialCell, CoverageRequest, CoverageMap
- Services: CoverageSearch (ring expansion), request translation
- Ports: HexGrid
"""
