"""Infrastructure Layer.

Adapters implementing domain ports: engine subprocess transports and the
hexagonal grid. All I/O and third-party grid libraries live here.
"""
