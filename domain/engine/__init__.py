"""Engine Bounded Context.

Responsible for talking to the external propagation engine:
- Value Objects: ParameterSet, PathQuery, ProfileQuery, ImageQuery, measurements
- Services: wire protocol encode/decode, request translation
- Ports: EngineClient
"""
